"""
GitHub API Client Module

Endpoint level operations used by the repository aggregator and the
repository collector. Every list endpoint goes through the shared paginators so
that all concurrent fetch streams of one API class share one rate limiter.
Results are deserialized into the typed records of contriblens.models.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from contriblens.config import Configuration
from contriblens.console import logger
from contriblens.models import Commit, Issue, IssueComment, PrComment, PullRequest, Repository, Review
from contriblens.transport import HttpTransport, PaginatedFetcher, RateLimiter, SearchPaginator, with_query


def _unique(names: List[str]) -> List[str]:
    """Deduplicate while keeping first-seen order"""
    return list(dict.fromkeys(names))


def _iso(moment: Optional[datetime]) -> Optional[str]:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ") if moment else None


class GithubClient:
    """Client for the organization scoped GitHub endpoints used during collection"""

    def __init__(self, config: Configuration, transport: Optional[HttpTransport] = None) -> None:
        self.organization = config["GITHUB_ORG"]
        self.transport = transport or HttpTransport.from_config(config)
        self.standard_limiter = RateLimiter.standard(config)
        self.search_limiter = RateLimiter.search(config)
        self.pages = PaginatedFetcher(self.transport, self.standard_limiter)
        self.searches = SearchPaginator(self.transport, self.search_limiter)

    def _repo_path(self, repo_name: str) -> str:
        return f"/repos/{self.organization}/{quote(repo_name)}"

    # Repository discovery

    def fetch_organization_repositories(self) -> List[Repository]:
        """All repositories of the organization visible to the token"""
        items = self.pages.fetch_all(f"/orgs/{self.organization}/repos")
        return [Repository.from_api(item) for item in items]

    def fetch_repository(self, repo_name: str) -> Repository:
        return Repository.from_api(self.transport.get_json(self._repo_path(repo_name)))

    def search_repositories(self, query: str) -> List[Repository]:
        items = self.searches.search("repositories", query)
        return [Repository.from_api(item) for item in items]

    def search_issue_repository_names(self, query: str) -> List[str]:
        """Names of the repositories referenced by issue/PR search results"""
        items = self.searches.search("issues", query)
        names = [
            item["repository_url"].rstrip("/").split("/")[-1]
            for item in items
            if item.get("repository_url")
        ]
        return _unique(names)

    def fetch_user_event_repository_names(self, username: str) -> List[str]:
        """Names of organization repositories found in the user's public events"""
        events = self.pages.fetch_all(f"/users/{quote(username)}/events/public")
        prefix = f"{self.organization}/"
        names = [
            event["repo"]["name"].split("/")[-1]
            for event in events
            if (event.get("repo") or {}).get("name", "").startswith(prefix)
        ]
        return _unique(names)

    # Per repository contributions

    def fetch_commits(self, repo_name: str, author: str, since: Optional[datetime] = None) -> List[Commit]:
        endpoint = with_query(f"{self._repo_path(repo_name)}/commits", {"author": author, "since": _iso(since)})
        return [Commit.from_api(item) for item in self.pages.fetch_all(endpoint)]

    def fetch_commit_details(self, repo_name: str, sha: str) -> Dict[str, Any]:
        return self.transport.get_json(f"{self._repo_path(repo_name)}/commits/{sha}")

    def fetch_pull_requests(self, repo_name: str, state: str = "all") -> List[PullRequest]:
        endpoint = with_query(f"{self._repo_path(repo_name)}/pulls", {"state": state})
        return [PullRequest.from_api(item) for item in self.pages.fetch_all(endpoint)]

    def fetch_reviews(self, repo_name: str, pr_number: int) -> List[Review]:
        items = self.pages.fetch_all(f"{self._repo_path(repo_name)}/pulls/{pr_number}/reviews")
        return [Review.from_api(item, pull_request_number=pr_number) for item in items]

    def fetch_review_comments(self, repo_name: str, pr_number: int) -> List[PrComment]:
        items = self.pages.fetch_all(f"{self._repo_path(repo_name)}/pulls/{pr_number}/comments")
        return [PrComment.from_api(item) for item in items]

    def fetch_issues(self, repo_name: str, creator: Optional[str] = None, assignee: Optional[str] = None,
                     since: Optional[datetime] = None, state: str = "all") -> List[Issue]:
        params = {"state": state, "creator": creator, "assignee": assignee, "since": _iso(since)}
        endpoint = with_query(f"{self._repo_path(repo_name)}/issues", params)
        return [Issue.from_api(item) for item in self.pages.fetch_all(endpoint)]

    def fetch_issue_comments(self, repo_name: str, since: Optional[datetime] = None) -> List[IssueComment]:
        endpoint = with_query(f"{self._repo_path(repo_name)}/issues/comments", {"since": _iso(since)})
        return [IssueComment.from_api(item) for item in self.pages.fetch_all(endpoint)]

    def fetch_pr_comments(self, repo_name: str, since: Optional[datetime] = None) -> List[PrComment]:
        endpoint = with_query(f"{self._repo_path(repo_name)}/pulls/comments", {"since": _iso(since)})
        return [PrComment.from_api(item) for item in self.pages.fetch_all(endpoint)]

    def log_request_count(self) -> None:
        logger.info(f"GitHub API requests made: {self.transport.requests_made}")
