"""
Repository Contribution Collector Module

Collects one developer's contributions in one repository. Commits, pull requests,
issues, PR comments and issue comments are fetched concurrently; reviews depend
on the pull request list and are fetched once that list is known. Each record
kind fails independently: a failing endpoint yields an empty collection for that
kind instead of losing the whole repository.
"""

import concurrent.futures
from typing import Callable, Dict, List, Optional, TypeVar

from contriblens.client import GithubClient
from contriblens.console import logger
from contriblens.errors import FATAL_ERRORS, ContribLensError
from contriblens.models import (
    Commit,
    DateRange,
    Issue,
    IssueComment,
    PrComment,
    PullRequest,
    RepositoryContribution,
    Review,
)

T = TypeVar("T")

INDEPENDENT_FETCHES = 5


class ReviewEnricher:
    """
    Backfills empty COMMENTED reviews with the bodies of their inline comments.

    GitHub often leaves the review body empty and stores the text on the line
    comments that reference the review through ``pull_request_review_id``.
    """

    SEPARATOR = "\n---\n"

    def __init__(self, reviews: List[Review], comments: List[PrComment]) -> None:
        self.reviews = reviews
        self.comments_by_review: Dict[int, List[PrComment]] = {}
        for comment in comments:
            if comment.pull_request_review_id is not None:
                self.comments_by_review.setdefault(comment.pull_request_review_id, []).append(comment)

    @staticmethod
    def needs_enrichment(review: Review) -> bool:
        return not review.body.strip() and review.state == "COMMENTED"

    def enrich(self) -> List[Review]:
        for review in self.reviews:
            if not self.needs_enrichment(review):
                continue
            bodies = [c.body for c in self.comments_by_review.get(review.id, []) if c.body]
            if bodies:
                review.body = self.SEPARATOR.join(bodies)
        return self.reviews


class RepositoryCollector:
    """Collects the six contribution kinds of one developer in one repository"""

    def __init__(self, client: GithubClient, enrich_commit_stats: bool = True) -> None:
        self.client = client
        self.enrich_commit_stats = enrich_commit_stats

    def collect(self, repo_name: str, username: str,
                date_range: Optional[DateRange] = None) -> RepositoryContribution:
        """
        Collect the developer's contributions in a repository.

        Args:
            repo_name: Repository name inside the configured organization
            username: GitHub login of the developer
            date_range: Optional inclusive bounds applied to every record kind

        Returns:
            RepositoryContribution whose records all fall inside the date range

        Raises:
            AuthenticationError: If the token is rejected
        """
        date_range = date_range or DateRange()

        with concurrent.futures.ThreadPoolExecutor(
                max_workers=INDEPENDENT_FETCHES, thread_name_prefix=f"fetch-{repo_name}") as executor:
            futures = {
                "commits": executor.submit(
                    self._guarded, "commits", repo_name,
                    lambda: self._fetch_commits(repo_name, username, date_range)),
                "pull_requests": executor.submit(
                    self._guarded, "pull requests", repo_name,
                    lambda: self._fetch_pull_requests(repo_name, username, date_range)),
                "issues": executor.submit(
                    self._guarded, "issues", repo_name,
                    lambda: self._fetch_issues(repo_name, username, date_range)),
                "pr_comments": executor.submit(
                    self._guarded, "PR comments", repo_name,
                    lambda: self._fetch_pr_comments(repo_name, username, date_range)),
                "issue_comments": executor.submit(
                    self._guarded, "issue comments", repo_name,
                    lambda: self._fetch_issue_comments(repo_name, username, date_range)),
            }

            # Reviews are scoped to pull request numbers, so they wait for that list
            pull_requests = futures["pull_requests"].result()
            reviews = self._guarded(
                "reviews", repo_name,
                lambda: self._fetch_reviews(repo_name, username, pull_requests, date_range))

            results = {kind: future.result() for kind, future in futures.items()}

        contribution = RepositoryContribution(
            commits=results["commits"],
            pull_requests=results["pull_requests"],
            reviews=reviews,
            issues=results["issues"],
            pr_comments=results["pr_comments"],
            issue_comments=results["issue_comments"],
        )
        return contribution.filtered(date_range)

    @staticmethod
    def _guarded(kind: str, repo_name: str, fetch: Callable[[], List[T]]) -> List[T]:
        """Run one fetch, turning a non-fatal failure into an empty collection"""
        logger.debug(f"Fetching {kind} for {repo_name}")
        try:
            return fetch()
        except FATAL_ERRORS:
            raise
        except ContribLensError as e:
            logger.warning(f"{repo_name}: could not fetch {kind} - {e}")
            return []

    def _fetch_commits(self, repo_name: str, username: str, date_range: DateRange) -> List[Commit]:
        commits = self.client.fetch_commits(repo_name, username, since=date_range.since_datetime)
        commits = [commit for commit in commits if date_range.contains(commit.timestamp)]
        if self.enrich_commit_stats:
            for commit in commits:
                self._enrich_commit(repo_name, commit)
        return commits

    def _enrich_commit(self, repo_name: str, commit: Commit) -> None:
        try:
            commit.apply_details(self.client.fetch_commit_details(repo_name, commit.sha))
        except FATAL_ERRORS:
            raise
        except ContribLensError as e:
            logger.warning(f"{repo_name}: could not fetch stats for commit {commit.sha[:7]} - {e}")

    def _fetch_pull_requests(self, repo_name: str, username: str, date_range: DateRange) -> List[PullRequest]:
        since = DateRange(since=date_range.since)
        return [
            pr for pr in self.client.fetch_pull_requests(repo_name)
            if pr.author_login == username and since.contains(pr.created_at)
        ]

    def _fetch_issues(self, repo_name: str, username: str, date_range: DateRange) -> List[Issue]:
        since = date_range.since_datetime
        created = self.client.fetch_issues(repo_name, creator=username, since=since)
        assigned = self.client.fetch_issues(repo_name, assignee=username, since=since)

        issues: Dict[int, Issue] = {}
        for issue in created + assigned:
            issues.setdefault(issue.id, issue)
        return list(issues.values())

    def _fetch_pr_comments(self, repo_name: str, username: str, date_range: DateRange) -> List[PrComment]:
        comments = self.client.fetch_pr_comments(repo_name, since=date_range.since_datetime)
        return [comment for comment in comments if comment.author_login == username]

    def _fetch_issue_comments(self, repo_name: str, username: str, date_range: DateRange) -> List[IssueComment]:
        comments = self.client.fetch_issue_comments(repo_name, since=date_range.since_datetime)
        return [comment for comment in comments if comment.author_login == username]

    def _fetch_reviews(self, repo_name: str, username: str, pull_requests: List[PullRequest],
                       date_range: DateRange) -> List[Review]:
        reviews: List[Review] = []
        for pr in pull_requests:
            try:
                pr_reviews = [
                    review for review in self.client.fetch_reviews(repo_name, pr.number)
                    if review.author_login == username and date_range.contains(review.timestamp)
                ]
            except FATAL_ERRORS:
                raise
            except ContribLensError as e:
                logger.warning(f"{repo_name}: could not fetch reviews for PR #{pr.number} - {e}")
                continue
            reviews.extend(self._enrich_reviews(repo_name, pr.number, pr_reviews))
        return reviews

    def _enrich_reviews(self, repo_name: str, pr_number: int, reviews: List[Review]) -> List[Review]:
        if not any(ReviewEnricher.needs_enrichment(review) for review in reviews):
            return reviews
        try:
            comments = self.client.fetch_review_comments(repo_name, pr_number)
        except FATAL_ERRORS:
            raise
        except ContribLensError as e:
            logger.warning(f"{repo_name}: could not fetch review comments for PR #{pr_number} - {e}")
            return reviews
        return ReviewEnricher(reviews, comments).enrich()
