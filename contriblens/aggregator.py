"""
Repository Discovery Module

Finds the organization repositories a developer has touched by running seven
independent discovery strategies and merging their results by repository id.
A failing search degrades to the full organization repository list rather than
aborting, trading precision for completeness.
"""

from typing import Callable, Dict, List, Optional, Tuple

from contriblens.client import GithubClient
from contriblens.console import logger
from contriblens.errors import FATAL_ERRORS, ContribLensError
from contriblens.models import Repository
from contriblens.queries import SearchQueryBuilder
from contriblens.utilities import DateLike


class RepositoryAggregator:
    """Runs every discovery strategy for one user and deduplicates the union"""

    def __init__(self, client: GithubClient, query_builder: Optional[SearchQueryBuilder] = None) -> None:
        self.client = client
        self.query_builder = query_builder or SearchQueryBuilder(client.organization)
        self._organization_repositories: Optional[List[Repository]] = None
        self._known_by_name: Dict[str, Repository] = {}
        self._failed_names: set = set()

    def aggregate_user_repositories(self, username: str, since: Optional[DateLike] = None) -> List[Repository]:
        """
        Discover the repositories a user contributed to.

        Args:
            username: GitHub login of the developer
            since: Optional lower bound applied to the search qualifiers

        Returns:
            Repositories in discovery order, each repository id present once

        Raises:
            AuthenticationError: If the token is rejected
        """
        logger.info(f"Searching for repositories with contributions from {username}...")
        self._organization_repositories = None
        self._known_by_name = {}
        self._failed_names = set()

        collected: List[Repository] = []
        for label, strategy in self._strategies(username, since):
            repositories = strategy()
            logger.info(f"{label}: {len(repositories)} repositories")
            collected.extend(repositories)
            self._remember(repositories)

        unique_repositories = self.deduplicate(collected)
        logger.info(f"Found {len(unique_repositories)} total repositories with contributions from {username}")
        return unique_repositories

    def _strategies(self, username: str, since: Optional[DateLike]) -> List[Tuple[str, Callable[[], List[Repository]]]]:
        qb = self.query_builder
        return [
            ("Authored code", lambda: self._search_repositories(qb.for_author(username, since))),
            ("Authored pull requests", lambda: self._search_repositories(qb.for_pull_requests(username, since))),
            ("Authored issues", lambda: self._search_repositories(qb.for_issues(username, since))),
            ("Reviewed pull requests", lambda: self._search_issue_repositories(qb.for_reviewed_prs(username, since))),
            ("Commented pull requests", lambda: self._search_issue_repositories(qb.for_commented_prs(username, since))),
            ("Commented issues", lambda: self._search_issue_repositories(qb.for_commented_issues(username, since))),
            ("Public activity", lambda: self._activity_repositories(username)),
        ]

    @staticmethod
    def deduplicate(repositories: List[Repository]) -> List[Repository]:
        """Keep the first occurrence of every repository id"""
        seen: Dict[int, Repository] = {}
        for repo in repositories:
            seen.setdefault(repo.id, repo)
        return list(seen.values())

    def _remember(self, repositories: List[Repository]) -> None:
        for repo in repositories:
            self._known_by_name.setdefault(repo.name, repo)

    def _search_repositories(self, query: str) -> List[Repository]:
        try:
            return self.client.search_repositories(query)
        except FATAL_ERRORS:
            raise
        except ContribLensError as e:
            logger.warning(f"Repository search failed for '{query}' - {e}")
            return self._fallback_to_organization()

    def _search_issue_repositories(self, query: str) -> List[Repository]:
        try:
            names = self.client.search_issue_repository_names(query)
        except FATAL_ERRORS:
            raise
        except ContribLensError as e:
            logger.warning(f"Issue search failed for '{query}' - {e}")
            return self._fallback_to_organization()
        return self._resolve_names(names)

    def _activity_repositories(self, username: str) -> List[Repository]:
        try:
            names = self.client.fetch_user_event_repository_names(username)
        except FATAL_ERRORS:
            raise
        except ContribLensError as e:
            logger.warning(f"Could not fetch user activity - {e}")
            return []
        return self._resolve_names(names)

    def _resolve_names(self, names: List[str]) -> List[Repository]:
        """Fetch the canonical repository object for each name, dropping the ones that fail"""
        repositories = []
        for name in dict.fromkeys(names):
            if name in self._known_by_name:
                repositories.append(self._known_by_name[name])
                continue
            if name in self._failed_names:
                continue
            try:
                repo = self.client.fetch_repository(name)
            except FATAL_ERRORS:
                raise
            except ContribLensError as e:
                logger.warning(f"Could not fetch details for repository {name}: {e}")
                self._failed_names.add(name)
                continue
            self._known_by_name[name] = repo
            repositories.append(repo)
        return repositories

    def _fallback_to_organization(self) -> List[Repository]:
        """All organization repositories, fetched at most once per aggregation"""
        if self._organization_repositories is None:
            logger.warning("Falling back to fetching all organization repositories")
            try:
                self._organization_repositories = self.client.fetch_organization_repositories()
            except FATAL_ERRORS:
                raise
            except ContribLensError as e:
                logger.warning(f"Could not fetch organization repositories - {e}")
                self._organization_repositories = []
        return list(self._organization_repositories)
