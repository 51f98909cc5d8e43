"""
Developer Contribution Collector Module

This module provides the main interface for collecting a developer's contributions.
It coordinates between the repository aggregator, the per-repository collector and
the snapshot store: repositories are discovered, processed by a bounded worker
pool, merged into one snapshot and persisted.
"""

import concurrent.futures
from datetime import date
from typing import Dict, List, Optional

from tqdm.auto import tqdm

from contriblens.aggregator import RepositoryAggregator
from contriblens.client import GithubClient
from contriblens.config import Configuration
from contriblens.console import RateLimitDisplay, logger, rprint
from contriblens.errors import FATAL_ERRORS
from contriblens.models import DateRange, DeveloperSnapshot, Repository, RepositoryContribution, Summary
from contriblens.repo_collector import RepositoryCollector
from contriblens.storage import SnapshotStore
from contriblens.utilities import DateLike, normalize_date, utc_now_iso


def _as_date(value: Optional[DateLike]) -> Optional[date]:
    return normalize_date(value) if value is not None else None


class DeveloperCollector:
    """
    Collects and persists the complete contribution snapshot of a developer.

    Per-repository failures are logged and the repository is left out of the
    snapshot; only authentication and configuration errors abort a run.
    """

    def __init__(
            self,
            config: Configuration,
            client: Optional[GithubClient] = None,
            aggregator: Optional[RepositoryAggregator] = None,
            repo_collector: Optional[RepositoryCollector] = None,
            store: Optional[SnapshotStore] = None,
            rate_display: Optional[RateLimitDisplay] = None,
            show_progress: bool = True,
    ) -> None:
        """
        Initialize the collector from the run configuration.

        Args:
            config: Validated configuration
            client: GitHub client (built from config when omitted)
            aggregator: Repository discovery (built around the client when omitted)
            repo_collector: Per-repository collector (built around the client when omitted)
            store: Snapshot persistence (rooted at DATA_DIRECTORY when omitted)
            rate_display: Optional API quota display shown before and after a run
            show_progress: Whether to show a progress bar while repositories are processed
        """
        self.config = config
        self.organization = config["GITHUB_ORG"]
        self.max_workers = config["MAX_PARALLEL_WORKERS"]
        self.client = client or GithubClient(config)
        self.aggregator = aggregator or RepositoryAggregator(self.client)
        self.repo_collector = repo_collector or RepositoryCollector(
            self.client, enrich_commit_stats=config["ENRICH_COMMIT_STATS"])
        self.store = store or SnapshotStore(config["DATA_DIRECTORY"])
        self.rate_display = rate_display
        self.show_progress = show_progress

    def collect_developer_data(self, username: str, since: Optional[DateLike] = None,
                               until: Optional[DateLike] = None) -> DeveloperSnapshot:
        """
        Collect, persist and return the contribution snapshot of a developer.

        Args:
            username: GitHub login of the developer
            since: Optional inclusive lower bound (date or YYYY-MM-DD)
            until: Optional inclusive upper bound (date or YYYY-MM-DD)

        Returns:
            DeveloperSnapshot with one entry per successfully collected repository

        Raises:
            AuthenticationError: If the token is rejected
        """
        date_range = DateRange(since=_as_date(since), until=_as_date(until))
        logger.info(f"Collecting data for developer: {username}")

        self.store.ensure_developer_directory(username)
        self._show_rate_status("Initial")

        repositories = self.aggregator.aggregate_user_repositories(username, since=date_range.since)
        if not repositories:
            self._warn_no_repositories(username)
            repo_data: Dict[str, RepositoryContribution] = {}
        else:
            logger.info(f"Found {len(repositories)} repositories with contributions from {username}")
            repo_data = self.collect_repositories(repositories, username, date_range)

        snapshot = DeveloperSnapshot(
            developer=username,
            organization=self.organization,
            collected_at=utc_now_iso(),
            repositories=repo_data,
        )
        self.store.save(snapshot)

        self._show_rate_status("Final")
        self._log_summary(snapshot.summary)
        return snapshot

    def collect_repositories(self, repositories: List[Repository], username: str,
                             date_range: DateRange) -> Dict[str, RepositoryContribution]:
        """
        Collect every repository, keyed by name in discovery order.

        Repositories whose collection fails are omitted from the result.
        """
        should_use_parallel = self.max_workers > 1 and len(repositories) > 1
        if should_use_parallel:
            results = self._collect_parallel(repositories, username, date_range)
        else:
            results = self._collect_sequential(repositories, username, date_range)

        logger.info("All repositories processed")
        return {repo.name: results[repo.name] for repo in repositories if repo.name in results}

    def _collect_parallel(self, repositories: List[Repository], username: str,
                          date_range: DateRange) -> Dict[str, RepositoryContribution]:
        logger.info(f"Using parallel processing with {self.max_workers} workers")
        results: Dict[str, RepositoryContribution] = {}

        with tqdm(total=len(repositories), desc="Collecting repositories", leave=True,
                  colour='green', disable=not self.show_progress) as pbar:
            with concurrent.futures.ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="repo") as executor:
                future_to_repo = {
                    executor.submit(self.repo_collector.collect, repo.name, username, date_range): repo
                    for repo in repositories
                }

                # Results are only merged here, on the orchestrating thread
                for future in concurrent.futures.as_completed(future_to_repo):
                    repo = future_to_repo[future]
                    try:
                        contribution = future.result()
                    except FATAL_ERRORS:
                        for pending in future_to_repo:
                            pending.cancel()
                        raise
                    except Exception as e:
                        logger.error(f"Failed to collect {repo.name}: {e}")
                    else:
                        results[repo.name] = contribution
                        logger.info(f"Completed: {repo.name} - {contribution.describe()}")
                    pbar.update(1)

        return results

    def _collect_sequential(self, repositories: List[Repository], username: str,
                            date_range: DateRange) -> Dict[str, RepositoryContribution]:
        results: Dict[str, RepositoryContribution] = {}
        total = len(repositories)

        for index, repo in enumerate(repositories, start=1):
            logger.info(f"[{index}/{total}] Processing: {repo.name}")
            try:
                contribution = self.repo_collector.collect(repo.name, username, date_range)
            except FATAL_ERRORS:
                raise
            except Exception as e:
                logger.error(f"[{index}/{total}] Failed to collect {repo.name}: {e}")
                continue
            results[repo.name] = contribution
            logger.info(f"[{index}/{total}] Completed: {repo.name} - {contribution.describe()}")

        return results

    def _show_rate_status(self, label: str) -> None:
        if self.rate_display is None:
            return
        self.rate_display.update_from_api(self.client.transport)
        rprint(f"\n[bold]--- {label} API Rate Status ---[/bold]")
        self.rate_display.display_once()

    def _warn_no_repositories(self, username: str) -> None:
        logger.warning(
            f"No repositories found with contributions from {username}. This could mean: "
            f"the user hasn't contributed to any repositories in {self.organization}, "
            f"the contributions are in private repositories the token cannot see, "
            f"or the username is incorrect."
        )

    @staticmethod
    def _log_summary(summary: Summary) -> None:
        logger.info(
            "Data collection completed: "
            f"{summary.total_commits} commits, {summary.total_prs} PRs, "
            f"{summary.total_reviews} reviews, {summary.total_issues} issues, "
            f"{summary.total_pr_comments} PR comments, {summary.total_issue_comments} issue comments"
        )
