"""
GHContribLens - Main Entry Point

This module provides the command line entry point. It handles argument parsing,
environment loading and configuration, runs the requested command and turns
errors into categorized messages with a non-zero exit status.

Commands:
- collect: discover repositories and collect a developer's contributions
- report: show the summary of a collected snapshot (or list collected developers)
- users: list developers that have collected data
"""

import argparse
import atexit
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import dotenv
from rich.table import Table

from contriblens.collector import DeveloperCollector
from contriblens.config import Configuration, create_sample_config, create_sample_env, load_config
from contriblens.console import (
    RateLimitDisplay,
    configure_logging,
    console,
    display_panel,
    logger,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
    shutdown_logging,
)
from contriblens.errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    ContribLensError,
    DataNotFoundError,
    InvalidDateFormatError,
    NetworkError,
    RateLimitError,
)
from contriblens.models import DateRange, DeveloperSnapshot
from contriblens.storage import SnapshotStore

EXIT_FAILURE = 1

# Close log file handlers on interpreter exit
atexit.register(shutdown_logging)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contriblens",
        description="GHContribLens - developer contribution collection for a GitHub organization",
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging; collection runs also write a log file under LOG_DIR')
    parser.add_argument('--config', help='Path to an INI configuration file')
    subparsers = parser.add_subparsers(dest="command")

    collect = subparsers.add_parser("collect", help="Collect contribution data for a developer")
    collect.add_argument("username", help="GitHub login of the developer")
    collect.add_argument("--since", help="Only keep contributions on or after this date (YYYY-MM-DD)")
    collect.add_argument("--until", help="Only keep contributions on or before this date (YYYY-MM-DD)")
    collect.add_argument("--org", help="Organization to search (overrides GITHUB_ORG)")
    collect.add_argument("--workers", type=int, help="Parallel repository workers (overrides MAX_PARALLEL_WORKERS)")
    collect.add_argument("--no-progress", action="store_true", help="Hide the progress bar")

    report = subparsers.add_parser("report", help="Show the summary of collected data")
    report.add_argument("username", nargs="?", help="Developer to report on; lists developers when omitted")

    subparsers.add_parser("users", help="List developers with collected data")

    return parser


class EnvironmentManager:
    """Loads environment variables from a .env file when present."""

    @staticmethod
    def load_environment(verbose: bool = False) -> None:
        env_path = Path('.env')
        if env_path.exists():
            if verbose:
                print_info(f"Loading environment variables from {env_path.absolute()}")
            dotenv.load_dotenv(dotenv_path=env_path, override=False)
        elif verbose:
            print_warning("No .env file found in the current directory")

        if verbose:
            EnvironmentManager._debug_environment_variables()

    @staticmethod
    def _debug_environment_variables() -> None:
        """Show loaded environment variables without revealing secrets"""
        for key in ["GITHUB_ORG", "DATA_DIRECTORY", "MAX_PARALLEL_WORKERS", "DISABLE_SLEEP"]:
            if key in os.environ:
                print_info(f"  {key} = {os.environ[key]}")
        if "GITHUB_TOKEN" in os.environ:
            print_info("  GITHUB_TOKEN = [HIDDEN]")


def _data_directory(config_file: Optional[str]) -> str:
    """Data directory for read-only commands, which do not need a token"""
    try:
        return load_config(config_file=config_file)["DATA_DIRECTORY"]
    except ConfigurationError:
        return os.environ.get("DATA_DIRECTORY") or "./data"


def run_collect(args: argparse.Namespace) -> DeveloperSnapshot:
    date_range = DateRange.parse(args.since, args.until)
    environ = dict(os.environ)
    if args.org:
        environ["GITHUB_ORG"] = args.org
    if args.workers is not None:
        environ["MAX_PARALLEL_WORKERS"] = str(args.workers)
    config: Configuration = load_config(environ=environ, config_file=args.config)
    if args.verbose:
        configure_logging(log_level=logging.DEBUG, log_to_file=True, log_dir=config["LOG_DIR"])

    print_header(f"Collecting contributions of {args.username} in {config['GITHUB_ORG']}")
    collector = DeveloperCollector(
        config,
        rate_display=RateLimitDisplay(),
        show_progress=not args.no_progress,
    )
    snapshot = collector.collect_developer_data(args.username, since=date_range.since, until=date_range.until)
    collector.client.log_request_count()

    print_summary(snapshot)
    print_success(f"Data saved to {collector.store.snapshot_path(args.username)}")
    return snapshot


def run_report(args: argparse.Namespace) -> None:
    store = SnapshotStore(_data_directory(args.config))
    if not args.username:
        print_users(store)
        return
    print_summary(store.load(args.username))


def print_users(store: SnapshotStore) -> None:
    users = store.available_users()
    print_header("Developers with collected data")
    if not users:
        console.print("  No data found")
        return
    for user in users:
        console.print(f"  {user}")


def print_summary(snapshot: DeveloperSnapshot) -> None:
    """Print per-repository counts and totals of a snapshot"""
    table = Table(title=f"Contributions of {snapshot.developer} in {snapshot.organization}")
    for column in ("Repository", "Commits", "PRs", "Reviews", "Issues", "PR comments", "Issue comments"):
        table.add_column(column, justify="left" if column == "Repository" else "right")

    for name, repo in snapshot.repositories.items():
        counts = repo.counts()
        table.add_row(name, *(str(count) for count in counts.values()))

    summary = snapshot.summary
    table.add_section()
    table.add_row(
        "[bold]Total[/bold]",
        str(summary.total_commits), str(summary.total_prs), str(summary.total_reviews),
        str(summary.total_issues), str(summary.total_pr_comments), str(summary.total_issue_comments),
    )
    console.print(table)
    console.print(f"[dim]Collected at {snapshot.collected_at}[/dim]")


def _print_endpoint(error: NetworkError) -> None:
    if error.endpoint:
        console.print(f"Endpoint: {error.endpoint}")


def handle_error(error: ContribLensError) -> int:
    """Print a categorized message for a fatal error and return the exit status"""
    if isinstance(error, ConfigurationError):
        display_panel("Configuration Error", str(error), style="error")
    elif isinstance(error, RateLimitError):
        print_error("Rate limit exceeded. Please wait before retrying.")
        _print_endpoint(error)
    elif isinstance(error, AuthenticationError):
        print_error("Authentication failed. Please check your GITHUB_TOKEN.")
        _print_endpoint(error)
    elif isinstance(error, (DataNotFoundError, InvalidDateFormatError)):
        print_error(str(error))
    elif isinstance(error, ApiError):
        print_error(f"API request failed ({error.status_code}): {error}")
        _print_endpoint(error)
    elif isinstance(error, NetworkError):
        print_error(f"Network error: {error}")
        _print_endpoint(error)
    else:
        print_error(str(error))
    logger.debug("Command failed", exc_info=error)
    return EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for GHContribLens.

    Returns:
        Process exit status
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    EnvironmentManager.load_environment(verbose=args.verbose)
    configure_logging(log_level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.command == "collect":
            create_sample_config()
            create_sample_env()
            run_collect(args)
        elif args.command == "report":
            run_report(args)
        elif args.command == "users":
            print_users(SnapshotStore(_data_directory(args.config)))
        else:
            parser.print_help()
            return EXIT_FAILURE
    except ContribLensError as e:
        return handle_error(e)
    return 0


if __name__ == "__main__":
    sys.exit(main())
