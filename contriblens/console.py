"""
Terminal output and logging for GHContribLens

Everything user facing goes through the objects exported here:
- console / rprint: themed Rich output
- logger: the "contriblens" logger, rendered by a RichHandler
- print_* helpers and display_panel for status lines and boxed messages
- RateLimitDisplay: remaining core/search API quota
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from rich import box
from rich import print as rich_print
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.theme import Theme

CONSOLE_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "heading": "bold blue",
    "quota.low": "red",
    "quota.medium": "yellow",
    "quota.ok": "green",
})

console = Console(theme=CONSOLE_THEME, highlight=True)

# Plain rich print for markup outside the themed console
rprint = rich_print

LOGGER_NAME = "contriblens"
FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"

STATUS_ICONS = {
    "info": "ℹ️",
    "success": "✅",
    "warning": "⚠️",
    "error": "❌",
}


def get_log_filename() -> str:
    """Log file name stamped with the start time of the run"""
    return f"contriblens_{datetime.now():%Y%m%d_%H%M%S}.log"


def configure_logging(
        log_file: Optional[str] = None,
        log_level: int = logging.INFO,
        log_to_console: bool = True,
        log_to_file: bool = False,
        log_dir: str = "logs",
) -> logging.Logger:
    """
    (Re)configure the package logger.

    Handlers from a previous call are closed first, so the CLI can call this
    again once verbosity is known.

    Args:
        log_file: Explicit log file; a timestamped file under log_dir when omitted
        log_level: Level applied to the logger and every handler
        log_to_console: Attach a RichHandler on the shared console
        log_to_file: Attach a plain text file handler
        log_dir: Directory for timestamped log files

    Returns:
        The "contriblens" logger
    """
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(log_level)
    app_logger.propagate = False

    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    if log_to_console:
        rich_handler = RichHandler(
            console=console,
            show_time=False,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        rich_handler.setLevel(log_level)
        app_logger.addHandler(rich_handler)

    if log_to_file:
        if log_file is not None:
            log_path = Path(log_file)
        else:
            log_path = Path(log_dir) / get_log_filename()
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        file_handler.setLevel(log_level)
        app_logger.addHandler(file_handler)

    return app_logger


logger = configure_logging()


def shutdown_logging() -> None:
    """Flush and detach every handler of the package logger"""
    for handler in list(logger.handlers):
        handler.flush()
        handler.close()
        logger.removeHandler(handler)


def print_header(text: str, style: str = "heading") -> None:
    console.print(f"\n[{style}]{text}[/{style}]")


def _print_status(kind: str, text: str) -> None:
    console.print(f"[{kind}]{STATUS_ICONS[kind]} {text}[/{kind}]")


def print_info(text: str) -> None:
    _print_status("info", text)


def print_success(text: str) -> None:
    _print_status("success", text)


def print_warning(text: str) -> None:
    _print_status("warning", text)


def print_error(text: str) -> None:
    _print_status("error", text)


def display_panel(title: str, content: str, style: str = "info") -> None:
    """Boxed message, used for errors that need multi-line instructions"""
    console.print(Panel(content, title=f"[{style}]{title}[/{style}]", border_style=style, box=box.ROUNDED))


class RateLimitDisplay:
    """
    Remaining GitHub API quota for the core and search resources.

    Quota is read from ``/rate_limit``, which does not count against the limit.
    """

    RESOURCES = ("core", "search")

    def __init__(self, console: Console = console):
        self.console = console
        self.rate_data: Dict[str, Dict[str, Any]] = {}

    def update_from_api(self, transport: Any) -> None:
        """Refresh quota figures; a failure only leaves the previous figures in place"""
        try:
            resources = transport.get("/rate_limit").json().get("resources", {})
        except Exception as e:
            logger.warning(f"Could not read API rate limit status: {e}")
            return

        for name in self.RESOURCES:
            resource = resources.get(name)
            if not resource:
                continue
            reset = resource.get("reset")
            self.rate_data[name] = {
                "limit": resource.get("limit", 0),
                "remaining": resource.get("remaining", 0),
                "reset_time": datetime.fromtimestamp(reset) if reset else None,
            }

    @staticmethod
    def _get_status_style(remaining: int, limit: int) -> str:
        if remaining < limit * 0.2:
            return "quota.low"
        if remaining < limit * 0.5:
            return "quota.medium"
        return "quota.ok"

    def display_once(self) -> None:
        if not self.rate_data:
            self.console.print("[warning]Rate limit status unavailable[/warning]")
            return

        for name, data in self.rate_data.items():
            style = self._get_status_style(data["remaining"], data["limit"])
            reset = data["reset_time"].strftime("%H:%M:%S") if data["reset_time"] else "unknown"
            self.console.print(
                f"[{style}]{name.capitalize()} API: {data['remaining']}/{data['limit']} "
                f"requests left, resets at {reset}[/{style}]"
            )


__all__ = [
    'console',
    'rprint',
    'logger',
    'configure_logging',
    'shutdown_logging',
    'print_header',
    'print_info',
    'print_success',
    'print_warning',
    'print_error',
    'display_panel',
    'RateLimitDisplay',
]
