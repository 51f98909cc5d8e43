"""
Utility Functions for GHContribLens

Date and timestamp helpers shared by the models, the search query builder and
the collectors. GitHub timestamps are ISO-8601 strings in UTC ("Z" suffix);
everything is normalised to timezone-aware UTC datetimes before comparison.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

from contriblens.errors import InvalidDateFormatError

DateLike = Union[date, datetime, str]


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime object has UTC timezone information.

    Args:
        dt: Datetime object to ensure timezone information for

    Returns:
        Datetime object with UTC timezone, or None if input was None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """
    Parse a GitHub ISO-8601 timestamp into an aware UTC datetime.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))


def parse_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD command line value.

    Raises:
        InvalidDateFormatError: If the value is not a calendar date
    """
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise InvalidDateFormatError(f"Invalid date format '{value}'. Use YYYY-MM-DD") from None


def normalize_date(value: DateLike) -> date:
    """Normalize a date, datetime or YYYY-MM-DD string to a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(value)


def format_for_search(value: DateLike) -> str:
    """Format a date for GitHub search qualifiers (YYYY-MM-DD)"""
    return normalize_date(value).strftime("%Y-%m-%d")


def utc_now_iso() -> str:
    """Current time as an ISO-8601 string, second precision"""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()
