"""Utility functions for WatchlistDB.

This module provides common helper functions for datetime handling and for
the loosely typed values that arrive from the metadata provider.
"""

from datetime import UTC, datetime
from typing import Any

from dateutil import parser as dateutil_parser  # type: ignore[import-untyped]


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse ISO8601 timestamp string into timezone-aware UTC datetime.

    Args:
        value: ISO8601 timestamp string, datetime object, or None

    Returns:
        Parsed timezone-aware datetime in UTC, or None if input is None

    Raises:
        ValueError: If timestamp format is invalid

    Example:
        >>> dt = parse_datetime("2024-01-15T10:30:00Z")
        >>> dt.tzinfo
        datetime.timezone.utc
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    dt = dateutil_parser.isoparse(value)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def utc_now() -> datetime:
    """Get current UTC timestamp as timezone-aware datetime."""
    return datetime.now(UTC)


def format_iso(dt: datetime | None) -> str | None:
    """Format datetime as ISO8601 string with 'Z' suffix.

    Example:
        >>> format_iso(datetime(2024, 1, 15, 10, 30, tzinfo=UTC))
        '2024-01-15T10:30:00Z'
    """
    if dt is None:
        return None
    return dt.isoformat().replace("+00:00", "Z")


def utc_now_iso() -> str:
    """Get current UTC timestamp as ISO8601 string with 'Z' suffix."""
    return format_iso(utc_now())  # type: ignore[return-value]


def parse_release_year(value: Any) -> int | None:
    """Extract the year from a ``YYYY-MM-DD`` style release date.

    Args:
        value: Release date string (possibly empty or partial)

    Returns:
        Four-digit year, or None when the value carries no usable year

    Example:
        >>> parse_release_year("2010-07-15")
        2010
        >>> parse_release_year("")
        None
    """
    if not isinstance(value, str) or len(value) < 4:
        return None
    head = value[:4]
    if not head.isdigit():
        return None
    return int(head)


def coerce_int(value: Any) -> int | None:
    """Convert an int-like value to int, returning None for anything else.

    Booleans are rejected even though ``bool`` subclasses ``int``.

    Example:
        >>> coerce_int("148")
        148
        >>> coerce_int("n/a")
        None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def clean_text(value: Any) -> str | None:
    """Strip a string value, mapping blanks and non-strings to None.

    Example:
        >>> clean_text("  Inception ")
        'Inception'
        >>> clean_text("   ")
        None
    """
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None
