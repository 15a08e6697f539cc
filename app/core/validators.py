"""
Input Validators and Calendar Helpers

This module provides validation for user-supplied calendar days and the
UTC day arithmetic shared by the rollup job and the query layer.

All timestamps are stored as naive UTC datetimes, so every helper here
works in naive UTC as well.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

from app.core.exceptions import InvalidDateError

DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day(value: str) -> date:
    """
    Parse a calendar day given as YYYY-MM-DD.

    Args:
        value: The day string from a request body

    Returns:
        The parsed date

    Raises:
        InvalidDateError: If the string is not a real YYYY-MM-DD day
    """
    if not value or not isinstance(value, str):
        raise InvalidDateError(str(value))

    value = value.strip()
    if not DAY_PATTERN.match(value):
        raise InvalidDateError(value)

    try:
        return date.fromisoformat(value)
    except ValueError:
        # Well-formed but impossible, e.g. 2024-02-30
        raise InvalidDateError(value)


def utc_now() -> datetime:
    """Current time as a naive UTC datetime (storage format)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    return utc_now().date()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """
    Return the half-open [start, end) window covering one UTC day.

    The end bound is the next midnight, so events stamped between
    23:59:59 and 23:59:59.999999 still belong to ``day``.
    """
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def window_start(days: int, today: Optional[date] = None) -> date:
    """
    First calendar day of a trailing window of ``days`` days ending today.

    days=1 is just today, days=7 is today and the six days before it.
    """
    if days < 1:
        raise ValueError(f"days must be at least 1, got {days}")
    today = today or utc_today()
    return today - timedelta(days=days - 1)
