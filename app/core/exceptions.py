"""
Custom Exceptions

This module defines the error taxonomy of the analytics service.

- StoreUnavailableError: any I/O failure against the raw event store,
  the summary store or the redirect table. Always propagated.
- RollupIncompleteError: a rollup batch whose writes could not be confirmed.
- RedirectNotFoundError / InvalidDateError: caller mistakes, mapped to 4xx.

Absence of data is not an error: queries return empty lists or zero totals.
"""

from datetime import date
from typing import Optional


class AnalyticsException(Exception):
    """Base exception for the analytics service."""
    pass


class StoreUnavailableError(AnalyticsException):
    """Raised when a backing store read or write fails."""

    def __init__(
        self,
        store: str,
        original_error: Optional[Exception] = None,
        message: Optional[str] = None
    ):
        self.store = store
        self.original_error = original_error
        if message is None:
            detail = f": {original_error}" if original_error is not None else ""
            message = f"Store '{store}' is unavailable{detail}"
        super().__init__(message)


class RollupIncompleteError(StoreUnavailableError):
    """Raised when a day's summary rows do not account for every raw event."""

    def __init__(self, day: date, expected: int, written: int):
        self.day = day
        self.expected = expected
        self.written = written
        super().__init__(
            "daily_visit_summaries",
            message=(
                f"Rollup for {day.isoformat()} not confirmed: expected {expected} "
                f"visits, summary holds {written}"
            )
        )


class RedirectNotFoundError(AnalyticsException):
    """Raised when a redirect mapping does not exist."""

    def __init__(self, redirect_id: int):
        self.redirect_id = redirect_id
        super().__init__(f"Redirect '{redirect_id}' not found")


class InvalidDateError(AnalyticsException):
    """Raised when a calendar day is not given as YYYY-MM-DD."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid date '{value}', expected YYYY-MM-DD")
