"""Exception types raised by ``property_ledger``.

Expected outcomes (nothing new to post, a lost idempotence race, recurring
tables not migrated yet, form validation issues) are reported as typed results
instead; the classes here cover malformed input that should have been rejected
earlier and truly unexpected persistence failures.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for property ledger failures."""


class InvalidMonthError(LedgerError, ValueError):
    """A month token is not a zero-padded ``YYYY-MM`` with a month in 1..12."""


class InvalidDateError(LedgerError, ValueError):
    """A report boundary is not a valid ``YYYY-MM-DD`` calendar date."""


class RecurringUnavailableError(LedgerError):
    """Recurring tables are missing, usually because a migration is pending."""


class RecurringPostingError(LedgerError):
    """Posting failed for a reason other than a duplicate or missing schema."""

    def __init__(self, message: str, *, rule_id: int | None = None, month: str | None = None):
        super().__init__(message)
        self.rule_id = rule_id
        self.month = month


__all__ = [
    "InvalidDateError",
    "InvalidMonthError",
    "LedgerError",
    "RecurringPostingError",
    "RecurringUnavailableError",
]
