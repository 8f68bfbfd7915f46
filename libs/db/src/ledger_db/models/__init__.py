"""Shared SQLAlchemy models registry for the ledger database.

Currently includes the property ledger models used by ``property_ledger``.
"""

from .ledger import (
    Base,
    PlAnnualCategoryAmount,
    PlCategory,
    PlLoanSnapshot,
    PlProperty,
    PlRecurringPosting,
    PlRecurringRule,
    PlTransaction,
)

__all__ = [
    "Base",
    "PlAnnualCategoryAmount",
    "PlCategory",
    "PlLoanSnapshot",
    "PlProperty",
    "PlRecurringPosting",
    "PlRecurringRule",
    "PlTransaction",
]
