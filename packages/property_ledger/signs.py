"""Canonical signs for amounts by category economic type.

Stored amounts are not trusted to carry the conventional sign (imports and
hand entry get it wrong often enough). Every report passes both ledger rows
and annual amounts through :func:`normalize_amount` before aggregating.
"""

from __future__ import annotations

from typing import Literal

type CategoryType = Literal["income", "expense", "transfer"]
type EffectiveType = Literal["income", "expense"]

CATEGORY_TYPES: tuple[CategoryType, ...] = ("income", "expense", "transfer")


def normalize_amount(amount: float, category_type: CategoryType) -> float:
    """Income is positive, expense negative, transfers keep their sign."""

    if category_type == "income":
        return abs(amount)
    if category_type == "expense":
        return -abs(amount)
    return amount


def effective_type(amount: float, category_type: CategoryType) -> EffectiveType:
    """Bucket a transfer by the sign of its amount; other types pass through."""

    if category_type == "transfer":
        return "income" if amount >= 0 else "expense"
    return category_type


def split_income_expense(amount: float, category_type: CategoryType) -> tuple[float, float]:
    """Return ``(income_delta, expense_delta)`` with canonical signs applied."""

    kind = effective_type(amount, category_type)
    if kind == "income":
        return abs(amount), 0
    return 0, -abs(amount)


__all__ = [
    "CATEGORY_TYPES",
    "CategoryType",
    "EffectiveType",
    "effective_type",
    "normalize_amount",
    "split_income_expense",
]
