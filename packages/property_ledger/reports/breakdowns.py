"""Category and property breakdowns of expenses and income."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from ..models import CategoryRef
from ..proration import round_cents
from ..signs import EffectiveType, split_income_expense
from ._common import (
    CategoryTreeRow,
    ReportWindow,
    category_tree_rows,
    label_for,
    load_annual_rows,
    load_categories,
    load_ledger_rows,
    load_properties,
    prorated_annual,
    scope,
)


@dataclass(frozen=True, slots=True)
class CategoryBreakdown:
    window: ReportWindow
    rows: list[CategoryTreeRow]
    total_cents: int


def _side(amount: float, category: CategoryRef, side: EffectiveType) -> float:
    income, expense = split_income_expense(amount, category.type)
    return income if side == "income" else expense


def _categories_for(session: Session, side: EffectiveType, include_transfers: bool) -> dict[int, CategoryRef]:
    types = {side, "transfer"} if include_transfers else {side}
    return {cid: c for cid, c in load_categories(session).items() if c.type in types}


def _by_category(
    session: Session,
    side: EffectiveType,
    *,
    start: date | str,
    end: date | str,
    property_id: int | None,
    include_transfers: bool,
) -> CategoryBreakdown:
    window = ReportWindow.of(start, end)
    categories = _categories_for(session, side, include_transfers)
    if not categories:
        return CategoryBreakdown(window, [], 0)

    direct: dict[int, float] = defaultdict(float)
    for row in load_ledger_rows(session, window, category_ids=categories, property_ids=scope(property_id)):
        direct[row.category_id] += _side(row.amount_cents, categories[row.category_id], side)
    for row in load_annual_rows(
        session, years=window.years, category_ids=categories, property_ids=scope(property_id)
    ):
        category = categories[row.category_id]
        direct[row.category_id] += _side(prorated_annual(row, category, window), category, side)

    return CategoryBreakdown(
        window=window,
        rows=category_tree_rows(categories, direct),
        total_cents=round_cents(sum(direct.values())),
    )


def expenses_by_category(
    session: Session,
    *,
    start: date | str,
    end: date | str,
    property_id: int | None = None,
    include_transfers: bool = False,
) -> CategoryBreakdown:
    """Expense category tree; amounts are negative, parents include children."""

    return _by_category(
        session,
        "expense",
        start=start,
        end=end,
        property_id=property_id,
        include_transfers=include_transfers,
    )


def income_by_category(
    session: Session,
    *,
    start: date | str,
    end: date | str,
    property_id: int | None = None,
    include_transfers: bool = False,
) -> CategoryBreakdown:
    """Income category tree; amounts are positive, parents include children."""

    return _by_category(
        session,
        "income",
        start=start,
        end=end,
        property_id=property_id,
        include_transfers=include_transfers,
    )


@dataclass(frozen=True, slots=True)
class PropertyExpenseRow:
    property_id: int
    property_label: str
    transactional_expense_cents: int
    annual_expense_cents: int
    total_expense_cents: int


@dataclass(frozen=True, slots=True)
class ExpensesByPropertyReport:
    window: ReportWindow
    rows: list[PropertyExpenseRow]
    transactional_expense_cents: int
    annual_expense_cents: int
    total_expense_cents: int


def expenses_by_property(
    session: Session,
    *,
    start: date | str,
    end: date | str,
    include_transfers: bool = False,
) -> ExpensesByPropertyReport:
    """Expense per property, largest spend (most negative) first.

    Properties with no expense in the window are left out.
    """

    window = ReportWindow.of(start, end)
    categories = _categories_for(session, "expense", include_transfers)
    properties = load_properties(session)

    tx: dict[int, float] = defaultdict(float)
    annual: dict[int, float] = defaultdict(float)
    if categories and properties:
        for row in load_ledger_rows(session, window, category_ids=categories):
            tx[row.property_id] += _side(row.amount_cents, categories[row.category_id], "expense")
        for row in load_annual_rows(session, years=window.years, category_ids=categories):
            category = categories[row.category_id]
            annual[row.property_id] += _side(prorated_annual(row, category, window), category, "expense")

    rows: list[PropertyExpenseRow] = []
    for p in properties:
        t, a = round_cents(tx.get(p.id, 0.0)), round_cents(annual.get(p.id, 0.0))
        if t == 0 and a == 0:
            continue
        rows.append(PropertyExpenseRow(p.id, label_for(p), t, a, t + a))
    rows.sort(key=lambda r: (r.total_expense_cents, r.property_label))

    t_sum = sum(r.transactional_expense_cents for r in rows)
    a_sum = sum(r.annual_expense_cents for r in rows)
    return ExpensesByPropertyReport(
        window=window,
        rows=rows,
        transactional_expense_cents=t_sum,
        annual_expense_cents=a_sum,
        total_expense_cents=t_sum + a_sum,
    )


__all__ = [
    "CategoryBreakdown",
    "ExpensesByPropertyReport",
    "PropertyExpenseRow",
    "expenses_by_category",
    "expenses_by_property",
    "income_by_category",
]
