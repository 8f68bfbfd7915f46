"""Year-over-year series: income vs expenses, and per-category trends."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from ledger_db.models.ledger import PlTransaction
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import PropertyRef
from ..proration import round_cents
from ..signs import normalize_amount
from ._common import (
    descendant_ids,
    label_for,
    load_annual_rows,
    load_categories,
    load_properties,
    scope,
)


def _ledger_totals_by_year(
    session: Session, category_ids: list[int], property_ids: list[int] | None
) -> list[tuple[int, int, int, int]]:
    """``(property_id, category_id, year, amount_cents)`` for every live row."""

    stmt = select(
        PlTransaction.property_id,
        PlTransaction.category_id,
        PlTransaction.date,
        PlTransaction.amount_cents,
    ).where(
        PlTransaction.deleted_at.is_(None),
        PlTransaction.category_id.in_(category_ids),
    )
    if property_ids is not None:
        stmt = stmt.where(PlTransaction.property_id.in_(property_ids))
    return [(pid, cid, d.year, int(amount)) for pid, cid, d, amount in session.execute(stmt).all()]


# ---------------------------
# Income vs expenses
# ---------------------------


@dataclass(frozen=True, slots=True)
class IncomeVsExpensesRow:
    year: int
    income_cents: int
    expense_cents: int
    net_cents: int
    expense_base_cents: int
    income_above_cents: int
    expense_overage_cents: int


def income_vs_expenses_by_year(
    session: Session, *, property_id: int | None = None
) -> list[IncomeVsExpensesRow]:
    """All-time income and expense per year, one row for every year in span.

    ``expense_base`` is the expense magnitude; ``income_above`` and
    ``expense_overage`` split the gap for stacked-bar display.
    """

    categories = {
        cid: c for cid, c in load_categories(session).items() if c.type in ("income", "expense")
    }
    if not categories:
        return []

    income: dict[int, float] = defaultdict(float)
    expense: dict[int, float] = defaultdict(float)

    def add(category_id: int, year: int, amount: float) -> None:
        kind = categories[category_id].type
        value = normalize_amount(amount, kind)
        if kind == "income":
            income[year] += value
        else:
            expense[year] += value

    for _, cid, year, amount in _ledger_totals_by_year(session, list(categories), scope(property_id)):
        add(cid, year, amount)
    for row in load_annual_rows(
        session, years=None, category_ids=categories, property_ids=scope(property_id)
    ):
        add(row.category_id, row.year, row.amount_cents)

    years = set(income) | set(expense)
    if not years:
        return []
    out: list[IncomeVsExpensesRow] = []
    for y in range(min(years), max(years) + 1):
        inc = round_cents(income.get(y, 0.0))
        exp = round_cents(expense.get(y, 0.0))
        base = abs(exp)
        out.append(
            IncomeVsExpensesRow(
                year=y,
                income_cents=inc,
                expense_cents=exp,
                net_cents=inc - base,
                expense_base_cents=base,
                income_above_cents=max(inc - base, 0),
                expense_overage_cents=max(base - inc, 0),
            )
        )
    return out


# ---------------------------
# Category trend
# ---------------------------


@dataclass(frozen=True, slots=True)
class CategoryTrend:
    years: list[int]
    properties: list[PropertyRef]
    # year -> property_id -> cents
    series_raw: dict[int, dict[int, int]]
    series_display: dict[int, dict[int, int]]


def category_trend_by_year(
    session: Session, *, category_id: int, property_id: int | None = None
) -> CategoryTrend:
    """Per-property yearly totals for a category and all its descendants.

    ``series_raw`` holds sign-normalized totals; ``series_display`` their
    magnitudes. Years run contiguously from the first to the last year with
    data; properties without data in a year get 0.
    """

    categories = load_categories(session)
    properties = load_properties(session, property_id=property_id)
    refs = [PropertyRef(p.id, label_for(p)) for p in properties]
    ids = descendant_ids(categories, category_id)
    if not properties or not ids:
        return CategoryTrend(years=[], properties=refs, series_raw={}, series_display={})

    property_ids = [p.id for p in properties]
    totals: dict[tuple[int, int], float] = defaultdict(float)
    for pid, cid, year, amount in _ledger_totals_by_year(session, sorted(ids), property_ids):
        totals[(pid, year)] += normalize_amount(amount, categories[cid].type)
    for row in load_annual_rows(
        session, years=None, category_ids=ids, property_ids=property_ids
    ):
        totals[(row.property_id, row.year)] += normalize_amount(
            row.amount_cents, categories[row.category_id].type
        )

    seen_years = {year for _, year in totals}
    if not seen_years:
        return CategoryTrend(years=[], properties=refs, series_raw={}, series_display={})
    years = list(range(min(seen_years), max(seen_years) + 1))
    raw = {y: {pid: round_cents(totals.get((pid, y), 0.0)) for pid in property_ids} for y in years}
    display = {y: {pid: abs(v) for pid, v in row.items()} for y, row in raw.items()}
    return CategoryTrend(years=years, properties=refs, series_raw=raw, series_display=display)


__all__ = [
    "CategoryTrend",
    "IncomeVsExpensesRow",
    "category_trend_by_year",
    "income_vs_expenses_by_year",
]
