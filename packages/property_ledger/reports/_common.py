"""Shared loaders and helpers for report builders.

Every report follows the same shape: load ledger rows for a half-open date
window, load annual amounts for the years the window touches, normalize signs
by category type, prorate annual amounts by day count, aggregate, and round
once when building the output rows.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date

from ledger_db.models.ledger import (
    PlAnnualCategoryAmount,
    PlCategory,
    PlProperty,
    PlTransaction,
)
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import CategoryRef, property_label
from ..months import Month, months_between_inclusive
from ..proration import (
    end_exclusive,
    ordered_range,
    prorate_annual_for_range,
    round_cents,
    years_in_range,
)
from ..signs import normalize_amount

UNKNOWN_PROPERTY = "Unknown property"
UNKNOWN_CATEGORY = "Unknown category"


@dataclass(frozen=True, slots=True)
class ReportWindow:
    """Inclusive ``[start, end]`` report range (queried as ``[start, end + 1)``)."""

    start: date
    end: date

    @classmethod
    def of(cls, start: date | str, end: date | str) -> ReportWindow:
        s, e = ordered_range(start, end)
        return cls(s, e)

    @classmethod
    def for_year(cls, year: int) -> ReportWindow:
        return cls(date(year, 1, 1), date(year, 12, 31))

    @property
    def end_exclusive(self) -> date:
        return end_exclusive(self.end)

    @property
    def years(self) -> list[int]:
        return years_in_range(self.start, self.end)

    @property
    def months(self) -> list[Month]:
        return months_between_inclusive(Month.of(self.start), Month.of(self.end))

    def clip(self, start: date, end: date) -> ReportWindow | None:
        s, e = max(start, self.start), min(end, self.end)
        return ReportWindow(s, e) if s <= e else None


@dataclass(frozen=True, slots=True)
class Totals:
    income_cents: int
    expense_cents: int
    net_cents: int


@dataclass(frozen=True, slots=True)
class LedgerRow:
    id: int
    property_id: int
    category_id: int
    date: date
    amount_cents: int
    statement_month: str | None


@dataclass(frozen=True, slots=True)
class AnnualRow:
    property_id: int
    category_id: int
    year: int
    amount_cents: int


@dataclass(frozen=True, slots=True)
class CategoryTreeRow:
    id: int
    name: str
    type: str
    depth: int
    amount_cents: int


class IncomeExpense:
    """Mutable float accumulator for an income/expense pair."""

    __slots__ = ("income", "expense")

    def __init__(self) -> None:
        self.income = 0.0
        self.expense = 0.0

    def add(self, income: float, expense: float) -> None:
        self.income += income
        self.expense += expense

    def totals(self) -> Totals:
        income = round_cents(self.income)
        expense = round_cents(self.expense)
        return Totals(income_cents=income, expense_cents=expense, net_cents=income + expense)


# ---------------------------
# Loaders
# ---------------------------


def load_categories(session: Session) -> dict[int, CategoryRef]:
    rows = session.scalars(select(PlCategory)).all()
    return {
        c.id: CategoryRef(
            id=c.id, name=c.name, type=c.type, parent_id=c.parent_id, tax_bucket=c.tax_bucket
        )
        for c in rows
    }


def allowed_categories(
    categories: Mapping[int, CategoryRef], *, include_transfers: bool
) -> dict[int, CategoryRef]:
    return {
        cid: c for cid, c in categories.items() if include_transfers or c.type != "transfer"
    }


def load_properties(
    session: Session,
    *,
    property_id: int | None = None,
    status: str | None = None,
) -> list[PlProperty]:
    """Properties ordered by status then newest first."""

    stmt = select(PlProperty).order_by(PlProperty.status, PlProperty.created_at.desc(), PlProperty.id)
    if property_id is not None:
        stmt = stmt.where(PlProperty.id == property_id)
    if status is not None:
        stmt = stmt.where(PlProperty.status == status)
    return list(session.scalars(stmt).all())


def label_for(p: PlProperty) -> str:
    return property_label(nickname=p.nickname, street=p.street, city=p.city, state=p.state, zip=p.zip)


def load_property_labels(session: Session, property_id: int | None = None) -> dict[int, str]:
    return {p.id: label_for(p) for p in load_properties(session, property_id=property_id)}


def load_ledger_rows(
    session: Session,
    window: ReportWindow,
    *,
    category_ids: Iterable[int],
    property_ids: Iterable[int] | None = None,
) -> list[LedgerRow]:
    """Live (not soft-deleted) transactions dated within the window."""

    stmt = select(PlTransaction).where(
        PlTransaction.deleted_at.is_(None),
        PlTransaction.category_id.in_(list(category_ids)),
        PlTransaction.date >= window.start,
        PlTransaction.date < window.end_exclusive,
    )
    if property_ids is not None:
        stmt = stmt.where(PlTransaction.property_id.in_(list(property_ids)))
    return [_ledger_row(t) for t in session.scalars(stmt)]


def _ledger_row(t: PlTransaction) -> LedgerRow:
    return LedgerRow(
        id=t.id,
        property_id=t.property_id,
        category_id=t.category_id,
        date=t.date,
        amount_cents=int(t.amount_cents),
        statement_month=t.statement_month.strip() if t.statement_month else None,
    )


def load_annual_rows(
    session: Session,
    *,
    years: Iterable[int] | None,
    category_ids: Iterable[int],
    property_ids: Iterable[int] | None = None,
) -> list[AnnualRow]:
    stmt = select(PlAnnualCategoryAmount).where(
        PlAnnualCategoryAmount.category_id.in_(list(category_ids))
    )
    if years is not None:
        stmt = stmt.where(PlAnnualCategoryAmount.year.in_(list(years)))
    if property_ids is not None:
        stmt = stmt.where(PlAnnualCategoryAmount.property_id.in_(list(property_ids)))
    return [
        AnnualRow(
            property_id=r.property_id,
            category_id=r.category_id,
            year=r.year,
            amount_cents=int(r.amount_cents),
        )
        for r in session.scalars(stmt)
    ]


def scope(property_id: int | None) -> list[int] | None:
    return [property_id] if property_id is not None else None


# ---------------------------
# Math helpers
# ---------------------------


def prorated_annual(row: AnnualRow, category: CategoryRef, window: ReportWindow) -> float:
    """Sign-normalized share of an annual amount that falls in ``window``."""

    return prorate_annual_for_range(
        row.year, normalize_amount(row.amount_cents, category.type), window.start, window.end
    )


def descendant_ids(categories: Mapping[int, CategoryRef], root_id: int) -> set[int]:
    children: dict[int | None, list[int]] = defaultdict(list)
    for c in categories.values():
        children[c.parent_id].append(c.id)
    seen: set[int] = set()
    stack = [root_id]
    while stack:
        current = stack.pop()
        if current in seen or current not in categories:
            continue
        seen.add(current)
        stack.extend(children.get(current, ()))
    return seen


def category_tree_rows(
    categories: Mapping[int, CategoryRef], amounts: Mapping[int, float]
) -> list[CategoryTreeRow]:
    """Depth-first category rows with amounts rolled up from descendants.

    Only ``categories`` take part; a parent outside the mapping makes its
    child a root. Rows whose rolled-up total rounds to zero are omitted.
    Siblings are ordered by name.
    """

    children: dict[int | None, list[int]] = defaultdict(list)
    for c in categories.values():
        parent = c.parent_id if c.parent_id in categories else None
        children[parent].append(c.id)
    for ids in children.values():
        ids.sort(key=lambda cid: (categories[cid].name.lower(), cid))

    rolled: dict[int, float] = {}

    def total(cid: int) -> float:
        if cid not in rolled:
            rolled[cid] = amounts.get(cid, 0.0) + sum(total(k) for k in children.get(cid, ()))
        return rolled[cid]

    out: list[CategoryTreeRow] = []

    def walk(cid: int, depth: int) -> None:
        amount = round_cents(total(cid))
        if amount == 0:
            return
        c = categories[cid]
        out.append(CategoryTreeRow(id=cid, name=c.name, type=c.type, depth=depth, amount_cents=amount))
        for child in children.get(cid, ()):
            walk(child, depth + 1)

    for root in children.get(None, ()):
        walk(root, 0)
    return out


__all__ = [
    "AnnualRow",
    "CategoryTreeRow",
    "IncomeExpense",
    "LedgerRow",
    "ReportWindow",
    "Totals",
    "UNKNOWN_CATEGORY",
    "UNKNOWN_PROPERTY",
    "allowed_categories",
    "category_tree_rows",
    "descendant_ids",
    "label_for",
    "load_annual_rows",
    "load_categories",
    "load_ledger_rows",
    "load_properties",
    "load_property_labels",
    "prorated_annual",
    "scope",
]
