"""Rental income per property."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from ..models import CategoryRef
from ..months import today_utc
from ..proration import round_cents
from ._common import (
    ReportWindow,
    load_annual_rows,
    load_categories,
    load_ledger_rows,
    load_property_labels,
    prorated_annual,
    scope,
)

_RENTAL_TOKENS = ("rent", "rental", "lease")
_NOT_RENTAL_TOKENS = (
    "late fee",
    "application",
    "deposit",
    "reimbursement",
    "utility",
    "hoa",
    "laundry",
)


def is_rental_income_category(name: str) -> bool:
    """Rent-like income names, excluding fees and pass-through charges."""

    lowered = name.lower()
    if not any(t in lowered for t in _RENTAL_TOKENS):
        return False
    return not any(t in lowered for t in _NOT_RENTAL_TOKENS)


@dataclass(frozen=True, slots=True)
class RentalIncomeRow:
    property_id: int
    property_label: str
    transactional_income_cents: int
    annual_income_cents: int
    total_income_cents: int


@dataclass(frozen=True, slots=True)
class RentalIncomeReport:
    window: ReportWindow
    include_other_income: bool
    rows: list[RentalIncomeRow]
    transactional_income_cents: int
    annual_income_cents: int
    total_income_cents: int


def _counts(category: CategoryRef, *, include_other_income: bool) -> bool:
    if category.type == "income" and is_rental_income_category(category.name):
        return True
    return include_other_income


def rental_income_by_property(
    session: Session,
    *,
    start: date | str | None = None,
    end: date | str | None = None,
    property_id: int | None = None,
    include_transfers: bool = False,
    include_other_income: bool = False,
) -> RentalIncomeReport:
    """Rental income per property, highest total first.

    Without dates the window is the current year to date. Income amounts are
    counted as positive whatever their stored sign.
    """

    today = today_utc()
    window = ReportWindow.of(start or date(today.year, 1, 1), end or today)
    types = ("income", "transfer") if include_transfers else ("income",)
    categories = {
        cid: c
        for cid, c in load_categories(session).items()
        if c.type in types and _counts(c, include_other_income=include_other_income)
    }

    transactional: dict[int, float] = defaultdict(float)
    annual: dict[int, float] = defaultdict(float)
    if categories:
        for row in load_ledger_rows(
            session, window, category_ids=categories, property_ids=scope(property_id)
        ):
            transactional[row.property_id] += abs(row.amount_cents)
        for row in load_annual_rows(
            session, years=window.years, category_ids=categories, property_ids=scope(property_id)
        ):
            share = abs(prorated_annual(row, categories[row.category_id], window))
            if share:
                annual[row.property_id] += share

    labels = load_property_labels(session)
    rows: list[RentalIncomeRow] = []
    for pid in set(transactional) | set(annual):
        tx = round_cents(transactional.get(pid, 0.0))
        an = round_cents(annual.get(pid, 0.0))
        rows.append(
            RentalIncomeRow(
                property_id=pid,
                property_label=labels.get(pid, "Property"),
                transactional_income_cents=tx,
                annual_income_cents=an,
                total_income_cents=tx + an,
            )
        )
    rows.sort(key=lambda r: (-r.total_income_cents, r.property_label))

    return RentalIncomeReport(
        window=window,
        include_other_income=include_other_income,
        rows=rows,
        transactional_income_cents=sum(r.transactional_income_cents for r in rows),
        annual_income_cents=sum(r.annual_income_cents for r in rows),
        total_income_cents=sum(r.total_income_cents for r in rows),
    )


__all__ = [
    "RentalIncomeReport",
    "RentalIncomeRow",
    "is_rental_income_category",
    "rental_income_by_property",
]
