"""Net profit over look-back windows ("last N years" or all time)."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Literal

from ledger_db.models.ledger import PlAnnualCategoryAmount, PlTransaction
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..months import today_utc
from ..proration import round_cents
from ..signs import split_income_expense
from ._common import (
    UNKNOWN_PROPERTY,
    ReportWindow,
    allowed_categories,
    load_annual_rows,
    load_categories,
    load_ledger_rows,
    load_property_labels,
    prorated_annual,
)
from .profit_loss import profit_loss_by_property

type LookBack = Literal["1", "3", "5", "10", "15", "all"]
LOOK_BACKS: tuple[str, ...] = ("1", "3", "5", "10", "15", "all")


@dataclass(frozen=True, slots=True)
class NetProfitRow:
    property_id: int
    property_label: str
    income_cents: int
    expense_cents: int
    net_profit_cents: int


@dataclass(frozen=True, slots=True)
class YearNetProfitRow:
    year: int
    income_cents: int
    expense_cents: int
    net_profit_cents: int


def _shift_years(d: date, years: int) -> date:
    try:
        return d.replace(year=d.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year.
        return d.replace(year=d.year - years, day=28)


def _earliest_data_date(session: Session, property_id: int | None) -> date | None:
    tx_stmt = select(func.min(PlTransaction.date)).where(PlTransaction.deleted_at.is_(None))
    annual_stmt = select(func.min(PlAnnualCategoryAmount.year))
    if property_id is not None:
        tx_stmt = tx_stmt.where(PlTransaction.property_id == property_id)
        annual_stmt = annual_stmt.where(PlAnnualCategoryAmount.property_id == property_id)
    candidates: list[date] = []
    first_tx = session.scalar(tx_stmt)
    if first_tx is not None:
        candidates.append(first_tx)
    first_year = session.scalar(annual_stmt)
    if first_year is not None:
        candidates.append(date(int(first_year), 1, 1))
    return min(candidates) if candidates else None


def net_profit_window(
    session: Session,
    years: LookBack,
    *,
    property_id: int | None = None,
    today: date | None = None,
) -> ReportWindow:
    """Window ending today; ``all`` starts at the earliest recorded data."""

    if years not in LOOK_BACKS:
        raise ValueError(f"unknown look-back: {years!r}")
    end = today or today_utc()
    if years == "all":
        start = _earliest_data_date(session, property_id) or end
        return ReportWindow.of(min(start, end), end)
    return ReportWindow(_shift_years(end, int(years)), end)


def net_profit_by_property(
    session: Session, *, years: LookBack, today: date | None = None
) -> list[NetProfitRow]:
    """Net profit per property, highest first."""

    window = net_profit_window(session, years, today=today)
    report = profit_loss_by_property(session, start=window.start, end=window.end)
    rows = [
        NetProfitRow(
            property_id=s.property_id,
            property_label=s.property_label,
            income_cents=s.income_cents,
            expense_cents=s.expense_cents,
            net_profit_cents=s.net_cents,
        )
        for s in report.subtotals_by_property.values()
    ]
    rows.sort(key=lambda r: (-r.net_profit_cents, r.property_label))
    return rows


def net_profit_for_property(
    session: Session, *, property_id: int, years: LookBack, today: date | None = None
) -> NetProfitRow:
    window = net_profit_window(session, years, property_id=property_id, today=today)
    report = profit_loss_by_property(
        session, start=window.start, end=window.end, property_id=property_id
    )
    s = report.subtotals_by_property.get(property_id)
    if s is not None:
        return NetProfitRow(property_id, s.property_label, s.income_cents, s.expense_cents, s.net_cents)
    label = load_property_labels(session, property_id).get(property_id, UNKNOWN_PROPERTY)
    return NetProfitRow(property_id, label, 0, 0, 0)


def net_profit_by_year_for_property(
    session: Session, *, property_id: int, years: LookBack, today: date | None = None
) -> list[YearNetProfitRow]:
    """Per-year income, expense and net for one property, newest year first.

    With ``all`` only years holding data are listed; otherwise every year the
    window touches is listed, zero or not.
    """

    window = net_profit_window(session, years, property_id=property_id, today=today)
    categories = allowed_categories(load_categories(session), include_transfers=False)
    totals: dict[int, list[float]] = defaultdict(lambda: [0.0, 0.0])

    if categories:
        for row in load_ledger_rows(
            session, window, category_ids=categories, property_ids=[property_id]
        ):
            inc, exp = split_income_expense(row.amount_cents, categories[row.category_id].type)
            bucket = totals[row.date.year]
            bucket[0] += inc
            bucket[1] += exp
        for row in load_annual_rows(
            session, years=window.years, category_ids=categories, property_ids=[property_id]
        ):
            category = categories[row.category_id]
            share = prorated_annual(row, category, window)
            if share == 0:
                continue
            inc, exp = split_income_expense(share, category.type)
            bucket = totals[row.year]
            bucket[0] += inc
            bucket[1] += exp

    year_list = sorted(totals) if years == "all" else window.years
    out: list[YearNetProfitRow] = []
    for y in sorted(year_list, reverse=True):
        inc, exp = totals.get(y, (0.0, 0.0))
        income, expense = round_cents(inc), round_cents(exp)
        out.append(YearNetProfitRow(y, income, expense, income + expense))
    return out


__all__ = [
    "LOOK_BACKS",
    "LookBack",
    "NetProfitRow",
    "YearNetProfitRow",
    "net_profit_by_property",
    "net_profit_by_year_for_property",
    "net_profit_for_property",
    "net_profit_window",
]
