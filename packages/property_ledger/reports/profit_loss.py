"""Profit and loss reports: by property/category, by month, by year."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date

from ledger_db.models.ledger import PlTransaction
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..months import Month
from ..proration import round_cents
from ..signs import CategoryType, normalize_amount, split_income_expense
from ._common import (
    UNKNOWN_CATEGORY,
    UNKNOWN_PROPERTY,
    CategoryTreeRow,
    IncomeExpense,
    ReportWindow,
    Totals,
    allowed_categories,
    category_tree_rows,
    load_annual_rows,
    load_categories,
    load_ledger_rows,
    load_property_labels,
    prorated_annual,
    scope,
)

_TYPE_RANK: dict[str, int] = {"income": 0, "expense": 1, "transfer": 2}


# ---------------------------
# By property and category
# ---------------------------


@dataclass(frozen=True, slots=True)
class ProfitLossRow:
    property_id: int
    property_label: str
    category_id: int
    category_name: str
    parent_category_name: str | None
    type: CategoryType
    count: int
    amount_cents: int


@dataclass(frozen=True, slots=True)
class PropertySubtotal:
    property_id: int
    property_label: str
    income_cents: int
    expense_cents: int
    net_cents: int


@dataclass(frozen=True, slots=True)
class ProfitLossByPropertyReport:
    window: ReportWindow
    rows: list[ProfitLossRow]
    subtotals_by_property: dict[int, PropertySubtotal]
    totals: Totals


def profit_loss_by_property(
    session: Session,
    *,
    start: date | str,
    end: date | str,
    property_id: int | None = None,
    include_transfers: bool = False,
    include_annual_totals: bool = True,
) -> ProfitLossByPropertyReport:
    """Sum ledger rows per (property, category) and add prorated annual amounts.

    Row amounts are sign-normalized by category type. Property subtotals count
    income and expense rows only; transfer rows are listed but stay out of net.
    """

    window = ReportWindow.of(start, end)
    categories = load_categories(session)
    allowed = allowed_categories(categories, include_transfers=include_transfers)
    labels = load_property_labels(session)
    if not allowed:
        return ProfitLossByPropertyReport(window, [], {}, Totals(0, 0, 0))

    # Aggregate in SQL; abs() lets income/expense normalize from the sums.
    stmt = (
        select(
            PlTransaction.property_id,
            PlTransaction.category_id,
            func.count(PlTransaction.id),
            func.coalesce(func.sum(PlTransaction.amount_cents), 0),
            func.coalesce(func.sum(func.abs(PlTransaction.amount_cents)), 0),
        )
        .where(
            PlTransaction.deleted_at.is_(None),
            PlTransaction.category_id.in_(list(allowed)),
            PlTransaction.date >= window.start,
            PlTransaction.date < window.end_exclusive,
        )
        .group_by(PlTransaction.property_id, PlTransaction.category_id)
    )
    if property_id is not None:
        stmt = stmt.where(PlTransaction.property_id == property_id)

    amounts: dict[tuple[int, int], float] = defaultdict(float)
    counts: dict[tuple[int, int], int] = defaultdict(int)
    for pid, cid, n, signed_sum, abs_sum in session.execute(stmt).all():
        kind = allowed[cid].type
        if kind == "income":
            value = int(abs_sum)
        elif kind == "expense":
            value = -int(abs_sum)
        else:
            value = int(signed_sum)
        amounts[(pid, cid)] += value
        counts[(pid, cid)] += int(n)

    if include_annual_totals:
        for row in load_annual_rows(
            session, years=window.years, category_ids=allowed, property_ids=scope(property_id)
        ):
            share = prorated_annual(row, allowed[row.category_id], window)
            key = (row.property_id, row.category_id)
            amounts[key] += share
            counts.setdefault(key, 0)

    rows: list[ProfitLossRow] = []
    for (pid, cid), amount in amounts.items():
        c = categories.get(cid)
        parent = categories.get(c.parent_id) if c and c.parent_id is not None else None
        rows.append(
            ProfitLossRow(
                property_id=pid,
                property_label=labels.get(pid, UNKNOWN_PROPERTY),
                category_id=cid,
                category_name=c.name if c else UNKNOWN_CATEGORY,
                parent_category_name=parent.name if parent else None,
                type=c.type if c else "expense",
                count=counts[(pid, cid)],
                amount_cents=round_cents(amount),
            )
        )

    rows.sort(
        key=lambda r: (
            r.property_label,
            _TYPE_RANK.get(r.type, 99),
            (r.parent_category_name or "").lower(),
            r.category_name.lower(),
        )
    )

    per_property: dict[int, IncomeExpense] = defaultdict(IncomeExpense)
    overall = IncomeExpense()
    for (pid, cid), amount in amounts.items():
        kind = allowed[cid].type
        if kind == "income":
            per_property[pid].add(amount, 0.0)
            overall.add(amount, 0.0)
        elif kind == "expense":
            per_property[pid].add(0.0, amount)
            overall.add(0.0, amount)
        else:
            per_property.setdefault(pid, IncomeExpense())

    subtotals: dict[int, PropertySubtotal] = {}
    for pid, acc in per_property.items():
        t = acc.totals()
        subtotals[pid] = PropertySubtotal(
            property_id=pid,
            property_label=labels.get(pid, UNKNOWN_PROPERTY),
            income_cents=t.income_cents,
            expense_cents=t.expense_cents,
            net_cents=t.net_cents,
        )

    return ProfitLossByPropertyReport(
        window=window, rows=rows, subtotals_by_property=subtotals, totals=overall.totals()
    )


# ---------------------------
# By month
# ---------------------------


@dataclass(frozen=True, slots=True)
class MonthRow:
    month: Month
    income_cents: int
    expense_cents: int
    net_cents: int


@dataclass(frozen=True, slots=True)
class ProfitLossByMonthReport:
    window: ReportWindow
    months: list[MonthRow]
    totals: Totals


def profit_loss_by_month(
    session: Session,
    *,
    start: date | str,
    end: date | str,
    property_id: int | None = None,
    include_transfers: bool = False,
    include_annual_totals: bool = True,
) -> ProfitLossByMonthReport:
    """Income, expense and net for every calendar month touched by the range.

    Annual amounts are spread by day count over the part of each month that
    falls inside the range, so monthly values add up to the range total.
    """

    window = ReportWindow.of(start, end)
    categories = allowed_categories(load_categories(session), include_transfers=include_transfers)
    buckets: dict[Month, IncomeExpense] = {m: IncomeExpense() for m in window.months}

    if categories:
        for row in load_ledger_rows(
            session, window, category_ids=categories, property_ids=scope(property_id)
        ):
            acc = buckets.get(Month.of(row.date))
            if acc is not None:
                acc.add(*split_income_expense(row.amount_cents, categories[row.category_id].type))

        if include_annual_totals:
            for row in load_annual_rows(
                session, years=window.years, category_ids=categories, property_ids=scope(property_id)
            ):
                category = categories[row.category_id]
                for m, acc in buckets.items():
                    if m.year != row.year:
                        continue
                    part = window.clip(m.first_day(), m.last_day())
                    if part is None:
                        continue
                    share = prorated_annual(row, category, part)
                    acc.add(*split_income_expense(share, category.type))

    out: list[MonthRow] = []
    overall = IncomeExpense()
    for m in sorted(buckets):
        acc = buckets[m]
        overall.add(acc.income, acc.expense)
        t = acc.totals()
        out.append(MonthRow(m, t.income_cents, t.expense_cents, t.net_cents))
    return ProfitLossByMonthReport(window=window, months=out, totals=overall.totals())


# ---------------------------
# Annual summary
# ---------------------------


@dataclass(frozen=True, slots=True)
class AnnualSummaryYear:
    year: int
    income_cents: int
    expense_cents: int
    transfer_cents: int
    net_cents: int
    categories: list[CategoryTreeRow]


@dataclass(frozen=True, slots=True)
class AnnualSummaryReport:
    years: list[AnnualSummaryYear]
    totals: Totals
    transfer_cents: int


def annual_profit_and_loss_summary(
    session: Session,
    *,
    start_year: int,
    end_year: int,
    property_id: int | None = None,
    include_transfers: bool = False,
) -> AnnualSummaryReport:
    """Per-year totals plus a category tree for each year in the span."""

    first, last = sorted((start_year, end_year))
    years = list(range(first, last + 1))
    categories = allowed_categories(load_categories(session), include_transfers=include_transfers)
    if not categories:
        return AnnualSummaryReport(years=[], totals=Totals(0, 0, 0), transfer_cents=0)

    window = ReportWindow(date(first, 1, 1), date(last, 12, 31))
    by_year: dict[int, dict[int, float]] = {y: defaultdict(float) for y in years}
    for row in load_ledger_rows(
        session, window, category_ids=categories, property_ids=scope(property_id)
    ):
        by_year[row.date.year][row.category_id] += normalize_amount(
            row.amount_cents, categories[row.category_id].type
        )
    for row in load_annual_rows(
        session, years=years, category_ids=categories, property_ids=scope(property_id)
    ):
        by_year[row.year][row.category_id] += prorated_annual(
            row, categories[row.category_id], ReportWindow.for_year(row.year)
        )

    out: list[AnnualSummaryYear] = []
    overall = IncomeExpense()
    transfer_total = 0.0
    for y in years:
        acc = IncomeExpense()
        transfers = 0.0
        for cid, amount in by_year[y].items():
            kind = categories[cid].type
            if kind == "income":
                acc.add(amount, 0.0)
            elif kind == "expense":
                acc.add(0.0, amount)
            else:
                transfers += amount
        overall.add(acc.income, acc.expense)
        transfer_total += transfers
        t = acc.totals()
        out.append(
            AnnualSummaryYear(
                year=y,
                income_cents=t.income_cents,
                expense_cents=t.expense_cents,
                transfer_cents=round_cents(transfers),
                net_cents=t.net_cents,
                categories=category_tree_rows(categories, by_year[y]),
            )
        )
    return AnnualSummaryReport(
        years=out, totals=overall.totals(), transfer_cents=round_cents(transfer_total)
    )


__all__ = [
    "AnnualSummaryReport",
    "AnnualSummaryYear",
    "MonthRow",
    "ProfitLossByMonthReport",
    "ProfitLossByPropertyReport",
    "ProfitLossRow",
    "PropertySubtotal",
    "annual_profit_and_loss_summary",
    "profit_loss_by_month",
    "profit_loss_by_property",
]
