"""Cash-basis versus accrual-basis profit and loss.

Cash basis buckets transactions by ``date``. Accrual basis buckets them by
``statement_month`` when a row carries one and by ``date`` otherwise, so a
January bill paid in February lands in January. When no row in scope carries a
statement month the accrual side collapses to cash and the report says so with
``accrual_mode == "fallback"``.

Annual amounts have no payment date; they are prorated into both sides alike.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Literal

from ledger_db.models.ledger import PlTransaction
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from ..models import CategoryRef
from ..proration import round_cents
from ..signs import split_income_expense
from ._common import (
    UNKNOWN_CATEGORY,
    ReportWindow,
    Totals,
    allowed_categories,
    load_annual_rows,
    load_categories,
    load_ledger_rows,
    prorated_annual,
    scope,
)

type AccrualMode = Literal["real", "fallback"]


@dataclass(frozen=True, slots=True)
class Breakdown:
    transactional_income_cents: int
    transactional_expense_cents: int
    annual_income_cents: int
    annual_expense_cents: int


@dataclass(frozen=True, slots=True)
class CategoryBasisRow:
    category_id: int
    category_name: str
    income_cents: int
    expense_cents: int
    net_cents: int


@dataclass(frozen=True, slots=True)
class BasisResult:
    totals: Totals
    breakdown: Breakdown
    by_category: list[CategoryBasisRow] | None


@dataclass(frozen=True, slots=True)
class CashVsAccrualReport:
    window: ReportWindow
    accrual_mode: AccrualMode
    cash: BasisResult
    accrual: BasisResult
    delta: Totals


class _Basis:
    """Accumulates one side of the comparison before rounding."""

    def __init__(self) -> None:
        self.by_category: dict[int, list[float]] = defaultdict(lambda: [0.0, 0.0])
        self.tx = [0.0, 0.0]
        self.annual = [0.0, 0.0]

    def add(self, category_id: int, income: float, expense: float, *, annual: bool) -> None:
        bucket = self.by_category[category_id]
        bucket[0] += income
        bucket[1] += expense
        part = self.annual if annual else self.tx
        part[0] += income
        part[1] += expense

    def result(self, categories: dict[int, CategoryRef], *, by_category: bool) -> BasisResult:
        income = round_cents(sum(v[0] for v in self.by_category.values()))
        expense = round_cents(sum(v[1] for v in self.by_category.values()))
        rows: list[CategoryBasisRow] | None = None
        if by_category:
            rows = []
            for cid, (inc, exp) in self.by_category.items():
                i, e = round_cents(inc), round_cents(exp)
                if i == 0 and e == 0:
                    continue
                c = categories.get(cid)
                rows.append(
                    CategoryBasisRow(
                        category_id=cid,
                        category_name=c.name if c else UNKNOWN_CATEGORY,
                        income_cents=i,
                        expense_cents=e,
                        net_cents=i + e,
                    )
                )
            rows.sort(key=lambda r: r.category_name.lower())
        return BasisResult(
            totals=Totals(income, expense, income + expense),
            breakdown=Breakdown(
                transactional_income_cents=round_cents(self.tx[0]),
                transactional_expense_cents=round_cents(self.tx[1]),
                annual_income_cents=round_cents(self.annual[0]),
                annual_expense_cents=round_cents(self.annual[1]),
            ),
            by_category=rows,
        )


def _accrual_rows(
    session: Session,
    window: ReportWindow,
    category_ids: list[int],
    property_id: int | None,
) -> list[tuple[int, int, str | None]]:
    """``(category_id, amount_cents, statement_month)`` for the accrual side."""

    tokens = [str(m) for m in window.months]
    stmt = select(
        PlTransaction.category_id, PlTransaction.amount_cents, PlTransaction.statement_month
    ).where(
        PlTransaction.deleted_at.is_(None),
        PlTransaction.category_id.in_(category_ids),
        or_(
            PlTransaction.statement_month.in_(tokens),
            and_(
                PlTransaction.statement_month.is_(None),
                PlTransaction.date >= window.start,
                PlTransaction.date < window.end_exclusive,
            ),
        ),
    )
    if property_id is not None:
        stmt = stmt.where(PlTransaction.property_id == property_id)
    return [(cid, int(amount), sm) for cid, amount, sm in session.execute(stmt).all()]


def cash_vs_accrual(
    session: Session,
    *,
    start: date | str,
    end: date | str,
    property_id: int | None = None,
    include_transfers: bool = False,
    by_category: bool = False,
) -> CashVsAccrualReport:
    """Compare cash and accrual P&L over ``[start, end]``.

    ``delta`` is accrual minus cash for income, expense and net.
    """

    window = ReportWindow.of(start, end)
    categories = allowed_categories(load_categories(session), include_transfers=include_transfers)
    cash, accrual = _Basis(), _Basis()

    if not categories:
        empty = cash.result({}, by_category=by_category)
        return CashVsAccrualReport(window, "fallback", empty, empty, Totals(0, 0, 0))

    ids = list(categories)
    for row in load_ledger_rows(session, window, category_ids=ids, property_ids=scope(property_id)):
        inc, exp = split_income_expense(row.amount_cents, categories[row.category_id].type)
        cash.add(row.category_id, inc, exp, annual=False)

    has_statement_months = False
    for cid, amount, statement_month in _accrual_rows(session, window, ids, property_id):
        has_statement_months = has_statement_months or bool(statement_month)
        inc, exp = split_income_expense(amount, categories[cid].type)
        accrual.add(cid, inc, exp, annual=False)

    for row in load_annual_rows(
        session, years=window.years, category_ids=ids, property_ids=scope(property_id)
    ):
        category = categories[row.category_id]
        share = prorated_annual(row, category, window)
        if share == 0:
            continue
        inc, exp = split_income_expense(share, category.type)
        cash.add(row.category_id, inc, exp, annual=True)
        accrual.add(row.category_id, inc, exp, annual=True)

    cash_result = cash.result(categories, by_category=by_category)
    accrual_result = accrual.result(categories, by_category=by_category)
    ct, at = cash_result.totals, accrual_result.totals
    return CashVsAccrualReport(
        window=window,
        accrual_mode="real" if has_statement_months else "fallback",
        cash=cash_result,
        accrual=accrual_result,
        delta=Totals(
            income_cents=at.income_cents - ct.income_cents,
            expense_cents=at.expense_cents - ct.expense_cents,
            net_cents=at.net_cents - ct.net_cents,
        ),
    )


__all__ = [
    "AccrualMode",
    "BasisResult",
    "Breakdown",
    "CashVsAccrualReport",
    "CategoryBasisRow",
    "cash_vs_accrual",
]
