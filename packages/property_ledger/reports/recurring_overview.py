"""Recurring expenses: what rules should have posted vs what they did."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date

from ledger_db.models.ledger import (
    PlCategory,
    PlRecurringPosting,
    PlRecurringRule,
    PlTransaction,
)
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import InvalidMonthError
from ..logging_setup import get_logger
from ..months import Month, is_month_in_window
from ..proration import round_cents
from ..schedule import recurring_tables_ready
from ..signs import normalize_amount
from ._common import (
    UNKNOWN_PROPERTY,
    ReportWindow,
    load_annual_rows,
    load_categories,
    load_ledger_rows,
    load_property_labels,
    prorated_annual,
    scope,
)

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RecurringExpenseRow:
    rule_id: int
    property_id: int
    property_label: str
    category_id: int
    category_name: str
    memo: str | None
    monthly_amount_cents: int
    months_in_range: list[Month]
    expected_total_cents: int
    posted_total_cents: int
    variance_cents: int
    missing_months: list[Month]


@dataclass(frozen=True, slots=True)
class RecurringExpensesOverview:
    window: ReportWindow
    recurring_tables_ready: bool
    rows: list[RecurringExpenseRow]
    expected_total_cents: int
    posted_total_cents: int
    variance_cents: int
    other_transactional_expense_cents: int
    annual_expense_cents: int
    all_expense_cents: int


def recurring_expenses_overview(
    session: Session,
    *,
    start: date | str,
    end: date | str,
    property_id: int | None = None,
    include_transfers: bool = False,
    include_inactive: bool = False,
) -> RecurringExpensesOverview:
    """Expected vs posted totals per expense rule over the window's months.

    Expected is the monthly amount times the months where the rule applies;
    posted sums the live ledger rows linked through posting records. Other
    expense transactions and prorated annual expenses are totalled alongside
    so the three parts add up to ``all_expense_cents``.
    """

    window = ReportWindow.of(start, end)
    categories = load_categories(session)
    expense_types = ("expense", "transfer") if include_transfers else ("expense",)
    expense_categories = {cid: c for cid, c in categories.items() if c.type in expense_types}
    labels = load_property_labels(session)
    months = window.months

    rows: list[RecurringExpenseRow] = []
    recurring_tx_ids: set[int] = set()
    ready = recurring_tables_ready(session)
    if ready:
        stmt = (
            select(PlRecurringRule, PlCategory)
            .join(PlCategory, PlCategory.id == PlRecurringRule.category_id)
            .where(PlCategory.type == "expense")
        )
        if property_id is not None:
            stmt = stmt.where(PlRecurringRule.property_id == property_id)
        if not include_inactive:
            stmt = stmt.where(PlRecurringRule.is_active.is_(True))
        rules = session.execute(stmt).all()

        posted: dict[int, dict[Month, int]] = defaultdict(dict)
        if rules and months:
            posting_stmt = (
                select(
                    PlRecurringPosting.recurring_rule_id,
                    PlRecurringPosting.month,
                    PlTransaction.id,
                    PlTransaction.amount_cents,
                )
                .join(PlTransaction, PlTransaction.id == PlRecurringPosting.ledger_transaction_id)
                .where(
                    PlRecurringPosting.recurring_rule_id.in_([r.id for r, _ in rules]),
                    PlRecurringPosting.month.in_([str(m) for m in months]),
                    PlTransaction.deleted_at.is_(None),
                )
            )
            for rule_id, token, tx_id, amount in session.execute(posting_stmt).all():
                posted[rule_id][Month.parse(token)] = int(amount)
                recurring_tx_ids.add(tx_id)

        for rule, category in rules:
            try:
                start_m = Month.parse(rule.start_month)
                end_m = Month.parse(rule.end_month) if rule.end_month else None
            except InvalidMonthError:
                logger.warning("Skipping recurring rule %s with malformed month window", rule.id)
                continue
            applicable = [m for m in months if is_month_in_window(m, start_m, end_m)]
            if not applicable:
                continue
            monthly = int(normalize_amount(rule.amount_cents, "expense"))
            by_month = posted.get(rule.id, {})
            posted_total = sum(int(normalize_amount(v, "expense")) for v in by_month.values())
            expected = monthly * len(applicable)
            rows.append(
                RecurringExpenseRow(
                    rule_id=rule.id,
                    property_id=rule.property_id,
                    property_label=labels.get(rule.property_id, UNKNOWN_PROPERTY),
                    category_id=category.id,
                    category_name=category.name,
                    memo=rule.memo,
                    monthly_amount_cents=monthly,
                    months_in_range=applicable,
                    expected_total_cents=expected,
                    posted_total_cents=posted_total,
                    variance_cents=posted_total - expected,
                    missing_months=[m for m in applicable if m not in by_month],
                )
            )
    rows.sort(key=lambda r: (r.property_label, r.category_name, r.memo or ""))

    other = 0.0
    annual = 0.0
    if expense_categories:
        for row in load_ledger_rows(
            session, window, category_ids=expense_categories, property_ids=scope(property_id)
        ):
            if row.id in recurring_tx_ids:
                continue
            other += normalize_amount(row.amount_cents, expense_categories[row.category_id].type)
        only_expense = {cid: c for cid, c in expense_categories.items() if c.type == "expense"}
        for row in load_annual_rows(
            session, years=window.years, category_ids=only_expense, property_ids=scope(property_id)
        ):
            annual += prorated_annual(row, only_expense[row.category_id], window)

    expected_total = sum(r.expected_total_cents for r in rows)
    posted_total = sum(r.posted_total_cents for r in rows)
    other_cents, annual_cents = round_cents(other), round_cents(annual)
    return RecurringExpensesOverview(
        window=window,
        recurring_tables_ready=ready,
        rows=rows,
        expected_total_cents=expected_total,
        posted_total_cents=posted_total,
        variance_cents=posted_total - expected_total,
        other_transactional_expense_cents=other_cents,
        annual_expense_cents=annual_cents,
        all_expense_cents=posted_total + other_cents + annual_cents,
    )


__all__ = [
    "RecurringExpenseRow",
    "RecurringExpensesOverview",
    "recurring_expenses_overview",
]
