from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from property_ledger.reports import cash_vs_accrual
from tests.helpers.db import add_annual, add_category, add_property, add_tx


def test_without_statement_months_accrual_falls_back_to_cash(session: Session) -> None:
    prop = add_property(session)
    rent = add_category(session, "Rent", "income")
    repairs = add_category(session, "Repairs", "expense")
    add_tx(session, prop, rent, date(2024, 1, 3), 150000)
    add_tx(session, prop, repairs, date(2024, 1, 20), 40000)
    session.commit()

    report = cash_vs_accrual(session, start="2024-01-01", end="2024-01-31")

    assert report.accrual_mode == "fallback"
    assert report.cash.totals == report.accrual.totals
    assert report.cash.totals.net_cents == 110000
    assert report.cash.totals.expense_cents == -40000
    assert (report.delta.income_cents, report.delta.expense_cents, report.delta.net_cents) == (0, 0, 0)
    assert report.cash.by_category is None


def test_statement_month_moves_rows_between_periods(session: Session) -> None:
    prop = add_property(session)
    utilities = add_category(session, "Utilities", "expense")
    rent = add_category(session, "Rent", "income")
    # December bill paid in January.
    add_tx(session, prop, utilities, date(2024, 1, 4), -30000, statement_month="2023-12")
    # January bill paid in February.
    add_tx(session, prop, utilities, date(2024, 2, 2), -32000, statement_month="2024-01")
    add_tx(session, prop, rent, date(2024, 1, 1), 150000)
    session.commit()

    report = cash_vs_accrual(session, start="2024-01-01", end="2024-01-31", by_category=True)

    assert report.accrual_mode == "real"
    assert report.cash.totals.expense_cents == -30000
    assert report.accrual.totals.expense_cents == -32000
    assert report.delta.expense_cents == -2000
    assert report.delta.income_cents == 0
    assert report.delta.net_cents == -2000
    assert report.accrual.by_category is not None
    assert [(r.category_name, r.net_cents) for r in report.accrual.by_category] == [
        ("Rent", 150000),
        ("Utilities", -32000),
    ]


def test_annual_amounts_are_prorated_into_both_sides(session: Session) -> None:
    prop = add_property(session)
    tax = add_category(session, "Property Tax", "expense")
    # Stored positive; normalized to an expense.
    add_annual(session, prop, tax, 2023, 36500)
    session.commit()

    report = cash_vs_accrual(session, start="2023-03-01", end="2023-03-31")

    assert report.cash.breakdown.annual_expense_cents == -3100
    assert report.accrual.breakdown.annual_expense_cents == -3100
    assert report.cash.breakdown.transactional_expense_cents == 0
    assert report.delta.net_cents == 0
