"""Public API for the ``property_ledger`` package.

A stable import surface over the recurring engine, rule commands and reports.
Every function takes an open SQLAlchemy ``Session``; callers decide the
transaction scope (``ledger_db.client.session_scope`` is the usual choice).
Posting commands are the exception: they commit one rule-month at a time.
"""

from __future__ import annotations

from .posting import post_catch_up_through_month, post_for_month
from .proration import prorate_annual_for_range
from .recurring import (
    create_recurring_rule,
    delete_recurring_rule,
    toggle_recurring_rule,
    update_recurring_rule,
)
from .reports import (
    annual_profit_and_loss_summary,
    cash_vs_accrual,
    category_trend_by_year,
    expenses_by_category,
    expenses_by_property,
    income_by_category,
    income_vs_expenses_by_year,
    net_profit_by_property,
    net_profit_by_year_for_property,
    net_profit_for_property,
    portfolio_leaderboard,
    profit_loss_by_month,
    profit_loss_by_property,
    recurring_expenses_overview,
    rental_income_by_property,
    return_on_equity,
    schedule_e_summary,
)
from .schedule import recurring_tables_ready, resolve_schedule_for_month
from .signs import normalize_amount

__all__ = [
    # Recurring engine
    "post_catch_up_through_month",
    "post_for_month",
    "recurring_tables_ready",
    "resolve_schedule_for_month",
    # Rule commands
    "create_recurring_rule",
    "delete_recurring_rule",
    "toggle_recurring_rule",
    "update_recurring_rule",
    # Math
    "normalize_amount",
    "prorate_annual_for_range",
    # Reports
    "annual_profit_and_loss_summary",
    "cash_vs_accrual",
    "category_trend_by_year",
    "expenses_by_category",
    "expenses_by_property",
    "income_by_category",
    "income_vs_expenses_by_year",
    "net_profit_by_property",
    "net_profit_by_year_for_property",
    "net_profit_for_property",
    "portfolio_leaderboard",
    "profit_loss_by_month",
    "profit_loss_by_property",
    "recurring_expenses_overview",
    "rental_income_by_property",
    "return_on_equity",
    "schedule_e_summary",
]
