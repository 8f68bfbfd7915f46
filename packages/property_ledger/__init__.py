"""Property ledger: recurring postings and reports over a rental-property ledger.

Only symbol re-exports live here; see :mod:`property_ledger.api`.
"""

from .api import (
    annual_profit_and_loss_summary,
    cash_vs_accrual,
    category_trend_by_year,
    create_recurring_rule,
    delete_recurring_rule,
    expenses_by_category,
    expenses_by_property,
    income_by_category,
    income_vs_expenses_by_year,
    net_profit_by_property,
    net_profit_by_year_for_property,
    net_profit_for_property,
    normalize_amount,
    portfolio_leaderboard,
    post_catch_up_through_month,
    post_for_month,
    profit_loss_by_month,
    profit_loss_by_property,
    prorate_annual_for_range,
    recurring_expenses_overview,
    recurring_tables_ready,
    rental_income_by_property,
    resolve_schedule_for_month,
    return_on_equity,
    schedule_e_summary,
    toggle_recurring_rule,
    update_recurring_rule,
)
from .models import (
    CategoryRef,
    MonthSchedule,
    PostingResult,
    RuleCommandResult,
    ScheduledRule,
    ValidationIssue,
)
from .months import Month

__all__ = [
    # API
    "annual_profit_and_loss_summary",
    "cash_vs_accrual",
    "category_trend_by_year",
    "create_recurring_rule",
    "delete_recurring_rule",
    "expenses_by_category",
    "expenses_by_property",
    "income_by_category",
    "income_vs_expenses_by_year",
    "net_profit_by_property",
    "net_profit_by_year_for_property",
    "net_profit_for_property",
    "normalize_amount",
    "portfolio_leaderboard",
    "post_catch_up_through_month",
    "post_for_month",
    "profit_loss_by_month",
    "profit_loss_by_property",
    "prorate_annual_for_range",
    "recurring_expenses_overview",
    "recurring_tables_ready",
    "rental_income_by_property",
    "resolve_schedule_for_month",
    "return_on_equity",
    "schedule_e_summary",
    "toggle_recurring_rule",
    "update_recurring_rule",
    # Types
    "CategoryRef",
    "Month",
    "MonthSchedule",
    "PostingResult",
    "RuleCommandResult",
    "ScheduledRule",
    "ValidationIssue",
]
