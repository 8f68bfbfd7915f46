"""Read-only report builders over the ledger and annual amounts."""

from __future__ import annotations

from ._common import CategoryTreeRow, ReportWindow, Totals
from .breakdowns import (
    CategoryBreakdown,
    ExpensesByPropertyReport,
    PropertyExpenseRow,
    expenses_by_category,
    expenses_by_property,
    income_by_category,
)
from .cash_vs_accrual import CashVsAccrualReport, cash_vs_accrual
from .net_profit import (
    LOOK_BACKS,
    NetProfitRow,
    YearNetProfitRow,
    net_profit_by_property,
    net_profit_by_year_for_property,
    net_profit_for_property,
)
from .portfolio import LeaderboardReport, LeaderboardRow, portfolio_leaderboard
from .profit_loss import (
    AnnualSummaryReport,
    ProfitLossByMonthReport,
    ProfitLossByPropertyReport,
    ProfitLossRow,
    annual_profit_and_loss_summary,
    profit_loss_by_month,
    profit_loss_by_property,
)
from .recurring_overview import RecurringExpensesOverview, recurring_expenses_overview
from .rental_income import RentalIncomeReport, rental_income_by_property
from .return_on_equity import ReturnOnEquityReport, return_on_equity
from .schedule_e import ScheduleEReport, bucket_for_category, schedule_e_summary
from .trends import (
    CategoryTrend,
    IncomeVsExpensesRow,
    category_trend_by_year,
    income_vs_expenses_by_year,
)

__all__ = [
    "AnnualSummaryReport",
    "CashVsAccrualReport",
    "CategoryBreakdown",
    "CategoryTreeRow",
    "CategoryTrend",
    "ExpensesByPropertyReport",
    "IncomeVsExpensesRow",
    "LOOK_BACKS",
    "LeaderboardReport",
    "LeaderboardRow",
    "NetProfitRow",
    "ProfitLossByMonthReport",
    "ProfitLossByPropertyReport",
    "ProfitLossRow",
    "PropertyExpenseRow",
    "RecurringExpensesOverview",
    "RentalIncomeReport",
    "ReportWindow",
    "ReturnOnEquityReport",
    "ScheduleEReport",
    "Totals",
    "YearNetProfitRow",
    "annual_profit_and_loss_summary",
    "bucket_for_category",
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
