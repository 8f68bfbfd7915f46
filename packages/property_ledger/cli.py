"""CLI for the ``property_ledger`` package.

Command handlers (``cmd_*``) return process exit codes and are callable
directly; the Typer app wraps them. ``.env`` in the working directory is loaded
with ``python-dotenv`` (never overriding the environment) before any command
runs, so ``DATABASE_URL`` can live there. Output is tab-separated on stdout;
errors go to stderr as ``Error: ...`` with exit code 1.
"""

from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import typer
from dotenv import load_dotenv

from .logging_setup import configure_logging

# ---- Small module-level helpers used by CLI commands -------------------------


def _money(cents: int) -> str:
    return f"{Decimal(cents).scaleb(-2):.2f}"


def _pct(value: float | None) -> str:
    return "" if value is None else f"{value:.2f}"


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


_UNAVAILABLE_MSG = "recurring tables are not available; apply the database migrations first"


# ---- Command handlers --------------------------------------------------------


def cmd_post_month(*, property_id: int, month: str, database_url: str | None = None) -> int:
    from ledger_db.client import session_scope

    from .posting import post_for_month

    try:
        with session_scope(database_url=database_url) as session:
            result = post_for_month(session, property_id, month)
    except Exception as e:
        return _error(f"posting failed: {e}")

    if result.status == "unavailable":
        return _error(_UNAVAILABLE_MSG)
    print(f"posted\t{result.posted_count}")
    print(f"duplicates_skipped\t{result.duplicates_skipped}")
    return 0


def cmd_catch_up(
    *, property_id: int, through: str | None = None, database_url: str | None = None
) -> int:
    from ledger_db.client import session_scope

    from .posting import post_catch_up_through_month

    try:
        with session_scope(database_url=database_url) as session:
            result = post_catch_up_through_month(session, property_id, through)
    except Exception as e:
        return _error(f"catch-up failed: {e}")

    if result.status == "unavailable":
        return _error(_UNAVAILABLE_MSG)
    print(f"posted\t{result.posted_count}")
    print(f"duplicates_skipped\t{result.duplicates_skipped}")
    print(f"months\t{','.join(str(m) for m in result.months)}")
    return 0


def cmd_schedule(
    *,
    property_id: int,
    month: str,
    include_inactive: bool = False,
    database_url: str | None = None,
) -> int:
    from ledger_db.client import session_scope

    from .schedule import resolve_schedule_for_month

    try:
        with session_scope(database_url=database_url) as session:
            schedule = resolve_schedule_for_month(
                session, property_id, month, include_inactive=include_inactive
            )
    except Exception as e:
        return _error(f"could not resolve schedule: {e}")

    if not schedule.recurring_tables_ready:
        return _error(_UNAVAILABLE_MSG)
    for item in schedule.items:
        if not item.is_active:
            state = "inactive"
        elif item.already_posted:
            state = "posted"
        else:
            state = "due"
        name = item.category.name if item.category is not None else ""
        print(
            f"{item.rule_id}\t{item.due_date.isoformat()}\t{name}\t"
            f"{_money(item.amount_cents)}\t{state}"
        )
    return 0


def cmd_report_profit_loss(
    *,
    start: str,
    end: str,
    property_id: int | None = None,
    include_transfers: bool = False,
    database_url: str | None = None,
) -> int:
    from ledger_db.client import session_scope

    from .reports import profit_loss_by_property

    try:
        with session_scope(database_url=database_url) as session:
            report = profit_loss_by_property(
                session,
                start=start,
                end=end,
                property_id=property_id,
                include_transfers=include_transfers,
            )
    except Exception as e:
        return _error(f"profit and loss report failed: {e}")

    for r in report.rows:
        print(
            f"{r.property_label}\t{r.parent_category_name or ''}\t{r.category_name}\t"
            f"{r.type}\t{r.count}\t{_money(r.amount_cents)}"
        )
    t = report.totals
    print(f"TOTAL\tincome\t{_money(t.income_cents)}")
    print(f"TOTAL\texpense\t{_money(t.expense_cents)}")
    print(f"TOTAL\tnet\t{_money(t.net_cents)}")
    return 0


def cmd_report_cash_vs_accrual(
    *,
    start: str,
    end: str,
    property_id: int | None = None,
    include_transfers: bool = False,
    database_url: str | None = None,
) -> int:
    from ledger_db.client import session_scope

    from .reports import cash_vs_accrual

    try:
        with session_scope(database_url=database_url) as session:
            report = cash_vs_accrual(
                session,
                start=start,
                end=end,
                property_id=property_id,
                include_transfers=include_transfers,
            )
    except Exception as e:
        return _error(f"cash vs accrual report failed: {e}")

    print(f"accrual_mode\t{report.accrual_mode}")
    for label, t in (
        ("cash", report.cash.totals),
        ("accrual", report.accrual.totals),
        ("delta", report.delta),
    ):
        print(f"{label}\t{_money(t.income_cents)}\t{_money(t.expense_cents)}\t{_money(t.net_cents)}")
    return 0


def cmd_report_schedule_e(
    *,
    year: int | None = None,
    start: str | None = None,
    end: str | None = None,
    property_id: int | None = None,
    mode: str = "combined",
    include_transfers: bool = False,
    database_url: str | None = None,
) -> int:
    from ledger_db.client import session_scope

    from .reports import schedule_e_summary
    from .reports.schedule_e import BUCKET_LABELS

    try:
        with session_scope(database_url=database_url) as session:
            report = schedule_e_summary(
                session,
                year=year,
                start=start,
                end=end,
                property_id=property_id,
                include_transfers=include_transfers,
                mode=mode,  # type: ignore[arg-type]
            )
    except Exception as e:
        return _error(f"Schedule E report failed: {e}")

    print(f"{BUCKET_LABELS['rents_received']}\t{_money(report.rents_received_cents)}")
    print(f"{BUCKET_LABELS['other_income']}\t{_money(report.other_income_cents)}")
    for b in report.expense_buckets:
        print(f"{b.label}\t{_money(b.combined_cents)}")
    print(f"Total income\t{_money(report.total_income_cents)}")
    print(f"Total expenses\t{_money(report.total_expense_cents)}")
    print(f"Net\t{_money(report.net_cents)}")
    return 0


def cmd_report_rental_income(
    *,
    start: str | None = None,
    end: str | None = None,
    property_id: int | None = None,
    include_other_income: bool = False,
    database_url: str | None = None,
) -> int:
    from ledger_db.client import session_scope

    from .reports import rental_income_by_property

    try:
        with session_scope(database_url=database_url) as session:
            report = rental_income_by_property(
                session,
                start=start,
                end=end,
                property_id=property_id,
                include_other_income=include_other_income,
            )
    except Exception as e:
        return _error(f"rental income report failed: {e}")

    for r in report.rows:
        print(
            f"{r.property_label}\t{_money(r.transactional_income_cents)}\t"
            f"{_money(r.annual_income_cents)}\t{_money(r.total_income_cents)}"
        )
    print(f"TOTAL\t{_money(report.total_income_cents)}")
    return 0


def cmd_report_leaderboard(
    *,
    start: str,
    end: str,
    year: int | None = None,
    metric: str = "net_cash_flow",
    status: str = "active",
    valuation: str = "auto",
    database_url: str | None = None,
) -> int:
    from ledger_db.client import session_scope

    from .reports import portfolio_leaderboard

    try:
        with session_scope(database_url=database_url) as session:
            report = portfolio_leaderboard(
                session,
                start=start,
                end=end,
                year=year,
                metric=metric,  # type: ignore[arg-type]
                status=status,  # type: ignore[arg-type]
                valuation=valuation,  # type: ignore[arg-type]
            )
    except Exception as e:
        return _error(f"leaderboard report failed: {e}")

    for rank, r in enumerate(report.rows, start=1):
        print(
            f"{rank}\t{r.property_label}\t{_money(r.net_cash_flow_cents)}\t"
            f"{_pct(r.yield_on_cost_pct)}\t{_pct(r.total_return_pct)}"
        )
    return 0


def cmd_seed_categories(*, file: Path | None = None, database_url: str | None = None) -> int:
    from .ingest.seed_categories import DEFAULT_SEED_FILE, reseed_categories

    path = file or DEFAULT_SEED_FILE
    try:
        created = reseed_categories(database_url=database_url, file=path)
    except FileNotFoundError:
        return _error(f"File not found: {path}")
    except Exception as e:
        return _error(f"seeding categories failed: {e}")
    print(f"created\t{created}")
    return 0


# ---- Typer app ---------------------------------------------------------------

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Post recurring transactions and run reports over the property ledger. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)

report_app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Profit and loss, cash vs accrual, Schedule E and portfolio reports.",
)
app.add_typer(report_app, name="report")

_DB_HELP = "Override DATABASE_URL (falls back to env var)."


@app.command("post-month")
def post_month_cmd(
    *,
    property_id: int = typer.Option(..., help="Property to post for."),
    month: str = typer.Option(..., help="Month token YYYY-MM."),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """Post every due recurring rule of a property for one month."""

    raise typer.Exit(
        code=cmd_post_month(property_id=property_id, month=month, database_url=database_url)
    )


@app.command("catch-up")
def catch_up_cmd(
    *,
    property_id: int = typer.Option(..., help="Property to post for."),
    through: str | None = typer.Option(
        None, help="Last month to post (YYYY-MM); defaults to the current month."
    ),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """Post every missing rule-month from the earliest rule start."""

    raise typer.Exit(
        code=cmd_catch_up(property_id=property_id, through=through, database_url=database_url)
    )


@app.command("schedule")
def schedule_cmd(
    *,
    property_id: int = typer.Option(..., help="Property to inspect."),
    month: str = typer.Option(..., help="Month token YYYY-MM."),
    include_inactive: bool = typer.Option(False, help="Also list inactive rules."),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """List the rules due in a month and whether each is already posted."""

    raise typer.Exit(
        code=cmd_schedule(
            property_id=property_id,
            month=month,
            include_inactive=include_inactive,
            database_url=database_url,
        )
    )


@app.command("seed-categories")
def seed_categories_cmd(
    *,
    file: Path | None = typer.Option(
        None, help="Category tree JSON; defaults to the bundled seed file.", dir_okay=False
    ),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """Insert missing categories from a JSON category tree."""

    raise typer.Exit(code=cmd_seed_categories(file=file, database_url=database_url))


@report_app.command("profit-loss")
def report_profit_loss_cmd(
    *,
    start: str = typer.Option(..., help="First day, YYYY-MM-DD."),
    end: str = typer.Option(..., help="Last day (inclusive), YYYY-MM-DD."),
    property_id: int | None = typer.Option(None, help="Limit to one property."),
    include_transfers: bool = typer.Option(False, help="Include transfer categories."),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """Profit and loss by property and category."""

    raise typer.Exit(
        code=cmd_report_profit_loss(
            start=start,
            end=end,
            property_id=property_id,
            include_transfers=include_transfers,
            database_url=database_url,
        )
    )


@report_app.command("cash-vs-accrual")
def report_cash_vs_accrual_cmd(
    *,
    start: str = typer.Option(..., help="First day, YYYY-MM-DD."),
    end: str = typer.Option(..., help="Last day (inclusive), YYYY-MM-DD."),
    property_id: int | None = typer.Option(None, help="Limit to one property."),
    include_transfers: bool = typer.Option(False, help="Include transfer categories."),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """Compare cash-basis and accrual-basis totals."""

    raise typer.Exit(
        code=cmd_report_cash_vs_accrual(
            start=start,
            end=end,
            property_id=property_id,
            include_transfers=include_transfers,
            database_url=database_url,
        )
    )


@report_app.command("schedule-e")
def report_schedule_e_cmd(
    *,
    year: int | None = typer.Option(None, help="Tax year; overrides --start/--end."),
    start: str | None = typer.Option(None, help="First day, YYYY-MM-DD."),
    end: str | None = typer.Option(None, help="Last day (inclusive), YYYY-MM-DD."),
    property_id: int | None = typer.Option(None, help="Limit to one property."),
    mode: str = typer.Option(
        "combined", help="combined, transactional_only or annual_only."
    ),
    include_transfers: bool = typer.Option(False, help="Include transfer categories."),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """Schedule E style bucket totals."""

    raise typer.Exit(
        code=cmd_report_schedule_e(
            year=year,
            start=start,
            end=end,
            property_id=property_id,
            mode=mode,
            include_transfers=include_transfers,
            database_url=database_url,
        )
    )


@report_app.command("rental-income")
def report_rental_income_cmd(
    *,
    start: str | None = typer.Option(None, help="First day; defaults to Jan 1 this year."),
    end: str | None = typer.Option(None, help="Last day (inclusive); defaults to today."),
    property_id: int | None = typer.Option(None, help="Limit to one property."),
    include_other_income: bool = typer.Option(False, help="Count non-rent income too."),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """Rental income per property."""

    raise typer.Exit(
        code=cmd_report_rental_income(
            start=start,
            end=end,
            property_id=property_id,
            include_other_income=include_other_income,
            database_url=database_url,
        )
    )


@report_app.command("leaderboard")
def report_leaderboard_cmd(
    *,
    start: str = typer.Option(..., help="First day, YYYY-MM-DD."),
    end: str = typer.Option(..., help="Last day (inclusive), YYYY-MM-DD."),
    year: int | None = typer.Option(None, help="Calendar year; overrides --start/--end."),
    metric: str = typer.Option("net_cash_flow", help="Ranking metric."),
    status: str = typer.Option("active", help="active, sold, watchlist or all."),
    valuation: str = typer.Option("auto", help="zillow, redfin or auto."),
    database_url: str | None = typer.Option(None, help=_DB_HELP),
) -> None:
    """Rank properties by cash flow or return."""

    raise typer.Exit(
        code=cmd_report_leaderboard(
            start=start,
            end=end,
            year=year,
            metric=metric,
            status=status,
            valuation=valuation,
            database_url=database_url,
        )
    )


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    # Running as a module: `python -m property_ledger.cli`
    app()
