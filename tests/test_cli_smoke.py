from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from ledger_db.client import session_scope
from typer.testing import CliRunner

from property_ledger.cli import _money, app
from tests.helpers.db import (
    add_category,
    add_property,
    add_rule,
    add_tx,
    bootstrap_migrated_db,
)

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # The root callback loads ./.env; run from an empty directory.
    monkeypatch.chdir(tmp_path)


def _seed(db_url: str) -> int:
    with session_scope(database_url=db_url) as s:
        prop = add_property(s, nickname="Maple")
        hoa = add_category(s, "HOA", "expense")
        rent = add_category(s, "Rent", "income")
        add_rule(s, prop, hoa, amount_cents=25000, day_of_month=15, start_month="2024-01")
        add_tx(s, prop, rent, date(2024, 1, 2), 100000)
        return prop.id


def test_money_formatting() -> None:
    assert _money(-25000) == "-250.00"
    assert _money(5) == "0.05"
    assert _money(0) == "0.00"


def test_post_month_then_repeat(db_url: str) -> None:
    pid = _seed(db_url)
    args = ["post-month", "--property-id", str(pid), "--month", "2024-01", "--database-url", db_url]

    first = runner.invoke(app, args)
    assert first.exit_code == 0, first.output
    assert "posted\t1" in first.output

    second = runner.invoke(app, args)
    assert second.exit_code == 0, second.output
    assert "posted\t0" in second.output


def test_catch_up_and_schedule(db_url: str) -> None:
    pid = _seed(db_url)

    result = runner.invoke(
        app,
        ["catch-up", "--property-id", str(pid), "--through", "2024-03", "--database-url", db_url],
    )
    assert result.exit_code == 0, result.output
    assert "posted\t3" in result.output
    assert "months\t2024-01,2024-02,2024-03" in result.output

    schedule = runner.invoke(
        app, ["schedule", "--property-id", str(pid), "--month", "2024-02", "--database-url", db_url]
    )
    assert schedule.exit_code == 0, schedule.output
    assert "2024-02-15\tHOA\t250.00\tposted" in schedule.output


def test_profit_loss_report_prints_totals(db_url: str) -> None:
    pid = _seed(db_url)
    runner.invoke(
        app, ["post-month", "--property-id", str(pid), "--month", "2024-01", "--database-url", db_url]
    )

    result = runner.invoke(
        app,
        ["report", "profit-loss", "--start", "2024-01-01", "--end", "2024-01-31", "--database-url", db_url],
    )
    assert result.exit_code == 0, result.output
    assert "TOTAL\tincome\t1000.00" in result.output
    assert "TOTAL\texpense\t-250.00" in result.output
    assert "TOTAL\tnet\t750.00" in result.output


def test_other_reports_run(db_url: str) -> None:
    _seed(db_url)

    for args in (
        ["report", "cash-vs-accrual", "--start", "2024-01-01", "--end", "2024-01-31"],
        ["report", "schedule-e", "--year", "2024"],
        ["report", "rental-income", "--start", "2024-01-01", "--end", "2024-12-31"],
        ["report", "leaderboard", "--start", "2024-01-01", "--end", "2024-12-31"],
    ):
        result = runner.invoke(app, [*args, "--database-url", db_url])
        assert result.exit_code == 0, (args, result.output)

    rental = runner.invoke(
        app,
        ["report", "rental-income", "--start", "2024-01-01", "--end", "2024-12-31", "--database-url", db_url],
    )
    assert "Maple\t1000.00\t0.00\t1000.00" in rental.output


def test_invalid_input_exits_with_error(db_url: str) -> None:
    pid = _seed(db_url)

    bad_month = runner.invoke(
        app, ["post-month", "--property-id", str(pid), "--month", "2024-1", "--database-url", db_url]
    )
    assert bad_month.exit_code == 1
    assert "Error:" in bad_month.output

    bad_mode = runner.invoke(
        app, ["report", "schedule-e", "--year", "2024", "--mode", "cash", "--database-url", db_url]
    )
    assert bad_mode.exit_code == 1


def test_unmigrated_database_reports_unavailable(tmp_path: Path) -> None:
    url = bootstrap_migrated_db(tmp_path / "core.db", revision="0001_pl_core")

    result = runner.invoke(app, ["post-month", "--property-id", "1", "--month", "2024-01", "--database-url", url])
    assert result.exit_code == 1
    assert "recurring tables are not available" in result.output


def test_seed_categories_command(db_url: str) -> None:
    first = runner.invoke(app, ["seed-categories", "--database-url", db_url])
    assert first.exit_code == 0, first.output
    assert "created\t26" in first.output

    again = runner.invoke(app, ["seed-categories", "--database-url", db_url])
    assert "created\t0" in again.output

    missing = runner.invoke(
        app, ["seed-categories", "--file", "nope.json", "--database-url", db_url]
    )
    assert missing.exit_code == 1
    assert "File not found" in missing.output
