from __future__ import annotations

from datetime import date

import pytest

from property_ledger.errors import InvalidDateError
from property_ledger.months import Month
from property_ledger.proration import (
    days_in_year,
    end_exclusive,
    ordered_range,
    overlap_days_inclusive,
    parse_ymd,
    prorate_annual_for_range,
    round_cents,
)


def test_full_year_returns_whole_amount() -> None:
    assert prorate_annual_for_range(2023, 36500, date(2023, 1, 1), date(2023, 12, 31)) == 36500
    assert prorate_annual_for_range(2024, 36600, date(2024, 1, 1), date(2024, 12, 31)) == 36600


def test_single_day_in_leap_and_common_years() -> None:
    assert prorate_annual_for_range(2024, 36600, date(2024, 2, 29), date(2024, 2, 29)) == 100
    assert prorate_annual_for_range(2023, 36500, date(2023, 7, 4), date(2023, 7, 4)) == 100


def test_range_outside_year_is_zero() -> None:
    assert prorate_annual_for_range(2023, 100000, date(2024, 1, 1), date(2024, 6, 30)) == 0.0


def test_range_spanning_years_only_counts_overlap() -> None:
    # Dec 1 2023 .. Jan 31 2024 overlaps 31 days of 2023.
    got = prorate_annual_for_range(2023, 36500, date(2023, 12, 1), date(2024, 1, 31))
    assert got == pytest.approx(3100)


def test_monthly_shares_partition_the_year() -> None:
    amount = -123457
    shares = [
        prorate_annual_for_range(2024, amount, m.first_day(), m.last_day())
        for m in (Month(2024, n) for n in range(1, 13))
    ]
    assert sum(shares) == pytest.approx(amount)
    assert round_cents(sum(shares)) == amount


def test_negative_amounts_keep_sign() -> None:
    assert prorate_annual_for_range(2023, -36500, date(2023, 1, 1), date(2023, 1, 10)) == -1000


def test_overlap_and_days_in_year() -> None:
    assert days_in_year(2024) == 366
    assert days_in_year(2100) == 365
    assert days_in_year(9999) == 365
    assert overlap_days_inclusive(date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 1), date(2024, 12, 31)) == 1
    assert overlap_days_inclusive(date(2024, 1, 2), date(2024, 1, 1), date(2024, 1, 1), date(2024, 12, 31)) == 0


def test_round_cents_rounds_halves_away_from_zero() -> None:
    assert round_cents(0.5) == 1
    assert round_cents(-0.5) == -1
    assert round_cents(2.4999) == 2
    assert round_cents(-60000.0000001) == -60000


def test_ordered_range_parses_and_swaps() -> None:
    assert ordered_range("2024-06-30", "2024-01-01") == (date(2024, 1, 1), date(2024, 6, 30))


@pytest.mark.parametrize("value", ["2024-02-30", "2024-1-01", "yesterday"])
def test_parse_ymd_rejects_invalid_dates(value: str) -> None:
    with pytest.raises(InvalidDateError):
        parse_ymd(value)


def test_last_calendar_day_cannot_bound_a_report() -> None:
    assert end_exclusive(date(9999, 12, 30)) == date(9999, 12, 31)
    assert ordered_range("9999-12-30", "9999-01-01") == (date(9999, 1, 1), date(9999, 12, 30))
    with pytest.raises(InvalidDateError):
        end_exclusive(date(9999, 12, 31))
    with pytest.raises(InvalidDateError):
        ordered_range("9999-01-01", "9999-12-31")
    with pytest.raises(InvalidDateError):
        ordered_range(date(9999, 12, 31), date(2024, 1, 1))
