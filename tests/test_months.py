from __future__ import annotations

from datetime import date

import pytest

from property_ledger.errors import InvalidMonthError
from property_ledger.months import (
    Month,
    is_month_in_window,
    months_between_inclusive,
    parse_month,
)


def test_parse_and_format_round_trip_keeps_padding() -> None:
    m = Month.parse("2024-03")
    assert (m.year, m.month) == (2024, 3)
    assert str(m) == "2024-03"
    assert parse_month(m) is m


@pytest.mark.parametrize("token", ["2024-3", "2024-13", "2024-00", "24-03", "", "2024/03"])
def test_parse_rejects_malformed_tokens(token: str) -> None:
    with pytest.raises(InvalidMonthError):
        Month.parse(token)


def test_ordering_and_arithmetic_cross_year_boundaries() -> None:
    assert Month(2023, 12) < Month(2024, 1)
    assert Month(2023, 11).add(3) == Month(2024, 2)
    assert Month(2024, 1).add(-1) == Month(2023, 12)


def test_due_date_clamps_to_last_day_of_month() -> None:
    assert Month(2024, 2).due_date(31) == date(2024, 2, 29)
    assert Month(2023, 2).due_date(30) == date(2023, 2, 28)
    assert Month(2024, 4).due_date(31) == date(2024, 4, 30)
    assert Month(2024, 5).due_date(15) == date(2024, 5, 15)


def test_window_membership_is_inclusive_with_open_end() -> None:
    start, end = Month(2024, 1), Month(2024, 3)
    assert is_month_in_window(Month(2024, 1), start, end)
    assert is_month_in_window(Month(2024, 3), start, end)
    assert not is_month_in_window(Month(2024, 4), start, end)
    assert not is_month_in_window(Month(2023, 12), start, end)
    assert is_month_in_window(Month(2030, 6), start, None)


def test_months_between_inclusive() -> None:
    got = months_between_inclusive(Month(2023, 11), Month(2024, 2))
    assert [str(m) for m in got] == ["2023-11", "2023-12", "2024-01", "2024-02"]
    assert months_between_inclusive(Month(2024, 2), Month(2024, 1)) == []
