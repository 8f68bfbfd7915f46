"""Day-count proration of annual amounts.

Annual category amounts describe a whole calendar year. Reports over an
arbitrary ``[start, end]`` window take the day-weighted share of each year that
intersects the window. Values stay unrounded here; reports sum first and round
once with :func:`round_cents` at the output boundary.
"""

from __future__ import annotations

import re
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from .errors import InvalidDateError

_YMD_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

# Last date whose exclusive upper bound (end + 1 day) is representable.
MAX_REPORT_DATE = date.max - timedelta(days=1)


def days_in_year(year: int) -> int:
    return date(year, 12, 31).timetuple().tm_yday


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def overlap_days_inclusive(a_start: date, a_end: date, b_start: date, b_end: date) -> int:
    """Inclusive day overlap of two closed ranges; 0 when they do not meet."""

    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if start > end:
        return 0
    return (end - start).days + 1


def prorate_annual_for_range(
    year: int, amount: int | float, range_start: date, range_end: date
) -> float:
    """Share of ``amount`` (covering all of ``year``) that falls in the range."""

    year_start, year_end = year_bounds(year)
    overlap = overlap_days_inclusive(range_start, range_end, year_start, year_end)
    if overlap <= 0:
        return 0.0
    return amount * overlap / days_in_year(year)


def end_exclusive(end_inclusive: date) -> date:
    """Upper bound for half-open ``[start, end + 1 day)`` date queries."""

    if end_inclusive > MAX_REPORT_DATE:
        raise InvalidDateError(f"date out of range: {end_inclusive.isoformat()}")
    return end_inclusive + timedelta(days=1)


def parse_ymd(value: str) -> date:
    m = _YMD_RE.match(value.strip()) if isinstance(value, str) else None
    if m is None:
        raise InvalidDateError(f"invalid date: {value!r}")
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError as e:
        raise InvalidDateError(f"invalid date: {value!r}") from e


def coerce_date(value: date | str) -> date:
    d = value if isinstance(value, date) else parse_ymd(value)
    if d > MAX_REPORT_DATE:
        raise InvalidDateError(f"date out of range: {d.isoformat()}")
    return d


def ordered_range(start: date | str, end: date | str) -> tuple[date, date]:
    """Parse both boundaries and swap them when given in reverse."""

    s, e = coerce_date(start), coerce_date(end)
    if s > e:
        s, e = e, s
    return s, e


def years_in_range(start: date, end: date) -> list[int]:
    return list(range(start.year, end.year + 1))


def round_cents(value: int | float | Decimal) -> int:
    """Round a fractional cent total to an integer, halves away from zero."""

    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


__all__ = [
    "MAX_REPORT_DATE",
    "coerce_date",
    "days_in_year",
    "end_exclusive",
    "ordered_range",
    "overlap_days_inclusive",
    "parse_ymd",
    "prorate_annual_for_range",
    "round_cents",
    "year_bounds",
    "years_in_range",
]
