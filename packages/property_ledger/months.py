"""Calendar month values.

Month tokens (``"YYYY-MM"``) are how months are stored and exchanged; inside
the package they are parsed into :class:`Month`, a year/month pair with a total
order, so window checks never depend on string padding.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime

from .errors import InvalidMonthError

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, slots=True, order=True)
class Month:
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidMonthError(f"month out of range: {self.year}-{self.month}")
        if not 1 <= self.year <= 9999:
            raise InvalidMonthError(f"year out of range: {self.year}")

    @classmethod
    def parse(cls, token: str) -> Month:
        """Parse a zero-padded ``YYYY-MM`` token."""

        m = _MONTH_RE.match(token.strip()) if isinstance(token, str) else None
        if m is None:
            raise InvalidMonthError(f"invalid month token: {token!r}")
        return cls(int(m.group(1)), int(m.group(2)))

    @classmethod
    def of(cls, d: date) -> Month:
        return cls(d.year, d.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def index(self) -> int:
        # Months since year 0; adding/subtracting works on this linear index.
        return self.year * 12 + (self.month - 1)

    def add(self, n: int) -> Month:
        idx = self.index + n
        return Month(idx // 12, idx % 12 + 1)

    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def due_date(self, day_of_month: int) -> date:
        """Return the date at ``day_of_month``, clamped to the month's last day."""

        last = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, max(1, min(day_of_month, last)))


def parse_month(value: str | Month) -> Month:
    if isinstance(value, Month):
        return value
    return Month.parse(value)


def is_month_in_window(month: Month, start: Month, end: Month | None) -> bool:
    """True when ``start <= month`` and (no end or ``month <= end``)."""

    if month < start:
        return False
    return end is None or month <= end


def months_between_inclusive(start: Month, end: Month) -> list[Month]:
    """Every month from ``start`` through ``end``; empty when ``end < start``."""

    if end < start:
        return []
    return [start.add(i) for i in range(end.index - start.index + 1)]


def current_month() -> Month:
    return Month.of(datetime.now(UTC).date())


def today_utc() -> date:
    return datetime.now(UTC).date()


__all__ = [
    "Month",
    "current_month",
    "is_month_in_window",
    "months_between_inclusive",
    "parse_month",
    "today_utc",
]
