"""Data models shared across ``property_ledger``.

Plain frozen dataclasses carry values out of the database layer so callers
never hold live ORM instances across transaction boundaries. The recurring rule
form is a pydantic model because it is the one place raw user input enters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .months import Month
from .signs import CategoryType

# ---------------------------------------------------------------------------
# Reference rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategoryRef:
    id: int
    name: str
    type: CategoryType
    parent_id: int | None = None
    tax_bucket: str | None = None


@dataclass(frozen=True, slots=True)
class PropertyRef:
    id: int
    label: str


def property_label(
    *,
    nickname: str | None,
    street: str | None,
    city: str | None = None,
    state: str | None = None,
    zip: str | None = None,
) -> str:
    """Display name for a property: nickname, else ``"street, city, state zip"``."""

    if nickname and nickname.strip():
        return nickname.strip()
    region = " ".join(p for p in ((state or "").strip(), (zip or "").strip()) if p)
    parts = [p for p in ((street or "").strip(), (city or "").strip(), region) if p]
    return ", ".join(parts) or "Property"


# ---------------------------------------------------------------------------
# Schedule / posting
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ScheduledRule:
    """One recurring rule as it applies to a specific month.

    ``category`` is ``None`` only when the caller asked for rules whose
    category no longer resolves; such rules are never posted.
    """

    rule_id: int
    property_id: int
    category_id: int | None
    amount_cents: int
    day_of_month: int
    memo: str | None
    start_month: Month
    end_month: Month | None
    is_active: bool
    month: Month
    due_date: date
    already_posted: bool
    category: CategoryRef | None

    @property
    def postable(self) -> bool:
        return self.is_active and self.category is not None and not self.already_posted


@dataclass(frozen=True, slots=True)
class MonthSchedule:
    month: Month
    items: tuple[ScheduledRule, ...] = ()
    recurring_tables_ready: bool = True


type PostingStatus = Literal["posted", "nothing_new", "unavailable"]


@dataclass(frozen=True, slots=True)
class PostingResult:
    """Outcome of a post-for-month or catch-up command.

    ``posted_count`` counts rule-months newly written by this call.
    ``duplicates_skipped`` counts units that lost an idempotence race to a
    concurrent writer; they are already posted and are not errors.
    """

    status: PostingStatus
    posted_count: int = 0
    duplicates_skipped: int = 0
    months: tuple[Month, ...] = ()
    recurring_tables_ready: bool = True


# ---------------------------------------------------------------------------
# Recurring rule commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    field: str
    reason: str


type CommandStatus = Literal["ok", "invalid", "not_found", "unavailable"]


@dataclass(frozen=True, slots=True)
class RuleCommandResult:
    status: CommandStatus
    rule_id: int | None = None
    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


_TRUTHY_FORM_VALUES = {"on", "true", "1", "yes"}

# Largest dollar amount whose cents fit a signed 64-bit column.
MAX_RULE_AMOUNT = Decimal("92233720368547758.07")


class RecurringRuleForm(BaseModel):
    """Validated create/update payload for a recurring rule.

    ``amount`` is the positive dollar magnitude typed by the user; the sign
    comes from the category type at posting time.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, arbitrary_types_allowed=True)

    category_id: int
    amount: Decimal = Field(gt=0, le=MAX_RULE_AMOUNT, allow_inf_nan=False)
    memo: str | None = None
    day_of_month: int = Field(ge=1, le=28)
    start_month: Month
    end_month: Month | None = None
    is_active: bool = True

    @field_validator("amount")
    @classmethod
    def _amount_whole_cents(cls, v: Decimal) -> Decimal:
        q = v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if q <= 0:
            raise ValueError("amount rounds to zero cents")
        return q

    @field_validator("memo", mode="before")
    @classmethod
    def _blank_memo_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("start_month", "end_month", mode="before")
    @classmethod
    def _parse_month_token(cls, v: Any) -> Any:
        if v is None or isinstance(v, Month):
            return v
        if isinstance(v, str):
            if not v.strip():
                return None
            # InvalidMonthError is a ValueError, which pydantic reports per field.
            return Month.parse(v)
        raise ValueError("month must be a YYYY-MM string")

    @field_validator("is_active", mode="before")
    @classmethod
    def _checkbox_value(cls, v: Any) -> bool:
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.strip().lower() in _TRUTHY_FORM_VALUES
        return v == 1

    @property
    def amount_cents(self) -> int:
        return int((self.amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


__all__ = [
    "MAX_RULE_AMOUNT",
    "CategoryRef",
    "CommandStatus",
    "MonthSchedule",
    "PostingResult",
    "PostingStatus",
    "PropertyRef",
    "RecurringRuleForm",
    "RuleCommandResult",
    "ScheduledRule",
    "ValidationIssue",
    "property_label",
]
