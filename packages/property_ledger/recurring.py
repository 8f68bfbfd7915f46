"""Recurring rule commands: create, update, toggle, delete.

Each command validates before touching the database and returns a
:class:`~property_ledger.models.RuleCommandResult`; validation problems come
back as ``ValidationIssue(field, reason)`` entries rather than exceptions.

Callers own the transaction scope (``session_scope`` in the CLI). Commands
flush so the new rule id is available but never commit.

Edits never touch transactions that were already posted from a rule; they only
shape postings made afterwards. Deleting a rule removes its posting records
but keeps the ledger transactions they produced.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from ledger_db.models.ledger import PlCategory, PlProperty, PlRecurringRule
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import RecurringRuleForm, RuleCommandResult, ValidationIssue
from .months import Month
from .schedule import recurring_tables_ready

logger = get_logger(__name__)

# Reason codes per form field for pydantic validation failures.
_FIELD_REASONS: dict[str, str] = {
    "category_id": "invalid_category",
    "amount": "invalid_amount",
    "day_of_month": "invalid_day_of_month",
    "start_month": "invalid_month",
    "end_month": "invalid_month",
    "memo": "invalid_memo",
    "is_active": "invalid_is_active",
}

_UNAVAILABLE = RuleCommandResult(status="unavailable")


def _is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def validate_rule_form(
    raw: Mapping[str, Any],
) -> tuple[RecurringRuleForm | None, tuple[ValidationIssue, ...]]:
    """Validate raw form values into a :class:`RecurringRuleForm`.

    Missing required values are reported first (``missing_category``,
    ``missing_amount``, ``missing_start_month``); only complete input is
    parsed further. An end month before the start month is reported on
    ``end_month`` as ``end_before_start``.
    """

    missing: list[ValidationIssue] = []
    if _is_blank(raw.get("category_id")):
        missing.append(ValidationIssue("category_id", "missing_category"))
    if _is_blank(raw.get("amount")):
        missing.append(ValidationIssue("amount", "missing_amount"))
    if _is_blank(raw.get("start_month")):
        missing.append(ValidationIssue("start_month", "missing_start_month"))
    if missing:
        return None, tuple(missing)

    try:
        form = RecurringRuleForm.model_validate(dict(raw))
    except ValidationError as e:
        issues: list[ValidationIssue] = []
        for err in e.errors():
            loc = err.get("loc") or ()
            field_name = str(loc[0]) if loc else "form"
            issue = ValidationIssue(field_name, _FIELD_REASONS.get(field_name, "validation_error"))
            if issue not in issues:
                issues.append(issue)
        return None, tuple(issues)

    if form.end_month is not None and form.end_month < form.start_month:
        return None, (ValidationIssue("end_month", "end_before_start"),)
    return form, ()


def _form_values(
    *,
    category_id: int | str | None,
    amount: Decimal | float | int | str | None,
    memo: str | None,
    day_of_month: int | str | None,
    start_month: Month | str | None,
    end_month: Month | str | None,
    is_active: bool | str,
) -> dict[str, Any]:
    return {
        "category_id": category_id,
        "amount": amount,
        "memo": memo,
        "day_of_month": day_of_month,
        "start_month": start_month,
        "end_month": end_month,
        "is_active": is_active,
    }


def _check_property(session: Session, property_id: int) -> tuple[ValidationIssue, ...]:
    if session.get(PlProperty, property_id) is None:
        return (ValidationIssue("property_id", "unknown_property"),)
    return ()


def _check_category(session: Session, category_id: int) -> tuple[ValidationIssue, ...]:
    if session.get(PlCategory, category_id) is None:
        return (ValidationIssue("category_id", "unknown_category"),)
    return ()


def _load_rule(session: Session, rule_id: int, property_id: int) -> PlRecurringRule | None:
    return session.scalars(
        select(PlRecurringRule).where(
            PlRecurringRule.id == rule_id,
            PlRecurringRule.property_id == property_id,
        )
    ).first()


def create_recurring_rule(
    session: Session,
    *,
    property_id: int,
    category_id: int | str | None,
    amount: Decimal | float | int | str | None,
    day_of_month: int | str | None,
    start_month: Month | str | None,
    memo: str | None = None,
    end_month: Month | str | None = None,
    is_active: bool | str = True,
) -> RuleCommandResult:
    """Create a rule for ``property_id``; ``amount`` is a positive dollar value."""

    if not recurring_tables_ready(session):
        return _UNAVAILABLE

    form, issues = validate_rule_form(
        _form_values(
            category_id=category_id,
            amount=amount,
            memo=memo,
            day_of_month=day_of_month,
            start_month=start_month,
            end_month=end_month,
            is_active=is_active,
        )
    )
    if form is None:
        return RuleCommandResult(status="invalid", issues=issues)
    issues = _check_property(session, property_id) + _check_category(session, form.category_id)
    if issues:
        return RuleCommandResult(status="invalid", issues=issues)

    rule = PlRecurringRule(
        property_id=property_id,
        category_id=form.category_id,
        amount_cents=form.amount_cents,
        memo=form.memo,
        day_of_month=form.day_of_month,
        start_month=str(form.start_month),
        end_month=str(form.end_month) if form.end_month is not None else None,
        is_active=form.is_active,
    )
    session.add(rule)
    session.flush()
    logger.info("Created recurring rule %s for property %s", rule.id, property_id)
    return RuleCommandResult(status="ok", rule_id=rule.id)


def update_recurring_rule(
    session: Session,
    *,
    rule_id: int,
    property_id: int,
    category_id: int | str | None,
    amount: Decimal | float | int | str | None,
    day_of_month: int | str | None,
    start_month: Month | str | None,
    memo: str | None = None,
    end_month: Month | str | None = None,
    is_active: bool | str = True,
) -> RuleCommandResult:
    """Replace the editable fields of a rule owned by ``property_id``."""

    if not recurring_tables_ready(session):
        return _UNAVAILABLE

    form, issues = validate_rule_form(
        _form_values(
            category_id=category_id,
            amount=amount,
            memo=memo,
            day_of_month=day_of_month,
            start_month=start_month,
            end_month=end_month,
            is_active=is_active,
        )
    )
    if form is None:
        return RuleCommandResult(status="invalid", rule_id=rule_id, issues=issues)

    rule = _load_rule(session, rule_id, property_id)
    if rule is None:
        return RuleCommandResult(status="not_found", rule_id=rule_id)
    issues = _check_category(session, form.category_id)
    if issues:
        return RuleCommandResult(status="invalid", rule_id=rule_id, issues=issues)

    rule.category_id = form.category_id
    rule.amount_cents = form.amount_cents
    rule.memo = form.memo
    rule.day_of_month = form.day_of_month
    rule.start_month = str(form.start_month)
    rule.end_month = str(form.end_month) if form.end_month is not None else None
    rule.is_active = form.is_active
    rule.updated_at = datetime.now(UTC)
    session.flush()
    logger.info("Updated recurring rule %s", rule_id)
    return RuleCommandResult(status="ok", rule_id=rule_id)


def toggle_recurring_rule(
    session: Session, *, rule_id: int, property_id: int, is_active: bool
) -> RuleCommandResult:
    if not recurring_tables_ready(session):
        return _UNAVAILABLE
    rule = _load_rule(session, rule_id, property_id)
    if rule is None:
        return RuleCommandResult(status="not_found", rule_id=rule_id)
    rule.is_active = bool(is_active)
    rule.updated_at = datetime.now(UTC)
    session.flush()
    return RuleCommandResult(status="ok", rule_id=rule_id)


def delete_recurring_rule(session: Session, *, rule_id: int, property_id: int) -> RuleCommandResult:
    """Delete a rule and its posting records; posted transactions stay."""

    if not recurring_tables_ready(session):
        return _UNAVAILABLE
    rule = _load_rule(session, rule_id, property_id)
    if rule is None:
        return RuleCommandResult(status="not_found", rule_id=rule_id)
    n_postings = len(rule.postings)
    session.delete(rule)
    session.flush()
    logger.info("Deleted recurring rule %s (%d posting record(s))", rule_id, n_postings)
    return RuleCommandResult(status="ok", rule_id=rule_id)


__all__ = [
    "create_recurring_rule",
    "delete_recurring_rule",
    "toggle_recurring_rule",
    "update_recurring_rule",
    "validate_rule_form",
]
