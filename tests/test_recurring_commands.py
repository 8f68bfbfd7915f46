from __future__ import annotations

from pathlib import Path

import pytest
from ledger_db.client import get_session
from ledger_db.models.ledger import PlRecurringPosting, PlRecurringRule, PlTransaction
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from property_ledger.models import ValidationIssue
from property_ledger.posting import post_catch_up_through_month, post_for_month
from property_ledger.recurring import (
    create_recurring_rule,
    delete_recurring_rule,
    toggle_recurring_rule,
    update_recurring_rule,
    validate_rule_form,
)
from tests.helpers.db import add_category, add_property, bootstrap_migrated_db


def _form(**overrides):
    values = {
        "category_id": 1,
        "amount": "250.00",
        "day_of_month": 5,
        "start_month": "2024-01",
    }
    values.update(overrides)
    return values


def test_create_rule_stores_cents_and_month_tokens(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")

    result = create_recurring_rule(
        session,
        property_id=prop.id,
        category_id=str(cat.id),
        amount="325.505",
        day_of_month="10",
        start_month="2024-01",
        end_month="2024-12",
        memo="   ",
        is_active="on",
    )

    assert result.ok
    rule = session.get(PlRecurringRule, result.rule_id)
    assert rule is not None
    assert rule.amount_cents == 32551
    assert (rule.start_month, rule.end_month) == ("2024-01", "2024-12")
    assert rule.memo is None
    assert rule.is_active is True


def test_missing_required_fields_are_reported_together() -> None:
    form, issues = validate_rule_form({"category_id": None, "amount": " ", "day_of_month": 1})
    assert form is None
    assert issues == (
        ValidationIssue("category_id", "missing_category"),
        ValidationIssue("amount", "missing_amount"),
        ValidationIssue("start_month", "missing_start_month"),
    )


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"amount": "0"}, ValidationIssue("amount", "invalid_amount")),
        ({"amount": "-5"}, ValidationIssue("amount", "invalid_amount")),
        ({"amount": "abc"}, ValidationIssue("amount", "invalid_amount")),
        ({"amount": "0.004"}, ValidationIssue("amount", "invalid_amount")),
        ({"amount": "1e17"}, ValidationIssue("amount", "invalid_amount")),
        ({"day_of_month": 29}, ValidationIssue("day_of_month", "invalid_day_of_month")),
        ({"day_of_month": 0}, ValidationIssue("day_of_month", "invalid_day_of_month")),
        ({"start_month": "2024-13"}, ValidationIssue("start_month", "invalid_month")),
        ({"end_month": "24-01"}, ValidationIssue("end_month", "invalid_month")),
        ({"category_id": "abc"}, ValidationIssue("category_id", "invalid_category")),
        ({"end_month": "2023-12"}, ValidationIssue("end_month", "end_before_start")),
    ],
)
def test_invalid_values_map_to_field_reasons(overrides, expected: ValidationIssue) -> None:
    form, issues = validate_rule_form(_form(**overrides))
    assert form is None
    assert issues == (expected,)


def test_checkbox_values_and_blank_end_month() -> None:
    form, issues = validate_rule_form(_form(is_active="off", end_month=""))
    assert issues == ()
    assert form is not None
    assert form.is_active is False
    assert form.end_month is None
    assert form.amount_cents == 25000


def test_unknown_category_is_invalid(session: Session) -> None:
    prop = add_property(session)
    result = create_recurring_rule(
        session,
        property_id=prop.id,
        category_id=999,
        amount=10,
        day_of_month=1,
        start_month="2024-01",
    )
    assert result.status == "invalid"
    assert result.issues == (ValidationIssue("category_id", "unknown_category"),)
    assert session.scalar(select(func.count()).select_from(PlRecurringRule)) == 0


def test_unknown_property_is_invalid(session: Session) -> None:
    cat = add_category(session, "HOA", "expense")
    result = create_recurring_rule(
        session,
        property_id=999,
        category_id=cat.id,
        amount=10,
        day_of_month=1,
        start_month="2024-01",
    )
    assert result.status == "invalid"
    assert result.issues == (ValidationIssue("property_id", "unknown_property"),)
    assert session.scalar(select(func.count()).select_from(PlRecurringRule)) == 0


def test_amount_too_large_for_cents_column_is_rejected_before_insert(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    result = create_recurring_rule(
        session,
        property_id=prop.id,
        category_id=cat.id,
        amount="1e17",
        day_of_month=1,
        start_month="2024-01",
    )
    assert result.status == "invalid"
    assert result.issues == (ValidationIssue("amount", "invalid_amount"),)
    assert session.scalar(select(func.count()).select_from(PlRecurringRule)) == 0

    largest = create_recurring_rule(
        session,
        property_id=prop.id,
        category_id=cat.id,
        amount="92233720368547758.07",
        day_of_month=1,
        start_month="2024-01",
    )
    assert largest.ok
    assert session.get(PlRecurringRule, largest.rule_id).amount_cents == 2**63 - 1


def test_update_is_scoped_to_the_owning_property(session: Session) -> None:
    owner = add_property(session, street="1 Oak Ave")
    other = add_property(session, street="2 Oak Ave")
    cat = add_category(session, "HOA", "expense")
    created = create_recurring_rule(
        session, property_id=owner.id, category_id=cat.id, amount=100, day_of_month=1, start_month="2024-01"
    )
    assert created.ok

    wrong = update_recurring_rule(
        session,
        rule_id=created.rule_id,
        property_id=other.id,
        category_id=cat.id,
        amount=200,
        day_of_month=2,
        start_month="2024-01",
    )
    assert wrong.status == "not_found"

    ok = update_recurring_rule(
        session,
        rule_id=created.rule_id,
        property_id=owner.id,
        category_id=cat.id,
        amount="200",
        day_of_month=15,
        start_month="2024-02",
        memo="Dues",
    )
    assert ok.ok
    rule = session.get(PlRecurringRule, created.rule_id)
    assert (rule.amount_cents, rule.day_of_month, rule.start_month, rule.memo) == (
        20000,
        15,
        "2024-02",
        "Dues",
    )


def test_edits_do_not_rewrite_posted_transactions(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    created = create_recurring_rule(
        session, property_id=prop.id, category_id=cat.id, amount=100, day_of_month=1, start_month="2024-01"
    )
    session.commit()
    post_for_month(session, prop.id, "2024-01")

    update_recurring_rule(
        session,
        rule_id=created.rule_id,
        property_id=prop.id,
        category_id=cat.id,
        amount=150,
        day_of_month=1,
        start_month="2024-01",
    )
    session.commit()
    post_for_month(session, prop.id, "2024-02")

    amounts = session.scalars(select(PlTransaction.amount_cents).order_by(PlTransaction.date)).all()
    assert amounts == [-10000, -15000]


def test_toggle_stops_future_postings(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    created = create_recurring_rule(
        session, property_id=prop.id, category_id=cat.id, amount=100, day_of_month=1, start_month="2024-01"
    )
    result = toggle_recurring_rule(session, rule_id=created.rule_id, property_id=prop.id, is_active=False)
    assert result.ok
    session.commit()

    assert post_catch_up_through_month(session, prop.id, "2024-03").status == "nothing_new"
    assert toggle_recurring_rule(session, rule_id=12345, property_id=prop.id, is_active=True).status == (
        "not_found"
    )


def test_delete_removes_postings_but_keeps_transactions(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    created = create_recurring_rule(
        session, property_id=prop.id, category_id=cat.id, amount=100, day_of_month=1, start_month="2024-01"
    )
    session.commit()
    post_catch_up_through_month(session, prop.id, "2024-02")

    result = delete_recurring_rule(session, rule_id=created.rule_id, property_id=prop.id)
    assert result.ok
    session.commit()

    assert session.get(PlRecurringRule, created.rule_id) is None
    assert session.scalar(select(func.count()).select_from(PlRecurringPosting)) == 0
    assert session.scalar(select(func.count()).select_from(PlTransaction)) == 2
    assert delete_recurring_rule(session, rule_id=created.rule_id, property_id=prop.id).status == (
        "not_found"
    )


def test_commands_report_unavailable_before_migration(tmp_path: Path) -> None:
    url = bootstrap_migrated_db(tmp_path / "core-only.db", revision="0001_pl_core")
    session = get_session(database_url=url)
    try:
        result = create_recurring_rule(
            session, property_id=1, category_id=1, amount=10, day_of_month=1, start_month="2024-01"
        )
        assert result.status == "unavailable"
        assert delete_recurring_rule(session, rule_id=1, property_id=1).status == "unavailable"
        assert toggle_recurring_rule(session, rule_id=1, property_id=1, is_active=True).status == (
            "unavailable"
        )
    finally:
        session.close()
