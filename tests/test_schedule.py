from __future__ import annotations

from datetime import date

from ledger_db.models.ledger import PlRecurringPosting
from sqlalchemy.orm import Session

from property_ledger.months import Month
from property_ledger.schedule import (
    earliest_active_start_month,
    recurring_tables_ready,
    resolve_schedule_for_month,
)
from tests.helpers.db import add_category, add_property, add_rule, add_tx


def test_schedule_lists_rules_in_window_ordered_by_day(session: Session) -> None:
    prop = add_property(session)
    hoa = add_category(session, "HOA", "expense")
    rent = add_category(session, "Rent", "income")
    late = add_rule(session, prop, hoa, amount_cents=25000, day_of_month=20, start_month="2024-01")
    early = add_rule(session, prop, rent, amount_cents=180000, day_of_month=1, start_month="2024-01")
    add_rule(session, prop, hoa, amount_cents=100, day_of_month=5, start_month="2024-04")
    add_rule(
        session, prop, hoa, amount_cents=100, day_of_month=5, start_month="2023-01", end_month="2023-12"
    )
    session.commit()

    schedule = resolve_schedule_for_month(session, prop.id, "2024-03")

    assert schedule.recurring_tables_ready
    assert schedule.month == Month(2024, 3)
    assert [i.rule_id for i in schedule.items] == [early.id, late.id]
    assert schedule.items[0].due_date == date(2024, 3, 1)
    assert schedule.items[1].category is not None
    assert schedule.items[1].category.name == "HOA"
    assert all(i.postable for i in schedule.items)


def test_due_date_is_clamped_and_window_end_is_inclusive(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "Insurance", "expense")
    rule = add_rule(
        session,
        prop,
        cat,
        amount_cents=9000,
        day_of_month=28,
        start_month="2024-01",
        end_month="2024-02",
    )
    session.commit()

    feb = resolve_schedule_for_month(session, prop.id, Month(2024, 2))
    assert [i.rule_id for i in feb.items] == [rule.id]
    assert feb.items[0].due_date == date(2024, 2, 28)
    assert resolve_schedule_for_month(session, prop.id, "2024-03").items == ()


def test_inactive_rules_are_listed_only_on_request(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    rule = add_rule(
        session, prop, cat, amount_cents=100, day_of_month=1, start_month="2024-01", is_active=False
    )
    session.commit()

    assert resolve_schedule_for_month(session, prop.id, "2024-02").items == ()
    shown = resolve_schedule_for_month(session, prop.id, "2024-02", include_inactive=True)
    assert [i.rule_id for i in shown.items] == [rule.id]
    assert not shown.items[0].postable


def test_already_posted_flag_and_missing_category(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    posted = add_rule(session, prop, cat, amount_cents=100, day_of_month=1, start_month="2024-01")
    add_rule(session, prop, None, amount_cents=100, day_of_month=2, start_month="2024-01")
    tx = add_tx(session, prop, cat, date(2024, 1, 1), -100)
    session.add(PlRecurringPosting(recurring_rule_id=posted.id, month="2024-01", ledger_transaction_id=tx.id))
    session.commit()

    jan = resolve_schedule_for_month(session, prop.id, "2024-01")
    assert [i.rule_id for i in jan.items] == [posted.id]
    assert jan.items[0].already_posted
    assert not jan.items[0].postable

    feb = resolve_schedule_for_month(session, prop.id, "2024-02")
    assert not feb.items[0].already_posted


def test_other_properties_are_not_listed(session: Session) -> None:
    mine = add_property(session, street="1 Oak Ave")
    other = add_property(session, street="2 Oak Ave")
    cat = add_category(session, "HOA", "expense")
    add_rule(session, other, cat, amount_cents=100, day_of_month=1, start_month="2024-01")
    session.commit()

    assert resolve_schedule_for_month(session, mine.id, "2024-01").items == ()


def test_earliest_active_start_month_ignores_inactive(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    add_rule(session, prop, cat, amount_cents=1, day_of_month=1, start_month="2022-05", is_active=False)
    add_rule(session, prop, cat, amount_cents=1, day_of_month=1, start_month="2023-11")
    add_rule(session, prop, cat, amount_cents=1, day_of_month=1, start_month="2024-02")
    session.commit()

    assert earliest_active_start_month(session, prop.id) == Month(2023, 11)
    assert recurring_tables_ready(session)
