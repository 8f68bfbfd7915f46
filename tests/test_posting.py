from __future__ import annotations

from dataclasses import replace
from datetime import date
from pathlib import Path

import pytest
from ledger_db.client import get_session
from ledger_db.models.ledger import PlRecurringPosting, PlTransaction
from sqlalchemy import func, select
from sqlalchemy.orm import Session

import property_ledger.posting as posting_mod
from property_ledger.errors import RecurringPostingError
from property_ledger.months import Month
from property_ledger.posting import (
    post_catch_up_through_month,
    post_for_month,
    posting_memo,
)
from property_ledger.schedule import resolve_schedule_for_month
from tests.helpers.db import (
    add_category,
    add_property,
    add_rule,
    bootstrap_migrated_db,
)


def _count(session: Session, model) -> int:
    return session.scalar(select(func.count()).select_from(model)) or 0


def test_post_for_month_writes_signed_transactions_once(session: Session) -> None:
    prop = add_property(session)
    hoa = add_category(session, "HOA", "expense")
    rent = add_category(session, "Rent", "income")
    add_rule(session, prop, hoa, amount_cents=25000, day_of_month=28, start_month="2024-01")
    add_rule(session, prop, rent, amount_cents=180000, day_of_month=1, start_month="2024-01", memo="Unit A")
    session.commit()

    # -------------------------
    # First call posts both rules
    # -------------------------
    first = post_for_month(session, prop.id, "2024-02")
    assert first.status == "posted"
    assert first.posted_count == 2
    assert first.months == (Month(2024, 2),)

    txs = session.scalars(select(PlTransaction).order_by(PlTransaction.date)).all()
    assert [(t.date, t.amount_cents, t.memo) for t in txs] == [
        (date(2024, 2, 1), 180000, "Recurring: Unit A"),
        (date(2024, 2, 28), -25000, "Recurring: HOA"),
    ]
    assert {t.source for t in txs} == {"manual"}

    # -------------------------
    # Repeat is a no-op
    # -------------------------
    again = post_for_month(session, prop.id, "2024-02")
    assert again.status == "nothing_new"
    assert again.posted_count == 0
    assert _count(session, PlTransaction) == 2
    assert _count(session, PlRecurringPosting) == 2


def test_inactive_and_out_of_window_rules_are_not_posted(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    add_rule(session, prop, cat, amount_cents=100, day_of_month=1, start_month="2024-01", is_active=False)
    add_rule(session, prop, cat, amount_cents=100, day_of_month=1, start_month="2024-03")
    session.commit()

    result = post_for_month(session, prop.id, "2024-02")
    assert result.status == "nothing_new"
    assert _count(session, PlTransaction) == 0


def test_catch_up_posts_every_missing_month_and_converges(session: Session) -> None:
    prop = add_property(session)
    hoa = add_category(session, "HOA", "expense")
    # A rule ending mid-way and one starting later.
    add_rule(
        session, prop, hoa, amount_cents=25000, day_of_month=15, start_month="2023-11", end_month="2024-01"
    )
    add_rule(session, prop, hoa, amount_cents=5000, day_of_month=1, start_month="2024-01")
    session.commit()

    # One month already posted out of band
    post_for_month(session, prop.id, "2023-12")

    result = post_catch_up_through_month(session, prop.id, "2024-03")
    assert result.status == "posted"
    # 2023-11, 2024-01 for rule one (2023-12 done) + 2024-01..03 for rule two
    assert result.posted_count == 5
    assert result.months == (Month(2023, 11), Month(2024, 1), Month(2024, 2), Month(2024, 3))

    pairs = session.execute(
        select(PlRecurringPosting.recurring_rule_id, PlRecurringPosting.month)
    ).all()
    assert len(pairs) == len(set(pairs)) == 6

    repeat = post_catch_up_through_month(session, prop.id, "2024-03")
    assert repeat.status == "nothing_new"
    assert repeat.posted_count == 0
    assert _count(session, PlTransaction) == 6


def test_catch_up_with_no_active_rules_is_nothing_new(session: Session) -> None:
    prop = add_property(session)
    session.commit()

    result = post_catch_up_through_month(session, prop.id, "2024-03")
    assert result.status == "nothing_new"
    assert result.months == ()


def test_hoa_rule_scenario_from_january_through_march(session: Session) -> None:
    prop = add_property(session, nickname="Maple Duplex")
    hoa = add_category(session, "HOA", "expense")
    add_rule(session, prop, hoa, amount_cents=32500, day_of_month=10, start_month="2024-01", memo="HOA dues")
    session.commit()

    assert post_for_month(session, prop.id, "2024-01").posted_count == 1
    result = post_catch_up_through_month(session, prop.id, "2024-03")
    assert result.posted_count == 2
    assert result.months == (Month(2024, 2), Month(2024, 3))

    txs = session.scalars(select(PlTransaction).order_by(PlTransaction.date)).all()
    assert [t.date for t in txs] == [date(2024, 1, 10), date(2024, 2, 10), date(2024, 3, 10)]
    assert {t.amount_cents for t in txs} == {-32500}
    assert {t.memo for t in txs} == {"Recurring: HOA dues"}


def test_lost_race_counts_as_duplicate_not_error(
    session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    add_rule(session, prop, cat, amount_cents=100, day_of_month=1, start_month="2024-01")
    session.commit()

    # Capture the schedule before anyone posts, as a concurrent writer would.
    stale = resolve_schedule_for_month(session, prop.id, "2024-01").items[0]
    assert stale.postable
    session.commit()
    assert post_for_month(session, prop.id, "2024-01").posted_count == 1

    real_exists = posting_mod._posting_exists
    calls = {"n": 0}

    def racing_exists(s, rule_id, month):
        calls["n"] += 1
        if calls["n"] == 1:
            return False
        return real_exists(s, rule_id, month)

    monkeypatch.setattr(posting_mod, "_posting_exists", racing_exists)

    assert posting_mod._post_one(session, stale) == "duplicate"
    assert _count(session, PlTransaction) == 1
    assert _count(session, PlRecurringPosting) == 1


def test_stale_item_after_posting_is_already(session: Session) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    add_rule(session, prop, cat, amount_cents=100, day_of_month=1, start_month="2024-01")
    session.commit()

    stale = resolve_schedule_for_month(session, prop.id, "2024-01").items[0]
    session.commit()
    post_for_month(session, prop.id, "2024-01")

    assert posting_mod._post_one(session, stale) == "already"
    assert posting_memo(stale) == "Recurring: HOA"


def test_other_integrity_failures_raise(session: Session, monkeypatch: pytest.MonkeyPatch) -> None:
    prop = add_property(session)
    cat = add_category(session, "HOA", "expense")
    add_rule(session, prop, cat, amount_cents=100, day_of_month=1, start_month="2024-01")
    session.commit()

    item = resolve_schedule_for_month(session, prop.id, "2024-01").items[0]
    session.commit()
    # Point the unit at a property that does not exist; the FK rejects it.
    broken = replace(item, property_id=9999)

    with pytest.raises(RecurringPostingError) as excinfo:
        posting_mod._post_one(session, broken)
    assert excinfo.value.rule_id == item.rule_id
    assert excinfo.value.month == "2024-01"
    assert _count(session, PlTransaction) == 0


def test_unmigrated_recurring_tables_report_unavailable(tmp_path: Path) -> None:
    url = bootstrap_migrated_db(tmp_path / "core-only.db", revision="0001_pl_core")
    session = get_session(database_url=url)
    try:
        result = post_for_month(session, 1, "2024-01")
        assert result.status == "unavailable"
        assert not result.recurring_tables_ready
        assert post_catch_up_through_month(session, 1, "2024-01").status == "unavailable"
        schedule = resolve_schedule_for_month(session, 1, "2024-01")
        assert not schedule.recurring_tables_ready
        assert schedule.items == ()
    finally:
        session.close()
