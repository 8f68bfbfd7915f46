"""Posting engine for recurring rules.

Turns due, not-yet-posted rules into ledger transactions exactly once per
rule and month. Each rule-month pair is its own short database transaction:

1. re-check that no ``pl_recurring_postings`` row exists for the pair;
2. insert the ``pl_transactions`` row dated at the rule's due date;
3. insert the posting row linking rule, month and transaction;
4. commit.

The unique constraint on ``(recurring_rule_id, month)`` is what actually
guarantees at-most-once; a writer that loses the race gets an
``IntegrityError``, rolls back its unit and counts it as already posted.

Both commands commit on the session they are given, one unit at a time, so
callers should pass a session with no pending work of their own. An
interrupted catch-up leaves only whole units behind and can simply be re-run.
"""

from __future__ import annotations

from ledger_db.models.ledger import PlRecurringPosting, PlTransaction
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import RecurringPostingError
from .logging_setup import get_logger
from .models import PostingResult, ScheduledRule
from .months import Month, current_month, months_between_inclusive, parse_month
from .schedule import (
    earliest_active_start_month,
    recurring_tables_ready,
    resolve_schedule_for_month,
)
from .signs import normalize_amount

logger = get_logger(__name__)

RECURRING_MEMO_PREFIX = "Recurring: "
RECURRING_SOURCE = "manual"


def posting_memo(item: ScheduledRule) -> str:
    label = item.memo or (item.category.name if item.category is not None else "")
    return f"{RECURRING_MEMO_PREFIX}{label}"


def _posting_exists(session: Session, rule_id: int, month: Month) -> bool:
    found = session.scalar(
        select(PlRecurringPosting.id).where(
            PlRecurringPosting.recurring_rule_id == rule_id,
            PlRecurringPosting.month == str(month),
        )
    )
    return found is not None


def _post_one(session: Session, item: ScheduledRule) -> str:
    """Write one rule-month unit; returns ``posted``, ``already`` or ``duplicate``."""

    assert item.category is not None  # filtered by ScheduledRule.postable
    try:
        if _posting_exists(session, item.rule_id, item.month):
            session.rollback()
            return "already"

        tx = PlTransaction(
            property_id=item.property_id,
            date=item.due_date,
            category_id=item.category.id,
            amount_cents=int(normalize_amount(item.amount_cents, item.category.type)),
            memo=posting_memo(item),
            source=RECURRING_SOURCE,
        )
        session.add(tx)
        session.flush()
        session.add(
            PlRecurringPosting(
                recurring_rule_id=item.rule_id,
                month=str(item.month),
                ledger_transaction_id=tx.id,
            )
        )
        session.commit()
        return "posted"
    except IntegrityError as e:
        session.rollback()
        # Only a posting that now exists means we lost the race; any other
        # constraint failure is a real error.
        if _posting_exists(session, item.rule_id, item.month):
            session.rollback()
            logger.warning(
                "Recurring rule %s already posted for %s by a concurrent writer",
                item.rule_id,
                item.month,
            )
            return "duplicate"
        logger.error(
            "Integrity error posting recurring rule %s for %s: %s", item.rule_id, item.month, e
        )
        raise RecurringPostingError(
            f"could not post recurring rule {item.rule_id} for {item.month}",
            rule_id=item.rule_id,
            month=str(item.month),
        ) from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "Database error posting recurring rule %s for %s: %s", item.rule_id, item.month, e
        )
        raise RecurringPostingError(
            f"could not post recurring rule {item.rule_id} for {item.month}",
            rule_id=item.rule_id,
            month=str(item.month),
        ) from e


def _post_month(session: Session, property_id: int, month: Month) -> tuple[int, int]:
    schedule = resolve_schedule_for_month(session, property_id, month)
    due = [item for item in schedule.items if item.postable]
    # Close the read transaction; each unit below opens its own.
    session.commit()

    posted = duplicates = 0
    for item in due:
        outcome = _post_one(session, item)
        if outcome == "posted":
            posted += 1
        elif outcome == "duplicate":
            duplicates += 1
    if posted:
        logger.info(
            "Posted %d recurring transaction(s) for property %s in %s", posted, property_id, month
        )
    return posted, duplicates


def _unavailable(session: Session, months: tuple[Month, ...]) -> PostingResult:
    session.rollback()
    logger.warning("Recurring tables not available; nothing posted")
    return PostingResult(status="unavailable", months=months, recurring_tables_ready=False)


def post_for_month(session: Session, property_id: int, month: Month | str) -> PostingResult:
    """Post every due, unposted rule of ``property_id`` for ``month``.

    Returns a :class:`PostingResult`; ``posted_count == 0`` with status
    ``"nothing_new"`` is the normal outcome of a repeat call.
    """

    m = parse_month(month)
    if not recurring_tables_ready(session):
        return _unavailable(session, (m,))

    posted, duplicates = _post_month(session, property_id, m)
    return PostingResult(
        status="posted" if posted else "nothing_new",
        posted_count=posted,
        duplicates_skipped=duplicates,
        months=(m,) if posted else (),
    )


def post_catch_up_through_month(
    session: Session,
    property_id: int,
    through_month: Month | str | None = None,
) -> PostingResult:
    """Post every missing rule-month from the earliest active rule start.

    ``through_month`` defaults to the current UTC month. Already posted
    rule-months are skipped, so the command is safe to repeat at any time.
    ``PostingResult.months`` lists the months that received new postings.
    """

    through = parse_month(through_month) if through_month is not None else current_month()
    if not recurring_tables_ready(session):
        return _unavailable(session, ())

    earliest = earliest_active_start_month(session, property_id)
    if earliest is None or earliest > through:
        session.commit()
        return PostingResult(status="nothing_new")

    total = duplicates = 0
    touched: list[Month] = []
    for m in months_between_inclusive(earliest, through):
        posted, dups = _post_month(session, property_id, m)
        total += posted
        duplicates += dups
        if posted:
            touched.append(m)

    logger.info(
        "Catch-up for property %s through %s posted %d transaction(s)",
        property_id,
        through,
        total,
    )
    return PostingResult(
        status="posted" if total else "nothing_new",
        posted_count=total,
        duplicates_skipped=duplicates,
        months=tuple(touched),
    )


__all__ = [
    "RECURRING_MEMO_PREFIX",
    "post_catch_up_through_month",
    "post_for_month",
    "posting_memo",
]
