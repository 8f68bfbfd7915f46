"""Recurring schedule resolution.

Works out which recurring rules of a property are due in a given month and
whether each one already has a posting for that month. This module only
reads; :mod:`property_ledger.posting` does the writing.
"""

from __future__ import annotations

from ledger_db.models.ledger import PlCategory, PlRecurringPosting, PlRecurringRule
from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from .errors import InvalidMonthError, RecurringUnavailableError
from .logging_setup import get_logger
from .models import CategoryRef, MonthSchedule, ScheduledRule
from .months import Month, is_month_in_window, parse_month

logger = get_logger(__name__)

RECURRING_TABLES: tuple[str, ...] = (
    PlRecurringRule.__tablename__,
    PlRecurringPosting.__tablename__,
)


def recurring_tables_ready(session: Session) -> bool:
    """True when every table backing recurring rules exists in the bound DB."""

    insp = inspect(session.connection())
    return all(insp.has_table(name) for name in RECURRING_TABLES)


def ensure_recurring_tables(session: Session) -> None:
    if not recurring_tables_ready(session):
        raise RecurringUnavailableError(
            "recurring tables are missing; apply the 0002_pl_recurring migration"
        )


def _rule_window(rule: PlRecurringRule) -> tuple[Month, Month | None] | None:
    try:
        start = Month.parse(rule.start_month)
        end = Month.parse(rule.end_month) if rule.end_month else None
    except InvalidMonthError:
        logger.warning(
            "Skipping recurring rule %s with malformed month window %r..%r",
            rule.id,
            rule.start_month,
            rule.end_month,
        )
        return None
    return start, end


def resolve_schedule_for_month(
    session: Session,
    property_id: int,
    month: Month | str,
    *,
    include_inactive: bool = False,
) -> MonthSchedule:
    """Return the rules due for ``property_id`` in ``month``.

    Parameters
    ----------
    session:
        Session used for reads only.
    property_id:
        Owning property.
    month:
        ``Month`` or ``"YYYY-MM"`` token.
    include_inactive:
        Also list inactive rules whose window covers ``month``. Meant for
        display; such rules are never postable.

    Returns
    -------
    MonthSchedule
        Items ordered by ``day_of_month`` then rule id, each flagged
        ``already_posted``. Rules whose category no longer resolves are left
        out. When the recurring tables are missing the schedule is empty and
        ``recurring_tables_ready`` is ``False``.
    """

    m = parse_month(month)
    if not recurring_tables_ready(session):
        logger.warning("Recurring tables not available; schedule for %s is empty", m)
        return MonthSchedule(month=m, items=(), recurring_tables_ready=False)

    stmt = (
        select(PlRecurringRule, PlCategory)
        .outerjoin(PlCategory, PlCategory.id == PlRecurringRule.category_id)
        .where(PlRecurringRule.property_id == property_id)
        .order_by(PlRecurringRule.day_of_month, PlRecurringRule.id)
    )
    if not include_inactive:
        stmt = stmt.where(PlRecurringRule.is_active.is_(True))

    candidates: list[tuple[PlRecurringRule, PlCategory, Month, Month | None]] = []
    for rule, category in session.execute(stmt).all():
        if category is None:
            logger.debug("Skipping recurring rule %s: category does not resolve", rule.id)
            continue
        window = _rule_window(rule)
        if window is None or not is_month_in_window(m, *window):
            continue
        candidates.append((rule, category, *window))

    if not candidates:
        return MonthSchedule(month=m, items=())

    token = str(m)
    posted_ids = set(
        session.scalars(
            select(PlRecurringPosting.recurring_rule_id).where(
                PlRecurringPosting.recurring_rule_id.in_([r.id for r, *_ in candidates]),
                PlRecurringPosting.month == token,
            )
        )
    )

    items = tuple(
        ScheduledRule(
            rule_id=rule.id,
            property_id=rule.property_id,
            category_id=rule.category_id,
            amount_cents=int(rule.amount_cents),
            day_of_month=rule.day_of_month,
            memo=rule.memo,
            start_month=start,
            end_month=end,
            is_active=bool(rule.is_active),
            month=m,
            due_date=m.due_date(rule.day_of_month),
            already_posted=rule.id in posted_ids,
            category=CategoryRef(
                id=category.id,
                name=category.name,
                type=category.type,
                parent_id=category.parent_id,
                tax_bucket=category.tax_bucket,
            ),
        )
        for rule, category, start, end in candidates
    )
    return MonthSchedule(month=m, items=items)


def earliest_active_start_month(session: Session, property_id: int) -> Month | None:
    """Earliest ``start_month`` among the property's active rules."""

    starts = session.scalars(
        select(PlRecurringRule.start_month).where(
            PlRecurringRule.property_id == property_id,
            PlRecurringRule.is_active.is_(True),
            PlRecurringRule.category_id.is_not(None),
        )
    ).all()
    parsed: list[Month] = []
    for token in starts:
        try:
            parsed.append(Month.parse(token))
        except InvalidMonthError:
            logger.warning("Ignoring malformed start month %r for property %s", token, property_id)
    return min(parsed) if parsed else None


__all__ = [
    "RECURRING_TABLES",
    "earliest_active_start_month",
    "ensure_recurring_tables",
    "recurring_tables_ready",
    "resolve_schedule_for_month",
]
