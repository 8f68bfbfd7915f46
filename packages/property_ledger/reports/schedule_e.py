"""IRS Schedule E style summary.

Each category maps to one bucket. An explicit ``tax_bucket`` on the category
wins when it names a known bucket; otherwise a keyword classifier over the
category name decides. Transfers (only with ``include_transfers``) are bucketed
as income or expense by the sign of the amount.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Literal

from sqlalchemy.orm import Session

from ..models import CategoryRef
from ..months import today_utc
from ..proration import round_cents
from ..signs import EffectiveType, effective_type, normalize_amount
from ._common import (
    UNKNOWN_PROPERTY,
    ReportWindow,
    Totals,
    allowed_categories,
    load_annual_rows,
    load_categories,
    load_ledger_rows,
    load_property_labels,
    prorated_annual,
    scope,
)

type ScheduleEMode = Literal["combined", "transactional_only", "annual_only"]
SCHEDULE_E_MODES: tuple[str, ...] = ("combined", "transactional_only", "annual_only")

INCOME_BUCKETS: tuple[str, ...] = ("rents_received", "other_income")

EXPENSE_BUCKETS: tuple[str, ...] = (
    "advertising",
    "auto_travel",
    "cleaning_maintenance",
    "commissions",
    "insurance",
    "legal_professional",
    "management_fees",
    "mortgage_interest",
    "other_interest",
    "repairs",
    "supplies",
    "taxes",
    "utilities",
    "other_expenses",
)

BUCKET_LABELS: dict[str, str] = {
    "rents_received": "Rents received",
    "other_income": "Other income",
    "advertising": "Advertising",
    "auto_travel": "Auto and travel",
    "cleaning_maintenance": "Cleaning and maintenance",
    "commissions": "Commissions",
    "insurance": "Insurance",
    "legal_professional": "Legal and professional fees",
    "management_fees": "Management fees",
    "mortgage_interest": "Mortgage interest",
    "other_interest": "Other interest",
    "repairs": "Repairs",
    "supplies": "Supplies",
    "taxes": "Taxes",
    "utilities": "Utilities",
    "other_expenses": "Other expenses",
}

# Normalized override value -> bucket.
_EXPLICIT_ALIASES: dict[str, str] = {
    "rentsreceived": "rents_received",
    "rentalincome": "rents_received",
    "rent": "rents_received",
    "otherincome": "other_income",
    "advertising": "advertising",
    "autotravel": "auto_travel",
    "autoandtravel": "auto_travel",
    "cleaningmaintenance": "cleaning_maintenance",
    "cleaning": "cleaning_maintenance",
    "maintenance": "cleaning_maintenance",
    "commissions": "commissions",
    "insurance": "insurance",
    "legalprofessional": "legal_professional",
    "legalfees": "legal_professional",
    "professionalfees": "legal_professional",
    "managementfees": "management_fees",
    "management": "management_fees",
    "mortgageinterest": "mortgage_interest",
    "otherinterest": "other_interest",
    "repairs": "repairs",
    "supplies": "supplies",
    "taxes": "taxes",
    "utilities": "utilities",
    "otherexpenses": "other_expenses",
}

# First match wins; order matters ("mortgage interest" before "interest").
_EXPENSE_KEYWORDS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), bucket)
    for pattern, bucket in (
        (r"depreciation", "other_expenses"),
        (r"advert|marketing", "advertising"),
        (r"mileage|auto|travel|uber|lyft|gas", "auto_travel"),
        (r"clean|janitor|maintenance", "cleaning_maintenance"),
        (r"commission", "commissions"),
        (r"insurance", "insurance"),
        (r"legal|attorney|accounting|cpa|professional", "legal_professional"),
        (r"management|property manager|pm fee", "management_fees"),
        (r"mortgage interest|interest\s*-\s*mortgage", "mortgage_interest"),
        (r"interest", "other_interest"),
        (r"repair|fix|plumbing|electrical|hvac", "repairs"),
        (r"supplies|materials", "supplies"),
        (r"property tax|tax", "taxes"),
        (r"water|gas|electric|trash|sewer|utilit|internet|cable", "utilities"),
    )
)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_bucket_value(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())


def bucket_from_explicit(value: str | None) -> str | None:
    if not value or not value.strip():
        return None
    return _EXPLICIT_ALIASES.get(normalize_bucket_value(value))


def bucket_for_category(category: CategoryRef, kind: EffectiveType) -> str:
    """Schedule E bucket for ``category`` when it books as ``kind``."""

    explicit = bucket_from_explicit(category.tax_bucket)
    if explicit is not None:
        return explicit

    name = category.name.lower()
    if kind == "income":
        if "rent" in name or "lease" in name:
            return "rents_received"
        return "other_income"
    for pattern, bucket in _EXPENSE_KEYWORDS:
        if pattern.search(name):
            return bucket
    return "other_expenses"


@dataclass(frozen=True, slots=True)
class BucketRow:
    key: str
    label: str
    transactional_cents: int
    annual_cents: int
    combined_cents: int


@dataclass(frozen=True, slots=True)
class ScheduleEPropertyRow:
    property_id: int
    property_label: str
    income_cents: int
    expense_cents: int
    net_cents: int


@dataclass(frozen=True, slots=True)
class ScheduleEReport:
    window: ReportWindow
    mode: ScheduleEMode
    year: int | None
    rents_received_cents: int
    other_income_cents: int
    total_income_cents: int
    expense_buckets: list[BucketRow]
    total_expense_cents: int
    net_cents: int
    by_property: list[ScheduleEPropertyRow] | None
    by_property_totals: Totals | None


def _resolve_window(
    year: int | None, start: date | str | None, end: date | str | None, today: date
) -> ReportWindow:
    if year is not None:
        return ReportWindow.for_year(year)
    fallback = ReportWindow.for_year(today.year)
    return ReportWindow.of(start or fallback.start, end or fallback.end)


def schedule_e_summary(
    session: Session,
    *,
    start: date | str | None = None,
    end: date | str | None = None,
    year: int | None = None,
    property_id: int | None = None,
    include_transfers: bool = False,
    mode: ScheduleEMode = "combined",
    today: date | None = None,
) -> ScheduleEReport:
    """Bucket income and expenses the way Schedule E lines them up.

    ``year`` overrides ``start``/``end``; with neither, the current calendar
    year is used. Per-property rows are included only when no ``property_id``
    is given and are ordered by net, highest first.
    """

    if mode not in SCHEDULE_E_MODES:
        raise ValueError(f"unknown Schedule E mode: {mode!r}")
    window = _resolve_window(year, start, end, today or today_utc())
    categories = allowed_categories(load_categories(session), include_transfers=include_transfers)

    # bucket -> [transactional, annual]
    buckets: dict[str, list[float]] = {b: [0.0, 0.0] for b in (*INCOME_BUCKETS, *EXPENSE_BUCKETS)}
    # property -> [tx income, tx expense, annual income, annual expense]
    per_property: dict[int, list[float]] = defaultdict(lambda: [0.0, 0.0, 0.0, 0.0])

    def apply(property_id_: int, category: CategoryRef, amount: float, *, annual: bool) -> None:
        kind = effective_type(amount, category.type)
        normalized = normalize_amount(amount, kind)
        buckets[bucket_for_category(category, kind)][1 if annual else 0] += normalized
        slot = (2 if annual else 0) + (0 if kind == "income" else 1)
        per_property[property_id_][slot] += normalized

    if categories and mode != "annual_only":
        for row in load_ledger_rows(
            session, window, category_ids=categories, property_ids=scope(property_id)
        ):
            apply(row.property_id, categories[row.category_id], row.amount_cents, annual=False)

    # Annual amounts never include transfers.
    annual_categories = {cid: c for cid, c in categories.items() if c.type != "transfer"}
    if annual_categories and mode != "transactional_only":
        for row in load_annual_rows(
            session, years=window.years, category_ids=annual_categories, property_ids=scope(property_id)
        ):
            category = annual_categories[row.category_id]
            share = prorated_annual(row, category, window)
            if share == 0:
                continue
            apply(row.property_id, category, share, annual=True)

    def bucket_row(key: str) -> BucketRow:
        tx, annual = (round_cents(v) for v in buckets[key])
        return BucketRow(key, BUCKET_LABELS[key], tx, annual, tx + annual)

    rents = bucket_row("rents_received").combined_cents
    other = bucket_row("other_income").combined_cents
    expense_rows = [bucket_row(k) for k in EXPENSE_BUCKETS]
    total_income = rents + other
    total_expense = sum(r.combined_cents for r in expense_rows)

    by_property: list[ScheduleEPropertyRow] | None = None
    by_property_totals: Totals | None = None
    if property_id is None:
        labels = load_property_labels(session)
        by_property = []
        for pid, (tx_inc, tx_exp, an_inc, an_exp) in per_property.items():
            income = round_cents(tx_inc + an_inc)
            expense = round_cents(tx_exp + an_exp)
            by_property.append(
                ScheduleEPropertyRow(
                    property_id=pid,
                    property_label=labels.get(pid, UNKNOWN_PROPERTY),
                    income_cents=income,
                    expense_cents=expense,
                    net_cents=income + expense,
                )
            )
        by_property.sort(key=lambda r: (-r.net_cents, r.property_label))
        inc_sum = sum(r.income_cents for r in by_property)
        exp_sum = sum(r.expense_cents for r in by_property)
        by_property_totals = Totals(inc_sum, exp_sum, inc_sum + exp_sum)

    return ScheduleEReport(
        window=window,
        mode=mode,
        year=year,
        rents_received_cents=rents,
        other_income_cents=other,
        total_income_cents=total_income,
        expense_buckets=expense_rows,
        total_expense_cents=total_expense,
        net_cents=total_income + total_expense,
        by_property=by_property,
        by_property_totals=by_property_totals,
    )


__all__ = [
    "BUCKET_LABELS",
    "BucketRow",
    "EXPENSE_BUCKETS",
    "INCOME_BUCKETS",
    "SCHEDULE_E_MODES",
    "ScheduleEMode",
    "ScheduleEPropertyRow",
    "ScheduleEReport",
    "bucket_for_category",
    "bucket_from_explicit",
    "normalize_bucket_value",
    "schedule_e_summary",
]
