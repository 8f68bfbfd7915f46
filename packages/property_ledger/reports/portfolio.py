"""Portfolio leaderboard: rank properties by cash flow or return metrics."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Literal

from ledger_db.models.ledger import PlProperty
from sqlalchemy.orm import Session

from ..months import Month
from ..proration import round_cents
from ..signs import normalize_amount
from ._common import (
    ReportWindow,
    allowed_categories,
    label_for,
    load_annual_rows,
    load_categories,
    load_ledger_rows,
    load_properties,
    prorated_annual,
)

type Metric = Literal[
    "net_cash_flow",
    "avg_monthly_cash_flow",
    "yield_on_cost_pct",
    "appreciation_dollar",
    "appreciation_pct",
    "total_return_dollar",
    "total_return_pct",
]
type StatusFilter = Literal["active", "sold", "watchlist", "all"]
type Valuation = Literal["zillow", "redfin", "auto"]
type ValueSource = Literal["sold", "zillow", "redfin"]

METRICS: tuple[str, ...] = (
    "net_cash_flow",
    "avg_monthly_cash_flow",
    "yield_on_cost_pct",
    "appreciation_dollar",
    "appreciation_pct",
    "total_return_dollar",
    "total_return_pct",
)
STATUS_FILTERS: tuple[str, ...] = ("active", "sold", "watchlist", "all")
VALUATIONS: tuple[str, ...] = ("zillow", "redfin", "auto")


@dataclass(frozen=True, slots=True)
class LeaderboardRow:
    property_id: int
    property_label: str
    status: str
    purchase_price_cents: int | None
    purchase_date: date | None
    current_value_cents: int | None
    current_value_source: ValueSource | None
    transactional_net_cents: int
    annual_net_cents: int
    net_cash_flow_cents: int
    avg_monthly_cash_flow_cents: int
    yield_on_cost_pct: float | None
    appreciation_cents: int | None
    appreciation_pct: float | None
    total_return_cents: int | None
    total_return_pct: float | None
    rank_value: float | None


@dataclass(frozen=True, slots=True)
class LeaderboardReport:
    window: ReportWindow
    metric: Metric
    status: StatusFilter
    valuation: Valuation
    rows: list[LeaderboardRow]
    transactional_net_cents: int
    annual_net_cents: int
    net_cash_flow_cents: int


def resolve_current_value(
    *,
    sold_price_cents: int | None,
    zillow_estimated_value: int | None,
    redfin_estimated_value: int | None,
    valuation: Valuation,
) -> tuple[int | None, ValueSource | None]:
    """Current value in cents and where it came from.

    A recorded sale price always wins. Estimates are stored in whole dollars.
    ``auto`` prefers Zillow, then Redfin.
    """

    if sold_price_cents is not None:
        return sold_price_cents, "sold"
    order: tuple[ValueSource, ...]
    if valuation == "zillow":
        order = ("zillow",)
    elif valuation == "redfin":
        order = ("redfin",)
    else:
        order = ("zillow", "redfin")
    estimates = {"zillow": zillow_estimated_value, "redfin": redfin_estimated_value}
    for source in order:
        value = estimates[source]
        if value is not None:
            return value * 100, source
    return None, None


def _pct(numerator: float | None, denominator: int | None) -> float | None:
    if numerator is None or not denominator or denominator <= 0:
        return None
    return numerator / denominator * 100


def _row(
    p: PlProperty,
    *,
    tx_net: int,
    annual_net: int,
    month_count: int,
    valuation: Valuation,
    metric: Metric,
) -> LeaderboardRow:
    net = tx_net + annual_net
    purchase = p.purchase_price_cents
    value, source = resolve_current_value(
        sold_price_cents=p.sold_price_cents,
        zillow_estimated_value=p.zillow_estimated_value,
        redfin_estimated_value=p.redfin_estimated_value,
        valuation=valuation,
    )
    appreciation = value - purchase if purchase is not None and value is not None else None
    total_return = net + appreciation if appreciation is not None else None
    metrics: dict[str, float | None] = {
        "net_cash_flow": net,
        "avg_monthly_cash_flow": round_cents(net / month_count),
        "yield_on_cost_pct": _pct(net, purchase),
        "appreciation_dollar": appreciation,
        "appreciation_pct": _pct(appreciation, purchase),
        "total_return_dollar": total_return,
        "total_return_pct": _pct(total_return, purchase),
    }
    return LeaderboardRow(
        property_id=p.id,
        property_label=label_for(p),
        status=p.status,
        purchase_price_cents=purchase,
        purchase_date=p.purchase_date,
        current_value_cents=value,
        current_value_source=source,
        transactional_net_cents=tx_net,
        annual_net_cents=annual_net,
        net_cash_flow_cents=net,
        avg_monthly_cash_flow_cents=int(metrics["avg_monthly_cash_flow"] or 0),
        yield_on_cost_pct=metrics["yield_on_cost_pct"],
        appreciation_cents=appreciation,
        appreciation_pct=metrics["appreciation_pct"],
        total_return_cents=total_return,
        total_return_pct=metrics["total_return_pct"],
        rank_value=metrics[metric],
    )


def portfolio_leaderboard(
    session: Session,
    *,
    start: date | str,
    end: date | str,
    year: int | None = None,
    metric: Metric = "net_cash_flow",
    status: StatusFilter = "active",
    valuation: Valuation = "auto",
    include_transfers: bool = False,
) -> LeaderboardReport:
    """Rank properties by ``metric``, highest first, missing values last.

    Appreciation uses today's value against the purchase price regardless of
    the window; only cash flow is windowed.
    """

    if metric not in METRICS:
        raise ValueError(f"unknown metric: {metric!r}")
    if status not in STATUS_FILTERS:
        raise ValueError(f"unknown status filter: {status!r}")
    if valuation not in VALUATIONS:
        raise ValueError(f"unknown valuation source: {valuation!r}")

    window = ReportWindow.for_year(year) if year is not None else ReportWindow.of(start, end)
    properties = load_properties(session, status=None if status == "all" else status)
    categories = allowed_categories(load_categories(session), include_transfers=include_transfers)

    tx_net: dict[int, float] = defaultdict(float)
    annual_net: dict[int, float] = defaultdict(float)
    ids = [p.id for p in properties]
    if ids and categories:
        for row in load_ledger_rows(session, window, category_ids=categories, property_ids=ids):
            tx_net[row.property_id] += normalize_amount(
                row.amount_cents, categories[row.category_id].type
            )
        for row in load_annual_rows(
            session, years=window.years, category_ids=categories, property_ids=ids
        ):
            annual_net[row.property_id] += prorated_annual(row, categories[row.category_id], window)

    month_count = max(1, Month.of(window.end).index - Month.of(window.start).index + 1)
    rows = [
        _row(
            p,
            tx_net=round_cents(tx_net.get(p.id, 0.0)),
            annual_net=round_cents(annual_net.get(p.id, 0.0)),
            month_count=month_count,
            valuation=valuation,
            metric=metric,
        )
        for p in properties
    ]
    # Stable sort keeps load order among ties and among missing values.
    rows.sort(key=lambda r: (r.rank_value is None, -(r.rank_value or 0)))

    tx_total = sum(r.transactional_net_cents for r in rows)
    annual_total = sum(r.annual_net_cents for r in rows)
    return LeaderboardReport(
        window=window,
        metric=metric,
        status=status,
        valuation=valuation,
        rows=rows,
        transactional_net_cents=tx_total,
        annual_net_cents=annual_total,
        net_cash_flow_cents=tx_total + annual_total,
    )


__all__ = [
    "LeaderboardReport",
    "LeaderboardRow",
    "METRICS",
    "Metric",
    "STATUS_FILTERS",
    "StatusFilter",
    "VALUATIONS",
    "Valuation",
    "portfolio_leaderboard",
    "resolve_current_value",
]
