"""Return on equity for a calendar year."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Literal

from ledger_db.models.ledger import PlLoanSnapshot
from sqlalchemy import select
from sqlalchemy.orm import Session

from ._common import label_for, load_properties
from .profit_loss import ProfitLossRow, profit_loss_by_property

type EquityValuation = Literal["zillow", "redfin"]


@dataclass(frozen=True, slots=True)
class ReturnOnEquityRow:
    property_id: int
    property_label: str
    value_cents: int | None
    loan_balance_cents: int
    equity_cents: int | None
    net_cash_flow_cents: int
    roe_pct: float | None


@dataclass(frozen=True, slots=True)
class ReturnOnEquityReport:
    year: int
    valuation: EquityValuation
    rows: list[ReturnOnEquityRow]
    profit_loss_rows: list[ProfitLossRow]


def loan_balances(session: Session, property_ids: list[int]) -> dict[int, int]:
    """Sum of each lender's most recent snapshot balance, per property."""

    if not property_ids:
        return {}
    stmt = (
        select(PlLoanSnapshot)
        .where(PlLoanSnapshot.property_id.in_(property_ids))
        .order_by(PlLoanSnapshot.as_of_date.desc(), PlLoanSnapshot.id.desc())
    )
    latest: dict[tuple[int, str], int] = {}
    for snap in session.scalars(stmt):
        latest.setdefault((snap.property_id, snap.lender), int(snap.balance_cents))
    out: dict[int, int] = defaultdict(int)
    for (pid, _), balance in latest.items():
        out[pid] += balance
    return dict(out)


def return_on_equity(
    session: Session,
    *,
    year: int,
    valuation: EquityValuation = "zillow",
    property_id: int | None = None,
) -> ReturnOnEquityReport:
    """Net cash flow over equity (estimated value less loan balances).

    ROE is only computed when equity is positive; rows without it sort last,
    by label.
    """

    if valuation not in ("zillow", "redfin"):
        raise ValueError(f"unknown valuation source: {valuation!r}")
    properties = load_properties(session, property_id=property_id)
    pl = profit_loss_by_property(
        session, start=f"{year:04d}-01-01", end=f"{year:04d}-12-31", property_id=property_id
    )
    balances = loan_balances(session, [p.id for p in properties])

    rows: list[ReturnOnEquityRow] = []
    for p in properties:
        dollars = p.redfin_estimated_value if valuation == "redfin" else p.zillow_estimated_value
        value = dollars * 100 if dollars is not None else None
        balance = balances.get(p.id, 0)
        equity = value - balance if value is not None else None
        subtotal = pl.subtotals_by_property.get(p.id)
        net = subtotal.net_cents if subtotal is not None else 0
        roe = net / equity * 100 if equity is not None and equity > 0 else None
        rows.append(
            ReturnOnEquityRow(
                property_id=p.id,
                property_label=label_for(p),
                value_cents=value,
                loan_balance_cents=balance,
                equity_cents=equity,
                net_cash_flow_cents=net,
                roe_pct=roe,
            )
        )
    rows.sort(
        key=lambda r: (r.roe_pct is None, -(r.roe_pct or 0.0), r.property_label)
    )
    return ReturnOnEquityReport(year=year, valuation=valuation, rows=rows, profit_loss_rows=pl.rows)


__all__ = [
    "EquityValuation",
    "ReturnOnEquityReport",
    "ReturnOnEquityRow",
    "loan_balances",
    "return_on_equity",
]
