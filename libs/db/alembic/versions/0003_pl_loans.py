# ruff: noqa: I001
"""Loan balance snapshots for equity reporting.

Revision ID: 0003_pl_loans
Revises: 0002_pl_recurring
Create Date: 2025-10-18
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0003_pl_loans"
down_revision: str | None = "0002_pl_recurring"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "pl_loan_snapshots",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            _ID,
            sa.ForeignKey("pl_properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("lender", sa.Text(), nullable=False),
        sa.Column("as_of_date", sa.Date(), nullable=False),
        sa.Column("balance_cents", sa.BigInteger(), nullable=False),
    )
    op.create_index("ix_pl_loan_snapshots_property", "pl_loan_snapshots", ["property_id"])


def downgrade() -> None:
    op.drop_index("ix_pl_loan_snapshots_property", table_name="pl_loan_snapshots")
    op.drop_table("pl_loan_snapshots")
