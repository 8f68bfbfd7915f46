# ruff: noqa: I001
"""Recurring rules and their per-month postings.

Revision ID: 0002_pl_recurring
Revises: 0001_pl_core
Create Date: 2025-10-11

Databases sitting at 0001 run without recurring support; the posting engine
reports ``recurring_tables_ready = False`` until this revision is applied.
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002_pl_recurring"
down_revision: str | None = "0001_pl_core"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "pl_recurring_rules",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            _ID,
            sa.ForeignKey("pl_properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "category_id",
            _ID,
            sa.ForeignKey("pl_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("day_of_month", sa.Integer(), nullable=False),
        sa.Column("start_month", sa.CHAR(7), nullable=False),
        sa.Column("end_month", sa.CHAR(7), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount_cents > 0", name="ck_pl_recurring_rules_amount_positive"),
        sa.CheckConstraint(
            "day_of_month BETWEEN 1 AND 28", name="ck_pl_recurring_rules_day_of_month"
        ),
        sa.CheckConstraint(
            "end_month IS NULL OR end_month >= start_month",
            name="ck_pl_recurring_rules_month_window",
        ),
    )
    op.create_index("ix_pl_recurring_rules_property", "pl_recurring_rules", ["property_id"])

    op.create_table(
        "pl_recurring_postings",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column(
            "recurring_rule_id",
            _ID,
            sa.ForeignKey("pl_recurring_rules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("month", sa.CHAR(7), nullable=False),
        sa.Column(
            "ledger_transaction_id",
            _ID,
            sa.ForeignKey("pl_transactions.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "recurring_rule_id", "month", name="uq_pl_recurring_postings_rule_month"
        ),
    )


def downgrade() -> None:
    op.drop_table("pl_recurring_postings")
    op.drop_index("ix_pl_recurring_rules_property", table_name="pl_recurring_rules")
    op.drop_table("pl_recurring_rules")
