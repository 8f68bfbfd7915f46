# ruff: noqa: I001
"""Property ledger core tables.

Revision ID: 0001_pl_core
Revises: None
Create Date: 2025-10-04
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_pl_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # pl_properties
    op.create_table(
        "pl_properties",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column("nickname", sa.Text(), nullable=True),
        sa.Column("street", sa.Text(), nullable=False),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("zip", sa.String(length=10), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default=sa.text("'active'")),
        sa.Column("purchase_price_cents", sa.BigInteger(), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("sold_price_cents", sa.BigInteger(), nullable=True),
        sa.Column("zillow_estimated_value", sa.Integer(), nullable=True),
        sa.Column("redfin_estimated_value", sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "status IN ('active', 'sold', 'watchlist')", name="ck_pl_properties_status"
        ),
    )

    # pl_categories
    op.create_table(
        "pl_categories",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column(
            "parent_id",
            _ID,
            sa.ForeignKey("pl_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("tax_bucket", sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "type IN ('income', 'expense', 'transfer')", name="ck_pl_categories_type"
        ),
    )

    # pl_transactions
    op.create_table(
        "pl_transactions",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            _ID,
            sa.ForeignKey("pl_properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category_id", _ID, sa.ForeignKey("pl_categories.id"), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("payee", sa.Text(), nullable=True),
        sa.Column("source", sa.String(), nullable=False, server_default=sa.text("'manual'")),
        sa.Column("statement_month", sa.CHAR(7), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_pl_transactions_property_date", "pl_transactions", ["property_id", "date"]
    )
    op.create_index(
        "ix_pl_transactions_statement_month", "pl_transactions", ["statement_month"]
    )

    # pl_annual_category_amounts
    op.create_table(
        "pl_annual_category_amounts",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            _ID,
            sa.ForeignKey("pl_properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("category_id", _ID, sa.ForeignKey("pl_categories.id"), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("ownership_label", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_pl_annual_property_year", "pl_annual_category_amounts", ["property_id", "year"]
    )


def downgrade() -> None:
    op.drop_index("ix_pl_annual_property_year", table_name="pl_annual_category_amounts")
    op.drop_table("pl_annual_category_amounts")
    op.drop_index("ix_pl_transactions_statement_month", table_name="pl_transactions")
    op.drop_index("ix_pl_transactions_property_date", table_name="pl_transactions")
    op.drop_table("pl_transactions")
    op.drop_table("pl_categories")
    op.drop_table("pl_properties")
