from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    CHAR,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import expression as sa_expr

# BIGINT on Postgres; SQLite only autoincrements an INTEGER PRIMARY KEY.
_ID = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: pl_properties
# ---------------------------


class PlProperty(Base):
    __tablename__ = "pl_properties"

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    nickname: Mapped[str | None] = mapped_column(Text, nullable=True)
    street: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    zip: Mapped[str | None] = mapped_column(String(10), nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'active'")
    )
    purchase_price_cents: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    sold_price_cents: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    # Third-party valuation estimates are tracked in whole dollars, as displayed
    # by the providers.
    zillow_estimated_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    redfin_estimated_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'sold', 'watchlist')",
            name="ck_pl_properties_status",
        ),
    )


# ---------------------------
# Reference: pl_categories
# ---------------------------


class PlCategory(Base):
    __tablename__ = "pl_categories"

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Economic type; decides the canonical sign of amounts booked against it.
    type: Mapped[str] = mapped_column(String, nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        _ID,
        ForeignKey("pl_categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Optional explicit Schedule E line (e.g. "Mortgage interest"). When set it
    # wins over the name-based keyword classifier.
    tax_bucket: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('income', 'expense', 'transfer')",
            name="ck_pl_categories_type",
        ),
    )


# ---------------------------
# Core: pl_transactions
# ---------------------------


class PlTransaction(Base):
    __tablename__ = "pl_transactions"

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        _ID, ForeignKey("pl_properties.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    category_id: Mapped[int] = mapped_column(
        _ID, ForeignKey("pl_categories.id"), nullable=False
    )
    # Signed minor units; income positive and expense negative by convention.
    # Reports re-normalize on read, so the stored sign is not trusted.
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    payee: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'manual'")
    )
    # Accrual month (YYYY-MM) when the entry belongs to a different statement
    # period than its cash date.
    statement_month: Mapped[str | None] = mapped_column(CHAR(7), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_pl_transactions_property_date", "property_id", "date"),
        Index("ix_pl_transactions_statement_month", "statement_month"),
    )


# ---------------------------
# Core: pl_annual_category_amounts
# ---------------------------


class PlAnnualCategoryAmount(Base):
    __tablename__ = "pl_annual_category_amounts"

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        _ID, ForeignKey("pl_properties.id", ondelete="CASCADE"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    category_id: Mapped[int] = mapped_column(
        _ID, ForeignKey("pl_categories.id"), nullable=False
    )
    # Whole-year figure; never posted to the ledger, prorated at report time.
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    ownership_label: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("ix_pl_annual_property_year", "property_id", "year"),)


# ---------------------------
# Recurring: pl_recurring_rules / pl_recurring_postings
# ---------------------------


class PlRecurringRule(Base):
    __tablename__ = "pl_recurring_rules"

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        _ID, ForeignKey("pl_properties.id", ondelete="CASCADE"), nullable=False
    )
    # SET NULL on category delete; the schedule resolver skips such rules.
    category_id: Mapped[int | None] = mapped_column(
        _ID, ForeignKey("pl_categories.id", ondelete="SET NULL"), nullable=True
    )
    # Positive magnitude; the posting sign comes from the category type.
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False)
    start_month: Mapped[str] = mapped_column(CHAR(7), nullable=False)
    end_month: Mapped[str | None] = mapped_column(CHAR(7), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.true()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    postings: Mapped[list[PlRecurringPosting]] = relationship(
        back_populates="rule",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_pl_recurring_rules_amount_positive"),
        CheckConstraint(
            "day_of_month BETWEEN 1 AND 28", name="ck_pl_recurring_rules_day_of_month"
        ),
        CheckConstraint(
            "end_month IS NULL OR end_month >= start_month",
            name="ck_pl_recurring_rules_month_window",
        ),
        Index("ix_pl_recurring_rules_property", "property_id"),
    )


class PlRecurringPosting(Base):
    __tablename__ = "pl_recurring_postings"

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    recurring_rule_id: Mapped[int] = mapped_column(
        _ID, ForeignKey("pl_recurring_rules.id", ondelete="CASCADE"), nullable=False
    )
    month: Mapped[str] = mapped_column(CHAR(7), nullable=False)
    ledger_transaction_id: Mapped[int] = mapped_column(
        _ID, ForeignKey("pl_transactions.id"), nullable=False, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    rule: Mapped[PlRecurringRule] = relationship(back_populates="postings")

    __table_args__ = (
        # The actual idempotence guarantee for posting; the engine's pre-check
        # is only a fast path.
        UniqueConstraint(
            "recurring_rule_id", "month", name="uq_pl_recurring_postings_rule_month"
        ),
    )


# ---------------------------
# Financing: pl_loan_snapshots
# ---------------------------


class PlLoanSnapshot(Base):
    __tablename__ = "pl_loan_snapshots"

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        _ID, ForeignKey("pl_properties.id", ondelete="CASCADE"), nullable=False
    )
    lender: Mapped[str] = mapped_column(Text, nullable=False)
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)
    balance_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (Index("ix_pl_loan_snapshots_property", "property_id"),)
