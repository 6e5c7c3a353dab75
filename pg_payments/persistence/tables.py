"""SQLAlchemy tables for partners, fee policies, PG attempts and payments."""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY
Id = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class PartnerRow(Base):
    """Merchant partners."""

    __tablename__ = "partners"

    id: Mapped[int] = mapped_column(Id, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<PartnerRow(id={self.id}, code={self.code}, active={self.active})>"


class FeePolicyRow(Base):
    """
    Time-versioned fee policies.

    The policy in force at an instant is the one with the latest
    ``effective_from`` not after that instant.
    """

    __tablename__ = "fee_policies"

    id: Mapped[int] = mapped_column(Id, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(Id, ForeignKey("partners.id"), nullable=False)
    effective_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    fixed_fee: Mapped[Decimal] = mapped_column(Numeric(15, 0), nullable=False, default=Decimal("0"))

    __table_args__ = (
        CheckConstraint("percentage >= 0", name="non_negative_percentage"),
        CheckConstraint("fixed_fee >= 0", name="non_negative_fixed_fee"),
        Index("idx_fee_policies_partner_effective", "partner_id", "effective_from"),
    )


class PgHistoryRow(Base):
    """
    One row per approval request sent to a PG.

    No foreign key to ``payments``; a failed or unknown PG outcome still
    leaves its audit row.
    """

    __tablename__ = "pg_history"

    id: Mapped[int] = mapped_column(Id, primary_key=True, autoincrement=True)
    card_bin: Mapped[str | None] = mapped_column(String(8), nullable=True)
    card_last4: Mapped[str | None] = mapped_column(String(4), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 0), nullable=False)
    pg_provider: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("status IN ('PENDING', 'APPROVED', 'FAILED')", name="valid_attempt_status"),
    )

    def __repr__(self) -> str:
        return f"<PgHistoryRow(id={self.id}, provider={self.pg_provider}, status={self.status})>"


class PaymentRow(Base):
    """Approved payments with the fee applied at approval time."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Id, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(Id, ForeignKey("partners.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 0), nullable=False)
    applied_fee_rate: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    fee_amount: Mapped[Decimal] = mapped_column(Numeric(15, 0), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(15, 0), nullable=False)
    card_bin: Mapped[str | None] = mapped_column(String(8), nullable=True)
    card_last4: Mapped[str | None] = mapped_column(String(4), nullable=True)
    approval_code: Mapped[str] = mapped_column(String(32), nullable=False)
    approved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="positive_amount"),
        CheckConstraint("status IN ('APPROVED', 'CANCELED')", name="valid_payment_status"),
        Index("idx_payments_created_id_desc", "created_at", "id"),
        Index("idx_payments_partner_created", "partner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentRow(id={self.id}, partner_id={self.partner_id}, "
            f"amount={self.amount}, status={self.status})>"
        )
