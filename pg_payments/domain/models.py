"""
Domain records - immutable values handed between orchestrators and ports.

Every record is a frozen pydantic model. Persistence adapters receive a
record, and hand back a new one (``model_copy``) carrying the generated id.

Timestamps are timezone-aware UTC truncated to whole milliseconds, which is
the resolution of the pagination cursor.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds."""
    return truncate_to_millis(datetime.now(timezone.utc))


class PaymentStatus(str, Enum):
    """Final payment states."""

    APPROVED = "APPROVED"
    CANCELED = "CANCELED"


class AttemptStatus(str, Enum):
    """
    PG request states.

    PENDING → APPROVED
            → FAILED
    An attempt transitions exactly once and never again.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    FAILED = "FAILED"


class Partner(BaseModel):
    """A merchant partner that payments are made on behalf of."""

    model_config = ConfigDict(frozen=True)

    id: int
    code: str
    name: str
    active: bool = True


class FeePolicy(BaseModel):
    """
    Time-versioned fee policy of a partner.

    ``percentage`` is a fraction (0.0300 = 3%), ``fixed_fee`` an absolute amount.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    partner_id: int
    effective_from: datetime
    percentage: Decimal = Field(ge=0)
    fixed_fee: Decimal = Field(default=Decimal("0"), ge=0)


class PaymentAttempt(BaseModel):
    """
    Audit record of one approval request sent to a PG.

    Written PENDING before the network call. Has no reference to the
    Payment it may eventually produce.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    amount: Decimal
    card_bin: Optional[str] = None
    card_last4: Optional[str] = None
    pg_provider: str
    status: AttemptStatus = AttemptStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "updated_at")
    @classmethod
    def truncate_timestamps(cls, value: datetime) -> datetime:
        return truncate_to_millis(value)


class Payment(BaseModel):
    """An approved payment with its fee applied."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    partner_id: int
    amount: Decimal
    applied_fee_rate: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    card_bin: Optional[str] = None
    card_last4: Optional[str] = None
    approval_code: str
    approved_at: datetime
    status: PaymentStatus = PaymentStatus.APPROVED
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "updated_at")
    @classmethod
    def truncate_timestamps(cls, value: datetime) -> datetime:
        return truncate_to_millis(value)


class PaymentSummary(BaseModel):
    """Aggregate over the whole filtered set, independent of pagination."""

    model_config = ConfigDict(frozen=True)

    count: int = 0
    total_amount: Decimal = Decimal("0")
    total_net_amount: Decimal = Decimal("0")


class PaymentCommand(BaseModel):
    """Input of the payment workflow."""

    model_config = ConfigDict(frozen=True)

    partner_id: int
    amount: Decimal = Field(gt=0)
    card_bin: Optional[str] = None
    card_last4: Optional[str] = None
    product_name: Optional[str] = None
    encrypted_payload: str = Field(repr=False)


class ApprovalRequest(BaseModel):
    """What a gateway adapter receives."""

    model_config = ConfigDict(frozen=True)

    partner_id: int
    amount: Decimal
    card_bin: Optional[str] = None
    card_last4: Optional[str] = None
    product_name: Optional[str] = None
    encrypted_payload: str = Field(repr=False)


class ApprovalResult(BaseModel):
    """Summary of a successful PG approval."""

    model_config = ConfigDict(frozen=True)

    approval_code: str
    approved_at: datetime
    status: PaymentStatus = PaymentStatus.APPROVED


class QueryFilter(BaseModel):
    """Input of the history query."""

    model_config = ConfigDict(frozen=True)

    partner_id: Optional[int] = None
    status: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    cursor: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)


class QueryResult(BaseModel):
    """One page of history plus the summary of the filtered set."""

    model_config = ConfigDict(frozen=True)

    items: List[Payment]
    summary: PaymentSummary
    next_cursor: Optional[str] = None
    has_next: bool = False
