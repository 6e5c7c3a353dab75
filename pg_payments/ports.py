"""
Ports - interfaces the orchestrators depend on.

Adapters (SQL stores, PG clients, test doubles) implement these protocols.
The orchestrators know nothing about SQL, HTTP or how partners are routed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol

from pg_payments.domain.models import (
    ApprovalRequest,
    ApprovalResult,
    AttemptStatus,
    FeePolicy,
    Partner,
    Payment,
    PaymentAttempt,
    PaymentStatus,
    PaymentSummary,
)


@dataclass(frozen=True)
class PaymentQuery:
    """One page request against the payment store."""

    limit: int
    partner_id: Optional[int] = None
    status: Optional[PaymentStatus] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    cursor_created_at: Optional[datetime] = None
    cursor_id: Optional[int] = None


@dataclass(frozen=True)
class PaymentPage:
    """
    One page ordered by (created_at desc, id desc).

    ``next_cursor_*`` is the position of the tail item when ``has_next``.
    """

    items: List[Payment] = field(default_factory=list)
    has_next: bool = False
    next_cursor_created_at: Optional[datetime] = None
    next_cursor_id: Optional[int] = None


@dataclass(frozen=True)
class SummaryFilter:
    """Same predicates as PaymentQuery, without the page window."""

    partner_id: Optional[int] = None
    status: Optional[PaymentStatus] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None


class PaymentGateway(Protocol):
    """A PG adapter. ``supports`` is a static partition of partner ids."""

    name: str

    def supports(self, partner_id: int) -> bool:
        """Whether this adapter serves the partner."""
        ...

    async def approve(self, request: ApprovalRequest) -> ApprovalResult:
        """
        Ask the PG to approve a card charge.

        Raises:
            PgAuthenticationError: Credentials rejected
            PgValidationError: Card declined with a reason code
            PgUnexpectedError: Outcome unknown
        """
        ...


class AttemptStore(Protocol):
    async def save(self, attempt: PaymentAttempt) -> PaymentAttempt:
        """Persist and return the attempt with its id."""
        ...

    async def update_status(self, attempt_id: int, status: AttemptStatus) -> int:
        """Move a PENDING attempt to ``status``; returns rows affected."""
        ...


class PaymentStore(Protocol):
    async def save(self, payment: Payment) -> Payment:
        """Persist and return the payment with its id."""
        ...

    async def find_page(self, query: PaymentQuery) -> PaymentPage:
        """Fetch one keyset page."""
        ...

    async def summary(self, summary_filter: SummaryFilter) -> PaymentSummary:
        """Aggregate over the whole filtered set."""
        ...


class PartnerStore(Protocol):
    async def find_partner_by_id(self, partner_id: int) -> Optional[Partner]:
        ...


class FeePolicyStore(Protocol):
    async def find_effective_policy(
        self, partner_id: int, at: datetime
    ) -> Optional[FeePolicy]:
        """Latest policy of the partner with effective_from <= at."""
        ...
