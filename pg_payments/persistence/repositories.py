"""
SQL store adapters.

Each call runs in its own session and commits before returning, so a
PENDING attempt is durable before the gateway is contacted.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

import structlog
from sqlalchemy import Select, and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pg_payments.domain.models import (
    AttemptStatus,
    FeePolicy,
    Partner,
    Payment,
    PaymentAttempt,
    PaymentStatus,
    PaymentSummary,
    utc_now,
)
from pg_payments.persistence.tables import FeePolicyRow, PartnerRow, PaymentRow, PgHistoryRow
from pg_payments.ports import PaymentPage, PaymentQuery, SummaryFilter

logger = structlog.get_logger(__name__)


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def partner_to_domain(row: PartnerRow) -> Partner:
    return Partner(id=row.id, code=row.code, name=row.name, active=row.active)


def fee_policy_to_domain(row: FeePolicyRow) -> FeePolicy:
    return FeePolicy(
        id=row.id,
        partner_id=row.partner_id,
        effective_from=_utc(row.effective_from),
        percentage=_decimal(row.percentage),
        fixed_fee=_decimal(row.fixed_fee),
    )


def attempt_to_row(attempt: PaymentAttempt) -> PgHistoryRow:
    return PgHistoryRow(
        id=attempt.id,
        card_bin=attempt.card_bin,
        card_last4=attempt.card_last4,
        amount=attempt.amount,
        pg_provider=attempt.pg_provider,
        status=attempt.status.value,
        created_at=attempt.created_at,
        updated_at=attempt.updated_at,
    )


def attempt_to_domain(row: PgHistoryRow) -> PaymentAttempt:
    return PaymentAttempt(
        id=row.id,
        amount=_decimal(row.amount),
        card_bin=row.card_bin,
        card_last4=row.card_last4,
        pg_provider=row.pg_provider,
        status=AttemptStatus(row.status),
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
    )


def payment_to_row(payment: Payment) -> PaymentRow:
    return PaymentRow(
        id=payment.id,
        partner_id=payment.partner_id,
        amount=payment.amount,
        applied_fee_rate=payment.applied_fee_rate,
        fee_amount=payment.fee_amount,
        net_amount=payment.net_amount,
        card_bin=payment.card_bin,
        card_last4=payment.card_last4,
        approval_code=payment.approval_code,
        approved_at=payment.approved_at,
        status=payment.status.value,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


def payment_to_domain(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        partner_id=row.partner_id,
        amount=_decimal(row.amount),
        applied_fee_rate=_decimal(row.applied_fee_rate),
        fee_amount=_decimal(row.fee_amount),
        net_amount=_decimal(row.net_amount),
        card_bin=row.card_bin,
        card_last4=row.card_last4,
        approval_code=row.approval_code,
        approved_at=_utc(row.approved_at),
        status=PaymentStatus(row.status),
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
    )


class SqlPartnerStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_partner_by_id(self, partner_id: int) -> Optional[Partner]:
        async with self.session_factory() as session:
            row = await session.get(PartnerRow, partner_id)
            return partner_to_domain(row) if row is not None else None


class SqlFeePolicyStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_effective_policy(self, partner_id: int, at: datetime) -> Optional[FeePolicy]:
        """Latest policy of the partner with effective_from <= at."""
        stmt = (
            select(FeePolicyRow)
            .where(FeePolicyRow.partner_id == partner_id, FeePolicyRow.effective_from <= at)
            .order_by(FeePolicyRow.effective_from.desc(), FeePolicyRow.id.desc())
            .limit(1)
        )
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).scalars().first()
            return fee_policy_to_domain(row) if row is not None else None


class SqlAttemptStore:
    """PG attempt history (``pg_history``)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save(self, attempt: PaymentAttempt) -> PaymentAttempt:
        row = attempt_to_row(attempt)
        async with self.session_factory() as session:
            session.add(row)
            await session.commit()

        logger.info(
            "payment_attempt_recorded",
            attempt_id=row.id,
            pg_provider=attempt.pg_provider,
            status=attempt.status.value,
        )
        return attempt.model_copy(update={"id": row.id})

    async def update_status(self, attempt_id: int, status: AttemptStatus) -> int:
        """
        Move a PENDING attempt to ``status``.

        Returns:
            int: Rows affected; 0 if the attempt is missing or no longer PENDING
        """
        stmt = (
            update(PgHistoryRow)
            .where(
                PgHistoryRow.id == attempt_id,
                PgHistoryRow.status == AttemptStatus.PENDING.value,
            )
            .values(status=status.value, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount

    async def find_by_id(self, attempt_id: int) -> Optional[PaymentAttempt]:
        async with self.session_factory() as session:
            row = await session.get(PgHistoryRow, attempt_id)
            return attempt_to_domain(row) if row is not None else None


class SqlPaymentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save(self, payment: Payment) -> Payment:
        row = payment_to_row(payment)
        async with self.session_factory() as session:
            session.add(row)
            await session.commit()

        logger.info("payment_saved", payment_id=row.id, partner_id=payment.partner_id)
        return payment.model_copy(update={"id": row.id})

    async def find_page(self, query: PaymentQuery) -> PaymentPage:
        """
        Fetch one keyset page ordered by (created_at desc, id desc).

        One extra row is read to tell whether another page follows.
        """
        stmt = _filtered(
            select(PaymentRow),
            query.partner_id,
            query.status,
            query.created_from,
            query.created_to,
        )
        if query.cursor_created_at is not None and query.cursor_id is not None:
            stmt = stmt.where(
                or_(
                    PaymentRow.created_at < query.cursor_created_at,
                    and_(
                        PaymentRow.created_at == query.cursor_created_at,
                        PaymentRow.id < query.cursor_id,
                    ),
                )
            )
        stmt = stmt.order_by(PaymentRow.created_at.desc(), PaymentRow.id.desc()).limit(query.limit + 1)

        async with self.session_factory() as session:
            rows = list((await session.execute(stmt)).scalars().all())

        has_next = len(rows) > query.limit
        items: List[Payment] = [payment_to_domain(row) for row in rows[: query.limit]]

        if has_next and items:
            tail = items[-1]
            return PaymentPage(
                items=items,
                has_next=True,
                next_cursor_created_at=tail.created_at,
                next_cursor_id=tail.id,
            )
        return PaymentPage(items=items, has_next=False)

    async def summary(self, summary_filter: SummaryFilter) -> PaymentSummary:
        """Count and sums over the whole filtered set."""
        stmt = _filtered(
            select(
                func.count(PaymentRow.id),
                func.coalesce(func.sum(PaymentRow.amount), 0),
                func.coalesce(func.sum(PaymentRow.net_amount), 0),
            ),
            summary_filter.partner_id,
            summary_filter.status,
            summary_filter.created_from,
            summary_filter.created_to,
        )
        async with self.session_factory() as session:
            count, total_amount, total_net_amount = (await session.execute(stmt)).one()

        return PaymentSummary(
            count=count,
            total_amount=_decimal(total_amount),
            total_net_amount=_decimal(total_net_amount),
        )


def _filtered(
    stmt: Select,
    partner_id: Optional[int],
    status: Optional[PaymentStatus],
    created_from: Optional[datetime],
    created_to: Optional[datetime],
) -> Select:
    # Time range is half-open: [created_from, created_to)
    if partner_id is not None:
        stmt = stmt.where(PaymentRow.partner_id == partner_id)
    if status is not None:
        stmt = stmt.where(PaymentRow.status == status.value)
    if created_from is not None:
        stmt = stmt.where(PaymentRow.created_at >= created_from)
    if created_to is not None:
        stmt = stmt.where(PaymentRow.created_at < created_to)
    return stmt
