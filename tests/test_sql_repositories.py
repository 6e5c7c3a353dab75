"""
Integration tests for the SQL store adapters against sqlite.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pg_payments.domain.cursor import decode_cursor, encode_cursor, from_epoch_millis
from pg_payments.domain.models import (
    AttemptStatus,
    FeePolicy,
    Payment,
    PaymentAttempt,
    PaymentStatus,
)
from pg_payments.persistence import (
    FeePolicyRow,
    SqlAttemptStore,
    SqlFeePolicyStore,
    SqlPartnerStore,
    SqlPaymentStore,
)
from pg_payments.ports import PaymentQuery, SummaryFilter

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _payment(partner_id: int, amount: int, created_at: datetime, **overrides: Any) -> Payment:
    fee = Decimal(amount) * Decimal("0.03")
    values = dict(
        partner_id=partner_id,
        amount=Decimal(amount),
        applied_fee_rate=Decimal("0.03"),
        fee_amount=fee.quantize(Decimal("1")),
        net_amount=Decimal(amount) - fee.quantize(Decimal("1")),
        card_bin="123456",
        card_last4="4242",
        approval_code="10010001",
        approved_at=created_at,
        created_at=created_at,
        updated_at=created_at,
    )
    values.update(overrides)
    return Payment(**values)


class TestSqlPartnerStore:
    """Test suite for SqlPartnerStore."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_find_partner_by_id(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test partner lookup maps rows to Partner."""
        store = SqlPartnerStore(session_factory)

        partner = await store.find_partner_by_id(3)

        assert partner is not None
        assert partner.code == "GONE3"
        assert partner.active is False
        assert await store.find_partner_by_id(999) is None


class TestSqlFeePolicyStore:
    """Test suite for SqlFeePolicyStore."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_find_effective_policy_picks_latest_not_after(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test the latest policy with effective_from <= at wins."""
        async with session_factory() as session:
            session.add_all(
                [
                    FeePolicyRow(
                        partner_id=2,
                        effective_from=datetime(2026, 1, 1, tzinfo=timezone.utc),
                        percentage=Decimal("0.025"),
                        fixed_fee=Decimal("50"),
                    ),
                    FeePolicyRow(
                        partner_id=2,
                        effective_from=datetime(2027, 1, 1, tzinfo=timezone.utc),
                        percentage=Decimal("0.01"),
                        fixed_fee=Decimal("0"),
                    ),
                ]
            )
            await session.commit()
        store = SqlFeePolicyStore(session_factory)

        policy = await store.find_effective_policy(2, datetime(2026, 6, 1, tzinfo=timezone.utc))

        assert isinstance(policy, FeePolicy)
        assert policy.percentage == Decimal("0.025")
        assert policy.fixed_fee == Decimal("50")
        assert policy.effective_from == datetime(2026, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_find_effective_policy_none_before_first(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test no policy is in force before the earliest effective_from."""
        store = SqlFeePolicyStore(session_factory)

        assert await store.find_effective_policy(2, datetime(2019, 1, 1, tzinfo=timezone.utc)) is None
        assert await store.find_effective_policy(3, BASE_TIME) is None


class TestSqlAttemptStore:
    """Test suite for SqlAttemptStore."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_save_and_update_pending_once(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test a PENDING attempt transitions exactly once."""
        store = SqlAttemptStore(session_factory)

        attempt = await store.save(
            PaymentAttempt(amount=Decimal("10000"), card_last4="4242", pg_provider="TEST_PG")
        )

        assert attempt.id is not None
        assert await store.update_status(attempt.id, AttemptStatus.APPROVED) == 1
        assert await store.update_status(attempt.id, AttemptStatus.FAILED) == 0

        stored = await store.find_by_id(attempt.id)
        assert stored is not None
        assert stored.status == AttemptStatus.APPROVED
        assert stored.pg_provider == "TEST_PG"
        assert stored.amount == Decimal("10000")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_update_missing_attempt_affects_nothing(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test updating an unknown id reports zero rows."""
        store = SqlAttemptStore(session_factory)

        assert await store.update_status(12345, AttemptStatus.APPROVED) == 0


class TestSqlPaymentStore:
    """Test suite for SqlPaymentStore."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_save_round_trips_payment(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test save assigns an id and the page reads the same values back."""
        store = SqlPaymentStore(session_factory)
        created_at = BASE_TIME + timedelta(milliseconds=123)

        saved = await store.save(_payment(1, 10000, created_at))
        page = await store.find_page(PaymentQuery(limit=10))

        assert saved.id is not None
        assert len(page.items) == 1
        item = page.items[0]
        assert item.id == saved.id
        assert item.created_at == created_at
        assert item.amount == Decimal("10000")
        assert item.fee_amount == Decimal("300")
        assert item.net_amount == Decimal("9700")
        assert item.status == PaymentStatus.APPROVED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_pagination_never_repeats_or_skips(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test walking pages with shared timestamps visits every row once."""
        store = SqlPaymentStore(session_factory)
        saved_ids = []
        for i in range(11):
            # Groups of three share a timestamp
            created_at = BASE_TIME + timedelta(seconds=i // 3)
            saved_ids.append((await store.save(_payment(1, 1000 + i, created_at))).id)

        seen = []
        cursor_created_at, cursor_id = None, None
        pages = 0
        while True:
            page = await store.find_page(
                PaymentQuery(
                    limit=4,
                    partner_id=1,
                    cursor_created_at=cursor_created_at,
                    cursor_id=cursor_id,
                )
            )
            pages += 1
            seen.extend(item.id for item in page.items)
            if not page.has_next:
                break
            assert page.next_cursor_id == page.items[-1].id
            cursor_created_at, cursor_id = page.next_cursor_created_at, page.next_cursor_id

        assert pages == 3
        assert len(seen) == len(set(seen)) == 11
        assert set(seen) == set(saved_ids)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_page_order_is_created_at_then_id_desc(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test ties on created_at are broken by id descending."""
        store = SqlPaymentStore(session_factory)
        first = await store.save(_payment(1, 1000, BASE_TIME))
        second = await store.save(_payment(1, 2000, BASE_TIME))
        later = await store.save(_payment(1, 3000, BASE_TIME + timedelta(seconds=1)))

        page = await store.find_page(PaymentQuery(limit=10))

        assert [item.id for item in page.items] == [later.id, second.id, first.id]
        assert page.has_next is False
        assert page.next_cursor_id is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_summary_covers_whole_filtered_set(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test summary is over all matching rows, not one page."""
        store = SqlPaymentStore(session_factory)
        for i in range(5):
            await store.save(_payment(1, 1000, BASE_TIME + timedelta(minutes=i)))
        await store.save(_payment(2, 50000, BASE_TIME))
        await store.save(_payment(1, 7000, BASE_TIME, status=PaymentStatus.CANCELED))

        page = await store.find_page(PaymentQuery(limit=2, partner_id=1, status=PaymentStatus.APPROVED))
        summary = await store.summary(SummaryFilter(partner_id=1, status=PaymentStatus.APPROVED))

        assert len(page.items) == 2
        assert page.has_next is True
        assert summary.count == 5
        assert summary.total_amount == Decimal("5000")
        assert summary.total_net_amount == Decimal("4850")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_time_range_is_half_open(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test created_from is inclusive and created_to exclusive."""
        store = SqlPaymentStore(session_factory)
        for i in range(4):
            await store.save(_payment(1, 1000, BASE_TIME + timedelta(hours=i)))

        summary_filter = SummaryFilter(
            created_from=BASE_TIME + timedelta(hours=1),
            created_to=BASE_TIME + timedelta(hours=3),
        )
        summary = await store.summary(summary_filter)
        page = await store.find_page(
            PaymentQuery(
                limit=10,
                created_from=summary_filter.created_from,
                created_to=summary_filter.created_to,
            )
        )

        assert summary.count == 2
        assert [item.created_at for item in page.items] == [
            BASE_TIME + timedelta(hours=2),
            BASE_TIME + timedelta(hours=1),
        ]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_summary_of_empty_set_is_zero(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test sums coalesce to zero when nothing matches."""
        store = SqlPaymentStore(session_factory)

        summary = await store.summary(SummaryFilter(partner_id=42))

        assert summary.count == 0
        assert summary.total_amount == Decimal("0")
        assert summary.total_net_amount == Decimal("0")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_sub_millisecond_timestamps_page_through_cursor(
        self, session_factory: async_sessionmaker[AsyncSession], seed_partners: None
    ) -> None:
        """Test rows inside one millisecond are all reachable via encoded cursors."""
        store = SqlPaymentStore(session_factory)
        saved_ids = []
        for micros in (123100, 123200, 123300):
            created_at = BASE_TIME.replace(microsecond=micros)
            saved_ids.append((await store.save(_payment(1, 1000, created_at))).id)

        seen = []
        token = None
        while True:
            cursor = decode_cursor(token)
            page = await store.find_page(
                PaymentQuery(
                    limit=1,
                    cursor_created_at=from_epoch_millis(cursor.epoch_millis) if cursor else None,
                    cursor_id=cursor.id if cursor else None,
                )
            )
            seen.extend(item.id for item in page.items)
            if not page.has_next:
                break
            token = encode_cursor(page.next_cursor_created_at, page.next_cursor_id)

        assert sorted(seen) == sorted(saved_ids)
        assert len(seen) == 3
