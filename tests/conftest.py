"""
Pytest configuration and fixtures.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pg_payments.config import Settings
from pg_payments.domain.models import (
    ApprovalResult,
    FeePolicy,
    Partner,
    PaymentCommand,
)
from pg_payments.persistence import (
    FeePolicyRow,
    PartnerRow,
    create_engine_from_settings,
    create_session_factory,
    dispose,
    init_db,
)


def pytest_configure(config: Any) -> None:
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: tests against a real (sqlite) database")


@pytest.fixture
def test_settings(tmp_path: Any) -> Settings:
    """Create test settings."""
    return Settings(
        app_name="pg-payments-test",
        app_env="test",
        log_level="DEBUG",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'payments.db'}",
        pg_test_base_url="https://pg.test",
        pg_test_api_key="test-api-key",
        pg_approve_timeout_seconds=1.0,
    )


@pytest_asyncio.fixture
async def session_factory(
    test_settings: Settings,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], Any]:
    """File-backed sqlite database with all tables created."""
    engine = create_engine_from_settings(test_settings)
    await init_db(engine)

    yield create_session_factory(engine)

    await dispose(engine)


@pytest_asyncio.fixture
async def seed_partners(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Partners 1 (odd, active), 2 (even, active) and 3 (inactive)."""
    async with session_factory() as session:
        session.add_all(
            [
                PartnerRow(id=1, code="MOCK1", name="Mock Partner 1", active=True),
                PartnerRow(id=2, code="TEST2", name="Test Partner 2", active=True),
                PartnerRow(id=3, code="GONE3", name="Inactive Partner 3", active=False),
            ]
        )
        session.add_all(
            [
                FeePolicyRow(
                    partner_id=1,
                    effective_from=datetime(2020, 1, 1, tzinfo=timezone.utc),
                    percentage=Decimal("0.0235"),
                    fixed_fee=Decimal("0"),
                ),
                FeePolicyRow(
                    partner_id=2,
                    effective_from=datetime(2020, 1, 1, tzinfo=timezone.utc),
                    percentage=Decimal("0.03"),
                    fixed_fee=Decimal("100"),
                ),
            ]
        )
        await session.commit()


@pytest.fixture
def active_partner() -> Partner:
    return Partner(id=2, code="TEST2", name="Test Partner 2", active=True)


@pytest.fixture
def fee_policy() -> FeePolicy:
    return FeePolicy(
        id=7,
        partner_id=2,
        effective_from=datetime(2020, 1, 1, tzinfo=timezone.utc),
        percentage=Decimal("0.03"),
        fixed_fee=Decimal("100"),
    )


@pytest.fixture
def payment_command() -> PaymentCommand:
    """Sample payment command for partner 2."""
    return PaymentCommand(
        partner_id=2,
        amount=Decimal("10000"),
        card_bin="123456",
        card_last4="4242",
        product_name="Test product",
        encrypted_payload="ZW5jcnlwdGVkLXBheWxvYWQ",
    )


@pytest.fixture
def approval() -> ApprovalResult:
    return ApprovalResult(
        approval_code="10180001",
        approved_at=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def make_gateway() -> Callable[..., MagicMock]:
    """Factory for gateway doubles with a parity-based ``supports``."""

    def _make(name: str, parity: int, approval: Any = None) -> MagicMock:
        gateway = MagicMock()
        gateway.name = name
        gateway.supports.side_effect = lambda partner_id: partner_id % 2 == parity
        gateway.approve = AsyncMock(return_value=approval)
        return gateway

    return _make
