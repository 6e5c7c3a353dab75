"""
Application wiring.

Builds the engine, stores, PG gateways and both orchestrators from
``Settings``. The outer layer (HTTP, CLI, worker) owns the container and
closes it on shutdown.
"""
from dataclasses import dataclass
from typing import List, Optional

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from pg_payments.config import Settings, get_settings
from pg_payments.gateways import build_gateways, create_http_client
from pg_payments.persistence import (
    SqlAttemptStore,
    SqlFeePolicyStore,
    SqlPartnerStore,
    SqlPaymentStore,
    create_engine_from_settings,
    create_session_factory,
    dispose,
)
from pg_payments.ports import PaymentGateway
from pg_payments.services import PaymentOrchestrator, QueryOrchestrator

logger = structlog.get_logger(__name__)


@dataclass
class Container:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    http_client: httpx.AsyncClient
    partner_store: SqlPartnerStore
    fee_policy_store: SqlFeePolicyStore
    attempt_store: SqlAttemptStore
    payment_store: SqlPaymentStore
    gateways: List[PaymentGateway]
    payment_orchestrator: PaymentOrchestrator
    query_orchestrator: QueryOrchestrator

    async def aclose(self) -> None:
        """Release the HTTP client and the database engine."""
        await self.http_client.aclose()
        await dispose(self.engine)
        logger.info("container_closed")


def build_container(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Container:
    """
    Wire every component from settings.

    Args:
        settings: Application settings (defaults to ``get_settings()``)
        transport: Optional httpx transport for the PG client

    Returns:
        Container: Wired components

    Raises:
        ValueError: If ``pg_gateway_order`` names an unknown gateway
    """
    settings = settings or get_settings()

    engine = create_engine_from_settings(settings)
    session_factory = create_session_factory(engine)
    http_client = create_http_client(
        settings.pg_test_base_url,
        connect_timeout=settings.pg_connect_timeout_seconds,
        read_timeout=settings.pg_read_timeout_seconds,
        transport=transport,
    )

    partner_store = SqlPartnerStore(session_factory)
    fee_policy_store = SqlFeePolicyStore(session_factory)
    attempt_store = SqlAttemptStore(session_factory)
    payment_store = SqlPaymentStore(session_factory)
    gateways = build_gateways(settings, http_client)

    payment_orchestrator = PaymentOrchestrator(
        partner_store=partner_store,
        fee_policy_store=fee_policy_store,
        payment_store=payment_store,
        attempt_store=attempt_store,
        gateways=gateways,
        approve_timeout_seconds=settings.pg_approve_timeout_seconds,
    )
    query_orchestrator = QueryOrchestrator(
        payment_store,
        default_limit=settings.query_default_limit,
        max_limit=settings.query_max_limit,
    )

    logger.info(
        "container_built",
        app_env=settings.app_env,
        gateways=[gateway.name for gateway in gateways],
    )

    return Container(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        http_client=http_client,
        partner_store=partner_store,
        fee_policy_store=fee_policy_store,
        attempt_store=attempt_store,
        payment_store=payment_store,
        gateways=gateways,
        payment_orchestrator=payment_orchestrator,
        query_orchestrator=query_orchestrator,
    )
