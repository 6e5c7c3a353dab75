"""
Gateways - PG adapters and their routing order.
"""
from typing import Callable, Dict, List

import httpx

from pg_payments.config import Settings
from pg_payments.ports import PaymentGateway

from .mock_pg import MockPgGateway
from .test_pg import TestPgGateway, create_http_client


def build_gateways(settings: Settings, http_client: httpx.AsyncClient) -> List[PaymentGateway]:
    """
    Build the PG adapters in the order given by ``pg_gateway_order``.

    Raises:
        ValueError: If the order names an unknown adapter
    """
    factories: Dict[str, Callable[[], PaymentGateway]] = {
        "test_pg": lambda: TestPgGateway(http_client, settings.pg_test_api_key),
        "mock_pg": lambda: MockPgGateway(),
    }

    gateways = []
    for name in settings.get_gateway_order_list():
        if name not in factories:
            raise ValueError(f"Unknown PG gateway '{name}'. Must be one of {sorted(factories)}")
        gateways.append(factories[name]())
    return gateways


__all__ = ["MockPgGateway", "TestPgGateway", "build_gateways", "create_http_client"]
