"""
Mock PG - approves every request locally.
"""
import random
from typing import Callable, Optional

import structlog

from pg_payments.domain.models import ApprovalRequest, ApprovalResult, PaymentStatus, utc_now

logger = structlog.get_logger(__name__)


class MockPgGateway:
    """Gateway for odd partner ids. Never calls the network."""

    name = "MOCK_PG"

    def __init__(self, rng: Optional[random.Random] = None, clock: Callable = utc_now):
        self.rng = rng or random.Random()
        self.clock = clock

    def supports(self, partner_id: int) -> bool:
        return partner_id % 2 == 1

    async def approve(self, request: ApprovalRequest) -> ApprovalResult:
        now = self.clock()
        # MMdd + 4 random digits
        approval_code = f"{now:%m%d}{self.rng.randint(0, 9999):04d}"

        logger.info(
            "mock_pg_approved",
            partner_id=request.partner_id,
            amount=str(request.amount),
            approval_code=approval_code,
        )
        return ApprovalResult(approval_code=approval_code, approved_at=now, status=PaymentStatus.APPROVED)
