"""
Payment orchestrator - the end-to-end approval workflow.

Orchestrates one payment:
1. Validate partner
2. Select the first gateway whose ``supports`` accepts the partner
3. Record a PENDING attempt (before any network I/O)
4. Call the gateway under a bounded timeout
5. Reconcile the attempt to APPROVED (must affect exactly one row)
6. Resolve the effective fee policy
7. Compute fee/net and persist the Payment

Attempt status after step 4:
- authentication / validation failure: FAILED
- unexpected failure or timeout: left PENDING, the PG outcome is unknown
"""
import asyncio
import time
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Sequence

import structlog

from pg_payments.domain.errors import (
    ErrorCode,
    PaymentError,
    PgAuthenticationError,
    PgUnexpectedError,
    PgValidationError,
)
from pg_payments.domain.fees import calculate_fee
from pg_payments.domain.models import (
    ApprovalRequest,
    ApprovalResult,
    AttemptStatus,
    Partner,
    Payment,
    PaymentAttempt,
    PaymentCommand,
    PaymentStatus,
    utc_now,
)
from pg_payments.monitoring.metrics import (
    payment_attempts_total,
    payment_requests_total,
    pg_approve_duration_seconds,
)
from pg_payments.ports import (
    AttemptStore,
    FeePolicyStore,
    PartnerStore,
    PaymentGateway,
    PaymentStore,
)

logger = structlog.get_logger(__name__)


class WorkflowStage(str, Enum):
    """Stages of one payment workflow, logged as they are reached."""

    STARTED = "STARTED"
    PARTNER_VALIDATED = "PARTNER_VALIDATED"
    GATEWAY_SELECTED = "GATEWAY_SELECTED"
    ATTEMPT_RECORDED = "ATTEMPT_RECORDED"
    GATEWAY_APPROVED = "GATEWAY_APPROVED"
    GATEWAY_REJECTED = "GATEWAY_REJECTED"
    GATEWAY_UNKNOWN = "GATEWAY_UNKNOWN"
    FEE_RESOLVED = "FEE_RESOLVED"
    PERSISTED = "PERSISTED"


class PaymentOrchestrator:
    """
    Drives the payment workflow across partner/fee stores, PG adapters and
    the attempt and payment stores.

    Nothing is retried here. Retrying is the caller's decision, and only
    after any PENDING attempt has been reconciled.
    """

    def __init__(
        self,
        partner_store: PartnerStore,
        fee_policy_store: FeePolicyStore,
        payment_store: PaymentStore,
        attempt_store: AttemptStore,
        gateways: Sequence[PaymentGateway],
        approve_timeout_seconds: float = 15.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize payment orchestrator.

        Args:
            partner_store: Partner lookup
            fee_policy_store: Effective fee policy lookup
            payment_store: Payment persistence
            attempt_store: PG attempt (audit) persistence
            gateways: PG adapters in routing order, first match wins
            approve_timeout_seconds: Upper bound on one gateway call
            clock: Source of "now" for fee policy resolution
        """
        self.partner_store = partner_store
        self.fee_policy_store = fee_policy_store
        self.payment_store = payment_store
        self.attempt_store = attempt_store
        self.gateways = list(gateways)
        self.approve_timeout_seconds = approve_timeout_seconds
        self.clock = clock

        logger.info(
            "payment_orchestrator_initialized",
            gateways=[gateway.name for gateway in self.gateways],
            approve_timeout_seconds=approve_timeout_seconds,
        )

    async def pay(self, command: PaymentCommand) -> Payment:
        """
        Approve, price and persist one payment.

        Args:
            command: Payment command

        Returns:
            Payment: Persisted payment with its id

        Raises:
            PaymentError: Categorized failure, see ``PaymentError.category``
        """
        log = logger.bind(workflow_id=str(uuid.uuid4()), partner_id=command.partner_id)
        log.info("payment_workflow_stage", stage=WorkflowStage.STARTED.value, amount=str(command.amount))

        try:
            payment = await self._run(command, log)
        except PaymentError as e:
            payment_requests_total.labels(outcome=e.code.value.lower()).inc()
            log.warning(
                "payment_workflow_failed",
                error_code=e.code.value,
                error_category=e.category.value,
                reason_code=e.reason_code,
                error=e.message,
            )
            raise

        payment_requests_total.labels(outcome="approved").inc()
        return payment

    async def _run(self, command: PaymentCommand, log: structlog.stdlib.BoundLogger) -> Payment:
        # Step 1: Validate partner
        partner = await self._validate_partner(command.partner_id)
        log.info("payment_workflow_stage", stage=WorkflowStage.PARTNER_VALIDATED.value)

        # Step 2: Select gateway
        gateway = self._select_gateway(partner)
        log = log.bind(pg_provider=gateway.name)
        log.info("payment_workflow_stage", stage=WorkflowStage.GATEWAY_SELECTED.value)

        # Step 3: Record PENDING attempt before the network call
        attempt = await self.attempt_store.save(
            PaymentAttempt(
                amount=command.amount,
                card_bin=command.card_bin,
                card_last4=command.card_last4,
                pg_provider=gateway.name,
                status=AttemptStatus.PENDING,
            )
        )
        payment_attempts_total.labels(provider=gateway.name, status=AttemptStatus.PENDING.value).inc()
        log = log.bind(attempt_id=attempt.id)
        log.info("payment_workflow_stage", stage=WorkflowStage.ATTEMPT_RECORDED.value)

        # Step 4: Call gateway
        approval = await self._approve(gateway, attempt, command, partner, log)
        log.info(
            "payment_workflow_stage",
            stage=WorkflowStage.GATEWAY_APPROVED.value,
            approval_code=approval.approval_code,
        )

        # Step 5: Reconcile attempt
        await self._mark_attempt(attempt, gateway, AttemptStatus.APPROVED, log, require_single_row=True)

        # Step 6: Resolve fee policy
        at = self.clock()
        policy = await self.fee_policy_store.find_effective_policy(partner.id, at)
        if policy is None:
            # The PG has already approved; the APPROVED attempt without a
            # Payment is left for out-of-band follow-up.
            log.error(
                "fee_policy_missing_after_approval",
                approval_code=approval.approval_code,
                at=at.isoformat(),
            )
            raise PaymentError(
                ErrorCode.FEE_POLICY_NOT_FOUND,
                f"Fee policy not found for partner {partner.id}",
                context={
                    "partner_id": partner.id,
                    "attempt_id": attempt.id,
                    "approval_code": approval.approval_code,
                },
            )
        log.info(
            "payment_workflow_stage",
            stage=WorkflowStage.FEE_RESOLVED.value,
            fee_policy_id=policy.id,
        )

        # Step 7: Compute fee and persist
        fee, net = calculate_fee(command.amount, policy.percentage, policy.fixed_fee)
        payment = await self.payment_store.save(
            Payment(
                partner_id=partner.id,
                amount=command.amount,
                applied_fee_rate=policy.percentage,
                fee_amount=fee,
                net_amount=net,
                card_bin=command.card_bin,
                card_last4=command.card_last4,
                approval_code=approval.approval_code,
                approved_at=approval.approved_at,
                status=PaymentStatus.APPROVED,
            )
        )
        log.info(
            "payment_workflow_stage",
            stage=WorkflowStage.PERSISTED.value,
            payment_id=payment.id,
            fee_amount=str(fee),
            net_amount=str(net),
        )
        return payment

    async def _validate_partner(self, partner_id: int) -> Partner:
        partner = await self.partner_store.find_partner_by_id(partner_id)
        if partner is None:
            raise PaymentError(
                ErrorCode.PARTNER_NOT_FOUND,
                f"Partner not found: {partner_id}",
                context={"partner_id": partner_id},
            )
        if not partner.active:
            raise PaymentError(
                ErrorCode.PARTNER_INACTIVE,
                f"Partner is inactive: {partner_id}",
                context={"partner_id": partner_id},
            )
        return partner

    def _select_gateway(self, partner: Partner) -> PaymentGateway:
        for gateway in self.gateways:
            if gateway.supports(partner.id):
                return gateway
        raise PaymentError(
            ErrorCode.UNROUTABLE,
            f"No PG client for partner {partner.id}",
            context={"partner_id": partner.id},
        )

    async def _approve(
        self,
        gateway: PaymentGateway,
        attempt: PaymentAttempt,
        command: PaymentCommand,
        partner: Partner,
        log: structlog.stdlib.BoundLogger,
    ) -> ApprovalResult:
        """
        Call the gateway and classify its outcome.

        Definite rejections mark the attempt FAILED; if that write fails the
        rejection is still what the caller sees, chained to the store error.
        Indeterminate outcomes, including a success response whose status is
        not APPROVED, leave it PENDING for reconciliation.
        """
        request = ApprovalRequest(
            partner_id=partner.id,
            amount=command.amount,
            card_bin=command.card_bin,
            card_last4=command.card_last4,
            product_name=command.product_name,
            encrypted_payload=command.encrypted_payload,
        )

        start_time = time.monotonic()
        try:
            approval = await asyncio.wait_for(gateway.approve(request), timeout=self.approve_timeout_seconds)
            if approval.status != PaymentStatus.APPROVED:
                # A success response that does not say APPROVED is not a
                # definite answer either way
                raise PgUnexpectedError(
                    f"PG answered with status {approval.status.value}",
                    context={
                        "pg_status": approval.status.value,
                        "approval_code": approval.approval_code,
                    },
                )
            return approval

        except (PgAuthenticationError, PgValidationError) as e:
            log.warning(
                "pg_approve_rejected",
                stage=WorkflowStage.GATEWAY_REJECTED.value,
                error_code=e.code.value,
                reason_code=e.reason_code,
                error=e.message,
            )
            try:
                await self._mark_attempt(attempt, gateway, AttemptStatus.FAILED, log)
            except Exception as store_error:
                log.error(
                    "payment_attempt_update_failed",
                    status=AttemptStatus.FAILED.value,
                    error=str(store_error),
                    exc_info=True,
                )
                raise e from store_error
            raise

        except PgUnexpectedError as e:
            log.error(
                "pg_approve_outcome_unknown",
                stage=WorkflowStage.GATEWAY_UNKNOWN.value,
                error=e.message,
                context=e.context,
            )
            raise

        except asyncio.TimeoutError as e:
            log.error(
                "pg_approve_outcome_unknown",
                stage=WorkflowStage.GATEWAY_UNKNOWN.value,
                error="timeout",
                timeout_seconds=self.approve_timeout_seconds,
            )
            raise PgUnexpectedError(
                f"PG approval timed out after {self.approve_timeout_seconds}s",
                context={"timeout_seconds": self.approve_timeout_seconds},
            ) from e

        finally:
            pg_approve_duration_seconds.labels(provider=gateway.name).observe(
                time.monotonic() - start_time
            )

    async def _mark_attempt(
        self,
        attempt: PaymentAttempt,
        gateway: PaymentGateway,
        status: AttemptStatus,
        log: structlog.stdlib.BoundLogger,
        require_single_row: bool = False,
    ) -> None:
        updated = await self.attempt_store.update_status(attempt.id, status)
        payment_attempts_total.labels(provider=gateway.name, status=status.value).inc()
        log.info("payment_attempt_updated", status=status.value, rows_affected=updated)

        if require_single_row and updated != 1:
            log.error("payment_attempt_reconciliation_failed", status=status.value, rows_affected=updated)
            raise PaymentError(
                ErrorCode.ATTEMPT_RECONCILIATION_FAILED,
                f"PG attempt {attempt.id} was not updated to {status.value}",
                context={"attempt_id": attempt.id, "rows_affected": updated},
            )
