"""
Error taxonomy for the payment workflow and history queries.

A single exception type, ``PaymentError``, carries an ``ErrorCode``. Each code
belongs to exactly one ``ErrorCategory``; callers branch on ``category``
(or ``code``) instead of on exception classes.

Categories:
- CLIENT: bad input or configuration, do not retry as-is
- UPSTREAM_REJECTED: the PG answered with a definite "no", attempt is FAILED
- UPSTREAM_INDETERMINATE: the PG outcome is unknown, attempt stays PENDING
- CONSISTENCY: local state disagrees with what the workflow just wrote
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    CLIENT = "client"
    UPSTREAM_REJECTED = "upstream_rejected"
    UPSTREAM_INDETERMINATE = "upstream_indeterminate"
    CONSISTENCY = "consistency"


class ErrorCode(str, Enum):
    PARTNER_NOT_FOUND = "PARTNER_NOT_FOUND"
    PARTNER_INACTIVE = "PARTNER_INACTIVE"
    UNROUTABLE = "UNROUTABLE"
    INVALID_QUERY = "INVALID_QUERY"
    FEE_POLICY_NOT_FOUND = "FEE_POLICY_NOT_FOUND"
    PG_UNAUTHORIZED = "PG_UNAUTHORIZED"
    PG_DECLINED = "PG_DECLINED"
    PG_UNEXPECTED = "PG_UNEXPECTED"
    ATTEMPT_RECONCILIATION_FAILED = "ATTEMPT_RECONCILIATION_FAILED"


class DeclineReason(str, Enum):
    """Decline reasons known from the PG; other reason strings pass through."""

    INVALID_CARD = "INVALID_CARD"
    STOLEN_OR_LOST = "STOLEN_OR_LOST"
    INSUFFICIENT_LIMIT = "INSUFFICIENT_LIMIT"
    EXPIRED_OR_BLOCKED = "EXPIRED_OR_BLOCKED"
    TAMPERED_CARD = "TAMPERED_CARD"


_CATEGORY_BY_CODE: Dict[ErrorCode, ErrorCategory] = {
    ErrorCode.PARTNER_NOT_FOUND: ErrorCategory.CLIENT,
    ErrorCode.PARTNER_INACTIVE: ErrorCategory.CLIENT,
    ErrorCode.UNROUTABLE: ErrorCategory.CLIENT,
    ErrorCode.INVALID_QUERY: ErrorCategory.CLIENT,
    ErrorCode.FEE_POLICY_NOT_FOUND: ErrorCategory.CLIENT,
    ErrorCode.PG_UNAUTHORIZED: ErrorCategory.UPSTREAM_REJECTED,
    ErrorCode.PG_DECLINED: ErrorCategory.UPSTREAM_REJECTED,
    ErrorCode.PG_UNEXPECTED: ErrorCategory.UPSTREAM_INDETERMINATE,
    ErrorCode.ATTEMPT_RECONCILIATION_FAILED: ErrorCategory.CONSISTENCY,
}


class PaymentError(Exception):
    """Exception for every failure surfaced by the payment core."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        reason_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize payment error.

        Args:
            code: Error code, determines the category
            message: Human readable message
            reason_code: Structured PG decline reason, if any
            context: Extra fields for logs and error responses
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.reason_code = reason_code
        self.context = context or {}

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORY_BY_CODE[self.code]

    @property
    def retryable(self) -> bool:
        # Nothing in the core is retryable as-is; indeterminate failures need
        # reconciliation of the PENDING attempt first.
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "category": self.category.value,
            "message": self.message,
            "reason_code": self.reason_code,
            "context": self.context,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value}, message={self.message!r})"


class PgAuthenticationError(PaymentError):
    """PG rejected our credentials (401)."""

    def __init__(self, message: str = "PG authentication failed", **kwargs: Any):
        super().__init__(ErrorCode.PG_UNAUTHORIZED, message, **kwargs)


class PgValidationError(PaymentError):
    """PG declined the card (422) with a structured reason."""

    def __init__(
        self,
        reason_code: str = DeclineReason.INVALID_CARD.value,
        message: str = "Card payment was declined",
        **kwargs: Any,
    ):
        super().__init__(ErrorCode.PG_DECLINED, message, reason_code=reason_code, **kwargs)


class PgUnexpectedError(PaymentError):
    """PG outcome unknown: timeout, transport failure, 5xx or malformed response."""

    def __init__(
        self,
        message: str = "PG payment outcome is unknown, manual confirmation required",
        **kwargs: Any,
    ):
        super().__init__(ErrorCode.PG_UNEXPECTED, message, **kwargs)
