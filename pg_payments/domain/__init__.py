"""
Domain Layer - records, fee calculation, cursor codec and error taxonomy.

Nothing here touches the network or the database.
"""
from .cursor import Cursor, decode_cursor, encode_cursor
from .errors import (
    DeclineReason,
    ErrorCategory,
    ErrorCode,
    PaymentError,
    PgAuthenticationError,
    PgUnexpectedError,
    PgValidationError,
)
from .fees import calculate_fee
from .models import (
    ApprovalRequest,
    ApprovalResult,
    AttemptStatus,
    FeePolicy,
    Partner,
    Payment,
    PaymentAttempt,
    PaymentCommand,
    PaymentStatus,
    PaymentSummary,
    QueryFilter,
    QueryResult,
)

__all__ = [
    "ApprovalRequest",
    "ApprovalResult",
    "AttemptStatus",
    "Cursor",
    "DeclineReason",
    "ErrorCategory",
    "ErrorCode",
    "FeePolicy",
    "Partner",
    "Payment",
    "PaymentAttempt",
    "PaymentCommand",
    "PaymentError",
    "PaymentStatus",
    "PaymentSummary",
    "PgAuthenticationError",
    "PgUnexpectedError",
    "PgValidationError",
    "QueryFilter",
    "QueryResult",
    "calculate_fee",
    "decode_cursor",
    "encode_cursor",
]
