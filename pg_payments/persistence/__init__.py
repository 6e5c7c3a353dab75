"""
Persistence Layer - SQLAlchemy tables and the SQL store adapters.
"""
from .connection import create_engine_from_settings, create_session_factory, dispose, init_db
from .repositories import SqlAttemptStore, SqlFeePolicyStore, SqlPartnerStore, SqlPaymentStore
from .tables import Base, FeePolicyRow, PartnerRow, PaymentRow, PgHistoryRow

__all__ = [
    "Base",
    "FeePolicyRow",
    "PartnerRow",
    "PaymentRow",
    "PgHistoryRow",
    "SqlAttemptStore",
    "SqlFeePolicyStore",
    "SqlPartnerStore",
    "SqlPaymentStore",
    "create_engine_from_settings",
    "create_session_factory",
    "dispose",
    "init_db",
]
