"""
Services - the two orchestrators.
"""
from .payment_orchestrator import PaymentOrchestrator, WorkflowStage
from .query_orchestrator import QueryOrchestrator

__all__ = ["PaymentOrchestrator", "QueryOrchestrator", "WorkflowStage"]
