"""
Data Models Package

This package contains all Pydantic models used by the ledger core.
Everything stored locally or sent to the remote replica conforms to these schemas.
"""

from smartspend.models.ledger import (
    Account,
    LedgerSnapshot,
    SyncConfig,
    SyncState,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from smartspend.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "LedgerSnapshot",
    "SyncConfig",
    "SyncState",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
