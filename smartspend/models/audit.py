"""
Audit Models for the SmartSpend ledger

Every ledger mutation and every sync transition produces an audit event.
This provides:
1. Traceability of what changed locally and what reached the remote
2. Debugging information when a sync goes wrong
3. A history the UI can show ("last pushed at...", "pull declined")

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    ACCOUNTS_REPLACED = "accounts_replaced"
    SNAPSHOT_REPLACED = "snapshot_replaced"

    # Validation
    VALIDATION_FAILED = "validation_failed"
    VALIDATION_WARNING = "validation_warning"

    # Sync
    SYNC_STATE_CHANGED = "sync_state_changed"
    SYNC_CONFIG_CHANGED = "sync_config_changed"
    PUSH_SUCCEEDED = "push_succeeded"
    PUSH_FAILED = "push_failed"
    PUSH_REJECTED = "push_rejected"
    PULL_APPLIED = "pull_applied"
    PULL_DECLINED = "pull_declined"
    PULL_FAILED = "pull_failed"
    RESULT_DISCARDED = "result_discarded"

    # Connectivity
    CONNECTIVITY_CHANGED = "connectivity_changed"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'accounts', 'sync')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx_id, "expense", 50.0)
        event = AuditEventBuilder.sync_state_changed("pending", "syncing")
    """

    @staticmethod
    def transaction_added(transaction_id: str, tx_type: str, amount: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction added: {tx_type} {amount:g}",
            details={"type": tx_type, "amount": amount},
        )

    @staticmethod
    def transaction_updated(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction updated",
        )

    @staticmethod
    def transaction_deleted(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
        )

    @staticmethod
    def accounts_replaced(account_ids: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_REPLACED,
            entity_type="accounts",
            description=f"Accounts replaced ({len(account_ids)} accounts)",
            details={"account_ids": account_ids},
        )

    @staticmethod
    def snapshot_replaced(account_count: int, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REPLACED,
            entity_type="snapshot",
            description=(
                f"Ledger replaced: {account_count} accounts, "
                f"{transaction_count} transactions"
            ),
            details={
                "account_count": account_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def validation_failed(issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="validation",
            description=f"Write rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def validation_warning(issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_WARNING,
            severity=AuditSeverity.WARNING,
            entity_type="validation",
            description=f"Write accepted with {len(issues)} warnings",
            details={"issues": issues},
        )

    @staticmethod
    def sync_state_changed(previous: str, current: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_STATE_CHANGED,
            severity=AuditSeverity.DEBUG,
            entity_type="sync",
            description=f"Sync state {previous} -> {current}",
            details={"previous": previous, "current": current},
        )

    @staticmethod
    def sync_config_changed(configured: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_CONFIG_CHANGED,
            entity_type="sync",
            description="Sync configured" if configured else "Sync disabled",
            details={"configured": configured},
        )

    @staticmethod
    def push_succeeded(transaction_count: int, account_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUSH_SUCCEEDED,
            entity_type="sync",
            description=f"Pushed {transaction_count} transactions, {account_count} accounts",
            details={
                "transaction_count": transaction_count,
                "account_count": account_count,
            },
        )

    @staticmethod
    def push_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUSH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="sync",
            description="Push to remote replica failed",
            error_message=error_message,
        )

    @staticmethod
    def push_rejected(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUSH_REJECTED,
            severity=AuditSeverity.DEBUG,
            entity_type="sync",
            description=f"Push rejected: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def pull_applied(transaction_count: int, account_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PULL_APPLIED,
            entity_type="sync",
            description=f"Pulled {transaction_count} transactions, {account_count} accounts",
            details={
                "transaction_count": transaction_count,
                "account_count": account_count,
            },
        )

    @staticmethod
    def pull_declined() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PULL_DECLINED,
            entity_type="sync",
            description="User declined to overwrite local data with remote data",
        )

    @staticmethod
    def pull_failed(error_type: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PULL_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="sync",
            description=f"Pull from remote replica failed: {error_type}",
            error_message=error_message,
        )

    @staticmethod
    def result_discarded(operation: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESULT_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="sync",
            description=f"Result of {operation} discarded: sync config changed while in flight",
            details={"operation": operation},
        )

    @staticmethod
    def connectivity_changed(online: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONNECTIVITY_CHANGED,
            entity_type="connectivity",
            description="Network became reachable" if online else "Network lost",
            details={"online": online},
        )

    @staticmethod
    def storage_error(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            description="Local persistence failed",
            error_message=error_message,
        )
