"""
Audit Logger

DESIGN DECISION: Every ledger mutation and sync transition is logged.
This provides:
1. Traceability of local changes and of what reached the remote
2. Debugging capability for flaky connectivity
3. A short history the UI can show the user

The audit logger:
- Is synchronous: ledger mutations are synchronous and must not wait on it
- Gracefully handles failures (a logging problem never breaks a mutation)
- Keeps a bounded in-memory history of recent events
"""

import logging
from collections import deque
from typing import Optional

import structlog

from smartspend.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog on top of stdlib logging.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level))
    logging.getLogger().setLevel(getattr(logging, level))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


# Configure structlog for local logging
configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and remembers the most recent
    ones for display.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("smartspend.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event. Never raises."""
        try:
            self._history.append(event)
            log_dict = event.to_log_dict()

            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Audit logging should not break the main flow
            logging.getLogger(__name__).warning("Failed to write audit event: %s", e)

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(self._history)
        events.reverse()
        return events[:limit]

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def log_transaction_added(self, transaction_id: str, tx_type: str, amount: float) -> None:
        self.log(AuditEventBuilder.transaction_added(transaction_id, tx_type, amount))

    def log_transaction_updated(self, transaction_id: str) -> None:
        self.log(AuditEventBuilder.transaction_updated(transaction_id))

    def log_transaction_deleted(self, transaction_id: str) -> None:
        self.log(AuditEventBuilder.transaction_deleted(transaction_id))

    def log_accounts_replaced(self, account_ids: list[str]) -> None:
        self.log(AuditEventBuilder.accounts_replaced(account_ids))

    def log_snapshot_replaced(self, account_count: int, transaction_count: int) -> None:
        self.log(AuditEventBuilder.snapshot_replaced(account_count, transaction_count))

    def log_validation_failed(self, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(issues))

    def log_validation_warning(self, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_warning(issues))

    def log_storage_error(self, error_message: str) -> None:
        self.log(AuditEventBuilder.storage_error(error_message))

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------

    def log_sync_state_changed(self, previous: str, current: str) -> None:
        self.log(AuditEventBuilder.sync_state_changed(previous, current))

    def log_sync_config_changed(self, configured: bool) -> None:
        self.log(AuditEventBuilder.sync_config_changed(configured))

    def log_push_succeeded(self, transaction_count: int, account_count: int) -> None:
        self.log(AuditEventBuilder.push_succeeded(transaction_count, account_count))

    def log_push_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.push_failed(error_message))

    def log_push_rejected(self, reason: str) -> None:
        self.log(AuditEventBuilder.push_rejected(reason))

    def log_pull_applied(self, transaction_count: int, account_count: int) -> None:
        self.log(AuditEventBuilder.pull_applied(transaction_count, account_count))

    def log_pull_declined(self) -> None:
        self.log(AuditEventBuilder.pull_declined())

    def log_pull_failed(self, error_type: str, error_message: str) -> None:
        self.log(AuditEventBuilder.pull_failed(error_type, error_message))

    def log_result_discarded(self, operation: str) -> None:
        self.log(AuditEventBuilder.result_discarded(operation))

    def log_connectivity_changed(self, online: bool) -> None:
        self.log(AuditEventBuilder.connectivity_changed(online))


_default_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Process-wide audit logger used when a component is not given one."""
    global _default_logger
    if _default_logger is None:
        _default_logger = AuditLogger()
    return _default_logger
