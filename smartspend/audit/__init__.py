"""Audit logging package."""

from smartspend.audit.logger import AuditLogger, configure_logging, get_audit_logger

__all__ = ["AuditLogger", "configure_logging", "get_audit_logger"]
