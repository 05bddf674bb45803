"""Audit logging module for Achievo."""

from achievo.audit.logger import AuditLogger, AuditEvent

__all__ = [
    "AuditLogger",
    "AuditEvent",
]
