"""Audit logging for security-relevant operations.

Logs authorization decisions, every state-mutating saga, and every point
where the ledger and the index mirror are known to disagree.
"""

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import Request

log = logging.getLogger("audit")


@dataclass
class AuditEvent:
    """Structured audit event."""

    action: str  # e.g., "certificate.issue", "saga.divergence"
    principal: str = "anonymous"  # wallet address or "anonymous"
    resource: str | None = None  # e.g., certificate id, token id
    status: str = "success"  # "success", "denied", "error", "divergence"
    details: dict[str, Any] | None = None
    request_id: str | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class AuditLogger:
    """Audit logger for security operations.

    Logs events as structured JSON via Python's logging module and keeps an
    in-memory ring buffer for recent event retrieval.
    """

    MAX_BUFFER_SIZE = 1000

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._buffer: deque[dict] = deque(maxlen=self.MAX_BUFFER_SIZE)

    def log(self, event: AuditEvent) -> None:
        """Write an audit event to the log."""
        if not self.enabled:
            return

        self._buffer.append(asdict(event))

        extra = {
            "type": "audit",
            "principal": event.principal,
            "action": event.action,
            "status": event.status,
        }
        if event.resource:
            extra["resource"] = event.resource
        if event.request_id:
            extra["request_id"] = event.request_id
        if event.details:
            extra["details"] = event.details

        if event.status in ("denied", "error", "divergence"):
            log.warning(f"audit: {event.action} {event.status}", extra=extra)
        else:
            log.info(f"audit: {event.action} {event.status}", extra=extra)

    def get_recent_events(
        self,
        limit: int = 100,
        action_filter: str | None = None,
        status_filter: str | None = None,
    ) -> list[dict]:
        """Get recent audit events from buffer, newest first.

        Args:
            limit: Max events to return
            action_filter: Filter by action prefix (e.g., "saga.")
            status_filter: Filter by status (e.g., "divergence")
        """
        events = list(self._buffer)
        events.reverse()

        if action_filter:
            events = [e for e in events if e["action"].startswith(action_filter)]
        if status_filter:
            events = [e for e in events if e["status"] == status_filter]

        return events[:limit]

    def log_access(
        self,
        action: str,
        principal_id: str,
        resource: str | None = None,
        status: str = "success",
        details: dict[str, Any] | None = None,
        request: Request | None = None,
    ) -> None:
        """Log a resource access event.

        Args:
            action: Action name (e.g., "certificate.revoke", "role.assign")
            principal_id: Wallet address of the caller
            resource: Resource identifier
            status: "success", "denied", or "error"
            details: Additional context
            request: Optional request for correlation ID
        """
        self.log(
            AuditEvent(
                action=action,
                principal=principal_id,
                resource=resource,
                status=status,
                details=details,
                request_id=_get_request_id(request),
            )
        )

    def log_denied(
        self,
        action: str,
        principal_id: str,
        reason: str,
        request: Request | None = None,
    ) -> None:
        """Log an authorization denial."""
        self.log_access(
            action=action,
            principal_id=principal_id,
            status="denied",
            details={"reason": reason},
            request=request,
        )

    def log_divergence(
        self,
        saga: str,
        principal_id: str,
        resource: str | None,
        details: dict[str, Any],
    ) -> None:
        """Log a ledger/index disagreement that needs reconciliation."""
        self.log(
            AuditEvent(
                action=f"saga.divergence.{saga}",
                principal=principal_id,
                resource=resource,
                status="divergence",
                details=details,
            )
        )


def _get_request_id(request: Request | None) -> str | None:
    """Extract request ID from request headers if available."""
    if request is None:
        return None

    for header in ("X-Request-ID", "X-Correlation-ID", "Request-Id"):
        if header in request.headers:
            return request.headers[header]

    return None
