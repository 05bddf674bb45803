"""Multi-store saga runner.

A saga runs up to three phases in a fixed order:

1. content - pin a document to the content store
2. ledger  - one change call against the contract
3. mirror  - write the result to the index store

Each phase produces a :class:`PhaseOutcome`. A failure aborts the saga with
the phase-specific error; nothing already done is undone. A mirror failure
after a successful ledger phase is a divergence: the ledger holds state the
index does not, and an audit event records what is needed to repair it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from fastapi import Request

from achievo.audit.logger import AuditLogger
from achievo.clients.index import IndexStoreError
from achievo.core.exceptions import (
    AchievoError,
    IntegrationError,
    LedgerCallError,
    MirrorWriteError,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

PHASE_ORDER = ("content", "ledger", "mirror")


@dataclass
class PhaseOutcome:
    """Tagged result of one saga phase."""

    phase: str
    ok: bool
    value: Any = None
    error: AchievoError | None = None


@dataclass
class Saga:
    """One orchestrated operation across the stores.

    Usage:
        saga = Saga("certificate.issue", principal, audit)
        cid = await saga.content(lambda: content.pin_json(doc))
        cert_id = await saga.ledger(lambda: contract.call(...), ref="blockchain_id")
        doc_id = saga.mirror(lambda: index.add("certificates", record))
        saga.complete(resource=doc_id)
    """

    name: str
    principal: str
    audit: AuditLogger
    resource: str | None = None
    request: Request | None = None
    outcomes: list[PhaseOutcome] = field(default_factory=list)
    ledger_ref: dict[str, Any] = field(default_factory=dict)

    def _enter(self, phase: str) -> None:
        if self.outcomes:
            last = self.outcomes[-1]
            if not last.ok:
                raise RuntimeError(f"Saga {self.name} already failed in {last.phase}")
            if PHASE_ORDER.index(last.phase) > PHASE_ORDER.index(phase):
                raise RuntimeError(f"Saga {self.name}: {phase} phase after {last.phase}")

    def outcome(self, phase: str) -> PhaseOutcome | None:
        for outcome in self.outcomes:
            if outcome.phase == phase:
                return outcome
        return None

    def _extra(self, phase: str) -> dict[str, Any]:
        return {"saga": self.name, "phase": phase, "principal": self.principal}

    def _fail(self, phase: str, error: AchievoError) -> None:
        self.outcomes.append(PhaseOutcome(phase=phase, ok=False, error=error))
        log.warning(f"Saga {self.name} failed in {phase}: {error.message}", extra=self._extra(phase))
        self.audit.log_access(
            action=self.name,
            principal_id=self.principal,
            resource=self.resource,
            status="error",
            details={"phase": phase, "error": error.code, **self.ledger_ref},
            request=self.request,
        )

    async def content(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run the content phase."""
        self._enter("content")
        try:
            value = await operation()
        except IntegrationError as e:
            self._fail("content", e)
            raise
        self.outcomes.append(PhaseOutcome(phase="content", ok=True, value=value))
        return value

    async def ledger(
        self,
        operation: Callable[[], Awaitable[T]],
        ref: str | None = None,
    ) -> T:
        """Run the ledger phase.

        Args:
            operation: The change call
            ref: Key under which the returned value is kept for reconciliation
                (e.g. "blockchain_id", "token_id")
        """
        self._enter("ledger")
        try:
            value = await operation()
        except LedgerCallError as e:
            self._fail("ledger", e)
            raise
        if ref:
            self.ledger_ref[ref] = value
        self.outcomes.append(PhaseOutcome(phase="ledger", ok=True, value=value))
        log.debug(f"Saga {self.name} ledger phase ok", extra=self._extra("ledger"))
        return value

    def mirror(self, operation: Callable[[], T]) -> T:
        """Run the mirror phase.

        Raises:
            MirrorWriteError: The index write failed. If the ledger phase ran,
                a divergence event is recorded first.
        """
        self._enter("mirror")
        try:
            value = operation()
        except IndexStoreError as e:
            error = MirrorWriteError(
                f"Index update failed after {self.name}: {e.message}",
                context=dict(self.ledger_ref),
            )
            self._fail("mirror", error)
            if self.outcome("ledger") is not None:
                self.diverged("mirror write failed", error=e.message)
            raise error from e
        self.outcomes.append(PhaseOutcome(phase="mirror", ok=True, value=value))
        return value

    def diverged(self, reason: str, **details: Any) -> None:
        """Record that ledger and index now disagree."""
        log.error(
            f"Saga {self.name} diverged: {reason} {self.ledger_ref}",
            extra=self._extra("mirror"),
        )
        self.audit.log_divergence(
            saga=self.name,
            principal_id=self.principal,
            resource=self.resource,
            details={"reason": reason, **self.ledger_ref, **details},
        )

    def complete(self, resource: str | None = None, **details: Any) -> None:
        """Audit the successful end of the saga."""
        if resource:
            self.resource = resource
        self.audit.log_access(
            action=self.name,
            principal_id=self.principal,
            resource=self.resource,
            status="success",
            details={**self.ledger_ref, **details} or None,
            request=self.request,
        )
