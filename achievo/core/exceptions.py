"""Exception hierarchy for the Achievo service.

Each exception carries the HTTP status and machine-readable error code the
API layer returns for it. Saga failures also carry the phase that failed and
whatever context an operator needs to reconcile the stores by hand.
"""

from typing import Any


class AchievoError(Exception):
    """Base exception for all Achievo errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_response(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message}


# =============================================================================
# Caller errors (raised before any external call)
# =============================================================================

class ValidationError(AchievoError):
    """Missing or malformed input. Never retried.

    ``fields`` is a list of ``{"field": name, "code": reason}`` dicts.
    """

    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, fields: list[dict[str, str]] | None = None):
        super().__init__(message)
        self.fields = fields or []

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        body["fields"] = self.fields
        return body


class AuthenticationError(AchievoError):
    """No caller identity was presented."""

    status_code = 401
    code = "authentication_required"


class InvalidIdentityError(AuthenticationError):
    """The identity header is present but is not a ledger account id."""

    code = "invalid_identity"


class AuthorizationError(AchievoError):
    """Caller is authenticated but lacks the required role."""

    status_code = 403

    def __init__(self, message: str, code: str = "insufficient_role"):
        super().__init__(message)
        self.code = code


class RoleUnavailableError(AchievoError):
    """The caller's role could not be read from the ledger."""

    status_code = 503
    code = "role_unavailable"


class NotFoundError(AchievoError):
    """Referenced entity is absent from the index."""

    status_code = 404
    code = "not_found"


class ConflictError(AchievoError):
    """Request conflicts with existing state (duplicate or terminal record)."""

    status_code = 409

    def __init__(self, message: str, code: str = "conflict"):
        super().__init__(message)
        self.code = code


# =============================================================================
# Saga phase errors (raised after an external call)
# =============================================================================

class SagaPhaseError(AchievoError):
    """Base for failures of a single saga phase."""

    phase: str = "unknown"

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        body["phase"] = self.phase
        return body


class IntegrationError(SagaPhaseError):
    """Content store upload failed. Nothing has been mutated yet."""

    status_code = 502
    code = "content_store_failure"
    phase = "content"


class LedgerCallError(SagaPhaseError):
    """A view or change call against the contract failed.

    The ledger is opaque: network failure, contract panic and insufficient
    funds all surface as this error. Aborts the saga; earlier phases are not
    rolled back.
    """

    status_code = 400
    code = "blockchain_failure"
    phase = "ledger"

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.method = method


class LedgerUnavailableError(LedgerCallError):
    """The ledger RPC or signer could not be reached or answered garbage."""


class MirrorWriteError(SagaPhaseError):
    """Index write failed after the ledger call succeeded.

    Ledger and index now disagree. No compensating action is taken; the
    ``context`` holds the ledger-assigned identifiers needed to repair the
    mirror.
    """

    status_code = 500
    code = "mirror_write_failure"
    phase = "mirror"

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        ledger_ref = {
            k: v for k, v in self.context.items() if k in ("blockchain_id", "token_id")
        }
        if ledger_ref:
            body["ledger"] = ledger_ref
        return body
