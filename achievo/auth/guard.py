"""Authorization guard.

Two independent predicates decide access, combined with OR:

- ``allow_set_allows``: the caller is one of the legacy admin accounts.
- ``hierarchy_allows``: the caller's ledger role meets the required level.

The allow-set is checked first, so a legacy admin never costs a ledger
call. When the role cannot be read at all the guard fails closed unless
configured to treat the caller as a plain user.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from fastapi import Depends, Request

from achievo.audit.logger import AuditLogger
from achievo.auth.identity import Principal, RejectedIdentity
from achievo.auth.resolver import RoleResolver
from achievo.auth.roles import Role, RoleResolution, role_satisfies
from achievo.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidIdentityError,
    RoleUnavailableError,
)

log = logging.getLogger(__name__)

UNAVAILABLE_POLICIES = ("deny", "default_user")


def hierarchy_allows(resolution: RoleResolution, required: Role) -> bool:
    """True when a resolved role meets ``required``. Unavailable never passes."""
    if not resolution.is_resolved or resolution.role is None:
        return False
    return role_satisfies(resolution.role, required)


def allow_set_allows(identity: str, allow_set: Iterable[str]) -> bool:
    """True when ``identity`` is a legacy admin account."""
    return identity in allow_set


@dataclass(frozen=True)
class Grant:
    """Why an authorization check passed."""

    identity: str
    via: str  # "allow_set" or "hierarchy"
    resolution: RoleResolution | None = None


class AuthorizationGuard:
    """Checks a caller against a required role."""

    def __init__(
        self,
        resolver: RoleResolver,
        allow_set: Iterable[str] = (),
        unavailable_policy: str = "deny",
        audit: AuditLogger | None = None,
    ):
        if unavailable_policy not in UNAVAILABLE_POLICIES:
            log.warning(f"Unknown role-unavailable policy {unavailable_policy!r}, using 'deny'")
            unavailable_policy = "deny"
        self.resolver = resolver
        self.allow_set = frozenset(allow_set)
        self.unavailable_policy = unavailable_policy
        self.audit = audit

    def _apply_policy(self, resolution: RoleResolution) -> RoleResolution:
        if resolution.is_resolved or self.unavailable_policy != "default_user":
            return resolution
        return RoleResolution(
            status="resolved",
            role=resolution.effective_role(),
            source="default",
            reason=resolution.reason,
        )

    async def check(self, identity: str, required: Role) -> Grant | None:
        """Return a Grant if allowed, None if the role is insufficient.

        Raises:
            RoleUnavailableError: The ledger could not be asked and the policy
                is to fail closed.
        """
        if allow_set_allows(identity, self.allow_set):
            return Grant(identity=identity, via="allow_set")

        resolution = self._apply_policy(await self.resolver.resolve(identity))
        if not resolution.is_resolved:
            raise RoleUnavailableError(
                "Role lookup unavailable; try again later",
                context={"identity": identity, "reason": resolution.reason},
            )

        if hierarchy_allows(resolution, required):
            return Grant(identity=identity, via="hierarchy", resolution=resolution)
        return None

    async def authorize(
        self,
        identity: str,
        required: Role,
        action: str,
        request: Request | None = None,
    ) -> Grant:
        """Like :meth:`check` but raises on denial and audits it."""
        grant = await self.check(identity, required)
        if grant is None:
            log.warning(f"Access denied for {identity}: {action} requires {required.value}")
            if self.audit:
                self.audit.log_denied(
                    action=action,
                    principal_id=identity,
                    reason=f"requires {required.value}",
                    request=request,
                )
            raise AuthorizationError(f"Access denied. Required role: {required.value}")
        return grant


# =============================================================================
# FastAPI dependencies
# =============================================================================


def caller_principal(request: Request) -> Principal:
    """The authenticated caller, or raise 401."""
    user = request.scope.get("user")
    if isinstance(user, RejectedIdentity):
        raise InvalidIdentityError(f"Invalid wallet address: {user.header_value!r}")
    if user is None or not user.is_authenticated:
        raise AuthenticationError("Wallet address required")
    return user


def require_authenticated():
    """Create a FastAPI dependency that requires an identity header.

    Usage:
        @router.post("/transfer")
        async def transfer(body: TransferRequest, principal: Principal = require_auth):
            ...
    """

    async def dependency(request: Request) -> Principal:
        return caller_principal(request)

    return Depends(dependency)


def require_role(required_role: Role, action: str):
    """Create a FastAPI dependency that requires ``required_role`` or allow-set.

    Args:
        required_role: Minimum role level
        action: Audit action name recorded on denial

    Returns:
        A FastAPI Depends() that yields the authenticated Principal
    """

    async def dependency(request: Request) -> Principal:
        principal = caller_principal(request)
        guard: AuthorizationGuard = request.app.state.services.guard
        await guard.authorize(principal.account_id, required_role, action, request=request)
        return principal

    return Depends(dependency)


# Pre-built authentication-only dependency
require_auth = require_authenticated()
