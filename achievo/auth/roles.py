"""Ledger-held roles for Achievo.

Roles form a total order: user < organization_verifier < moderator < admin.
A role satisfies a requirement when its level is at least the required
level.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal

log = logging.getLogger(__name__)


class Role(str, Enum):
    """Roles the contract can assign."""

    USER = "user"
    ORGANIZATION_VERIFIER = "organization_verifier"
    MODERATOR = "moderator"
    ADMIN = "admin"


ROLE_LEVELS: dict[Role, int] = {
    Role.USER: 0,
    Role.ORGANIZATION_VERIFIER: 1,
    Role.MODERATOR: 2,
    Role.ADMIN: 3,
}

ROLE_PERMISSIONS: dict[Role, list[str]] = {
    Role.USER: ["view_certificates", "receive_rewards"],
    Role.ORGANIZATION_VERIFIER: ["view_certificates", "receive_rewards", "verify_organizations"],
    Role.MODERATOR: [
        "view_certificates",
        "receive_rewards",
        "grant_rewards",
        "revoke_certificates",
    ],
    Role.ADMIN: ["all_permissions"],
}


def parse_role(value: object) -> Role | None:
    """Map a contract return value to a Role, or None if unrecognised."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return Role(value)
    except ValueError:
        log.warning(f"Unknown role returned by contract: {value!r}")
        return None


def role_satisfies(role: Role, required: Role) -> bool:
    return ROLE_LEVELS[role] >= ROLE_LEVELS[required]


@dataclass(frozen=True)
class RoleResolution:
    """Outcome of a role lookup.

    ``resolved`` means the ledger answered; ``role`` is then always set, with
    ``source="default"`` when the contract had no usable role for the
    account. ``unavailable`` means the ledger could not be asked, and
    ``role`` is None.
    """

    status: Literal["resolved", "unavailable"]
    role: Role | None = None
    source: Literal["ledger", "default"] | None = None
    reason: str | None = None

    @classmethod
    def from_ledger(cls, role: Role) -> "RoleResolution":
        return cls(status="resolved", role=role, source="ledger")

    @classmethod
    def default(cls, reason: str | None = None) -> "RoleResolution":
        return cls(status="resolved", role=Role.USER, source="default", reason=reason)

    @classmethod
    def unavailable(cls, reason: str) -> "RoleResolution":
        return cls(status="unavailable", reason=reason)

    @property
    def is_resolved(self) -> bool:
        return self.status == "resolved"

    def effective_role(self) -> Role:
        """Role to act on, treating an unavailable ledger as plain ``user``.

        Only for callers that have opted into the legacy behaviour.
        """
        return self.role if self.role is not None else Role.USER

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "role": self.role.value if self.role else None,
            "source": self.source,
            "reason": self.reason,
        }
