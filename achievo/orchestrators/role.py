"""Role assignment and lookup. Roles live only on the ledger."""

import logging
from typing import Any

from fastapi import Request

from achievo.audit.logger import AuditLogger
from achievo.auth.resolver import RoleResolver
from achievo.auth.roles import ROLE_PERMISSIONS, Role
from achievo.clients.index import IndexStore
from achievo.clients.ledger import LedgerClient
from achievo.core.exceptions import ValidationError
from achievo.orchestrators.base import Orchestrator, require_accounts, require_fields

log = logging.getLogger(__name__)

VALID_ROLES = [role.value for role in Role]


class RoleOrchestrator(Orchestrator):
    CHANGE_METHODS = ("assign_role", "remove_role")

    def __init__(
        self,
        ledger: LedgerClient,
        index: IndexStore,
        audit: AuditLogger,
        resolver: RoleResolver,
    ):
        super().__init__(ledger, index, audit)
        self.resolver = resolver

    async def assign(
        self,
        caller: str,
        account_id: str,
        role: str,
        request: Request | None = None,
    ) -> dict[str, Any]:
        require_fields({"account_id": account_id, "role": role}, ("account_id", "role"))
        require_accounts({"account_id": account_id}, ("account_id",))
        if role not in VALID_ROLES:
            raise ValidationError(
                f"Invalid role. Valid roles: {', '.join(VALID_ROLES)}",
                fields=[{"field": "role", "code": "invalid_role"}],
            )

        contract = self.contract(caller)
        saga = self.saga("role.assign", caller, resource=account_id, request=request)
        await saga.ledger(lambda: contract.call("assign_role", {"account_id": account_id, "role": role}))
        saga.complete(role=role)

        log.info(f"{caller} assigned role {role} to {account_id}")
        return {"account_id": account_id, "role": role, "assigned_by": caller}

    async def remove(
        self,
        caller: str,
        account_id: str,
        request: Request | None = None,
    ) -> dict[str, Any]:
        require_fields({"account_id": account_id}, ("account_id",))
        require_accounts({"account_id": account_id}, ("account_id",))

        contract = self.contract(caller)
        saga = self.saga("role.remove", caller, resource=account_id, request=request)
        await saga.ledger(lambda: contract.call("remove_role", {"account_id": account_id}))
        saga.complete()

        log.info(f"{caller} removed role from {account_id}")
        return {"account_id": account_id, "removed_by": caller}

    async def lookup(self, account_id: str) -> dict[str, Any]:
        """Current role and permissions, with how the role was determined."""
        resolution = await self.resolver.resolve(account_id)
        role = resolution.role
        return {
            "account_id": account_id,
            "role": role.value if role else None,
            "permissions": ROLE_PERMISSIONS[role] if role else [],
            "resolution": resolution.to_dict(),
        }
