"""Registration of individuals and organizations, and organization verification."""

import logging
from typing import Any

from fastapi import Request
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from achievo.core.exceptions import ConflictError, NotFoundError, ValidationError
from achievo.db.models import utcnow, verification_fields
from achievo.orchestrators.base import Orchestrator, require_fields

log = logging.getLogger(__name__)

VERIFICATION_DECISIONS = ("verified", "rejected")

_email_adapter = TypeAdapter(EmailStr)


class RegistrationOrchestrator(Orchestrator):
    CHANGE_METHODS = ("register_individual", "register_organization", "verify_organization")

    async def register_individual(
        self,
        caller: str,
        name: str,
        dob: str,
        email: str,
        request: Request | None = None,
    ) -> dict[str, Any]:
        fields = {"name": name, "dob": dob, "email": email}
        require_fields(fields, fields.keys())
        try:
            email = _email_adapter.validate_python(email.strip())
        except PydanticValidationError:
            raise ValidationError(
                "Invalid email", fields=[{"field": "email", "code": "invalid_email"}]
            ) from None

        email = email.lower()
        # Pre-write check only; two concurrent registrations can still both pass
        if self.index.query("users", "email", email):
            raise ConflictError("User already exists", code="user_exists")

        contract = self.contract(caller)
        saga = self.saga("registration.individual", caller, request=request)
        await saga.ledger(
            lambda: contract.call("register_individual", {"name": name, "dob": dob, "email": email})
        )

        record = {
            "name": name,
            "dob": dob,
            "email": email,
            "wallet_address": caller,
            "type": "individual",
            "status": "active",
            "created_at": utcnow(),
        }
        user = saga.mirror(lambda: self.store("users", record))
        user_id = user["id"]
        saga.complete(resource=user_id)
        return {"user_id": user_id, "user": user}

    async def register_organization(
        self,
        caller: str,
        name: str,
        contact_info: str,
        request: Request | None = None,
    ) -> dict[str, Any]:
        fields = {"name": name, "contact_info": contact_info}
        require_fields(fields, fields.keys())

        if self.index.query("organizations", "wallet_address", caller):
            raise ConflictError("Organization already exists", code="organization_exists")

        contract = self.contract(caller)
        saga = self.saga("registration.organization", caller, request=request)
        await saga.ledger(
            lambda: contract.call("register_organization", {"name": name, "contact_info": contact_info})
        )

        record = {
            "name": name,
            "contact_info": contact_info,
            "wallet_address": caller,
            "type": "organization",
            "created_at": utcnow(),
            **verification_fields("pending"),
        }
        organization = saga.mirror(lambda: self.store("organizations", record))
        organization_id = organization["id"]
        saga.complete(resource=organization_id)
        return {"organization_id": organization_id, "organization": organization}

    async def verify_organization(
        self,
        caller: str,
        organization_id: str,
        status: str,
        request: Request | None = None,
    ) -> dict[str, Any]:
        """Record a verification decision.

        ``verified`` is written to the ledger first; ``rejected`` only exists
        in the index. Verifying an already verified organization is a no-op.
        """
        if status not in VERIFICATION_DECISIONS:
            raise ValidationError(
                f"Invalid status {status!r}; expected verified or rejected",
                fields=[{"field": "status", "code": "invalid_status"}],
            )

        organization = self.index.get("organizations", organization_id)
        if organization is None:
            raise NotFoundError(f"Organization {organization_id} not found")

        if organization["status"] == "verified":
            if status == "verified":
                return {"organization_id": organization_id, "status": "verified", "changed": False}
            # The ledger has no way to take verification back
            raise ConflictError(
                "Organization is verified on the ledger and cannot be rejected",
                code="organization_verified",
            )

        saga = self.saga(
            f"organization.{'verify' if status == 'verified' else 'reject'}",
            caller,
            resource=organization_id,
            request=request,
        )
        if status == "verified":
            contract = self.contract(caller)
            await saga.ledger(
                lambda: contract.call(
                    "verify_organization", {"organization_id": organization["wallet_address"]}
                )
            )

        saga.mirror(
            lambda: self.index.update("organizations", organization_id, verification_fields(status))
        )
        saga.complete(wallet_address=organization["wallet_address"])
        log.info(f"Organization {organization_id} {status} by {caller}")
        return {"organization_id": organization_id, "status": status, "changed": True}

    def list_registrants(self) -> dict[str, Any]:
        users = self.index.list_all("users")
        organizations = self.index.list_all("organizations")
        return {
            "users": users,
            "organizations": organizations,
            "counts": {"total_users": len(users), "total_organizations": len(organizations)},
        }
