"""Certificate lifecycle: issue, status change, revocation, reads.

Issue runs the full content -> ledger -> mirror saga. Status changes and
revocations skip the content phase: the pinned metadata is immutable and
only the ledger and index state move.
"""

import logging
from datetime import date
from typing import Any

from fastapi import Request

from achievo.audit.logger import AuditLogger
from achievo.auth.guard import AuthorizationGuard
from achievo.auth.roles import Role
from achievo.clients.content import PinataClient
from achievo.clients.index import IndexStore
from achievo.clients.ledger import LedgerClient
from achievo.core.exceptions import ConflictError, NotFoundError, ValidationError
from achievo.db.models import utcnow
from achievo.orchestrators.base import (
    Orchestrator,
    require_accounts,
    require_fields,
    require_value,
)

log = logging.getLogger(__name__)

CERTIFICATE_STATUSES = ("pending", "active", "revoked")
DEFAULT_REVOCATION_REASON = "No reason provided"


class CertificateOrchestrator(Orchestrator):
    """Sequences certificate operations across the three stores."""

    CHANGE_METHODS = ("issue_certificate", "update_certificate_status", "revoke_certificate")

    def __init__(
        self,
        ledger: LedgerClient,
        content: PinataClient,
        index: IndexStore,
        guard: AuthorizationGuard,
        audit: AuditLogger,
    ):
        super().__init__(ledger, index, audit)
        self.content = content
        self.guard = guard

    async def issue(
        self,
        caller: str,
        learner_wallet: str,
        learner_name: str,
        course_name: str,
        organization_id: str,
        course_id: str | None = None,
        skills: list[str] | None = None,
        grade: str | None = None,
        request: Request | None = None,
    ) -> dict[str, Any]:
        """Issue a certificate.

        The organization signs the ledger call. Issuing on behalf of another
        organization needs admin rights.

        Returns:
            certificate_id, blockchain_id, ipfs_cid, and the stored record
        """
        fields = {
            "learner_wallet": learner_wallet,
            "learner_name": learner_name,
            "course_name": course_name,
            "organization_id": organization_id,
        }
        require_fields(fields, fields.keys())
        require_accounts(fields, ("learner_wallet", "organization_id"))
        if skills is not None and not all(isinstance(s, str) for s in skills):
            raise ValidationError(
                "Skills must be a list of strings",
                fields=[{"field": "skills", "code": "invalid"}],
            )

        if organization_id != caller:
            await self.guard.authorize(caller, Role.ADMIN, "certificate.issue", request=request)

        contract = self.contract(organization_id)
        metadata = {
            "learner_name": learner_name,
            "learner_wallet": learner_wallet,
            "course_id": course_id,
            "course_name": course_name,
            "organization_id": organization_id,
            "skills": skills or [],
            "grade": grade,
            "issue_date": date.today().isoformat(),
            "status": "Completed",
        }

        saga = self.saga("certificate.issue", caller, request=request)
        cid = await saga.content(
            lambda: self.content.pin_json(metadata, name=f"certificate-{learner_wallet}-{course_name}")
        )

        async def issue_on_ledger():
            value = await contract.call(
                "issue_certificate",
                {
                    "learner_id": learner_wallet,
                    "course_id": course_id,
                    "course_name": course_name,
                    "metadata_cid": cid,
                    "skills": skills or [],
                    "grade": grade,
                },
            )
            return require_value(value, "issue_certificate")

        blockchain_id = await saga.ledger(issue_on_ledger, ref="blockchain_id")

        record = {
            "learner_wallet": learner_wallet,
            "learner_name": learner_name,
            "course_id": course_id,
            "course_name": course_name,
            "organization_id": organization_id,
            "skills": skills or [],
            "grade": grade,
            "blockchain_id": blockchain_id,
            "metadata_cid": cid,
            "ipfs_url": self.content.gateway_url(cid),
            "status": "active",
            "created_at": utcnow(),
        }
        certificate = saga.mirror(lambda: self.store("certificates", record))
        certificate_id = certificate["id"]
        saga.complete(resource=certificate_id, metadata_cid=cid)

        log.info(f"Issued certificate {certificate_id} (ledger id {blockchain_id}) to {learner_wallet}")
        return {
            "certificate_id": certificate_id,
            "blockchain_id": blockchain_id,
            "ipfs_cid": cid,
            "certificate": certificate,
        }

    def get(self, certificate_id: str) -> dict[str, Any]:
        record = self.index.get("certificates", certificate_id)
        if record is None:
            raise NotFoundError(f"Certificate {certificate_id} not found")
        return record

    def list_for_learner(self, learner_wallet: str) -> list[dict[str, Any]]:
        return self.index.query(
            "certificates", "learner_wallet", learner_wallet, order_by="created_at", descending=True
        )

    async def _authorize_change(
        self, caller: str, record: dict[str, Any], action: str, request: Request | None
    ) -> None:
        # The issuing organization may always change its own certificates
        if record["organization_id"] == caller:
            return
        await self.guard.authorize(caller, Role.MODERATOR, action, request=request)

    async def update_status(
        self,
        caller: str,
        certificate_id: str,
        status: str,
        request: Request | None = None,
    ) -> dict[str, Any]:
        """Move a certificate to ``status``. Revoked certificates are final."""
        if status not in CERTIFICATE_STATUSES:
            raise ValidationError(
                f"Invalid status {status!r}; expected one of {', '.join(CERTIFICATE_STATUSES)}",
                fields=[{"field": "status", "code": "invalid_status"}],
            )

        record = self.get(certificate_id)
        await self._authorize_change(caller, record, "certificate.update_status", request)

        if record["status"] == "revoked":
            raise ConflictError(
                f"Certificate {certificate_id} is revoked", code="certificate_revoked"
            )

        if status == "revoked":
            return await self._revoke(caller, record, DEFAULT_REVOCATION_REASON, request)

        contract = self.contract(caller)
        saga = self.saga("certificate.update_status", caller, resource=certificate_id, request=request)
        saga.ledger_ref["blockchain_id"] = record["blockchain_id"]
        await saga.ledger(
            lambda: contract.call(
                "update_certificate_status",
                {"certificate_id": record["blockchain_id"], "status": status},
            )
        )
        updated = saga.mirror(
            lambda: self.index.update(
                "certificates", certificate_id, {"status": status, "updated_at": utcnow()}
            )
        )
        saga.complete(previous_status=record["status"], new_status=status)
        return {"certificate_id": certificate_id, "new_status": status, "certificate": updated}

    async def revoke(
        self,
        caller: str,
        certificate_id: str,
        reason: str | None = None,
        request: Request | None = None,
    ) -> dict[str, Any]:
        """Revoke a certificate.

        Revoking an already revoked certificate changes nothing and makes no
        ledger call.
        """
        record = self.get(certificate_id)
        await self._authorize_change(caller, record, "certificate.revoke", request)
        return await self._revoke(caller, record, reason or DEFAULT_REVOCATION_REASON, request)

    async def _revoke(
        self,
        caller: str,
        record: dict[str, Any],
        reason: str,
        request: Request | None,
    ) -> dict[str, Any]:
        certificate_id = record["id"]
        if record["status"] == "revoked":
            log.info(f"Certificate {certificate_id} already revoked")
            return {"certificate_id": certificate_id, "already_revoked": True, "certificate": record}

        contract = self.contract(caller)
        saga = self.saga("certificate.revoke", caller, resource=certificate_id, request=request)
        saga.ledger_ref["blockchain_id"] = record["blockchain_id"]
        await saga.ledger(
            lambda: contract.call(
                "revoke_certificate",
                {"certificate_id": record["blockchain_id"], "reason": reason},
            )
        )
        now = utcnow()
        updated = saga.mirror(
            lambda: self.index.update(
                "certificates",
                certificate_id,
                {
                    "status": "revoked",
                    "revoked_at": now,
                    "revocation_reason": reason,
                    "updated_at": now,
                },
            )
        )
        saga.complete(reason=reason)
        return {"certificate_id": certificate_id, "already_revoked": False, "certificate": updated}
