"""NFT certificates: mint, transfer, and ledger-backed reads."""

import logging
from typing import Any

from fastapi import Request

from achievo.clients.ledger import ONE_YOCTO
from achievo.core.exceptions import AuthorizationError, LedgerCallError, NotFoundError, ValidationError
from achievo.db.models import utcnow
from achievo.orchestrators.base import (
    Orchestrator,
    require_accounts,
    require_fields,
    require_value,
    without_none,
)

log = logging.getLogger(__name__)

DEFAULT_TITLE = "Achievement Certificate"
DEFAULT_DESCRIPTION = "Digital certificate of achievement"


def build_token_metadata(metadata: dict[str, Any], certificate_id: str | None = None) -> dict[str, Any]:
    """NEP-177 token metadata with the service's defaults filled in."""
    return without_none(
        {
            "title": metadata.get("title") or DEFAULT_TITLE,
            "description": metadata.get("description") or DEFAULT_DESCRIPTION,
            "media": metadata.get("media"),
            "media_hash": metadata.get("media_hash"),
            "copies": metadata.get("copies") or 1,
            "extra": f"certificate_id:{certificate_id}" if certificate_id else None,
            "reference": metadata.get("reference"),
            "reference_hash": metadata.get("reference_hash"),
        }
    )


class NFTOrchestrator(Orchestrator):
    """Mint and transfer NFT certificates; read token state from the ledger."""

    VIEW_METHODS = (
        "nft_token",
        "nft_tokens_for_owner",
        "nft_supply_for_owner",
        "nft_metadata",
        "nft_total_supply",
    )
    CHANGE_METHODS = ("mint_nft_certificate", "nft_transfer")

    def _require_verified_organization(self, caller: str, request: Request | None) -> None:
        # Index pre-check only; the contract enforces minting rights itself
        organizations = self.index.query("organizations", "wallet_address", caller)
        if not any(org["verified"] for org in organizations):
            self.audit.log_denied(
                action="nft.mint",
                principal_id=caller,
                reason="organization not verified",
                request=request,
            )
            raise AuthorizationError(
                "Only verified organizations can mint NFT certificates",
                code="organization_not_verified",
            )

    async def mint(
        self,
        caller: str,
        receiver_id: str,
        metadata: dict[str, Any],
        certificate_id: str | None = None,
        request: Request | None = None,
    ) -> dict[str, Any]:
        require_fields({"receiver_id": receiver_id, "metadata": metadata}, ("receiver_id", "metadata"))
        require_accounts({"receiver_id": receiver_id}, ("receiver_id",))
        if not isinstance(metadata, dict):
            raise ValidationError(
                "Metadata must be an object", fields=[{"field": "metadata", "code": "invalid"}]
            )

        self._require_verified_organization(caller, request)

        token_metadata = build_token_metadata(metadata, certificate_id)
        contract = self.contract(caller)
        saga = self.saga("nft.mint", caller, request=request)

        async def mint_on_ledger():
            value = await contract.call(
                "mint_nft_certificate",
                without_none(
                    {
                        "receiver_id": receiver_id,
                        "metadata": token_metadata,
                        "certificate_id": certificate_id,
                    }
                ),
            )
            return require_value(value, "mint_nft_certificate")

        token_id = await saga.ledger(mint_on_ledger, ref="token_id")

        record = {
            "token_id": str(token_id),
            "owner_id": receiver_id,
            "minter_org": caller,
            "metadata": token_metadata,
            "certificate_id": certificate_id,
            "status": "active",
            "minted_at": utcnow(),
        }
        nft = saga.mirror(lambda: self.store("nft_certificates", record))
        nft_id = nft["id"]
        saga.complete(resource=nft_id, receiver_id=receiver_id)

        return {"token_id": token_id, "nft_id": nft_id, "nft": nft}

    async def transfer(
        self,
        caller: str,
        receiver_id: str,
        token_id: str,
        memo: str | None = None,
        request: Request | None = None,
    ) -> dict[str, Any]:
        """Transfer a token; the ledger enforces ownership.

        When the index has no record for the token the transfer is still
        reported as successful, with ``index_updated`` false and a
        divergence event in the audit log. No record is created.
        """
        require_fields({"receiver_id": receiver_id, "token_id": token_id}, ("receiver_id", "token_id"))
        require_accounts({"receiver_id": receiver_id}, ("receiver_id",))

        contract = self.contract(caller)
        saga = self.saga("nft.transfer", caller, resource=token_id, request=request)
        saga.ledger_ref["token_id"] = token_id
        await saga.ledger(
            lambda: contract.call(
                "nft_transfer",
                without_none({"receiver_id": receiver_id, "token_id": token_id, "memo": memo}),
                deposit=ONE_YOCTO,
            )
        )

        def update_owner() -> bool:
            matches = self.index.query("nft_certificates", "token_id", token_id)
            if not matches:
                return False
            self.index.update(
                "nft_certificates",
                matches[0]["id"],
                {"owner_id": receiver_id, "transferred_at": utcnow(), "transfer_memo": memo},
            )
            return True

        index_updated = saga.mirror(update_owner)
        if not index_updated:
            saga.diverged("no index record for token", new_owner=receiver_id)
        saga.complete(new_owner=receiver_id, index_updated=index_updated)

        return {"token_id": token_id, "new_owner": receiver_id, "index_updated": index_updated}

    async def tokens_for_owner(self, owner_id: str, from_index: int = 0, limit: int = 50) -> dict[str, Any]:
        """Tokens held by ``owner_id``; empty on ledger failure."""
        reader = self.reader()
        nfts: list[Any] = []
        total_supply: Any = 0
        try:
            nfts = await reader.view(
                "nft_tokens_for_owner",
                {"account_id": owner_id, "from_index": from_index, "limit": limit},
            ) or []
            total_supply = await reader.view("nft_supply_for_owner", {"account_id": owner_id}) or 0
        except LedgerCallError as e:
            log.error(f"Token listing for {owner_id} failed: {e}")

        return {
            "owner_id": owner_id,
            "nfts": nfts,
            "total_supply": total_supply,
            "pagination": {"from_index": from_index, "limit": limit},
        }

    async def token(self, token_id: str) -> dict[str, Any]:
        try:
            nft = await self.reader().view("nft_token", {"token_id": token_id})
        except LedgerCallError as e:
            log.error(f"nft_token {token_id} failed: {e}")
            raise NotFoundError(f"NFT token {token_id} not found") from e
        if not nft:
            raise NotFoundError(f"NFT token {token_id} not found")
        return nft

    async def contract_metadata(self) -> dict[str, Any]:
        """Contract-level metadata and total supply; empty on ledger failure."""
        reader = self.reader()
        metadata: Any = {}
        total_supply: Any = 0
        try:
            metadata = await reader.view("nft_metadata") or {}
            total_supply = await reader.view("nft_total_supply") or 0
        except LedgerCallError as e:
            log.error(f"NFT contract metadata read failed: {e}")
        return {"metadata": metadata, "total_supply": total_supply}
