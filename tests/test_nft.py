"""Tests for NFT mint, transfer and reads."""
import pytest
from httpx import AsyncClient

from tests.conftest import Panic, add_organization, wallet


def mint_body(**overrides) -> dict:
    body = {
        "receiver_id": "alice.test",
        "metadata": {"title": "Python Mastery", "media": "https://example.com/badge.png"},
        "certificate_id": "cert-1",
    }
    body.update(overrides)
    return body


class TestMint:
    @pytest.mark.asyncio
    async def test_unverified_organization_cannot_mint(self, client: AsyncClient, near, index, services):
        add_organization(index, "org1.test", status="pending")
        response = await client.post("/api/nft/mint", json=mint_body(), headers=wallet("org1.test"))

        assert response.status_code == 403
        assert response.json()["error"] == "organization_not_verified"
        assert near.change_calls == []
        assert services.audit.get_recent_events(status_filter="denied")[0]["action"] == "nft.mint"

    @pytest.mark.asyncio
    async def test_unknown_caller_cannot_mint(self, client: AsyncClient, near):
        response = await client.post("/api/nft/mint", json=mint_body(), headers=wallet("nobody.test"))
        assert response.status_code == 403
        assert near.change_calls == []

    @pytest.mark.asyncio
    async def test_verified_organization_mints(self, client: AsyncClient, near, index):
        add_organization(index, "org1.test", status="verified")
        near.changes["mint_nft_certificate"] = 42

        response = await client.post("/api/nft/mint", json=mint_body(), headers=wallet("org1.test"))
        assert response.status_code == 201
        data = response.json()
        assert data["token_id"] == 42

        call = near.calls("mint_nft_certificate")[0]
        assert call["signer_id"] == "org1.test"
        assert call["args"]["receiver_id"] == "alice.test"
        assert call["args"]["metadata"] == {
            "title": "Python Mastery",
            "description": "Digital certificate of achievement",
            "media": "https://example.com/badge.png",
            "copies": 1,
            "extra": "certificate_id:cert-1",
        }

        stored = index.get("nft_certificates", data["nft_id"])
        assert stored["token_id"] == "42"
        assert stored["owner_id"] == "alice.test"
        assert stored["minter_org"] == "org1.test"

    @pytest.mark.asyncio
    async def test_mint_without_token_id_is_ledger_failure(self, client: AsyncClient, near, index):
        add_organization(index, "org1.test", status="verified")
        near.changes["mint_nft_certificate"] = None

        response = await client.post("/api/nft/mint", json=mint_body(), headers=wallet("org1.test"))
        assert response.status_code == 400
        assert response.json()["error"] == "blockchain_failure"
        assert index.list_all("nft_certificates") == []

    @pytest.mark.asyncio
    async def test_invalid_receiver(self, client: AsyncClient, near, index):
        add_organization(index, "org1.test", status="verified")
        response = await client.post(
            "/api/nft/mint", json=mint_body(receiver_id="Not An Account"), headers=wallet("org1.test")
        )
        assert response.status_code == 400
        assert response.json()["fields"] == [{"field": "receiver_id", "code": "invalid_account_id"}]
        assert near.change_calls == []


class TestTransfer:
    @pytest.mark.asyncio
    async def test_transfer_updates_owner(self, client: AsyncClient, near, index):
        nft_id = index.add(
            "nft_certificates",
            {"token_id": "42", "owner_id": "alice.test", "minter_org": "org1.test", "metadata": {}},
        )

        response = await client.post(
            "/api/nft/transfer",
            json={"receiver_id": "bob.test", "token_id": "42", "memo": "gift"},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 200
        assert response.json()["index_updated"] is True

        call = near.calls("nft_transfer")[0]
        assert call["deposit"] == "1"
        assert call["signer_id"] == "alice.test"

        stored = index.get("nft_certificates", nft_id)
        assert stored["owner_id"] == "bob.test"
        assert stored["transfer_memo"] == "gift"
        assert stored["transferred_at"] is not None

    @pytest.mark.asyncio
    async def test_transfer_without_index_record(self, client: AsyncClient, near, index, services):
        response = await client.post(
            "/api/nft/transfer",
            json={"receiver_id": "bob.test", "token_id": "99"},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 200
        assert response.json() == {
            "message": "NFT Certificate transferred successfully",
            "token_id": "99",
            "new_owner": "bob.test",
            "index_updated": False,
        }
        assert index.list_all("nft_certificates") == []

        divergences = services.audit.get_recent_events(status_filter="divergence")
        assert divergences[0]["action"] == "saga.divergence.nft.transfer"
        assert divergences[0]["details"]["token_id"] == "99"

    @pytest.mark.asyncio
    async def test_ledger_refusal_leaves_owner(self, client: AsyncClient, near, index):
        near.changes["nft_transfer"] = Panic("Sender not approved")
        nft_id = index.add(
            "nft_certificates",
            {"token_id": "42", "owner_id": "alice.test", "minter_org": "org1.test", "metadata": {}},
        )
        response = await client.post(
            "/api/nft/transfer",
            json={"receiver_id": "bob.test", "token_id": "42"},
            headers=wallet("mallory.test"),
        )
        assert response.status_code == 400
        assert index.get("nft_certificates", nft_id)["owner_id"] == "alice.test"


class TestReads:
    @pytest.mark.asyncio
    async def test_owner_tokens(self, client: AsyncClient, near):
        near.views["nft_tokens_for_owner"] = [{"token_id": "42", "owner_id": "alice.test"}]
        near.views["nft_supply_for_owner"] = "1"

        response = await client.get("/api/nft/owner/alice.test", params={"from_index": 0, "limit": 10})
        assert response.status_code == 200
        data = response.json()
        assert data["nfts"][0]["token_id"] == "42"
        assert data["total_supply"] == "1"
        assert data["pagination"] == {"from_index": 0, "limit": 10}
        assert near.viewed("nft_tokens_for_owner") == [
            {"account_id": "alice.test", "from_index": 0, "limit": 10}
        ]

    @pytest.mark.asyncio
    async def test_owner_tokens_degrade_on_ledger_failure(self, client: AsyncClient, near):
        near.views["nft_tokens_for_owner"] = Panic()
        response = await client.get("/api/nft/owner/alice.test")
        assert response.status_code == 200
        assert response.json()["nfts"] == []
        assert response.json()["total_supply"] == 0

    @pytest.mark.asyncio
    async def test_token(self, client: AsyncClient, near):
        near.views["nft_token"] = lambda args: {"token_id": args["token_id"], "owner_id": "alice.test"}
        response = await client.get("/api/nft/token/42")
        assert response.status_code == 200
        assert response.json()["nft"]["owner_id"] == "alice.test"

    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient, near):
        response = await client.get("/api/nft/token/404")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_contract_metadata(self, client: AsyncClient, near):
        near.views["nft_metadata"] = {"spec": "nft-1.0.0", "name": "Achievo Certificates", "symbol": "ACHV"}
        near.views["nft_total_supply"] = "12"
        response = await client.get("/api/nft/metadata")
        assert response.status_code == 200
        assert response.json()["metadata"]["symbol"] == "ACHV"
        assert response.json()["total_supply"] == "12"
