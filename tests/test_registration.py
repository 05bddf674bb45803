"""Tests for registration and organization verification."""
import pytest
from httpx import AsyncClient

from achievo.core.exceptions import ValidationError
from tests.conftest import Panic, add_organization, wallet


class TestRegisterIndividual:
    @pytest.mark.asyncio
    async def test_register(self, client: AsyncClient, near, index):
        response = await client.post(
            "/api/auth/register-individual",
            json={"name": "Alice", "dob": "2000-01-01", "email": "Alice@Example.com"},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 201
        stored = index.get("users", response.json()["user_id"])
        assert stored["email"] == "alice@example.com"
        assert stored["wallet_address"] == "alice.test"
        assert near.calls("register_individual")[0]["signer_id"] == "alice.test"

    @pytest.mark.asyncio
    async def test_duplicate_email_any_case(self, client: AsyncClient, near):
        body = {"name": "Alice", "dob": "2000-01-01", "email": "alice@example.com"}
        first = await client.post("/api/auth/register-individual", json=body, headers=wallet("alice.test"))
        assert first.status_code == 201

        body["email"] = "ALICE@example.com"
        second = await client.post("/api/auth/register-individual", json=body, headers=wallet("alice2.test"))
        assert second.status_code == 409
        assert second.json()["error"] == "user_exists"
        assert len(near.calls("register_individual")) == 1

    @pytest.mark.parametrize("email", ["@", "alice@", "@@@", "alice.example.com", "alice@@example.com"])
    @pytest.mark.asyncio
    async def test_malformed_email_rejected(self, client: AsyncClient, near, index, email):
        response = await client.post(
            "/api/auth/register-individual",
            json={"name": "Alice", "dob": "2000-01-01", "email": email},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 400
        assert [f["field"] for f in response.json()["fields"]] == ["email"]
        assert near.change_calls == []
        assert index.list_all("users") == []

    @pytest.mark.asyncio
    async def test_orchestrator_rejects_malformed_email(self, services, near):
        with pytest.raises(ValidationError) as exc:
            await services.registration.register_individual("alice.test", "Alice", "2000-01-01", "alice@")
        assert exc.value.fields == [{"field": "email", "code": "invalid_email"}]
        assert near.change_calls == []

    @pytest.mark.asyncio
    async def test_response_matches_stored_document(self, client: AsyncClient, index):
        response = await client.post(
            "/api/auth/register-individual",
            json={"name": "Alice", "dob": "2000-01-01", "email": "alice@example.com"},
            headers=wallet("alice.test"),
        )
        data = response.json()
        assert data["data"] == index.get("users", data["user_id"])

    @pytest.mark.asyncio
    async def test_ledger_failure_leaves_no_user(self, client: AsyncClient, near, index):
        near.changes["register_individual"] = Panic("Already registered")
        response = await client.post(
            "/api/auth/register-individual",
            json={"name": "Alice", "dob": "2000-01-01", "email": "alice@example.com"},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 400
        assert index.list_all("users") == []


class TestRegisterOrganization:
    @pytest.mark.asyncio
    async def test_registered_pending(self, client: AsyncClient, near, index):
        response = await client.post(
            "/api/auth/register-organization",
            json={"name": "Acme Academy", "contact_info": "hello@acme.test"},
            headers=wallet("acme.test"),
        )
        assert response.status_code == 201
        stored = index.get("organizations", response.json()["organization_id"])
        assert stored["status"] == "pending"
        assert stored["verified"] is False

    @pytest.mark.asyncio
    async def test_duplicate_wallet(self, client: AsyncClient, near, index):
        add_organization(index, "acme.test")
        response = await client.post(
            "/api/auth/register-organization",
            json={"name": "Acme Again", "contact_info": "x"},
            headers=wallet("acme.test"),
        )
        assert response.status_code == 409
        assert response.json()["error"] == "organization_exists"
        assert near.change_calls == []


class TestVerifyOrganization:
    @pytest.mark.asyncio
    async def test_verify(self, client: AsyncClient, near, index):
        near.roles["verifier.test"] = "organization_verifier"
        org_id = add_organization(index, "acme.test")

        response = await client.post(
            "/api/auth/verify-organization",
            json={"organization_id": org_id, "status": "verified"},
            headers=wallet("verifier.test"),
        )
        assert response.status_code == 200
        assert response.json()["changed"] is True
        assert near.calls("verify_organization")[0]["args"] == {"organization_id": "acme.test"}

        stored = index.get("organizations", org_id)
        assert stored["status"] == "verified"
        assert stored["verified"] is True
        assert stored["verified_at"] is not None

    @pytest.mark.asyncio
    async def test_reject_is_index_only(self, client: AsyncClient, near, index):
        near.roles["verifier.test"] = "organization_verifier"
        org_id = add_organization(index, "acme.test")

        response = await client.post(
            "/api/auth/verify-organization",
            json={"organization_id": org_id, "status": "rejected"},
            headers=wallet("verifier.test"),
        )
        assert response.status_code == 200
        assert near.change_calls == []
        stored = index.get("organizations", org_id)
        assert stored["status"] == "rejected"
        assert stored["verified"] is False

    @pytest.mark.asyncio
    async def test_reverify_is_noop(self, client: AsyncClient, near, index):
        near.roles["verifier.test"] = "organization_verifier"
        org_id = add_organization(index, "acme.test", status="verified")

        response = await client.post(
            "/api/auth/verify-organization",
            json={"organization_id": org_id},
            headers=wallet("verifier.test"),
        )
        assert response.status_code == 200
        assert response.json()["changed"] is False
        assert near.change_calls == []

    @pytest.mark.asyncio
    async def test_cannot_reject_verified(self, client: AsyncClient, near, index):
        near.roles["verifier.test"] = "organization_verifier"
        org_id = add_organization(index, "acme.test", status="verified")

        response = await client.post(
            "/api/auth/verify-organization",
            json={"organization_id": org_id, "status": "rejected"},
            headers=wallet("verifier.test"),
        )
        assert response.status_code == 409
        assert response.json()["error"] == "organization_verified"
        assert index.get("organizations", org_id)["verified"] is True

    @pytest.mark.asyncio
    async def test_requires_verifier_role(self, client: AsyncClient, near, index):
        org_id = add_organization(index, "acme.test")
        response = await client.post(
            "/api/auth/verify-organization",
            json={"organization_id": org_id},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 403
        assert index.get("organizations", org_id)["status"] == "pending"

    @pytest.mark.asyncio
    async def test_unknown_organization(self, client: AsyncClient, near):
        near.roles["verifier.test"] = "organization_verifier"
        response = await client.post(
            "/api/auth/verify-organization",
            json={"organization_id": "missing"},
            headers=wallet("verifier.test"),
        )
        assert response.status_code == 404
