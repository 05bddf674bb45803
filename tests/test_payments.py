"""Tests for payment processing in both modes."""
import pytest
from httpx import AsyncClient

from achievo.orchestrators.payment import PaymentOrchestrator
from tests.conftest import Panic, wallet


class TestLedgerMode:
    @pytest.mark.asyncio
    async def test_amount_sent_as_deposit(self, client: AsyncClient, near, index):
        response = await client.post(
            "/api/payments/process",
            json={"recipient_id": "bob.test", "amount": "1.5", "purpose": "tuition"},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["mode"] == "ledger"

        call = near.calls("process_payment")[0]
        assert call["signer_id"] == "alice.test"
        assert call["deposit"] == "1500000000000000000000000"
        assert call["gas"] == "300000000000000"
        assert call["args"] == {"recipient_id": "bob.test", "amount": "1500000000000000000000000"}

        stored = index.get("transactions", data["transaction_id"])
        assert stored["status"] == "completed"
        assert stored["blockchain_processed"] is True
        assert stored["transaction_hash"] == "tx-1"
        assert stored["amount"] == "1.5"

    @pytest.mark.asyncio
    async def test_ledger_failure_records_nothing(self, client: AsyncClient, near, index):
        near.changes["process_payment"] = Panic("Not enough balance")
        response = await client.post(
            "/api/payments/process",
            json={"recipient_id": "bob.test", "amount": "1000"},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 400
        assert index.list_all("transactions") == []

    @pytest.mark.parametrize(
        "amount,code",
        [
            ("abc", "invalid"),
            ("0", "not_positive"),
            ("-2", "not_positive"),
            ("NaN", "invalid"),
            ("sNaN", "invalid"),
            ("Infinity", "invalid"),
            ("0.0000000000000000000000001", "too_precise"),
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_amount(self, client: AsyncClient, near, amount, code):
        response = await client.post(
            "/api/payments/process",
            json={"recipient_id": "bob.test", "amount": amount},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 400
        assert response.json()["fields"] == [{"field": "amount", "code": code}]
        assert near.change_calls == []


class TestLogOnlyMode:
    @pytest.mark.asyncio
    async def test_claim_recorded_unverified(self, client: AsyncClient, near, index, ledger, services):
        services.payments = PaymentOrchestrator(ledger, index, services.audit, mode="log_only")

        response = await client.post(
            "/api/payments/process",
            json={"recipient_id": "bob.test", "amount": "2", "transaction_hash": "claimed-hash"},
            headers=wallet("alice.test"),
        )
        assert response.status_code == 201
        assert response.json()["mode"] == "log_only"
        assert near.change_calls == []

        stored = index.get("transactions", response.json()["transaction_id"])
        assert stored["status"] == "unverified"
        assert stored["blockchain_processed"] is False
        assert stored["transaction_hash"] == "claimed-hash"
        assert stored["purpose"] == "Payment"

    def test_unknown_mode_falls_back_to_ledger(self, ledger, index, audit):
        assert PaymentOrchestrator(ledger, index, audit, mode="trust_me").mode == "ledger"
