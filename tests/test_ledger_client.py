"""Tests for the NEAR ledger client."""
import httpx
import pytest

from achievo.clients.ledger import LedgerClient, is_valid_account_id, near_to_yocto
from achievo.core.exceptions import LedgerCallError, LedgerUnavailableError, ValidationError
from tests.conftest import CONTRACT, RPC_URL, SIGNER_URL, Panic


class TestAccountIds:
    @pytest.mark.parametrize("account_id", ["alice.test", "org1.test", "bernieio.testnet", "a-b_c.near"])
    def test_valid(self, account_id):
        assert is_valid_account_id(account_id)

    @pytest.mark.parametrize("account_id", ["", "a", "Alice.test", "alice..test", "-alice.test", "alice test"])
    def test_invalid(self, account_id):
        assert not is_valid_account_id(account_id)

    def test_resolve_account_rejects_bad_id(self, ledger):
        with pytest.raises(ValidationError) as exc:
            ledger.resolve_account("Not A Wallet")
        assert exc.value.fields == [{"field": "account_id", "code": "invalid_account_id"}]

    def test_resolve_account_carries_network(self, ledger):
        account = ledger.resolve_account("alice.test")
        assert account.account_id == "alice.test"
        assert account.network_id == "testnet"


class TestNearToYocto:
    def test_whole_amount(self):
        assert near_to_yocto("1") == "1" + "0" * 24

    def test_fractional_amount(self):
        assert near_to_yocto("0.5") == "5" + "0" * 23

    @pytest.mark.parametrize("amount", ["0", "-1", "abc", "NaN", "sNaN", "Infinity", "-Infinity"])
    def test_rejects_bad_amounts(self, amount):
        with pytest.raises(ValidationError):
            near_to_yocto(amount)


class TestViewCalls:
    @pytest.mark.asyncio
    async def test_decodes_json_result(self, ledger, near):
        near.views["nft_token"] = {"token_id": "42", "owner_id": "bob.test"}
        result = await ledger.call_view(CONTRACT, "nft_token", {"token_id": "42"})
        assert result == {"token_id": "42", "owner_id": "bob.test"}
        assert near.viewed("nft_token") == [{"token_id": "42"}]

    @pytest.mark.asyncio
    async def test_empty_result_is_none(self, ledger, near):
        assert await ledger.call_view(CONTRACT, "nft_token", {"token_id": "1"}) is None

    @pytest.mark.asyncio
    async def test_contract_panic_is_call_error_not_unavailable(self, ledger, near):
        near.views["nft_token"] = Panic()
        with pytest.raises(LedgerCallError) as exc:
            await ledger.call_view(CONTRACT, "nft_token", {"token_id": "1"})
        assert not isinstance(exc.value, LedgerUnavailableError)

    @pytest.mark.asyncio
    async def test_unreachable_is_unavailable(self, ledger, near):
        near.unreachable = True
        with pytest.raises(LedgerUnavailableError):
            await ledger.call_view(CONTRACT, "nft_token", {"token_id": "1"})

    @pytest.mark.asyncio
    async def test_http_error_is_unavailable(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="busy"))
        client = LedgerClient(RPC_URL, SIGNER_URL, CONTRACT, transport=transport)
        try:
            with pytest.raises(LedgerUnavailableError):
                await client.call_view(CONTRACT, "nft_metadata")
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_legacy_error_field_is_call_error(self):
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": "achievo", "result": {"error": "wasm execution failed", "logs": []}})

        client = LedgerClient(RPC_URL, SIGNER_URL, CONTRACT, transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(LedgerCallError):
                await client.call_view(CONTRACT, "nft_metadata")
        finally:
            await client.aclose()


class TestChangeCalls:
    @pytest.mark.asyncio
    async def test_returns_value_and_hash(self, ledger, near):
        near.changes["issue_certificate"] = 7
        account = ledger.resolve_account("org1.test")
        outcome = await ledger.call_change(account, CONTRACT, "issue_certificate", {"learner_id": "alice.test"})
        assert outcome.value == 7
        assert outcome.transaction_hash == "tx-1"

        call = near.calls("issue_certificate")[0]
        assert call["signer_id"] == "org1.test"
        assert call["receiver_id"] == CONTRACT
        assert call["args"] == {"learner_id": "alice.test"}
        assert call["deposit"] == "0"
        assert call["gas"] == "30000000000000"

    @pytest.mark.asyncio
    async def test_failure_status_is_call_error(self, ledger, near):
        near.changes["grant_reward"] = Panic("not a moderator")
        account = ledger.resolve_account("bob.test")
        with pytest.raises(LedgerCallError) as exc:
            await ledger.call_change(account, CONTRACT, "grant_reward", {})
        assert exc.value.method == "grant_reward"
        assert exc.value.context["transaction_hash"] == "tx-1"

    @pytest.mark.asyncio
    async def test_signer_unreachable_is_unavailable(self, ledger, near):
        near.unreachable = True
        account = ledger.resolve_account("bob.test")
        with pytest.raises(LedgerUnavailableError):
            await ledger.call_change(account, CONTRACT, "grant_reward", {})


class TestContractHandle:
    @pytest.mark.asyncio
    async def test_unbound_method_makes_no_request(self, ledger, near):
        handle = ledger.bind_contract(
            ledger.resolve_account("org1.test"), CONTRACT, view_methods=["nft_token"], change_methods=[]
        )
        with pytest.raises(LedgerCallError):
            await handle.call("issue_certificate", {})
        with pytest.raises(LedgerCallError):
            await handle.view("get_user_role", {})
        assert near.change_calls == []
        assert near.view_calls == []

    @pytest.mark.asyncio
    async def test_call_passes_deposit_and_gas(self, ledger, near):
        handle = ledger.bind_contract(
            ledger.resolve_account("org1.test"), change_methods=["nft_transfer"]
        )
        await handle.call("nft_transfer", {"token_id": "1"}, deposit="1", gas="100")
        call = near.calls("nft_transfer")[0]
        assert call["deposit"] == "1"
        assert call["gas"] == "100"
