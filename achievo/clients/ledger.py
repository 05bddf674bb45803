"""NEAR ledger client.

View calls go straight to a NEAR JSON-RPC node (``query`` /
``call_function``). Change calls are submitted through a signing relayer
that holds function-call keys for the accounts this service acts for; the
relayer answers with the transaction's final execution outcome.

The client is constructed once at startup and shared read-only by every
request. It owns one ``httpx.AsyncClient``.
"""
import base64
import json
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

import httpx

from achievo.core.exceptions import LedgerCallError, LedgerUnavailableError, ValidationError

log = logging.getLogger(__name__)

ACCOUNT_ID_PATTERN = re.compile(r"^(([a-z\d]+[\-_])*[a-z\d]+\.)*([a-z\d]+[\-_])*[a-z\d]+$")
YOCTO_PER_NEAR = Decimal(10) ** 24
ONE_YOCTO = "1"

# RPC error causes that mean "the contract answered", not "the node is down"
CONTRACT_ERROR_CAUSES = {
    "CONTRACT_EXECUTION_ERROR",
    "UNKNOWN_ACCOUNT",
    "NO_CONTRACT_CODE",
    "INVALID_ACCOUNT",
}


def is_valid_account_id(account_id: str) -> bool:
    """Check a NEAR account id against the protocol grammar."""
    return (
        isinstance(account_id, str)
        and 2 <= len(account_id) <= 64
        and ACCOUNT_ID_PATTERN.match(account_id) is not None
    )


def near_to_yocto(amount: str | int | float) -> str:
    """Convert a NEAR amount to a yoctoNEAR integer string."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError(
            f"Invalid amount: {amount!r}",
            fields=[{"field": "amount", "code": "invalid"}],
        ) from None
    if not value.is_finite():
        raise ValidationError(
            f"Invalid amount: {amount!r}",
            fields=[{"field": "amount", "code": "invalid"}],
        )
    if value <= 0:
        raise ValidationError(
            "Amount must be positive",
            fields=[{"field": "amount", "code": "not_positive"}],
        )
    yocto = value * YOCTO_PER_NEAR
    if yocto != yocto.to_integral_value():
        raise ValidationError(
            "Amount has more precision than one yoctoNEAR",
            fields=[{"field": "amount", "code": "too_precise"}],
        )
    return str(int(yocto))


@dataclass(frozen=True)
class AccountHandle:
    """A ledger account this service can read as or sign for."""

    account_id: str
    network_id: str


@dataclass
class CallOutcome:
    """Result of a change call."""

    value: Any
    transaction_hash: Optional[str] = None


class ContractHandle:
    """A contract bound to an account with a declared method interface.

    Calling a method that was not declared is a programming error and is
    reported as a failed ledger call without touching the network.
    """

    def __init__(
        self,
        client: "LedgerClient",
        account: AccountHandle,
        contract_id: str,
        view_methods: Iterable[str] = (),
        change_methods: Iterable[str] = (),
    ):
        self._client = client
        self.account = account
        self.contract_id = contract_id
        self.view_methods = frozenset(view_methods)
        self.change_methods = frozenset(change_methods)

    async def view(self, method: str, args: dict[str, Any] | None = None) -> Any:
        if method not in self.view_methods:
            raise LedgerCallError(f"View method {method!r} not bound on {self.contract_id}", method=method)
        return await self._client.call_view(self.contract_id, method, args)

    async def transact(
        self,
        method: str,
        args: dict[str, Any] | None = None,
        *,
        deposit: str | None = None,
        gas: str | None = None,
    ) -> CallOutcome:
        if method not in self.change_methods:
            raise LedgerCallError(f"Change method {method!r} not bound on {self.contract_id}", method=method)
        return await self._client.call_change(
            self.account, self.contract_id, method, args, deposit=deposit, gas=gas
        )

    async def call(
        self,
        method: str,
        args: dict[str, Any] | None = None,
        *,
        deposit: str | None = None,
        gas: str | None = None,
    ) -> Any:
        outcome = await self.transact(method, args, deposit=deposit, gas=gas)
        return outcome.value


class LedgerClient:
    """Gateway to the NEAR RPC node and the signing relayer."""

    def __init__(
        self,
        rpc_url: str,
        signer_url: str,
        contract_id: str,
        network_id: str = "testnet",
        timeout: float = 15.0,
        default_gas: str = "30000000000000",
        signer_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._rpc_url = rpc_url
        self._signer_url = signer_url.rstrip("/")
        self.contract_id = contract_id
        self.network_id = network_id
        self._default_gas = default_gas
        headers = {"Authorization": f"Bearer {signer_token}"} if signer_token else None
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport, headers=headers)

    async def aclose(self) -> None:
        await self._http.aclose()

    # -------------------------------------------------------------------------
    # Boundary operations
    # -------------------------------------------------------------------------

    def resolve_account(self, identity: str) -> AccountHandle:
        """Return a handle for ``identity`` after checking its syntax."""
        if not is_valid_account_id(identity):
            raise ValidationError(
                f"Invalid account id: {identity!r}",
                fields=[{"field": "account_id", "code": "invalid_account_id"}],
            )
        return AccountHandle(account_id=identity, network_id=self.network_id)

    def bind_contract(
        self,
        account: AccountHandle,
        contract_name: str | None = None,
        view_methods: Iterable[str] = (),
        change_methods: Iterable[str] = (),
    ) -> ContractHandle:
        return ContractHandle(
            self,
            account,
            contract_name or self.contract_id,
            view_methods=view_methods,
            change_methods=change_methods,
        )

    def service_contract(self, view_methods: Iterable[str]) -> ContractHandle:
        """Read-only binding as the contract account itself."""
        account = AccountHandle(account_id=self.contract_id, network_id=self.network_id)
        return self.bind_contract(account, self.contract_id, view_methods=view_methods)

    async def call_view(
        self,
        contract_id: str,
        method: str,
        args: dict[str, Any] | None = None,
    ) -> Any:
        """Run a read-only contract method and return its decoded JSON result."""
        payload = {
            "jsonrpc": "2.0",
            "id": "achievo",
            "method": "query",
            "params": {
                "request_type": "call_function",
                "finality": "final",
                "account_id": contract_id,
                "method_name": method,
                "args_base64": _encode_args(args),
            },
        }

        try:
            response = await self._http.post(self._rpc_url, json=payload)
        except httpx.TimeoutException as e:
            raise LedgerUnavailableError(f"Timeout calling {method}", method=method) from e
        except httpx.HTTPError as e:
            raise LedgerUnavailableError(f"RPC unreachable calling {method}: {e}", method=method) from e

        if response.status_code != 200:
            raise LedgerUnavailableError(
                f"RPC returned HTTP {response.status_code} for {method}", method=method
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LedgerUnavailableError(f"RPC returned non-JSON for {method}", method=method) from e

        if "error" in body:
            error = body["error"] or {}
            cause = (error.get("cause") or {}).get("name") if isinstance(error, dict) else None
            message = f"{method} failed: {cause or error}"
            if cause in CONTRACT_ERROR_CAUSES:
                raise LedgerCallError(message, method=method, context={"cause": cause})
            raise LedgerUnavailableError(message, method=method, context={"cause": cause})

        result = body.get("result")
        if not isinstance(result, dict):
            raise LedgerUnavailableError(f"Malformed RPC result for {method}", method=method)

        # Older nodes report contract panics inside a successful envelope
        if result.get("error"):
            raise LedgerCallError(f"{method} failed: {result['error']}", method=method)

        raw = bytes(result.get("result") or [])
        log.debug(f"view {contract_id}.{method} -> {len(raw)} bytes")
        return _decode_value(raw, method)

    async def call_change(
        self,
        account: AccountHandle,
        contract_id: str,
        method: str,
        args: dict[str, Any] | None = None,
        *,
        deposit: str | None = None,
        gas: str | None = None,
    ) -> CallOutcome:
        """Submit a state-changing call signed by ``account``."""
        payload = {
            "signer_id": account.account_id,
            "receiver_id": contract_id,
            "method_name": method,
            "args": args or {},
            "gas": gas or self._default_gas,
            "deposit": deposit or "0",
        }

        try:
            response = await self._http.post(f"{self._signer_url}/call", json=payload)
        except httpx.TimeoutException as e:
            raise LedgerUnavailableError(f"Timeout submitting {method}", method=method) from e
        except httpx.HTTPError as e:
            raise LedgerUnavailableError(f"Signer unreachable submitting {method}: {e}", method=method) from e

        if response.status_code >= 500:
            raise LedgerUnavailableError(
                f"Signer returned HTTP {response.status_code} for {method}", method=method
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LedgerUnavailableError(f"Signer returned non-JSON for {method}", method=method) from e

        if response.status_code != 200:
            detail = body.get("error") if isinstance(body, dict) else None
            raise LedgerCallError(
                f"{method} rejected by signer: {detail or response.status_code}", method=method
            )

        status = body.get("status") if isinstance(body, dict) else None
        tx_hash = (body.get("transaction") or {}).get("hash") if isinstance(body, dict) else None

        if not isinstance(status, dict):
            raise LedgerUnavailableError(f"Malformed execution outcome for {method}", method=method)

        if "Failure" in status:
            raise LedgerCallError(
                f"{method} failed on chain: {status['Failure']}",
                method=method,
                context={"transaction_hash": tx_hash},
            )

        if "SuccessValue" not in status:
            raise LedgerCallError(f"{method} did not complete: {status}", method=method)

        raw = base64.b64decode(status["SuccessValue"] or "")
        log.info(f"change {account.account_id} -> {contract_id}.{method} tx={tx_hash}")
        return CallOutcome(value=_decode_value(raw, method), transaction_hash=tx_hash)


def _encode_args(args: dict[str, Any] | None) -> str:
    return base64.b64encode(json.dumps(args or {}).encode("utf-8")).decode("ascii")


def _decode_value(raw: bytes, method: str) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise LedgerCallError(f"{method} returned undecodable value", method=method) from e
