"""Pytest fixtures for Achievo tests.

The ledger and the content store are simulated at the HTTP boundary with
``httpx.MockTransport``; the index store is a real in-memory SQLite database.
"""
import base64
import json
from dataclasses import dataclass
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from achievo.audit.logger import AuditLogger
from achievo.clients.content import PinataClient
from achievo.clients.index import IndexStore
from achievo.clients.ledger import LedgerClient
from achievo.db.models import utcnow, verification_fields
from achievo.db.session import build_engine, build_session_factory, init_database
from achievo.services import build_services

RPC_URL = "https://rpc.test"
SIGNER_URL = "https://signer.test"
PINATA_URL = "https://pinata.test"
CONTRACT = "achievo-contract.testnet"
LEGACY_ADMIN = "achievo.testnet"


# =============================================================================
# Simulated NEAR node and signing relayer
# =============================================================================


@dataclass
class Panic:
    """Contract result that makes the simulated call fail inside the contract."""

    message: str = "Smart contract panicked"


class FakeNear:
    """NEAR RPC (view calls) and relayer (change calls) behind one transport.

    ``views`` and ``changes`` map method name to the value to return. A value
    may be a callable taking the call args, or a :class:`Panic`.
    """

    def __init__(self):
        self.views: dict[str, Any] = {}
        self.changes: dict[str, Any] = {}
        self.roles: dict[str, str] = {}
        self.view_calls: list[tuple[str, dict]] = []
        self.change_calls: list[dict] = []
        self.unreachable = False
        self._tx_count = 0
        self.views["get_user_role"] = lambda args: self.roles.get(args["account_id"])

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        body = json.loads(request.content)
        if request.url.host == "signer.test":
            return self._change(body)
        return self._view(body)

    def _view(self, body: dict) -> httpx.Response:
        params = body["params"]
        method = params["method_name"]
        args = json.loads(base64.b64decode(params["args_base64"]))
        self.view_calls.append((method, args))

        result = self.views.get(method)
        if callable(result):
            result = result(args)
        if isinstance(result, Panic):
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": body["id"],
                    "error": {
                        "name": "HANDLER_ERROR",
                        "cause": {"name": "CONTRACT_EXECUTION_ERROR", "info": {}},
                        "message": result.message,
                    },
                },
            )
        raw = list(json.dumps(result).encode()) if result is not None else []
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": body["id"],
                "result": {"result": raw, "logs": [], "block_height": 1, "block_hash": "abc"},
            },
        )

    def _change(self, body: dict) -> httpx.Response:
        self.change_calls.append(body)
        self._tx_count += 1
        transaction = {"hash": f"tx-{self._tx_count}", "signer_id": body["signer_id"]}

        result = self.changes.get(body["method_name"])
        if callable(result):
            result = result(body["args"])
        if isinstance(result, Panic):
            return httpx.Response(
                200,
                json={
                    "status": {"Failure": {"ActionError": {"kind": {"FunctionCallError": {"ExecutionError": result.message}}}}},
                    "transaction": transaction,
                },
            )
        value = base64.b64encode(json.dumps(result).encode()).decode() if result is not None else ""
        return httpx.Response(200, json={"status": {"SuccessValue": value}, "transaction": transaction})

    def calls(self, method: str) -> list[dict]:
        """Change calls made to ``method``."""
        return [c for c in self.change_calls if c["method_name"] == method]

    def viewed(self, method: str) -> list[dict]:
        return [args for name, args in self.view_calls if name == method]


class FakePinata:
    """Pinata pinning API."""

    def __init__(self):
        self.pinned: list[dict] = []
        self.headers: list[httpx.Headers] = []
        self.next_cid: str | None = None
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(500, text="upstream error")
        body = json.loads(request.content)
        self.pinned.append(body)
        self.headers.append(request.headers)
        cid = self.next_cid or f"QmTest{len(self.pinned)}"
        return httpx.Response(200, json={"IpfsHash": cid, "PinSize": 128, "Timestamp": "2026-01-01T00:00:00Z"})


# =============================================================================
# Store and service fixtures
# =============================================================================


@pytest.fixture
def near() -> FakeNear:
    return FakeNear()


@pytest.fixture
def pinata() -> FakePinata:
    return FakePinata()


@pytest.fixture
def index():
    """Index store on a fresh in-memory SQLite database."""
    engine = build_engine("sqlite://")
    init_database(engine)
    yield IndexStore(build_session_factory(engine))
    engine.dispose()


@pytest.fixture
async def ledger(near: FakeNear):
    client = LedgerClient(
        rpc_url=RPC_URL,
        signer_url=SIGNER_URL,
        contract_id=CONTRACT,
        transport=httpx.MockTransport(near.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
async def content(pinata: FakePinata):
    client = PinataClient(
        api_key="test-key",
        secret_api_key="test-secret",
        base_url=PINATA_URL,
        transport=httpx.MockTransport(pinata.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def audit() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def services(ledger, content, index, audit):
    return build_services(ledger, content, index, audit, allow_set={LEGACY_ADMIN})


@pytest.fixture
async def client(services):
    """HTTP client against the app with test services installed."""
    from achievo.main import app

    app.state.services = services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    del app.state.services


# =============================================================================
# Helpers
# =============================================================================


def wallet(account_id: str) -> dict:
    """Identity header for ``account_id``."""
    return {"X-Wallet-Address": account_id}


def add_organization(index: IndexStore, wallet_address: str, status: str = "pending") -> str:
    """Insert an organization record directly into the index."""
    return index.add(
        "organizations",
        {
            "name": f"Org {wallet_address}",
            "contact_info": "contact@example.com",
            "wallet_address": wallet_address,
            "type": "organization",
            "created_at": utcnow(),
            **verification_fields(status),
        },
    )


def add_certificate(
    index: IndexStore,
    organization_id: str = "org1.test",
    learner_wallet: str = "alice.test",
    blockchain_id: Any = 7,
    status: str = "active",
) -> str:
    """Insert a certificate record directly into the index."""
    return index.add(
        "certificates",
        {
            "learner_wallet": learner_wallet,
            "learner_name": "Alice",
            "course_id": "CS101",
            "course_name": "Intro to CS",
            "organization_id": organization_id,
            "skills": ["python"],
            "blockchain_id": blockchain_id,
            "metadata_cid": "Qm123",
            "status": status,
            "created_at": utcnow(),
        },
    )
