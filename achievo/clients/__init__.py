"""Clients for the three systems of record."""

from achievo.clients.content import PinataClient
from achievo.clients.index import IndexStore, IndexStoreError
from achievo.clients.ledger import (
    AccountHandle,
    CallOutcome,
    ContractHandle,
    LedgerClient,
    near_to_yocto,
)

__all__ = [
    "PinataClient",
    "IndexStore",
    "IndexStoreError",
    "AccountHandle",
    "CallOutcome",
    "ContractHandle",
    "LedgerClient",
    "near_to_yocto",
]
