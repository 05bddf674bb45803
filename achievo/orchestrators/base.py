"""Shared plumbing for the orchestrators."""

import logging
from typing import Any, Iterable

from fastapi import Request

from achievo.audit.logger import AuditLogger
from achievo.clients.index import IndexStore
from achievo.clients.ledger import ContractHandle, LedgerClient, is_valid_account_id
from achievo.core.exceptions import LedgerCallError, ValidationError
from achievo.saga import Saga

log = logging.getLogger(__name__)


class Orchestrator:
    """Base class holding the store clients.

    Subclasses declare the contract methods they use; a contract handle bound
    to any other method refuses the call.
    """

    VIEW_METHODS: tuple[str, ...] = ()
    CHANGE_METHODS: tuple[str, ...] = ()

    def __init__(self, ledger: LedgerClient, index: IndexStore, audit: AuditLogger):
        self.ledger = ledger
        self.index = index
        self.audit = audit

    def contract(self, account_id: str) -> ContractHandle:
        """Contract handle that signs change calls as ``account_id``."""
        account = self.ledger.resolve_account(account_id)
        return self.ledger.bind_contract(
            account,
            self.ledger.contract_id,
            view_methods=self.VIEW_METHODS,
            change_methods=self.CHANGE_METHODS,
        )

    def reader(self) -> ContractHandle:
        """Read-only contract handle."""
        return self.ledger.service_contract(view_methods=self.VIEW_METHODS)

    def store(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        """Add ``record`` to the index and return the document as stored."""
        doc_id = self.index.add(collection, record)
        return self.index.get(collection, doc_id)

    def saga(
        self,
        name: str,
        principal: str,
        resource: str | None = None,
        request: Request | None = None,
    ) -> Saga:
        return Saga(name=name, principal=principal, audit=self.audit, resource=resource, request=request)


def require_fields(values: dict[str, Any], required: Iterable[str]) -> None:
    """Raise ValidationError listing every missing or blank field."""
    missing = [
        {"field": name, "code": "required"}
        for name in required
        if values.get(name) is None or (isinstance(values.get(name), str) and not values[name].strip())
    ]
    if missing:
        names = ", ".join(f["field"] for f in missing)
        raise ValidationError(f"Required fields: {names}", fields=missing)


def require_accounts(values: dict[str, Any], names: Iterable[str]) -> None:
    """Raise ValidationError for every named value that is not a ledger account id."""
    invalid = [
        {"field": name, "code": "invalid_account_id"}
        for name in names
        if values.get(name) is not None and not is_valid_account_id(values[name])
    ]
    if invalid:
        names_str = ", ".join(f["field"] for f in invalid)
        raise ValidationError(f"Invalid account id: {names_str}", fields=invalid)


def require_value(value: Any, method: str) -> Any:
    """A change call that must assign an id returned nothing."""
    if value is None:
        raise LedgerCallError(f"{method} returned no identifier", method=method)
    return value


def without_none(doc: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in doc.items() if v is not None}
