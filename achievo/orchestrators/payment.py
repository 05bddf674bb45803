"""Payments between accounts.

Two modes:

- ``ledger``: the contract's ``process_payment`` is called with the amount
  attached as a deposit; the index records the outcome.
- ``log_only``: nothing is sent to the ledger. The caller-claimed transaction
  hash is stored as ``unverified``. This records a claim, it does not check
  one.
"""

import logging
from typing import Any

from fastapi import Request

from achievo.audit.logger import AuditLogger
from achievo.clients.index import IndexStore
from achievo.clients.ledger import LedgerClient, near_to_yocto
from achievo.db.models import utcnow
from achievo.orchestrators.base import Orchestrator, require_accounts, require_fields

log = logging.getLogger(__name__)

PAYMENT_MODES = ("ledger", "log_only")


class PaymentOrchestrator(Orchestrator):
    CHANGE_METHODS = ("process_payment",)

    def __init__(
        self,
        ledger: LedgerClient,
        index: IndexStore,
        audit: AuditLogger,
        mode: str = "ledger",
        gas: str = "300000000000000",
    ):
        super().__init__(ledger, index, audit)
        if mode not in PAYMENT_MODES:
            log.warning(f"Unknown payment mode {mode!r}, using 'ledger'")
            mode = "ledger"
        self.mode = mode
        self.gas = gas

    async def process(
        self,
        caller: str,
        recipient_id: str,
        amount: str,
        purpose: str | None = None,
        transaction_hash: str | None = None,
        request: Request | None = None,
    ) -> dict[str, Any]:
        fields = {"recipient_id": recipient_id, "amount": amount}
        require_fields(fields, fields.keys())
        require_accounts(fields, ("recipient_id",))
        yocto = near_to_yocto(amount)

        saga = self.saga(f"payment.{self.mode}", caller, request=request)

        if self.mode == "ledger":
            contract = self.contract(caller)
            outcome = await saga.ledger(
                lambda: contract.transact(
                    "process_payment",
                    {"recipient_id": recipient_id, "amount": yocto},
                    deposit=yocto,
                    gas=self.gas,
                )
            )
            saga.ledger_ref["transaction_hash"] = outcome.transaction_hash
            record = {
                "status": "completed",
                "blockchain_processed": True,
                "transaction_hash": outcome.transaction_hash,
            }
        else:
            record = {
                "status": "unverified",
                "blockchain_processed": False,
                "transaction_hash": transaction_hash,
            }

        record.update(
            {
                "amount": str(amount),
                "sender": caller,
                "receiver": recipient_id,
                "purpose": purpose or "Payment",
                "processed_at": utcnow(),
            }
        )
        transaction = saga.mirror(lambda: self.store("transactions", record))
        transaction_id = transaction["id"]
        saga.complete(resource=transaction_id, receiver=recipient_id, amount=str(amount))

        return {"transaction_id": transaction_id, "mode": self.mode, "transaction": transaction}
