"""Reward grants."""

import logging
from typing import Any

from fastapi import Request

from achievo.audit.logger import AuditLogger
from achievo.clients.index import IndexStore
from achievo.clients.ledger import LedgerClient
from achievo.db.models import utcnow
from achievo.orchestrators.base import (
    Orchestrator,
    require_accounts,
    require_fields,
    require_value,
)

log = logging.getLogger(__name__)


class RewardOrchestrator(Orchestrator):
    """Grant rewards on the ledger and mirror them to the index.

    The amount is never taken from the caller: the contract decides it. If
    ``grant_reward`` returns an object carrying ``amount`` that value is
    recorded, otherwise the contract's known default is.
    """

    CHANGE_METHODS = ("grant_reward",)

    def __init__(
        self,
        ledger: LedgerClient,
        index: IndexStore,
        audit: AuditLogger,
        default_amount: str = "100",
    ):
        super().__init__(ledger, index, audit)
        self.default_amount = default_amount

    async def grant(
        self,
        caller: str,
        learner_wallet: str,
        milestone: str,
        request: Request | None = None,
    ) -> dict[str, Any]:
        fields = {"learner_wallet": learner_wallet, "milestone": milestone}
        require_fields(fields, fields.keys())
        require_accounts(fields, ("learner_wallet",))

        contract = self.contract(caller)
        saga = self.saga("reward.grant", caller, request=request)

        async def grant_on_ledger():
            value = await contract.call(
                "grant_reward", {"learner_id": learner_wallet, "milestone": milestone}
            )
            return require_value(value, "grant_reward")

        result = await saga.ledger(grant_on_ledger)
        blockchain_id, amount = self._unpack(result)
        saga.ledger_ref["blockchain_id"] = blockchain_id

        record = {
            "blockchain_id": blockchain_id,
            "learner_wallet": learner_wallet,
            "milestone": milestone,
            "amount": amount,
            "granter_wallet": caller,
            "status": "active",
            "granted_at": utcnow(),
        }
        reward = saga.mirror(lambda: self.store("rewards", record))
        reward_id = reward["id"]
        saga.complete(resource=reward_id, learner_wallet=learner_wallet, amount=amount)

        return {"reward_id": reward_id, "blockchain_id": blockchain_id, "reward": reward}

    def _unpack(self, result: Any) -> tuple[Any, str]:
        if isinstance(result, dict):
            blockchain_id = result.get("reward_id", result.get("id", result))
            amount = result.get("amount")
            return blockchain_id, str(amount) if amount is not None else self.default_amount
        return result, self.default_amount

    def list_for_learner(self, learner_wallet: str) -> list[dict[str, Any]]:
        return self.index.query(
            "rewards", "learner_wallet", learner_wallet, order_by="granted_at", descending=True
        )
