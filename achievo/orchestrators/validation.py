"""Certificate validation against ledger and index."""

import logging
from typing import Any

from achievo.core.exceptions import LedgerCallError, NotFoundError
from achievo.orchestrators.base import Orchestrator

log = logging.getLogger(__name__)


class ValidationService(Orchestrator):
    """Read-only checks combining the index record with the ledger view.

    Both sources are returned so callers can see when they disagree.
    """

    VIEW_METHODS = ("validate_certificate", "get_certificate_history")

    def _record(self, certificate_id: str) -> dict[str, Any]:
        record = self.index.get("certificates", certificate_id)
        if record is None:
            raise NotFoundError(f"Certificate {certificate_id} not found")
        return record

    async def validate(self, certificate_id: str) -> dict[str, Any]:
        """A certificate is valid iff the ledger knows it and the index has not revoked it.

        Raises:
            NotFoundError: No index record
            LedgerCallError: The ledger view failed
        """
        record = self._record(certificate_id)
        blockchain_data = await self.reader().view(
            "validate_certificate", {"certificate_id": record["blockchain_id"]}
        )

        ledger_confirms = blockchain_data is not None
        index_status = record["status"]
        valid = ledger_confirms and index_status != "revoked"

        return {
            "certificate_id": certificate_id,
            "valid": valid,
            "blockchain_data": blockchain_data,
            "local_data": record,
            "sources": {
                "ledger_confirms": ledger_confirms,
                "index_status": index_status,
                "agree": ledger_confirms == (index_status != "revoked"),
            },
        }

    async def history(self, certificate_id: str) -> dict[str, Any]:
        """Ledger history for a certificate, or an empty list if unavailable."""
        record = self._record(certificate_id)
        try:
            history = await self.reader().view(
                "get_certificate_history", {"certificate_id": record["blockchain_id"]}
            )
            available = True
        except LedgerCallError as e:
            log.error(f"History for {certificate_id} unavailable: {e}")
            history = []
            available = False

        return {
            "certificate_id": certificate_id,
            "blockchain_history": history or [],
            "history_available": available,
            "local_data": record,
        }
