"""Per-request role lookup against the contract."""

import logging

from achievo.auth.roles import RoleResolution, parse_role
from achievo.clients.ledger import LedgerClient
from achievo.core.exceptions import LedgerCallError, LedgerUnavailableError

log = logging.getLogger(__name__)


class RoleResolver:
    """Resolves an account's role with the ``get_user_role`` view call.

    Nothing is cached; every call asks the ledger.
    """

    def __init__(self, ledger: LedgerClient):
        self._contract = ledger.service_contract(view_methods=["get_user_role"])

    async def resolve(self, identity: str) -> RoleResolution:
        try:
            value = await self._contract.view("get_user_role", {"account_id": identity})
        except LedgerUnavailableError as e:
            log.warning(f"Role lookup for {identity} unavailable: {e}")
            return RoleResolution.unavailable(str(e))
        except LedgerCallError as e:
            # Contract-level failure: account never registered, method panicked
            log.info(f"Role lookup for {identity} failed in contract, defaulting: {e}")
            return RoleResolution.default(reason=str(e))

        role = parse_role(value)
        if role is None:
            return RoleResolution.default(reason="no role assigned")
        return RoleResolution.from_ledger(role)
