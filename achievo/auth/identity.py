"""Caller identity from the wallet header.

The service does not verify signatures: the wallet header is taken as the
caller's ledger account. Anything it is used for on the ledger is signed by
the relayer on that account's behalf.
"""

import logging
from dataclasses import dataclass

from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    BaseUser,
    UnauthenticatedUser,
)
from starlette.requests import HTTPConnection

from achievo.clients.ledger import is_valid_account_id
from achievo.config import IDENTITY_HEADER, LEGACY_IDENTITY_HEADER

log = logging.getLogger(__name__)


@dataclass
class Principal(BaseUser):
    """Authenticated caller, identified by ledger account id."""

    account_id: str

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self.account_id

    @property
    def identity(self) -> str:
        return self.account_id


@dataclass
class RejectedIdentity(UnauthenticatedUser):
    """A wallet header was sent but is not a ledger account id.

    Routes that need a caller reject it; open routes ignore it.
    """

    header_value: str


class WalletHeaderBackend(AuthenticationBackend):
    """Reads the caller's account from ``X-Wallet-Address``.

    The legacy ``wallet_address`` header is still accepted. Requests without
    either header pass through unauthenticated; routes decide whether that
    is allowed.
    """

    def __init__(self, exempt_paths: set[str] | None = None):
        self.exempt_paths = exempt_paths or set()

    async def authenticate(
        self, conn: HTTPConnection
    ) -> tuple[AuthCredentials, BaseUser] | None:
        if conn.url.path in self.exempt_paths:
            return None

        account_id = conn.headers.get(IDENTITY_HEADER) or conn.headers.get(LEGACY_IDENTITY_HEADER)
        if not account_id:
            return None

        account_id = account_id.strip()
        if not is_valid_account_id(account_id):
            log.warning(f"Unusable wallet header on {conn.url.path}: {account_id!r}")
            return AuthCredentials(), RejectedIdentity(header_value=account_id)

        return AuthCredentials(["authenticated"]), Principal(account_id=account_id)

