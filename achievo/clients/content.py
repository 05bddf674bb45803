"""Pinata client for the IPFS content store.

Only JSON pinning is needed: certificate metadata is written once and is
never updated or unpinned by this service.
"""
import logging
from typing import Any

import httpx

from achievo.core.exceptions import IntegrationError

log = logging.getLogger(__name__)


class PinataClient:
    """Pins JSON documents through the Pinata pinning API."""

    PIN_JSON_PATH = "/pinning/pinJSONToIPFS"

    def __init__(
        self,
        api_key: str | None,
        secret_api_key: str | None,
        base_url: str = "https://api.pinata.cloud",
        gateway_url: str = "https://gateway.pinata.cloud/ipfs",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._secret_api_key = secret_api_key
        self._gateway_url = gateway_url.rstrip("/")
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    def gateway_url(self, cid: str) -> str:
        """Public gateway URL for a pinned CID."""
        return f"{self._gateway_url}/{cid}"

    async def pin_json(self, document: dict[str, Any], name: str | None = None) -> str:
        """Pin ``document`` and return its CID.

        Raises:
            IntegrationError: Credentials missing, Pinata unreachable, or the
                response did not carry a hash.
        """
        if not self._api_key or not self._secret_api_key:
            raise IntegrationError("Pinata credentials are not configured")

        body: dict[str, Any] = {"pinataContent": document}
        if name:
            body["pinataMetadata"] = {"name": name}

        headers = {
            "pinata_api_key": self._api_key,
            "pinata_secret_api_key": self._secret_api_key,
        }

        try:
            response = await self._http.post(self.PIN_JSON_PATH, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise IntegrationError("Timeout pinning metadata to IPFS") from e
        except httpx.HTTPError as e:
            raise IntegrationError(f"IPFS pinning service unreachable: {e}") from e

        if response.status_code != 200:
            log.warning(f"Pinata returned HTTP {response.status_code}: {response.text[:200]}")
            raise IntegrationError(f"IPFS upload failed with HTTP {response.status_code}")

        try:
            cid = response.json().get("IpfsHash")
        except ValueError as e:
            raise IntegrationError("IPFS pinning service returned non-JSON") from e

        if not cid:
            raise IntegrationError("IPFS pinning service returned no hash")

        log.info(f"Pinned {name or 'document'} as {cid}")
        return cid
