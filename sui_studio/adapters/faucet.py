"""
Test-network faucet client.

The Sui faucet accepts::

    POST /gas
    {"FixedAmountRequest": {"recipient": "0x…"}}

and answers with ``{"transferredGasObjects": [...], "error": null}``. Rate
limiting (429), other non-2xx statuses and a non-null ``error`` member are
all failures; they surface as :class:`FundingError` and are never retried
here (the faucet enforces its own cooldowns).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from sui_studio.errors import FundingError

log = logging.getLogger(__name__)


class FaucetClient:
    def __init__(self, url: str, *, timeout_s: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self._timeout = timeout_s
        self._client = client
        self._owns_client = client is None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def request_gas(self, recipient: str) -> List[Dict[str, Any]]:
        """
        Ask the faucet to fund ``recipient``. Returns the transferred gas objects.
        """
        if self._client is None:
            await self.start()
        assert self._client is not None

        body = {"FixedAmountRequest": {"recipient": recipient}}
        try:
            resp = await self._client.post(self.url, json=body)
        except httpx.HTTPError as e:
            raise FundingError(f"faucet unreachable: {type(e).__name__}: {e}") from e

        if resp.status_code == 429:
            raise FundingError("faucet rate limited the request (HTTP 429)")
        if not 200 <= resp.status_code < 300:
            raise FundingError(f"faucet returned HTTP {resp.status_code}: {resp.text[:256]!r}")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if isinstance(data, dict) and data.get("error"):
            raise FundingError(f"faucet error: {data['error']}")

        objs = (data or {}).get("transferredGasObjects") if isinstance(data, dict) else None
        log.debug("faucet accepted request for %s", recipient)
        return list(objs or [])


__all__ = ["FaucetClient"]
