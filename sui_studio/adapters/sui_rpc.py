"""
JSON-RPC client for talking to a Sui full node.

This adapter is intentionally small and dependency-light. It provides:
- a retrying async JSON-RPC transport over HTTP(S)
- ergonomic methods for the endpoints the deploy pipeline uses:
  * sui_getChainIdentifier / suix_getBalance / suix_getCoins / sui_getObject
  * unsafe_publish / unsafe_moveCall / unsafe_paySui  (node-built tx bytes)
  * sui_executeTransactionBlock
- helpers to sign+execute with a local identity and to poll for a balance

Notes
-----
* Transaction bytes are BCS, base64-encoded on the wire. The node builds them
  (``unsafe_*``); we only sign locally and submit.
* Numeric amounts (gas budgets, balances) travel as decimal strings.
* Retries cover transport failures and 502/503/504 only. JSON-RPC error
  objects are surfaced immediately as :class:`RpcResponseError`.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

SUI_COIN_TYPE = "0x2::sui::SUI"

DEFAULT_TX_OPTIONS: Dict[str, bool] = {
    "showEffects": True,
    "showObjectChanges": True,
    "showEvents": True,
}


# ----------------------------- Errors ---------------------------------------


class SuiRpcError(Exception):
    """Base class for all node RPC errors."""


class RpcTransportError(SuiRpcError):
    """Network/HTTP transport-level error."""


class RpcResponseError(SuiRpcError):
    """JSON-RPC error object returned from the node."""

    def __init__(self, code: int, message: str, data: Any | None = None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


# ----------------------------- Helpers --------------------------------------


def _should_retry(status: Optional[int]) -> bool:
    return status in (502, 503, 504)


def _build_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    hdrs = {
        "content-type": "application/json",
        "accept": "application/json",
    }
    if extra:
        hdrs.update(extra)
    return hdrs


# ----------------------------- Client ---------------------------------------


@dataclass
class SuiRpcConfig:
    url: str
    timeout_s: float = 30.0
    max_retries: int = 3
    backoff_base_s: float = 0.25
    headers: Optional[Dict[str, str]] = None


class SuiRpc:
    """
    Minimal async JSON-RPC client for a Sui full node.
    """

    def __init__(self, config: SuiRpcConfig, *, client: Optional[httpx.AsyncClient] = None):
        self._cfg = config
        self._id = 0
        self._client = client
        self._owns_client = client is None

    @property
    def url(self) -> str:
        return self._cfg.url

    # ---------- lifecycle ----------

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._cfg.timeout_s,
                headers=_build_headers(self._cfg.headers),
            )
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "SuiRpc":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- core transport ----------

    async def call(self, method: str, params: Sequence[Any] | None = None) -> Any:
        """
        Perform a single JSON-RPC call with retries.
        """
        if self._client is None:
            await self.start()
        assert self._client is not None

        self._id += 1
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": list(params or [])}

        attempt = 0
        while True:
            attempt += 1
            try:
                resp = await self._client.post(self._cfg.url, json=payload)
                status = resp.status_code
                if status == 200:
                    try:
                        data = resp.json()
                    except json.JSONDecodeError as e:
                        raise SuiRpcError(f"{method}: invalid JSON in response") from e
                    err = data.get("error")
                    if err is not None:
                        raise RpcResponseError(
                            int(err.get("code", -32000)),
                            str(err.get("message", "Unknown error")),
                            err.get("data"),
                        )
                    return data.get("result")
                if _should_retry(status):
                    raise RpcTransportError(f"HTTP {status}: {resp.text[:256]!r}")
                raise SuiRpcError(f"{method}: HTTP {status}: {resp.text[:256]!r}")
            except (httpx.TimeoutException, httpx.TransportError, RpcTransportError) as exc:
                if attempt > self._cfg.max_retries:
                    raise RpcTransportError(f"{method} failed after {attempt} attempts: {exc}") from exc
                delay = self._cfg.backoff_base_s * (2 ** (attempt - 1))
                await asyncio.sleep(delay)

    # ---------- read methods ----------

    async def get_chain_identifier(self) -> str:
        return await self.call("sui_getChainIdentifier")

    async def get_balance(self, owner: str, coin_type: str = SUI_COIN_TYPE) -> int:
        """
        Returns the total balance (MIST) of ``coin_type`` owned by ``owner``.
        """
        res = await self.call("suix_getBalance", [owner, coin_type])
        return int((res or {}).get("totalBalance", 0))

    async def get_coins(
        self,
        owner: str,
        coin_type: str = SUI_COIN_TYPE,
        *,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        res = await self.call("suix_getCoins", [owner, coin_type, None, limit])
        return list((res or {}).get("data") or [])

    async def get_object(
        self,
        object_id: str,
        *,
        show_type: bool = True,
        show_owner: bool = True,
        show_content: bool = False,
    ) -> Dict[str, Any]:
        return await self.call(
            "sui_getObject",
            [object_id, {"showType": show_type, "showOwner": show_owner, "showContent": show_content}],
        )

    # ---------- transaction building (node-side) ----------

    async def unsafe_publish(
        self,
        sender: str,
        modules_b64: Sequence[str],
        dependencies: Sequence[str],
        *,
        gas_budget: int,
        gas: Optional[str] = None,
    ) -> str:
        """Return base64 tx bytes for a publish transaction."""
        res = await self.call(
            "unsafe_publish",
            [sender, list(modules_b64), list(dependencies), gas, str(gas_budget)],
        )
        return res["txBytes"]

    async def unsafe_move_call(
        self,
        signer: str,
        package_id: str,
        module: str,
        function: str,
        *,
        type_arguments: Sequence[str] = (),
        arguments: Sequence[Any] = (),
        gas_budget: int,
        gas: Optional[str] = None,
    ) -> str:
        res = await self.call(
            "unsafe_moveCall",
            [signer, package_id, module, function, list(type_arguments), list(arguments), gas, str(gas_budget)],
        )
        return res["txBytes"]

    async def unsafe_pay_sui(
        self,
        signer: str,
        input_coins: Sequence[str],
        recipients: Sequence[str],
        amounts: Sequence[int],
        *,
        gas_budget: int,
    ) -> str:
        res = await self.call(
            "unsafe_paySui",
            [signer, list(input_coins), list(recipients), [str(a) for a in amounts], str(gas_budget)],
        )
        return res["txBytes"]

    # ---------- execution ----------

    async def execute_transaction_block(
        self,
        tx_bytes: str,
        signatures: Sequence[str],
        *,
        options: Optional[Dict[str, bool]] = None,
        request_type: str = "WaitForLocalExecution",
    ) -> Dict[str, Any]:
        return await self.call(
            "sui_executeTransactionBlock",
            [tx_bytes, list(signatures), options or DEFAULT_TX_OPTIONS, request_type],
        )

    async def sign_and_execute(self, identity: Any, tx_bytes: str, **kwargs: Any) -> Dict[str, Any]:
        """Sign node-built ``tx_bytes`` with ``identity`` and execute."""
        signature = identity.sign_transaction(tx_bytes)
        return await self.execute_transaction_block(tx_bytes, [signature], **kwargs)

    # ---------- convenience ----------

    async def wait_for_balance(
        self,
        owner: str,
        *,
        min_balance: int = 1,
        timeout_s: float = 30.0,
        poll_interval_s: float = 1.0,
        coin_type: str = SUI_COIN_TYPE,
    ) -> Optional[int]:
        """
        Poll until ``owner`` holds at least ``min_balance`` or timeout.
        Returns the observed balance, or None if not reached in time.
        """
        deadline = time.monotonic() + timeout_s
        while True:
            bal = await self.get_balance(owner, coin_type)
            if bal >= min_balance:
                return bal
            if time.monotonic() >= deadline:
                return None
            await asyncio.sleep(poll_interval_s)


# ----------------------------- Effects helpers ------------------------------


def execution_status(result: Optional[Dict[str, Any]]) -> str:
    status = (((result or {}).get("effects") or {}).get("status") or {})
    return str(status.get("status") or "unknown")


def execution_error(result: Optional[Dict[str, Any]]) -> Optional[str]:
    status = (((result or {}).get("effects") or {}).get("status") or {})
    err = status.get("error")
    return str(err) if err else None


def created_objects(result: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return list((((result or {}).get("effects") or {}).get("created") or []))


__all__ = [
    "SuiRpc",
    "SuiRpcConfig",
    "SuiRpcError",
    "RpcTransportError",
    "RpcResponseError",
    "SUI_COIN_TYPE",
    "DEFAULT_TX_OPTIONS",
    "execution_status",
    "execution_error",
    "created_objects",
]
