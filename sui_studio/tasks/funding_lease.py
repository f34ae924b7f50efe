from __future__ import annotations

"""
Master-wallet funding lease & retry helpers.

The master identity's coin objects are a shared mutable resource: two
concurrent transfers that select the same coin race on its object version and
one of them fails with an equivocation/"object locked" error. This module
serializes transfers within a process and retries the conflicting ones.

- `FundingLease.hold()`: async context manager granting exclusive use of the
  master wallet. Only one transfer is in flight at a time.
- `FundingLease.run_with_retry(coro_factory, ...)`: run an async operation
  with exponential backoff, jitter, and bounded attempts.

Usage (inside services.funding)
-------------------------------
    lease = FundingLease(LeaseConfig(max_attempts=3))

    async def _send():
        return await transfer_from_master(burner.address)

    async with lease.hold():
        result = await lease.run_with_retry(_send, op_name="funding.transfer", address=burner.address)

Cross-process coordination is out of scope; run a single worker per master
wallet or give each worker its own master.
"""

import asyncio
import contextlib
import random
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, Tuple, Type

from ..logging import get_logger


@dataclass(frozen=True)
class LeaseConfig:
    max_attempts: int = 3
    base_backoff: float = 0.5  # seconds
    max_backoff: float = 4.0  # seconds
    jitter: float = 0.2  # +/- 20% jitter on the computed backoff


class FundingLease:
    """
    Single-writer lease around the master funding identity.
    """

    def __init__(self, config: LeaseConfig | None = None) -> None:
        self.config = config or LeaseConfig()
        self._lock = asyncio.Lock()
        self.log = get_logger(__name__).bind(role="funding_lease")

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextlib.asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    async def run_with_retry(
        self,
        op_coro_factory: Callable[[], Awaitable[object]],
        *,
        op_name: str,
        address: Optional[str] = None,
        max_attempts: Optional[int] = None,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        """
        Run an operation with exponential backoff & jitter on failure.

        Only exceptions matching ``retry_on`` are retried; anything else is
        raised immediately. The last exception is re-raised after the final
        attempt.
        """
        attempts = int(max_attempts if max_attempts is not None else self.config.max_attempts)
        assert attempts >= 1

        for i in range(1, attempts + 1):
            try:
                result = await op_coro_factory()
                self.log.info("lease.success", op=op_name, address=address, attempt=i)
                return result
            except asyncio.CancelledError:
                self.log.warning("lease.cancelled", op=op_name, attempt=i, address=address)
                raise
            except retry_on as e:
                if i >= attempts:
                    self.log.warning(
                        "lease.failed",
                        op=op_name,
                        address=address,
                        attempt=i,
                        error=f"{type(e).__name__}: {e}",
                    )
                    raise
                delay = self._compute_backoff(i)
                self.log.warning(
                    "lease.retry",
                    op=op_name,
                    address=address,
                    attempt=i,
                    sleep_s=round(delay, 3),
                    error=f"{type(e).__name__}: {e}",
                )
                await asyncio.sleep(delay)
        raise RuntimeError("lease retry loop invariant broken")

    def _compute_backoff(self, attempt: int) -> float:
        base = self.config.base_backoff
        raw = min(base * (2 ** (attempt - 1)), self.config.max_backoff)
        jitter = self.config.jitter
        factor = 1.0 + random.uniform(-jitter, jitter) if jitter > 0 else 1.0
        return max(0.0, raw * factor)


__all__ = ["FundingLease", "LeaseConfig"]
