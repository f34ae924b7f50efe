"""
Gas funding for burner identities.

Policy (best effort, never fatal):

1. With a master identity configured, ask the network faucet to fund the
   burner, then poll its balance until it is positive or the confirmation
   timeout elapses (``FundingTimeout``).
2. Regardless of the faucet outcome, transfer ``FUNDING_AMOUNT`` MIST from the
   master identity (paySui over its largest coins). Transfers are serialized
   through a :class:`FundingLease` and conflicting ones are retried.
3. Every failure becomes a warning string on the returned
   :class:`FundingOutcome`; ``succeeded`` is true when either step worked.

Without a master identity every step is ``skipped`` and the burner is left for
the caller to fund out of band.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from sui_studio.adapters.faucet import FaucetClient
from sui_studio.adapters.keys import SuiIdentity
from sui_studio.adapters.sui_rpc import (SuiRpc, SuiRpcError, execution_error,
                                         execution_status)
from sui_studio.errors import FundingError, FundingTimeout
from sui_studio.logging import get_logger
from sui_studio.tasks.funding_lease import FundingLease, LeaseConfig

log = get_logger(__name__)


class StepStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"


@dataclass
class FundingOutcome:
    faucet: StepStatus = StepStatus.SKIPPED
    transfer: StepStatus = StepStatus.SKIPPED
    warnings: List[str] = field(default_factory=list)
    transfer_digest: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return StepStatus.OK in (self.faucet, self.transfer)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "faucet": self.faucet.value,
            "transfer": self.transfer.value,
            "succeeded": self.succeeded,
            "warnings": list(self.warnings),
            "transferDigest": self.transfer_digest,
        }


@dataclass(frozen=True)
class FundingPolicy:
    amount: int = 100_000_000
    transfer_gas_budget: int = 10_000_000
    confirm_timeout_s: float = 30.0
    poll_interval_s: float = 1.0
    max_attempts: int = 3


def select_coins(coins: List[Dict[str, Any]], needed: int) -> List[str]:
    """
    Pick the largest coins first until their balances cover ``needed``.
    Raises FundingError when the whole set cannot.
    """
    ordered = sorted(coins, key=lambda c: int(c.get("balance", 0)), reverse=True)
    picked: List[str] = []
    total = 0
    for c in ordered:
        picked.append(c["coinObjectId"])
        total += int(c.get("balance", 0))
        if total >= needed:
            return picked
    raise FundingError(f"master wallet holds {total} MIST, needs {needed}")


class FundingService:
    def __init__(
        self,
        rpc: SuiRpc,
        *,
        master: Optional[SuiIdentity] = None,
        faucet: Optional[FaucetClient] = None,
        policy: FundingPolicy | None = None,
        lease: FundingLease | None = None,
    ):
        self.rpc = rpc
        self.master = master
        self.faucet = faucet
        self.policy = policy or FundingPolicy()
        self.lease = lease or FundingLease(LeaseConfig(max_attempts=self.policy.max_attempts))

    @property
    def configured(self) -> bool:
        return self.master is not None

    async def fund(self, address: str) -> FundingOutcome:
        out = FundingOutcome()
        if self.master is None:
            out.warnings.append("no master funding identity configured; burner left unfunded")
            log.info("deploy.funding.skipped", address=address)
            return out

        if self.faucet is not None:
            await self._faucet_step(address, out)
        else:
            out.warnings.append("no faucet configured for this network")

        await self._transfer_step(address, out)

        for w in out.warnings:
            log.warning("deploy.funding.warning", address=address, warning=w)
        log.info(
            "deploy.funding.done",
            address=address,
            faucet=out.faucet.value,
            transfer=out.transfer.value,
            succeeded=out.succeeded,
        )
        return out

    # ---------------------------------------------------------------- faucet

    async def _faucet_step(self, address: str, out: FundingOutcome) -> None:
        assert self.faucet is not None
        try:
            await self.faucet.request_gas(address)
            await self._confirm_balance(address)
            out.faucet = StepStatus.OK
        except FundingTimeout as e:
            out.faucet = StepStatus.TIMEOUT
            out.warnings.append(f"faucet: {e}")
        except (FundingError, SuiRpcError) as e:
            out.faucet = StepStatus.FAILED
            out.warnings.append(f"faucet: {e}")
        except Exception as e:
            out.faucet = StepStatus.FAILED
            out.warnings.append(f"faucet: {type(e).__name__}: {e}")

    async def _confirm_balance(self, address: str) -> int:
        bal = await self.rpc.wait_for_balance(
            address,
            min_balance=1,
            timeout_s=self.policy.confirm_timeout_s,
            poll_interval_s=self.policy.poll_interval_s,
        )
        if bal is None:
            raise FundingTimeout(
                f"balance of {address} still zero after {self.policy.confirm_timeout_s}s"
            )
        return bal

    # ---------------------------------------------------------------- transfer

    async def _transfer_step(self, address: str, out: FundingOutcome) -> None:
        if self.policy.amount <= 0:
            return
        try:
            async with self.lease.hold():
                digest = await self.lease.run_with_retry(
                    lambda: self._transfer_once(address),
                    op_name="funding.transfer",
                    address=address,
                    retry_on=(SuiRpcError, httpx.HTTPError),
                )
            out.transfer = StepStatus.OK
            out.transfer_digest = digest  # type: ignore[assignment]
        except (FundingError, SuiRpcError, httpx.HTTPError) as e:
            out.transfer = StepStatus.FAILED
            out.warnings.append(f"transfer: {e}")
        except Exception as e:
            # Malformed coin or paySui reply; not retried.
            out.transfer = StepStatus.FAILED
            out.warnings.append(f"transfer: {type(e).__name__}: {e}")

    async def _transfer_once(self, address: str) -> Optional[str]:
        assert self.master is not None
        needed = self.policy.amount + self.policy.transfer_gas_budget
        coins = await self.rpc.get_coins(self.master.address)
        inputs = select_coins(coins, needed)
        tx_bytes = await self.rpc.unsafe_pay_sui(
            self.master.address,
            inputs,
            [address],
            [self.policy.amount],
            gas_budget=self.policy.transfer_gas_budget,
        )
        result = await self.rpc.sign_and_execute(self.master, tx_bytes)
        if execution_status(result) != "success":
            # Execution failures are final; gas was charged.
            raise FundingError(f"transfer failed: {execution_error(result) or 'unknown error'}")
        return (result or {}).get("digest")


__all__ = [
    "FundingService",
    "FundingOutcome",
    "FundingPolicy",
    "StepStatus",
    "select_coins",
]
