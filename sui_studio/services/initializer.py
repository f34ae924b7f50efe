"""
Best-effort initialization after publish.

Outcomes are explicit values rather than swallowed exceptions:

- ``Initialized(object_id)``   the call succeeded; ``object_id`` is the first
                               created object, or None when it created nothing
- ``NotInitializable(reason)`` there is no callable ``init`` to invoke
- ``InitFailed(reason)``       an initializer exists but the call errored

Two policies are supported (INIT_POLICY):

explicit     submit ``<pkg>::<module>::init`` after publish (default)
on_publish   the network already ran ``init`` during publish; take the first
             shared object the publish created
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from sui_studio.adapters.keys import SuiIdentity
from sui_studio.adapters.sui_rpc import (RpcResponseError, SuiRpc, SuiRpcError,
                                         created_objects, execution_error,
                                         execution_status)
from sui_studio.logging import get_logger
from sui_studio.services.publish import PublishResult, _object_id, is_shared

log = get_logger(__name__)

INIT_FUNCTION = "init"

# Node-side build errors that mean "nothing to call" rather than "call failed"
_NOT_CALLABLE_RE = re.compile(
    r"could not resolve function|function .* not found|not an entry|visibility|"
    r"private function|no function named|FunctionNotFound|non-entry",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Initialized:
    object_id: Optional[str]
    digest: Optional[str] = None
    status: str = "initialized"


@dataclass(frozen=True)
class NotInitializable:
    reason: str
    status: str = "not_initializable"

    @property
    def object_id(self) -> None:
        return None


@dataclass(frozen=True)
class InitFailed:
    reason: str
    digest: Optional[str] = None
    status: str = "failed"

    @property
    def object_id(self) -> None:
        return None


InitOutcome = Union[Initialized, NotInitializable, InitFailed]


def _classify_rpc_error(err: SuiRpcError) -> InitOutcome:
    text = str(err)
    if isinstance(err, RpcResponseError) and err.data:
        text = f"{text} {err.data}"
    if isinstance(err, RpcResponseError) and _NOT_CALLABLE_RE.search(text):
        return NotInitializable(reason=text)
    return InitFailed(reason=text)


async def try_init(
    rpc: SuiRpc,
    identity: SuiIdentity,
    package_id: str,
    module_name: str,
    *,
    gas_budget: int,
) -> InitOutcome:
    """
    Call ``<package_id>::<module_name>::init`` with no arguments. Never raises
    for chain-side conditions.
    """
    target = f"{package_id}::{module_name}::{INIT_FUNCTION}"
    try:
        tx_bytes = await rpc.unsafe_move_call(
            identity.address,
            package_id,
            module_name,
            INIT_FUNCTION,
            gas_budget=gas_budget,
        )
    except SuiRpcError as e:
        outcome = _classify_rpc_error(e)
        log.info("deploy.init.skipped", target=target, status=outcome.status, reason=str(e))
        return outcome
    except httpx.HTTPError as e:
        return InitFailed(reason=f"{type(e).__name__}: {e}")
    except Exception as e:
        # Malformed node reply; the package is already live.
        log.warning("deploy.init.failed", target=target, error=repr(e))
        return InitFailed(reason=f"{type(e).__name__}: {e}")

    try:
        result = await rpc.sign_and_execute(identity, tx_bytes)
    except (SuiRpcError, httpx.HTTPError) as e:
        log.warning("deploy.init.failed", target=target, error=str(e))
        return InitFailed(reason=str(e))
    except Exception as e:
        log.warning("deploy.init.failed", target=target, error=repr(e))
        return InitFailed(reason=f"{type(e).__name__}: {e}")

    status = execution_status(result)
    if status != "success":
        reason = execution_error(result) or status
        log.warning("deploy.init.failed", target=target, error=reason)
        return InitFailed(reason=reason, digest=(result or {}).get("digest"))

    created = created_objects(result)
    object_id = _object_id(created[0]) if created else None
    log.info("deploy.init.ok", target=target, object_id=object_id)
    return Initialized(object_id=object_id, digest=result.get("digest"))


def init_from_publish(published: PublishResult) -> InitOutcome:
    """Resolve the init outcome from the publish effects alone."""
    for obj in published.created_objects:
        if is_shared(obj):
            return Initialized(object_id=_object_id(obj), digest=published.digest)
    return NotInitializable(reason="publish created no shared object")


__all__ = [
    "Initialized",
    "NotInitializable",
    "InitFailed",
    "InitOutcome",
    "try_init",
    "init_from_publish",
]
