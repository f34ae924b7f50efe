"""
Publish compiled packages.

The package id is selected by an explicit rule: a successful publish creates
exactly one object owned by ``Immutable``, and that object is the package.
Zero or several such objects, or a ``published`` object change that names a
different id, mean the effects are malformed and the publish is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from sui_studio.adapters.keys import SuiIdentity
from sui_studio.adapters.move_build import BuildArtifact
from sui_studio.adapters.sui_rpc import (SuiRpc, SuiRpcError, created_objects,
                                         execution_error, execution_status)
from sui_studio.errors import PublishError
from sui_studio.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class PublishResult:
    status: str
    package_id: str
    created_objects: List[Dict[str, Any]] = field(default_factory=list)
    digest: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        return self.status == "success" and bool(self.package_id)


def _object_id(obj: Dict[str, Any]) -> Optional[str]:
    ref = obj.get("reference") or {}
    return ref.get("objectId") or obj.get("objectId")


def is_immutable(obj: Dict[str, Any]) -> bool:
    return obj.get("owner") == "Immutable"


def is_shared(obj: Dict[str, Any]) -> bool:
    owner = obj.get("owner")
    return isinstance(owner, dict) and "Shared" in owner


def select_package_id(result: Dict[str, Any]) -> str:
    """
    Return the id of the single immutable object created by ``result``.

    Raises PublishError when there is not exactly one, or when the
    ``published`` object change disagrees.
    """
    created = created_objects(result)
    immutable = [o for o in created if is_immutable(o)]
    if len(immutable) != 1:
        raise PublishError(
            f"Expected exactly one immutable created object, found {len(immutable)}",
            details={"digest": result.get("digest"), "created": len(created)},
        )
    package_id = _object_id(immutable[0])
    if not package_id:
        raise PublishError("Immutable created object carries no objectId", details={"digest": result.get("digest")})

    published = [
        c.get("packageId") for c in (result.get("objectChanges") or []) if c.get("type") == "published"
    ]
    if published and published != [package_id]:
        raise PublishError(
            "Published package id disagrees with the immutable created object",
            details={"immutable": package_id, "published": published},
        )
    return package_id


async def publish(
    rpc: SuiRpc,
    identity: SuiIdentity,
    artifact: BuildArtifact,
    *,
    gas_budget: int,
    dependencies: Sequence[str],
) -> PublishResult:
    """
    Publish ``artifact`` from ``identity`` and wait for local execution.
    """
    try:
        tx_bytes = await rpc.unsafe_publish(
            identity.address,
            artifact.modules_b64,
            list(dependencies),
            gas_budget=gas_budget,
        )
        result = await rpc.sign_and_execute(identity, tx_bytes)
    except (SuiRpcError, httpx.HTTPError) as e:
        raise PublishError(f"Publish transaction could not be submitted: {e}") from e

    status = execution_status(result)
    if status != "success":
        raise PublishError(
            f"Publish transaction failed: {execution_error(result) or status}",
            details={"status": status, "digest": (result or {}).get("digest")},
        )

    package_id = select_package_id(result)
    log.info("deploy.publish.ok", package_id=package_id, digest=result.get("digest"))
    return PublishResult(
        status=status,
        package_id=package_id,
        created_objects=created_objects(result),
        digest=result.get("digest"),
        raw=result,
    )


__all__ = [
    "PublishResult",
    "publish",
    "select_package_id",
    "is_immutable",
    "is_shared",
]
