from __future__ import annotations

import os
import shutil
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from fastapi import APIRouter, Request, Response, status

from sui_studio import version as svc_version
from sui_studio.adapters.sui_rpc import SuiRpcError
from sui_studio.logging import get_logger

log = get_logger(__name__)
router = APIRouter(tags=["health"])

_PROCESS_START = time.time()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uptime_seconds() -> float:
    return max(0.0, time.time() - _PROCESS_START)


def _check_compiler(cfg: Any) -> Tuple[bool, Dict[str, Any]]:
    """
    Compiler readiness: the configured `sui` executable is resolvable on PATH.
    """
    sui_bin = getattr(cfg, "sui_bin", "sui")
    path = shutil.which(sui_bin)
    if path is None:
        return False, {"bin": sui_bin, "error": "not found on PATH"}
    return True, {"bin": sui_bin, "path": path}


async def _check_rpc(request: Request) -> Tuple[bool, Dict[str, Any]]:
    """
    RPC readiness: the node answers sui_getChainIdentifier.
    """
    deployer = getattr(request.app.state, "deployer", None)
    if deployer is None:
        return False, {"error": "deployer not configured"}
    info: Dict[str, Any] = {"url": deployer.rpc.url}
    try:
        info["chainIdentifier"] = await deployer.rpc.get_chain_identifier()
        return True, info
    except SuiRpcError as e:
        info["error"] = str(e)
        return False, info


def _version_blob() -> Dict[str, Any]:
    return {
        "service": "sui-studio-services",
        "version": svc_version.__version__,
        "git": svc_version.git_describe(),
        "python": {
            "version": "{}.{}.{}".format(*sys.version_info[:3]),
            "impl": sys.implementation.name,
        },
        "started_at": datetime.fromtimestamp(_PROCESS_START, tz=timezone.utc).isoformat(),
        "now": _utcnow_iso(),
        "uptime_seconds": round(_uptime_seconds(), 3),
    }


@router.get("/healthz", summary="Liveness probe", response_model=None)
def healthz() -> Dict[str, Any]:
    """
    Simple liveness probe: always returns 200 if the process is serving requests.
    """
    return {"status": "ok", **_version_blob()}


@router.get("/version", summary="Service version", response_model=None)
def version(request: Request) -> Dict[str, Any]:
    meta = _version_blob()
    cfg = getattr(request.app.state, "config", None)
    meta["network"] = getattr(cfg, "network", None)
    meta["env"] = os.getenv("SUI_STUDIO_ENV")
    return meta


@router.get("/readyz", summary="Readiness probe", response_model=None)
async def readyz(request: Request, response: Response) -> Dict[str, Any]:
    """
    Readiness probe: compiler on PATH and the full node reachable.
    Returns 200 when all checks pass; 503 otherwise.
    """
    cfg = getattr(request.app.state, "config", None)
    checks: Dict[str, Dict[str, Any]] = {}

    ok_bin, info = _check_compiler(cfg)
    checks["compiler"] = {"ok": ok_bin, **info}

    ok_rpc, info = await _check_rpc(request)
    checks["rpc"] = {"ok": ok_rpc, **info}

    ok_all = ok_bin and ok_rpc
    if not ok_all:
        log.warning("readyz.degraded", checks=checks)
    response.status_code = status.HTTP_200_OK if ok_all else status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ok" if ok_all else "degraded",
        "now": _utcnow_iso(),
        "uptime_seconds": round(_uptime_seconds(), 3),
        "checks": checks,
    }
