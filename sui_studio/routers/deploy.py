from __future__ import annotations

"""
Deploy Contract Router

Endpoints:
  - POST /deploy-contract        : compile, fund, publish and init a Move module
  - POST /api/deploy-contract    : same handler under the browser client's path

The handler is a thin shim over `sui_studio.services.deploy.Deployer` (held on
``app.state.deployer``). Errors are raised as ApiError and mapped by the error
middleware.
"""

from typing import Optional

from fastapi import APIRouter, Request

from sui_studio.errors import ServerError
from sui_studio.logging import get_logger
from sui_studio.models.deploy import (DeployContractRequest,
                                      DeployContractResponse,
                                      DeployErrorResponse)

log = get_logger(__name__)
router = APIRouter(tags=["deploy"])

_ERRORS = {
    400: {"model": DeployErrorResponse, "description": "moveCode missing or empty"},
    422: {"model": DeployErrorResponse, "description": "Move build failed"},
    502: {"model": DeployErrorResponse, "description": "Publish transaction failed"},
}


@router.post(
    "/deploy-contract",
    summary="Compile and publish a Move module with a fresh burner identity",
    response_model=DeployContractResponse,
    responses=_ERRORS,
)
@router.post("/api/deploy-contract", include_in_schema=False, response_model=DeployContractResponse)
async def post_deploy_contract(
    request: Request, req: Optional[DeployContractRequest] = None
) -> DeployContractResponse:
    deployer = getattr(request.app.state, "deployer", None)
    if deployer is None:
        raise ServerError("Deployer is not configured")

    result = await deployer.deploy(req.moveCode if req is not None else None)
    return DeployContractResponse(**result.to_response())
