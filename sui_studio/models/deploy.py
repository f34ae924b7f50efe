from __future__ import annotations

"""
Deploy contract models.

- DeployContractRequest: ``{"moveCode": "<Move source>"}``. The field is
  optional at the schema level so that a missing value surfaces as the
  pipeline's ``missing_field`` error rather than a generic validation error.
- DeployContractResponse: camelCase result returned to the browser client.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Network, ObjectId, SuiAddress


class DeployContractRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    moveCode: Optional[str] = Field(default=None, description="Move source text of a single module.")


class DeployContractResponse(BaseModel):
    """
    Successful deployment. ``objectId`` is null when the module had no callable
    initializer or the init call failed; that is not an error.
    """

    packageId: ObjectId = Field(..., description="Id of the published immutable package object.")
    objectId: Optional[ObjectId] = Field(default=None, description="First object created by init, if any.")
    privateKeyHex: str = Field(..., description="Burner Ed25519 seed (hex). Only copy; not stored server-side.")
    privateKeyBech32: str = Field(..., description="Same key as suiprivkey1… for wallet import.")
    address: SuiAddress = Field(..., description="Burner address that published the package.")
    fundingSucceeded: bool = Field(..., description="Whether faucet or master transfer funded the burner.")
    initStatus: Literal["initialized", "not_initializable", "failed"] = Field(...)
    publishDigest: Optional[str] = Field(default=None, description="Digest of the publish transaction.")
    network: Network = Field(...)
    warnings: List[str] = Field(default_factory=list)


class DeployErrorResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    error: str = Field(..., examples=["Failed to deploy contract"])
    details: str = Field(..., description="Human-readable failure detail.")
    code: Optional[str] = Field(default=None, examples=["build_failed"])
    status: Optional[int] = None


__all__ = ["DeployContractRequest", "DeployContractResponse", "DeployErrorResponse"]
