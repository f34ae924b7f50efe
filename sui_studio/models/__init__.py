"""Pydantic request/response models."""

from .common import Network, ObjectId, SuiAddress, normalize_object_id
from .deploy import (DeployContractRequest, DeployContractResponse,
                     DeployErrorResponse)

__all__ = [
    "Network",
    "ObjectId",
    "SuiAddress",
    "normalize_object_id",
    "DeployContractRequest",
    "DeployContractResponse",
    "DeployErrorResponse",
]
