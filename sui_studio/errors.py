from __future__ import annotations

"""
Error hierarchy for the Sui Studio deploy service.

Two families live here:

Fatal (``ApiError`` subclasses)
    Short-circuit the deploy pipeline and become a JSON error response. Each
    carries an HTTP ``status_code``, a stable machine ``code`` and a
    human-readable ``message`` (the ``details`` member of the response body).

    - InputError    400  missing_field
    - BuildError    422  build_failed
    - PublishError  502  publish_failed

Non-fatal (``DeployWarning`` subclasses)
    Raised and caught *inside* the pipeline. They are logged and folded into
    the successful result (null fields, boolean flags, warning strings); they
    never reach the HTTP error channel.

    - FundingError, FundingTimeout, InitError, CleanupError

Usage
-----
    from sui_studio.errors import BuildError

    raise BuildError("Move build failed", details={"exit_code": 1, "stderr": "..."})
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


DEFAULT_ERROR_DOCS_BASE = "https://docs.sui.io/references/cli/client"

# Summary placed in the ``error`` member of pipeline error bodies
DEPLOY_FAILED = "Failed to deploy contract"


@dataclass(eq=False)
class ApiError(Exception):
    message: str
    status_code: int = 400
    code: str = "bad_request"
    details: Optional[Mapping[str, Any]] = None
    type_uri_base: str = DEFAULT_ERROR_DOCS_BASE
    summary: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    # --- RFC 7807 helpers -------------------------------------------------- #

    def type_uri(self) -> str:
        return f"{self.type_uri_base}#{self.code}"

    def title(self) -> str:
        return {
            "bad_request": "Bad Request",
            "missing_field": "Missing Required Field",
            "build_failed": "Build Failed",
            "publish_failed": "Publish Failed",
            "not_found": "Not Found",
            "rpc_error": "Upstream RPC Error",
            "server_error": "Internal Server Error",
        }.get(self.code, self.message or "Error")

    def to_problem(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "type": self.type_uri(),
            "title": self.title(),
            "status": self.status_code,
            "code": self.code,
            "detail": self.message,
            "error": self.summary or self.title(),
            "details": self.message,
        }
        if self.details:
            body["diagnostics"] = dict(self.details)
        return body

    @classmethod
    def from_unexpected(cls, err: BaseException) -> "ApiError":
        return ServerError(
            "Unhandled server error",
            details={"exc_type": err.__class__.__name__, "str": str(err)},
        )


# ------------------------------ Concrete types ------------------------------- #


class BadRequest(ApiError):
    def __init__(self, message: str = "Bad request", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=400, code="bad_request", details=details)


class InputError(ApiError):
    """Required request input is absent or empty. Raised before any side effect."""

    def __init__(self, field_name: str = "moveCode", message: Optional[str] = None):
        super().__init__(
            message=message or f"Missing required field: {field_name}",
            status_code=400,
            code="missing_field",
            details={"field": field_name},
            summary="Move code is required",
        )


class BuildError(ApiError):
    """Toolchain failure or output that violates the artifact contract."""

    def __init__(self, message: str = "Move build failed", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            code="build_failed",
            details=details,
            summary=DEPLOY_FAILED,
        )


class PublishError(ApiError):
    """Publish transaction failed or its effects are malformed."""

    def __init__(self, message: str = "Publish transaction failed", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=502,
            code="publish_failed",
            details=details,
            summary=DEPLOY_FAILED,
        )


class NotFound(ApiError):
    def __init__(self, what: str = "Resource", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=f"{what} not found", status_code=404, code="not_found", details=details)


class RpcError(ApiError):
    def __init__(self, message: str = "Upstream RPC error", *, details: Optional[Mapping[str, Any]] = None, status: int = 502):
        super().__init__(message=message, status_code=status, code="rpc_error", details=details)


class ServerError(ApiError):
    def __init__(self, message: str = "Internal server error", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            code="server_error",
            details=details,
            summary=DEPLOY_FAILED,
        )


# ------------------------------ Non-fatal ----------------------------------- #


class DeployWarning(Exception):
    """Base for conditions absorbed into a successful deployment result."""


class FundingError(DeployWarning):
    """Faucet or master transfer failed; the burner may be unfunded."""


class FundingTimeout(FundingError):
    """Funding was accepted but not observed on-chain before the deadline."""


class InitError(DeployWarning):
    """The initializer call could not be built or did not succeed."""


class CleanupError(DeployWarning):
    """Workspace removal failed. Logged only."""


__all__ = [
    "ApiError",
    "BadRequest",
    "InputError",
    "BuildError",
    "PublishError",
    "NotFound",
    "RpcError",
    "ServerError",
    "DeployWarning",
    "FundingError",
    "FundingTimeout",
    "InitError",
    "CleanupError",
    "DEPLOY_FAILED",
]
