from __future__ import annotations

"""
Error responses for the HTTP surface.

Every failure leaves as `application/problem+json` (RFC 7807). On top of the
standard members each body carries what the browser client reads: ``error``
(fixed summary such as "Failed to deploy contract") and ``details`` (the
human-readable reason), plus ``request_id`` / ``trace_id`` from the request
id middleware. Compiler output travels in ``diagnostics``; stack traces are
logged, never returned.
"""

from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sui_studio.errors import ApiError, BadRequest
from sui_studio.logging import get_logger

PROBLEM_CT = "application/problem+json"

log = get_logger(__name__)


def _state_ids(request: Request) -> Dict[str, str]:
    rid = getattr(request.state, "request_id", "") or ""
    tid = getattr(request.state, "trace_id", "") or ""
    return {"request_id": rid, "trace_id": tid}


def _base_problem(
    request: Request,
    *,
    status: int,
    title: str,
    detail: Optional[str] = None,
    type_uri: str = "about:blank",
    code: Optional[str] = None,
    summary: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Problem body; ``extras`` never overwrite the standard members.
    """
    prob: Dict[str, Any] = {
        "type": type_uri,
        "title": title,
        "status": status,
        "detail": detail or "",
        "instance": str(request.url.path),
        "error": summary or title,
        "details": detail or "",
        **_state_ids(request),
    }
    if code:
        prob["code"] = code
    if extras:
        for k, v in extras.items():
            if k not in prob:
                prob[k] = v
    return prob


def _to_status_title(status_code: int) -> Tuple[int, str]:
    titles = {
        400: "Bad Request",
        404: "Not Found",
        405: "Method Not Allowed",
        413: "Payload Too Large",
        415: "Unsupported Media Type",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
        502: "Bad Gateway",
        503: "Service Unavailable",
        504: "Gateway Timeout",
    }
    return status_code, titles.get(status_code, "Error")


# --------------------------- Handlers ---------------------------


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    problem = exc.to_problem()
    extras = {"diagnostics": problem["diagnostics"]} if "diagnostics" in problem else None
    body = _base_problem(
        request,
        status=exc.status_code,
        title=exc.title(),
        detail=exc.message,
        type_uri=exc.type_uri(),
        code=exc.code,
        summary=problem["error"],
        extras=extras,
    )
    if exc.status_code >= 500:
        log.error("api_error", status=exc.status_code, code=exc.code, detail=exc.message)
    else:
        log.warning("api_error", status=exc.status_code, code=exc.code, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body, media_type=PROBLEM_CT)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status, title = _to_status_title(int(exc.status_code))
    detail = str(exc.detail) if getattr(exc, "detail", None) else ""
    body = _base_problem(request, status=status, title=title, detail=detail)
    (log.warning if 400 <= status < 500 else log.error)("http_exception", status=status, detail=detail)
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_CT, headers=getattr(exc, "headers", None))


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{k: v for k, v in e.items() if k in ("loc", "msg", "type")} for e in exc.errors()]
    return await _handle_api_error(
        request,
        BadRequest("Request body is not valid JSON of the expected shape.", details={"errors": errors}),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled_exception", path=str(request.url.path))
    return await _handle_api_error(request, ApiError.from_unexpected(exc))


# --------------------------- Installer ---------------------------


def install_error_handlers(app: FastAPI) -> None:
    """
    ApiError, HTTPException, request validation, then the catch-all.
    """
    app.add_exception_handler(ApiError, _handle_api_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected_error)


__all__ = [
    "install_error_handlers",
    "PROBLEM_CT",
]
