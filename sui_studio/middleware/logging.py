from __future__ import annotations

"""
Access logging middleware.

One structured line per request: method, path, route, status, latency_ms,
client_ip, request_id. Request and response bodies are never logged (deploy
responses carry private keys).

Install:
    from sui_studio.middleware.logging import install_access_log_middleware

    install_access_log_middleware(app)
"""

import time
from typing import Callable

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from sui_studio.logging import get_logger

log = get_logger("access")


def _client_ip(request: Request) -> str:
    fwd = request.headers.get("x-forwarded-for")
    if fwd:
        return fwd.split(",")[0].strip()
    if request.client:
        return request.client.host
    return ""


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    if route is None:
        return ""
    return getattr(route, "path_format", None) or getattr(route, "path", "") or ""


def _level_for_status(status: int) -> str:
    if status >= 500:
        return "error"
    if status >= 400:
        return "warning"
    return "info"


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            latency_ms = round((time.perf_counter() - start) * 1000.0, 3)
            getattr(log, _level_for_status(status))(
                "access",
                method=request.method,
                path=request.url.path,
                route=_route_template(request),
                status=status,
                latency_ms=latency_ms,
                client_ip=_client_ip(request),
                request_id=getattr(request.state, "request_id", ""),
            )


def install_access_log_middleware(app: FastAPI) -> None:
    app.add_middleware(AccessLogMiddleware)


__all__ = ["AccessLogMiddleware", "install_access_log_middleware"]
