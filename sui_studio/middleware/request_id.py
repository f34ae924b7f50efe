from __future__ import annotations

"""
Request ID & tracing middleware.

- Generates or propagates a stable **X-Request-Id** for every request.
- Supports the W3C **traceparent** header: keeps an inbound trace-id and
  assigns a new span-id, or starts a fresh trace.
- Exposes ids on `request.state` (request_id, trace_id, span_id) and binds
  them into the structlog context for the lifetime of the request.
- Adds response headers: X-Request-Id, traceparent.
"""

import re
import secrets
import uuid
from typing import Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from sui_studio.logging import bind_request_context, clear_request_context

_TRACEPARENT_RE = re.compile(
    r"^(?P<ver>[0-9a-f]{2})-(?P<trace_id>[0-9a-f]{32})-(?P<span_id>[0-9a-f]{16})-(?P<flags>[0-9a-f]{2})$"
)

REQUEST_ID_HEADER = "X-Request-Id"
TRACEPARENT_HEADER = "traceparent"


def _parse_traceparent(value: str) -> Optional[Tuple[str, str, str]]:
    """
    Parse W3C traceparent. Returns (trace_id, parent_span_id, flags) if valid, else None.
    """
    m = _TRACEPARENT_RE.match(value.strip())
    if not m:
        return None
    trace_id, span_id, flags = m.group("trace_id"), m.group("span_id"), m.group("flags")
    # All-zero ids are invalid
    if trace_id == "0" * 32 or span_id == "0" * 16:
        return None
    return trace_id, span_id, flags


def _format_traceparent(trace_id: str, span_id: str, flags: str = "01") -> str:
    return f"00-{trace_id}-{span_id}-{flags}"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get(REQUEST_ID_HEADER.lower()) or uuid.uuid4().hex

        parent = request.headers.get(TRACEPARENT_HEADER)
        parsed = _parse_traceparent(parent) if parent else None
        if parsed:
            trace_id, _, flags = parsed
        else:
            trace_id, flags = secrets.token_hex(16), "01"
        span_id = secrets.token_hex(8)

        request.state.request_id = req_id
        request.state.trace_id = trace_id
        request.state.span_id = span_id

        bind_request_context(request_id=req_id, trace_id=trace_id)
        try:
            response: Response = await call_next(request)
        finally:
            clear_request_context("request_id", "trace_id")

        response.headers[REQUEST_ID_HEADER] = req_id
        response.headers[TRACEPARENT_HEADER] = _format_traceparent(trace_id, span_id, flags)
        return response


__all__ = ["RequestIdMiddleware", "REQUEST_ID_HEADER"]
