from __future__ import annotations

"""
Prometheus metrics setup and /metrics exporter for Sui Studio Services.

Records:
    - http_requests_total{method,path,status}
    - http_request_duration_seconds histogram
    - http_inprogress_requests gauge
    - deployments_total{outcome}                 success|build_failed|publish_failed|...
    - deploy_stage_seconds{stage}                build|funding|publish|init
    - service_info

Usage
-----
    from fastapi import FastAPI
    from sui_studio.metrics import setup_metrics

    app = FastAPI()
    setup_metrics(app, service_name="sui-studio", service_version="0.1.0")
"""

import contextlib
import os
import time
from typing import Any, Dict, Iterator, Optional

from fastapi import APIRouter, FastAPI
from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, Histogram, Info, PlatformCollector,
                               ProcessCollector, generate_latest)
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

# ------------------------------ Registry -------------------------------------


class Metrics:
    """
    Holder for registry and metric objects. Exposed via app.state.metrics.
    """

    def __init__(self, service_name: str, service_version: Optional[str] = None) -> None:
        self.registry = CollectorRegistry()
        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)

        self.http_inprogress = Gauge(
            "http_inprogress_requests",
            "In-progress HTTP requests",
            ["method", "path"],
            registry=self.registry,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "path", "status"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self.registry,
        )

        # Deploy pipeline
        self.deployments_total = Counter(
            "deployments_total",
            "Deployment attempts by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.deploy_stage_seconds = Histogram(
            "deploy_stage_seconds",
            "Time spent per deploy pipeline stage",
            ["stage"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
            registry=self.registry,
        )

        self.service_info = Info("service", "Service metadata", registry=self.registry)
        payload = {"name": service_name}
        if service_version:
            payload["version"] = service_version
        self.service_info.info(payload)

    @contextlib.contextmanager
    def stage(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.deploy_stage_seconds.labels(name).observe(time.perf_counter() - start)

    def deployment(self, outcome: str) -> None:
        self.deployments_total.labels(outcome).inc()

    def render_latest(self) -> bytes:
        return generate_latest(self.registry)


# ------------------------------ Middleware -----------------------------------


def _extract_path_template(scope: Scope) -> str:
    route = scope.get("route")
    for attr in ("path_format", "path"):
        if route is not None and hasattr(route, attr):
            val = getattr(route, attr, None)
            if isinstance(val, str) and val:
                return val
    return scope.get("path") or ""


class PrometheusMiddleware:
    """
    Minimal ASGI middleware to record HTTP metrics.
    """

    def __init__(self, app: ASGIApp, metrics: Metrics):
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path_tmpl = _extract_path_template(scope)
        start = time.perf_counter()
        status_code = 500

        self.metrics.http_inprogress.labels(method, path_tmpl).inc()

        async def send_wrapped(message: Dict[str, Any]) -> None:
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapped)
        finally:
            duration = time.perf_counter() - start
            labels = (method, path_tmpl, str(status_code))
            try:
                self.metrics.http_requests_total.labels(*labels).inc()
                self.metrics.http_request_duration_seconds.labels(*labels).observe(duration)
            finally:
                self.metrics.http_inprogress.labels(method, path_tmpl).dec()


# ------------------------------ Router ---------------------------------------


def create_metrics_router(metrics: Metrics, path: str = "/metrics") -> APIRouter:
    router = APIRouter()

    @router.get(path, include_in_schema=False)
    async def metrics_endpoint() -> Response:
        try:
            return Response(content=metrics.render_latest(), media_type=CONTENT_TYPE_LATEST)
        except Exception as e:  # noqa: BLE001
            return PlainTextResponse(f"metrics error: {e}", status_code=500)

    return router


# ------------------------------ Setup helper ---------------------------------


def setup_metrics(
    app: FastAPI,
    *,
    service_name: str = "sui-studio",
    service_version: Optional[str] = None,
    path: Optional[str] = None,
) -> Metrics:
    """
    Create the registry, add the HTTP middleware and mount /metrics.
    Returns the `Metrics` instance and stores it in `app.state.metrics`.
    """
    metrics = Metrics(service_name=service_name, service_version=service_version)
    app.add_middleware(PrometheusMiddleware, metrics=metrics)
    app.include_router(create_metrics_router(metrics, path or os.getenv("METRICS_PATH") or "/metrics"))
    app.state.metrics = metrics
    return metrics


__all__ = [
    "Metrics",
    "PrometheusMiddleware",
    "create_metrics_router",
    "setup_metrics",
]
