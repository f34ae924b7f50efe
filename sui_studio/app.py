from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI

from .config import Config, load_config
from .logging import get_logger, setup_logging
from .metrics import setup_metrics
from .middleware.errors import install_error_handlers
from .middleware.logging import install_access_log_middleware
from .middleware.request_id import RequestIdMiddleware
from .routers import build_router
from .security.cors import setup_cors
from .services.deploy import Deployer
from .version import __version__

log = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    App lifespan: close the deployer's HTTP clients on shutdown.
    """
    deployer: Deployer = app.state.deployer
    cfg: Config = app.state.config
    log.info(
        "startup",
        network=cfg.network,
        rpc_url=cfg.rpc_url,
        funding_configured=deployer.funding.configured,
        init_policy=cfg.init_policy,
    )
    try:
        yield
    finally:
        await deployer.close()


def create_app(config: Optional[Config] = None, *, deployer: Optional[Any] = None) -> FastAPI:
    """
    FastAPI factory. Mounts routers, middleware and metrics.

    ``deployer`` overrides the pipeline built from ``config`` (tests inject
    one wired to fakes).
    """
    cfg = config or load_config()
    setup_logging(service_name="sui-studio", level=cfg.log_level)

    app = FastAPI(
        title="Sui Studio Services",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.config = cfg

    # Core middleware stack
    app.add_middleware(RequestIdMiddleware)
    install_access_log_middleware(app)
    setup_cors(app, config=cfg.to_cors_config())

    # Error -> JSON problem+status mapping
    install_error_handlers(app)

    # Metrics (/metrics)
    metrics = setup_metrics(app, service_name="sui-studio", service_version=__version__)

    app.state.deployer = deployer or Deployer.from_config(cfg, metrics=metrics)
    if getattr(app.state.deployer, "metrics", None) is None:
        app.state.deployer.metrics = metrics

    app.include_router(build_router())
    return app
