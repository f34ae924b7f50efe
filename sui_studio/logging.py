from __future__ import annotations

"""
structlog configuration for the deploy service and CLI.

Every record, ours or a library's (uvicorn, httpx), goes through one
processor chain and one stdlib handler. Output is JSON lines unless
LOG_FORMAT=console. Request ids bound by the middleware are merged into each
event, and fields named like key material are masked before rendering.

    setup_logging(service_name="sui-studio")
    log = get_logger(__name__)
    log.info("deploy.build.ok", modules=1)
"""

import logging
import os
from typing import Any, Dict, Iterable, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer


# ------------------------------ Redaction ------------------------------------


REDACT_KEYS = {
    "authorization",
    "token",
    "password",
    "secret",
    "mnemonic",
    "private_key",
    "private_key_hex",
    "private_key_bech32",
    "privatekeyhex",
    "master_wallet_mnemonic",
}


def _redact_secrets(_: logging.Logger, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for k in list(event_dict.keys()):
        if k.lower() in REDACT_KEYS and event_dict[k] is not None:
            event_dict[k] = "***"
    return event_dict


# ------------------------------ Setup ----------------------------------------


def _base_processors(service_name: str) -> Iterable:
    yield structlog.stdlib.add_log_level
    yield structlog.processors.TimeStamper(fmt="iso", utc=True)
    yield merge_contextvars
    yield structlog.processors.StackInfoRenderer()
    yield structlog.processors.format_exc_info
    yield _redact_secrets
    yield structlog.processors.UnicodeDecoder()

    def _ensure_service(_: logging.Logger, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        return ev

    yield _ensure_service


def setup_logging(
    *,
    service_name: str = "sui-studio",
    level: Optional[str | int] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Install the processor chain and the root handler. Idempotent: existing
    root handlers are replaced.

    ``level`` and ``log_format`` fall back to LOG_LEVEL / LOG_FORMAT, then to
    INFO and "json".
    """
    env_level = os.getenv("LOG_LEVEL", "").upper() or None
    env_format = os.getenv("LOG_FORMAT", "").lower() or None

    level = level or env_level or "INFO"
    if isinstance(level, str):
        level = level.upper()
    log_format = (log_format or env_format or "json").lower()

    processors = list(_base_processors(service_name))

    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)
    else:
        renderer = JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    # Route stdlib records (uvicorn, httpx, our adapters) through the same chain.
    shared_handler = logging.StreamHandler()
    shared_handler.setLevel(logging.DEBUG)
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            *processors,
        ],
    )
    shared_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(shared_handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [shared_handler]
        lg.propagate = False
        lg.setLevel(level)

    logging.getLogger("asyncio").setLevel("WARNING")
    logging.getLogger("httpcore").setLevel("WARNING")
    logging.getLogger("httpx").setLevel("WARNING")


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Return a lazy structlog logger named after ``name``. Configuration is
    resolved on first use, so module-level loggers pick up setup_logging().
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


# ------------------------------ Context helpers -------------------------------

def bind_request_context(**kv: Any) -> None:
    """
    Bind key/value pairs (request_id, trace_id) for the current task.
    """
    structlog.contextvars.bind_contextvars(**kv)


def clear_request_context(*keys: str) -> None:
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


__all__ = [
    "setup_logging",
    "get_logger",
    "bind_request_context",
    "clear_request_context",
    "REDACT_KEYS",
]
