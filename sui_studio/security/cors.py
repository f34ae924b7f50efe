from __future__ import annotations

"""
Strict CORS configuration helpers for FastAPI.

- **Deny by default.** No origins are allowed unless explicitly configured.
- Exact-origin allowlist plus wildcard patterns (e.g. "https://*.example.com").
- Rejects "*" combined with credentials.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware


@dataclass(frozen=True)
class CORSConfig:
    allow_origins: List[str] = field(default_factory=list)
    allow_methods: List[str] = field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    allow_headers: List[str] = field(default_factory=lambda: ["Content-Type"])
    expose_headers: List[str] = field(default_factory=lambda: ["X-Request-Id"])
    allow_credentials: bool = False
    max_age: int = 600


def _glob_to_regex(glob_origin: str) -> str:
    """
    Convert "https://*.example.com" to an anchored regex; '*' spans subdomain labels only.
    """
    if "://" not in glob_origin:
        raise ValueError(f"Invalid origin pattern (missing scheme): {glob_origin!r}")
    if "/" in glob_origin.split("://", 1)[1]:
        raise ValueError(f"Origin patterns must not include paths: {glob_origin!r}")
    escaped = re.escape(glob_origin).replace(r"\*", r"(?:[^/.:]+\.)+")
    return r"^" + escaped + r"$"


def split_origins(origins: List[str]) -> Tuple[List[str], Optional[str]]:
    """Return (exact origins, combined regex for wildcard patterns or None)."""
    exact: List[str] = []
    patterns: List[str] = []
    for o in origins:
        if o == "*":
            exact.append(o)
        elif "*" in o:
            patterns.append(_glob_to_regex(o.replace("*.", "*")))
        else:
            exact.append(o.rstrip("/"))
    if not patterns:
        return exact, None
    if len(patterns) == 1:
        return exact, patterns[0]
    return exact, r"^(?:" + r"|".join(p.strip("^$") for p in patterns) + r")$"


def setup_cors(app: FastAPI, *, config: Optional[CORSConfig] = None) -> CORSConfig:
    cfg = config or CORSConfig()
    if "*" in cfg.allow_origins and cfg.allow_credentials:
        raise ValueError('CORS_ALLOW_ORIGINS="*" is incompatible with CORS_ALLOW_CREDENTIALS=true')
    exact, regex = split_origins(list(cfg.allow_origins))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=exact,
        allow_origin_regex=regex,
        allow_methods=cfg.allow_methods,
        allow_headers=cfg.allow_headers,
        expose_headers=cfg.expose_headers,
        allow_credentials=cfg.allow_credentials,
        max_age=cfg.max_age,
    )
    return cfg


__all__ = ["CORSConfig", "setup_cors", "split_origins"]
