"""
Routers package.

Usage (from app factory):
    from sui_studio.routers import build_router
    app.include_router(build_router())
"""

from __future__ import annotations

from fastapi import APIRouter

from . import deploy, health


def build_router() -> APIRouter:
    root = APIRouter()
    root.include_router(health.router)
    root.include_router(deploy.router)
    return root


__all__ = ["build_router"]
