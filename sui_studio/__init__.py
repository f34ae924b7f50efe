"""
Sui Studio Services
===================

FastAPI service that turns Move source into a published Sui package: burner
identity, ephemeral build workspace, funding, publish and best-effort init.

Entry points: ``sui_studio.app.create_app`` (ASGI factory), ``sui_studio.main``
(uvicorn launcher) and ``sui_studio.cli`` (developer commands).
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__"]
