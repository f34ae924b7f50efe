from __future__ import annotations

import re

import pytest

from sui_studio.adapters.sui_rpc import RpcTransportError


@pytest.mark.asyncio
async def test_healthz_ok(aclient):
    resp = await aclient.get("/healthz")
    assert resp.status_code == 200
    assert "application/json" in resp.headers.get("content-type", "").lower()
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_version_endpoint(aclient):
    resp = await aclient.get("/version")
    assert resp.status_code == 200
    data = resp.json()
    assert re.match(r"^\d+\.\d+\.\d+", data["version"])
    assert data["network"] == "testnet"
    assert data["git"] is None or isinstance(data["git"], str)


@pytest.mark.asyncio
async def test_readyz_ok(aclient, monkeypatch):
    monkeypatch.setattr("sui_studio.routers.health.shutil.which", lambda name: "/usr/local/bin/sui")
    resp = await aclient.get("/readyz")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["checks"]["compiler"]["ok"] is True
    assert data["checks"]["rpc"]["chainIdentifier"] == "4c78adac"


@pytest.mark.asyncio
async def test_readyz_without_compiler(aclient, monkeypatch):
    monkeypatch.setattr("sui_studio.routers.health.shutil.which", lambda name: None)
    resp = await aclient.get("/readyz")
    assert resp.status_code == 503
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["checks"]["compiler"]["ok"] is False


@pytest.mark.asyncio
async def test_readyz_without_node(aclient, fake_rpc, monkeypatch):
    monkeypatch.setattr("sui_studio.routers.health.shutil.which", lambda name: "/usr/local/bin/sui")

    async def down():
        raise RpcTransportError("connection refused")

    monkeypatch.setattr(fake_rpc, "get_chain_identifier", down)
    resp = await aclient.get("/readyz")
    assert resp.status_code == 503
    assert resp.json()["checks"]["rpc"]["ok"] is False
