from __future__ import annotations

import pytest

from sui_studio.adapters.keys import generate_burner
from sui_studio.services.initializer import (InitFailed, Initialized,
                                             NotInitializable,
                                             init_from_publish, try_init)
from sui_studio.services.publish import PublishResult

from .conftest import new_object_id


@pytest.mark.asyncio
async def test_init_returns_first_created_object(fake_rpc):
    pkg = new_object_id()
    burner = generate_burner()
    out = await try_init(fake_rpc, burner, pkg, "counter", gas_budget=10)
    assert isinstance(out, Initialized)
    assert out.status == "initialized"
    assert out.object_id and out.object_id.startswith("0x")
    assert fake_rpc.calls[0] == ("unsafe_moveCall", burner.address, pkg, "counter", "init")


@pytest.mark.asyncio
async def test_init_that_creates_nothing(fake_rpc):
    fake_rpc.init_mode = "empty"
    out = await try_init(fake_rpc, generate_burner(), new_object_id(), "counter", gas_budget=10)
    assert isinstance(out, Initialized)
    assert out.object_id is None


@pytest.mark.asyncio
async def test_missing_initializer(fake_rpc):
    fake_rpc.init_mode = "missing"
    out = await try_init(fake_rpc, generate_burner(), new_object_id(), "counter", gas_budget=10)
    assert isinstance(out, NotInitializable)
    assert out.object_id is None
    assert "execute" not in fake_rpc.methods()


@pytest.mark.asyncio
async def test_aborting_initializer(fake_rpc):
    fake_rpc.init_mode = "abort"
    out = await try_init(fake_rpc, generate_burner(), new_object_id(), "counter", gas_budget=10)
    assert isinstance(out, InitFailed)
    assert "MoveAbort" in out.reason
    assert out.digest


@pytest.mark.asyncio
async def test_unclassified_rpc_error_is_a_failure(fake_rpc):
    fake_rpc.init_mode = "rpc_error"
    out = await try_init(fake_rpc, generate_burner(), new_object_id(), "counter", gas_budget=10)
    assert isinstance(out, InitFailed)
    assert out.object_id is None


def test_init_from_publish_takes_shared_object():
    shared = new_object_id()
    published = PublishResult(
        status="success",
        package_id=new_object_id(),
        created_objects=[
            {"owner": "Immutable", "reference": {"objectId": new_object_id()}},
            {"owner": {"Shared": {"initial_shared_version": 2}}, "reference": {"objectId": shared}},
        ],
        digest="D",
    )
    out = init_from_publish(published)
    assert isinstance(out, Initialized)
    assert out.object_id == shared


def test_init_from_publish_without_shared_object():
    published = PublishResult(status="success", package_id=new_object_id(), created_objects=[], digest="D")
    assert isinstance(init_from_publish(published), NotInitializable)


@pytest.mark.asyncio
async def test_malformed_move_call_reply_is_a_failure(fake_rpc, monkeypatch):
    async def no_tx_bytes(*args, **kwargs):
        return None["txBytes"]  # type: ignore[index]

    monkeypatch.setattr(fake_rpc, "unsafe_move_call", no_tx_bytes)
    out = await try_init(fake_rpc, generate_burner(), new_object_id(), "counter", gas_budget=10)
    assert isinstance(out, InitFailed)
    assert out.object_id is None
    assert out.reason.startswith("TypeError")


@pytest.mark.asyncio
async def test_unsignable_tx_bytes_is_a_failure(fake_rpc, monkeypatch):
    async def bad_bytes(*args, **kwargs):
        return "%%% not base64 %%%"

    async def boom(identity, tx_bytes, **kwargs):
        raise ValueError("invalid base64 transaction bytes")

    monkeypatch.setattr(fake_rpc, "unsafe_move_call", bad_bytes)
    monkeypatch.setattr(fake_rpc, "sign_and_execute", boom)
    out = await try_init(fake_rpc, generate_burner(), new_object_id(), "counter", gas_budget=10)
    assert isinstance(out, InitFailed)
    assert "ValueError" in out.reason
