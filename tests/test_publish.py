from __future__ import annotations

import pytest

from sui_studio.adapters.keys import generate_burner
from sui_studio.adapters.move_build import parse_build_output
from sui_studio.adapters.sui_rpc import RpcTransportError
from sui_studio.errors import PublishError
from sui_studio.services.publish import publish, select_package_id

from .conftest import build_stdout, new_object_id


def _result(created, published=None):
    out = {"digest": "D", "effects": {"status": {"status": "success"}, "created": created}}
    if published is not None:
        out["objectChanges"] = [{"type": "published", "packageId": p} for p in published]
    return out


def _immutable(oid):
    return {"owner": "Immutable", "reference": {"objectId": oid}}


def _owned(oid):
    return {"owner": {"AddressOwner": "0xabc"}, "reference": {"objectId": oid}}


def test_package_is_the_single_immutable_object():
    pkg, cap = new_object_id(), new_object_id()
    assert select_package_id(_result([_owned(cap), _immutable(pkg)], published=[pkg])) == pkg
    assert select_package_id(_result([_immutable(pkg), _owned(cap)])) == pkg


@pytest.mark.parametrize("count", [0, 2])
def test_immutable_count_must_be_one(count):
    created = [_immutable(new_object_id()) for _ in range(count)] + [_owned(new_object_id())]
    with pytest.raises(PublishError):
        select_package_id(_result(created))


def test_published_change_must_agree():
    with pytest.raises(PublishError):
        select_package_id(_result([_immutable(new_object_id())], published=[new_object_id()]))


@pytest.mark.asyncio
async def test_publish_happy_path(fake_rpc):
    burner = generate_burner()
    art = parse_build_output(build_stdout())
    res = await publish(fake_rpc, burner, art, gas_budget=123, dependencies=["0x1", "0x2"])
    assert res.ok
    assert res.package_id == fake_rpc.published[-1]
    assert res.digest
    call = next(c for c in fake_rpc.calls if c[0] == "unsafe_publish")
    assert call[1] == burner.address
    assert call[2] == art.modules_b64
    assert call[3] == ["0x1", "0x2"]
    assert call[4] == 123


@pytest.mark.asyncio
async def test_publish_failure_status(fake_rpc):
    fake_rpc.publish_status = "failure"
    fake_rpc.publish_error = "InsufficientGas"
    with pytest.raises(PublishError, match="InsufficientGas") as ei:
        await publish(fake_rpc, generate_burner(), parse_build_output(build_stdout()), gas_budget=1, dependencies=[])
    assert ei.value.status_code == 502
    assert ei.value.to_problem()["error"] == "Failed to deploy contract"


@pytest.mark.asyncio
async def test_publish_transport_failure(fake_rpc, monkeypatch):
    async def down(*a, **kw):
        raise RpcTransportError("connection refused")

    monkeypatch.setattr(fake_rpc, "unsafe_publish", down)
    with pytest.raises(PublishError, match="could not be submitted"):
        await publish(fake_rpc, generate_burner(), parse_build_output(build_stdout()), gas_budget=1, dependencies=[])
