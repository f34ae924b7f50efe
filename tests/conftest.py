from __future__ import annotations

import asyncio
import base64
import json
import secrets
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from sui_studio.adapters import move_build
from sui_studio.adapters.keys import verify_signature
from sui_studio.adapters.sui_rpc import SUI_COIN_TYPE, RpcResponseError
from sui_studio.app import create_app
from sui_studio.config import Config
from sui_studio.services.deploy import Deployer, PipelineSettings
from sui_studio.services.funding import FundingService

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"

# Move bytecode starts with the a11ceb0b magic
MODULE_BYTES = bytes.fromhex("a11ceb0b060000000a01000c020c1e032a2d04570a05615f07c001")
MODULE_B64 = base64.b64encode(MODULE_BYTES).decode("ascii")


def new_object_id() -> str:
    return "0x" + secrets.token_hex(32)


def build_stdout(modules: Optional[List[str]] = None, dependencies: Optional[List[str]] = None) -> str:
    return json.dumps(
        {
            "modules": [MODULE_B64] if modules is None else modules,
            "dependencies": ["0x1", "0x2"] if dependencies is None else dependencies,
            "digest": list(range(32)),
        }
    )


@pytest.fixture
def counter_source() -> str:
    return (FIXTURES / "counter" / "sources" / "counter.move").read_text(encoding="utf-8")


# ----------------------------
# Fake compiler (subprocess.run)
# ----------------------------
@dataclass
class FakeCompiler:
    """
    Stands in for `sui move build`. Records the workspace it was pointed at and
    the files it found there at build time.
    """

    returncode: int = 0
    stdout: str = field(default_factory=build_stdout)
    stderr: str = ""
    exc: Optional[BaseException] = None
    roots: List[Path] = field(default_factory=list)
    seen_files: List[List[str]] = field(default_factory=list)
    manifests: List[str] = field(default_factory=list)
    commands: List[List[str]] = field(default_factory=list)

    def __call__(self, cmd, **kwargs):
        self.commands.append(list(cmd))
        root = Path(cmd[cmd.index("--path") + 1])
        self.roots.append(root)
        self.seen_files.append(
            sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())
        )
        self.manifests.append((root / "Move.toml").read_text(encoding="utf-8"))
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr=self.stderr)


@pytest.fixture
def fake_compiler(monkeypatch: pytest.MonkeyPatch) -> FakeCompiler:
    compiler = FakeCompiler()
    monkeypatch.setattr(move_build.subprocess, "run", compiler)
    return compiler


# ----------------------------
# Fake full node
# ----------------------------
def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


class FakeSuiRpc:
    """
    Test double for sui_studio.adapters.sui_rpc.SuiRpc.

    Transaction bytes are tagged ("publish:", "call:", "pay:") so the fake can
    answer sign_and_execute with the matching effects. Every signature is
    checked against the submitted bytes.
    """

    url = "http://rpc.test/"

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.balances: Dict[str, int] = {}
        self.coins: Dict[str, List[Dict[str, Any]]] = {}
        self.publish_status = "success"
        self.publish_error: Optional[str] = None
        self.publish_shared = False
        self.init_mode = "shared"  # shared | missing | abort | empty | rpc_error
        self.pay_status = "success"
        self.pay_failures: List[BaseException] = []
        self.published: List[str] = []
        self.inflight = 0
        self.max_inflight = 0
        self.closed = False

    def methods(self) -> List[str]:
        return [c[0] for c in self.calls]

    async def close(self) -> None:
        self.closed = True

    # ---- reads
    async def get_chain_identifier(self) -> str:
        self.calls.append(("sui_getChainIdentifier",))
        return "4c78adac"

    async def get_balance(self, owner: str, coin_type: str = SUI_COIN_TYPE) -> int:
        self.calls.append(("suix_getBalance", owner))
        return self.balances.get(owner, 0)

    async def wait_for_balance(self, owner: str, *, min_balance: int = 1, **kwargs: Any) -> Optional[int]:
        bal = await self.get_balance(owner)
        return bal if bal >= min_balance else None

    async def get_coins(self, owner: str, coin_type: str = SUI_COIN_TYPE, *, limit: int = 50):
        self.calls.append(("suix_getCoins", owner))
        return list(self.coins.get(owner, []))

    # ---- builders
    async def unsafe_publish(self, sender, modules_b64, dependencies, *, gas_budget, gas=None) -> str:
        self.calls.append(("unsafe_publish", sender, list(modules_b64), list(dependencies), gas_budget))
        return _b64(b"publish:" + sender.encode())

    async def unsafe_move_call(self, signer, package_id, module, function, *, type_arguments=(), arguments=(), gas_budget, gas=None) -> str:
        self.calls.append(("unsafe_moveCall", signer, package_id, module, function))
        if self.init_mode == "missing":
            raise RpcResponseError(
                -32602,
                f"Error checking transaction input objects: Could not resolve function '{function}' in module {package_id}::{module}",
            )
        if self.init_mode == "rpc_error":
            raise RpcResponseError(-32000, "Internal error")
        return _b64(b"call:" + function.encode())

    async def unsafe_pay_sui(self, signer, input_coins, recipients, amounts, *, gas_budget) -> str:
        self.calls.append(("unsafe_paySui", signer, list(input_coins), list(recipients), list(amounts), gas_budget))
        if self.pay_failures:
            raise self.pay_failures.pop(0)
        return _b64(b"pay:" + recipients[0].encode())

    # ---- execution
    async def sign_and_execute(self, identity, tx_bytes: str, **kwargs: Any) -> Dict[str, Any]:
        raw = base64.b64decode(tx_bytes)
        signature = identity.sign_transaction(tx_bytes)
        assert verify_signature(signature, raw)
        kind = raw.split(b":", 1)[0].decode()
        self.calls.append(("execute", kind, identity.address))
        if kind == "publish":
            return self._publish_effects(identity.address)
        if kind == "call":
            return self._init_effects()
        return await self._pay_effects(raw.split(b":", 1)[1].decode())

    def _publish_effects(self, sender: str) -> Dict[str, Any]:
        digest = secrets.token_hex(16)
        if self.publish_status != "success":
            return {
                "digest": digest,
                "effects": {"status": {"status": "failure", "error": self.publish_error or "InsufficientGas"}},
            }
        package_id = new_object_id()
        self.published.append(package_id)
        created = [
            {"owner": {"AddressOwner": sender}, "reference": {"objectId": new_object_id(), "version": 2}},
            {"owner": "Immutable", "reference": {"objectId": package_id, "version": 1}},
        ]
        if self.publish_shared:
            created.append({"owner": {"Shared": {"initial_shared_version": 2}}, "reference": {"objectId": new_object_id()}})
        return {
            "digest": digest,
            "effects": {"status": {"status": "success"}, "created": created},
            "objectChanges": [{"type": "published", "packageId": package_id, "modules": ["counter"]}],
        }

    def _init_effects(self) -> Dict[str, Any]:
        if self.init_mode == "abort":
            return {
                "digest": secrets.token_hex(16),
                "effects": {"status": {"status": "failure", "error": "MoveAbort(counter::counter::init, 1)"}},
            }
        created = []
        if self.init_mode == "shared":
            created = [{"owner": {"Shared": {"initial_shared_version": 3}}, "reference": {"objectId": new_object_id()}}]
        return {"digest": secrets.token_hex(16), "effects": {"status": {"status": "success"}, "created": created}}

    async def _pay_effects(self, recipient: str) -> Dict[str, Any]:
        self.inflight += 1
        self.max_inflight = max(self.max_inflight, self.inflight)
        try:
            await asyncio.sleep(0)
        finally:
            self.inflight -= 1
        if self.pay_status != "success":
            return {"digest": secrets.token_hex(16), "effects": {"status": {"status": "failure", "error": self.pay_status}}}
        self.balances[recipient] = self.balances.get(recipient, 0) + 1
        return {"digest": "pay" + secrets.token_hex(8), "effects": {"status": {"status": "success"}}}


@pytest.fixture
def fake_rpc() -> FakeSuiRpc:
    return FakeSuiRpc()


# ----------------------------
# Pipeline & application fixtures
# ----------------------------
@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    d = tmp_path / "workspaces"
    d.mkdir()
    return d


@pytest.fixture
def deployer(fake_rpc: FakeSuiRpc, workspace_dir: Path) -> Deployer:
    return Deployer(
        fake_rpc,  # type: ignore[arg-type]
        FundingService(fake_rpc),  # type: ignore[arg-type]
        settings=PipelineSettings(workspace_dir=workspace_dir),
    )


@pytest.fixture
def app_config(workspace_dir: Path) -> Config:
    return Config(  # type: ignore[call-arg]
        sui_network="testnet",
        sui_rpc_url="http://rpc.test/",
        master_wallet_mnemonic=None,
        workspace_dir=workspace_dir,
        cors_allow_origins="http://localhost:3000",
    )


@pytest.fixture
def app(app_config: Config, deployer: Deployer) -> FastAPI:
    return create_app(app_config, deployer=deployer)


@pytest.fixture
async def aclient(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
