"""
Deploy pipeline: Move source -> live package on Sui.

Sequence for one request (no step starts before the previous one finished):

    validate input            InputError, before any side effect
    burner identity           fresh Ed25519 key pair
    workspace + build         BuildError; the workspace is gone once build returns
    funding                   best effort; warnings only
    publish                   PublishError
    init                      tagged outcome; never fatal
    result                    DeploymentResult

The burner's private key is returned to the caller and not kept anywhere on
the server.

Public API
----------
Deployer.from_config(config).deploy(move_code) -> DeploymentResult
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from sui_studio.adapters import move_build
from sui_studio.adapters.faucet import FaucetClient
from sui_studio.adapters.keys import SuiIdentity, generate_burner
from sui_studio.adapters.move_build import BuildArtifact
from sui_studio.adapters.sui_rpc import SuiRpc, SuiRpcConfig
from sui_studio.errors import ApiError, InitError, InputError
from sui_studio.logging import get_logger
from sui_studio.services.funding import (FundingOutcome, FundingPolicy,
                                         FundingService)
from sui_studio.services.initializer import (InitFailed, InitOutcome,
                                             NotInitializable, init_from_publish,
                                             try_init)
from sui_studio.services.publish import PublishResult, publish
from sui_studio.services.workspace import parse_module_name, with_workspace

log = get_logger(__name__)


@dataclass(frozen=True)
class PipelineSettings:
    network: str = "testnet"
    gas_budget: int = 100_000_000
    dependencies: Sequence[str] = ("0x1", "0x2")
    framework_rev: str = "framework/testnet"
    sui_bin: str = "sui"
    build_timeout_s: float = 300.0
    workspace_dir: Optional[Path] = None
    init_policy: str = "explicit"


@dataclass
class DeploymentResult:
    package_id: str
    object_id: Optional[str]
    address: str
    private_key_hex: str = field(repr=False)
    private_key_bech32: str = field(repr=False)
    funding: FundingOutcome
    init: InitOutcome
    publish_digest: Optional[str] = None
    network: str = "testnet"
    module_name: str = "module"
    warnings: List[str] = field(default_factory=list)

    @property
    def funding_succeeded(self) -> bool:
        return self.funding.succeeded

    def to_response(self) -> Dict[str, Any]:
        return {
            "packageId": self.package_id,
            "objectId": self.object_id,
            "privateKeyHex": self.private_key_hex,
            "privateKeyBech32": self.private_key_bech32,
            "address": self.address,
            "fundingSucceeded": self.funding_succeeded,
            "initStatus": self.init.status,
            "publishDigest": self.publish_digest,
            "network": self.network,
            "warnings": list(self.warnings),
        }


Builder = Callable[..., BuildArtifact]


class Deployer:
    def __init__(
        self,
        rpc: SuiRpc,
        funding: FundingService,
        *,
        settings: PipelineSettings | None = None,
        metrics: Any = None,
        builder: Optional[Builder] = None,
        identity_factory: Callable[[], SuiIdentity] = generate_burner,
    ):
        self.rpc = rpc
        self.funding = funding
        self.settings = settings or PipelineSettings()
        self.metrics = metrics
        self._builder = builder
        self._new_identity = identity_factory

    @classmethod
    def from_config(cls, config, *, metrics: Any = None) -> "Deployer":
        rpc = SuiRpc(SuiRpcConfig(url=config.rpc_url, timeout_s=config.rpc_timeout_s))
        faucet = FaucetClient(config.faucet_url, timeout_s=config.rpc_timeout_s) if config.faucet_url else None
        funding = FundingService(
            rpc,
            master=config.master_identity(),
            faucet=faucet,
            policy=FundingPolicy(
                amount=config.funding_amount,
                transfer_gas_budget=config.transfer_gas_budget,
                confirm_timeout_s=config.funding_confirm_timeout_s,
                poll_interval_s=config.funding_poll_interval_s,
                max_attempts=config.funding_max_attempts,
            ),
        )
        settings = PipelineSettings(
            network=config.network,
            gas_budget=config.gas_budget,
            dependencies=tuple(config.dependencies),
            framework_rev=config.framework_revision,
            sui_bin=config.sui_bin,
            build_timeout_s=config.build_timeout_s,
            workspace_dir=config.workspace_dir,
            init_policy=config.init_policy,
        )
        return cls(rpc, funding, settings=settings, metrics=metrics)

    async def close(self) -> None:
        await self.rpc.close()
        if self.funding.faucet is not None:
            await self.funding.faucet.close()

    # ------------------------------------------------------------------ stages

    def _stage(self, name: str):
        if self.metrics is not None:
            return self.metrics.stage(name)
        return contextlib.nullcontext()

    def _build_sync(self, source: str) -> BuildArtifact:
        s = self.settings
        build = self._builder or move_build.build_package

        def _run(ws) -> BuildArtifact:
            return build(
                ws.root,
                sui_bin=s.sui_bin,
                timeout_s=s.build_timeout_s,
                allowed_dependencies=s.dependencies,
            )

        return with_workspace(source, _run, parent=s.workspace_dir, framework_rev=s.framework_rev)

    async def _init(self, identity: SuiIdentity, published: PublishResult, module_name: str) -> InitOutcome:
        if self.settings.init_policy == "on_publish":
            return init_from_publish(published)
        return await try_init(
            self.rpc,
            identity,
            published.package_id,
            module_name,
            gas_budget=self.settings.gas_budget,
        )

    # ------------------------------------------------------------------ public

    async def deploy(self, move_code: Optional[str]) -> DeploymentResult:
        if not isinstance(move_code, str) or not move_code.strip():
            self._count("missing_field")
            raise InputError("moveCode")

        try:
            result = await self._deploy(move_code)
        except ApiError as e:
            self._count(e.code)
            log.warning("deploy.failed", code=e.code, reason=e.message)
            raise
        self._count("success")
        return result

    async def _deploy(self, source: str) -> DeploymentResult:
        module_name = parse_module_name(source)
        burner = self._new_identity()
        log.info("deploy.start", address=burner.address, module=module_name, network=self.settings.network)

        with self._stage("build"):
            artifact = await asyncio.to_thread(self._build_sync, source)
        log.info("deploy.build.ok", modules=len(artifact.modules), address=burner.address)

        with self._stage("funding"):
            funding = await self.funding.fund(burner.address)

        with self._stage("publish"):
            published = await publish(
                self.rpc,
                burner,
                artifact,
                gas_budget=self.settings.gas_budget,
                dependencies=self.settings.dependencies,
            )

        with self._stage("init"):
            outcome = await self._init(burner, published, module_name)

        warnings = list(funding.warnings)
        if isinstance(outcome, (InitFailed, NotInitializable)):
            warnings.append(str(InitError(f"init: {outcome.reason}")))

        log.info(
            "deploy.done",
            package_id=published.package_id,
            object_id=outcome.object_id,
            init_status=outcome.status,
            funded=funding.succeeded,
        )
        return DeploymentResult(
            package_id=published.package_id,
            object_id=outcome.object_id,
            address=burner.address,
            private_key_hex=burner.private_key_hex(),
            private_key_bech32=burner.private_key_bech32(),
            funding=funding,
            init=outcome,
            publish_digest=published.digest,
            network=self.settings.network,
            module_name=module_name,
            warnings=warnings,
        )

    def _count(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.deployment(outcome)


__all__ = ["Deployer", "DeploymentResult", "PipelineSettings"]
