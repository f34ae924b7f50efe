from __future__ import annotations

"""
Configuration loader for Sui Studio Services.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Derives network endpoints (RPC, faucet, framework revision) from SUI_NETWORK.
- Exposes a cached `load_config()` accessor.

Environment variables (high-level):
    SUI_NETWORK                   (str, default "testnet")   mainnet|testnet|devnet|localnet
    SUI_RPC_URL                   (str, optional)            Full node JSON-RPC endpoint
    SUI_FAUCET_URL                (str, optional)            Faucet endpoint (none on mainnet)
    MASTER_WALLET_MNEMONIC        (str, optional)            Master funding secret
    LOG_LEVEL                     (str, default "INFO")

Gas & funding:
    GAS_BUDGET                    (int, default 100000000)   Publish / init budget (MIST)
    FUNDING_AMOUNT                (int, default 100000000)   Master -> burner transfer (MIST)
    TRANSFER_GAS_BUDGET           (int, default 10000000)
    FUNDING_CONFIRM_TIMEOUT_S     (float, default 30)
    FUNDING_POLL_INTERVAL_S       (float, default 1.0)
    FUNDING_MAX_ATTEMPTS          (int, default 3)

Build:
    SUI_BIN                       (str, default "sui")
    BUILD_TIMEOUT_S               (float, default 300)
    FRAMEWORK_DEPENDENCIES        (csv|json list, default "0x1,0x2")
    FRAMEWORK_REV                 (str, default "framework/<network>")
    WORKSPACE_DIR                 (str, optional)            Parent of ephemeral workspaces

Behaviour:
    INIT_POLICY                   (str, default "explicit")  explicit|on_publish
    RPC_TIMEOUT_S                 (float, default 30)

CORS:
    CORS_ALLOW_ORIGINS            (csv|json list)
    CORS_ALLOW_CREDENTIALS        (bool, default False)

Notes
-----
- Lists accept comma-separated strings or JSON arrays.
- An unparsable master secret does not fail startup; funding is then disabled.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NETWORKS = ("mainnet", "testnet", "devnet", "localnet")
INIT_POLICIES = ("explicit", "on_publish")

FRAMEWORK_GIT = "https://github.com/MystenLabs/sui.git"
FRAMEWORK_SUBDIR = "crates/sui-framework/packages/sui-framework"

# ----------------------------- Helpers --------------------------------------- #


def _parse_list(val: Optional[str | List[str]], *, default: List[str]) -> List[str]:
    if val is None:
        return list(default)
    if isinstance(val, list):
        return [str(x) for x in val]
    s = val.strip()
    if not s:
        return []
    # Try JSON first
    if s.startswith("[") and s.endswith("]"):
        try:
            parsed = json.loads(s)
            return [str(x) for x in parsed]
        except json.JSONDecodeError:
            pass
    # Fallback: CSV
    return [x.strip() for x in s.split(",") if x.strip()]


def default_rpc_url(network: str) -> str:
    if network == "localnet":
        return "http://127.0.0.1:9000"
    return f"https://fullnode.{network}.sui.io:443"


def default_faucet_url(network: str) -> Optional[str]:
    if network == "mainnet":
        return None
    if network == "localnet":
        return "http://127.0.0.1:9123/gas"
    return f"https://faucet.{network}.sui.io/gas"


# --------------------------------- Settings ---------------------------------- #


class Settings(BaseSettings):
    # Network
    sui_network: str = Field("testnet", description="Target network selector")
    sui_rpc_url: Optional[str] = Field(None, description="Full node JSON-RPC endpoint")
    sui_faucet_url: Optional[str] = Field(None, description="Faucet endpoint")
    master_wallet_mnemonic: Optional[str] = Field(
        None, description="Master funding secret (suiprivkey, base64, hex or mnemonic)", repr=False
    )
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")

    # Gas & funding
    gas_budget: int = Field(100_000_000, ge=1, description="Publish / init gas budget (MIST)")
    funding_amount: int = Field(100_000_000, ge=0, description="MIST sent from master to burner")
    transfer_gas_budget: int = Field(10_000_000, ge=1)
    funding_confirm_timeout_s: float = Field(30.0, ge=0)
    funding_poll_interval_s: float = Field(1.0, gt=0)
    funding_max_attempts: int = Field(3, ge=1)

    # Build
    sui_bin: str = "sui"
    build_timeout_s: float = Field(300.0, gt=0)
    framework_dependencies: str = Field("0x1,0x2", description="csv|json list of package ids")
    framework_rev: Optional[str] = None
    workspace_dir: Optional[Path] = None

    # Behaviour
    init_policy: str = "explicit"
    rpc_timeout_s: float = Field(30.0, gt=0)

    # CORS
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_allow_credentials: bool = False

    # pydantic-settings
    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("sui_network", mode="before")
    @classmethod
    def _check_network(cls, v):
        s = str(v or "testnet").strip().lower()
        if s not in NETWORKS:
            raise ValueError(f"SUI_NETWORK must be one of {', '.join(NETWORKS)}")
        return s

    @field_validator("init_policy", mode="before")
    @classmethod
    def _check_init_policy(cls, v):
        s = str(v or "explicit").strip().lower().replace("-", "_")
        if s not in INIT_POLICIES:
            raise ValueError(f"INIT_POLICY must be one of {', '.join(INIT_POLICIES)}")
        return s

    @field_validator("sui_rpc_url", "sui_faucet_url", "master_wallet_mnemonic", "framework_rev", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Config(Settings):
    """Settings plus derived values used by the app, CLI and services."""

    @property
    def network(self) -> str:
        return self.sui_network

    @property
    def rpc_url(self) -> str:
        return self.sui_rpc_url or default_rpc_url(self.sui_network)

    @property
    def faucet_url(self) -> Optional[str]:
        return self.sui_faucet_url or default_faucet_url(self.sui_network)

    @property
    def framework_revision(self) -> str:
        return self.framework_rev or f"framework/{self.sui_network}"

    @property
    def dependencies(self) -> List[str]:
        return _parse_list(self.framework_dependencies, default=["0x1", "0x2"])

    @property
    def cors_origins(self) -> List[str]:
        return _parse_list(self.cors_allow_origins, default=[])

    def master_identity(self):
        """
        Parse the master funding secret, or return None when absent/unparsable.
        """
        if not self.master_wallet_mnemonic:
            return None
        from .adapters.keys import MasterKeyError, load_master_identity
        from .logging import get_logger

        try:
            return load_master_identity(self.master_wallet_mnemonic)
        except MasterKeyError as e:
            get_logger(__name__).warning("config.master_secret_invalid", reason=str(e))
            return None

    def to_cors_config(self):
        """Convert to the security.cors CORSConfig model."""
        from .security.cors import CORSConfig

        return CORSConfig(
            allow_origins=self.cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "X-Request-Id"],
            expose_headers=["X-Request-Id"],
            allow_credentials=self.cors_allow_credentials,
        )


@lru_cache(maxsize=1)
def load_config() -> Config:
    """Return the cached process-wide config."""
    return Config()  # type: ignore[call-arg]


__all__ = [
    "Settings",
    "Config",
    "NETWORKS",
    "INIT_POLICIES",
    "FRAMEWORK_GIT",
    "FRAMEWORK_SUBDIR",
    "default_rpc_url",
    "default_faucet_url",
    "load_config",
]
