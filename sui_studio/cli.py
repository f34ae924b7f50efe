"""
Developer CLI for Sui Studio Services.

Utilities:
  - deploy     : run the full deploy pipeline for a .move file and print the result
  - keygen     : generate a burner identity (address + private key encodings)
  - object     : fetch an object by id from the configured full node
  - master     : show the address derived from MASTER_WALLET_MNEMONIC

Usage:
  python -m sui_studio.cli <command> [options]
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer

from .adapters.keys import generate_burner
from .adapters.sui_rpc import SuiRpc, SuiRpcConfig, SuiRpcError
from .config import Config, load_config
from .errors import ApiError, NotFound, RpcError
from .logging import setup_logging
from .services.deploy import Deployer

app = typer.Typer(add_completion=False, help="Sui Studio Services: developer CLI")


def _cfg(network: Optional[str]) -> Config:
    cfg = load_config()
    if network:
        cfg = Config(sui_network=network)  # type: ignore[call-arg]
    return cfg


def _print(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for pipeline events"),
    log_format: str = typer.Option("console", "--log-format", help="json | console"),
):
    setup_logging(service_name="sui-studio-cli", level=log_level, log_format=log_format)


@app.command("deploy")
def deploy(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a .move file"),
    network: Optional[str] = typer.Option(None, "--network", "-n", help="Override SUI_NETWORK"),
):
    """Compile, fund, publish and init SOURCE; prints the deployment result as JSON."""
    cfg = _cfg(network)

    async def _run():
        deployer = Deployer.from_config(cfg)
        try:
            return await deployer.deploy(source.read_text(encoding="utf-8"))
        finally:
            await deployer.close()

    try:
        result = asyncio.run(_run())
    except ApiError as e:
        _print(e.to_problem())
        raise typer.Exit(code=1)
    _print({**result.to_response(), "funding": result.funding.to_dict()})


@app.command("keygen")
def keygen():
    """Generate a fresh Ed25519 identity."""
    ident = generate_burner()
    _print(
        {
            "address": ident.address,
            "publicKey": ident.public_key.hex(),
            "privateKeyHex": ident.private_key_hex(),
            "privateKeyBech32": ident.private_key_bech32(),
        }
    )


@app.command("object")
def get_object(
    object_id: str = typer.Argument(..., help="0x-prefixed object id"),
    content: bool = typer.Option(False, "--content", help="Include Move object content"),
    network: Optional[str] = typer.Option(None, "--network", "-n", help="Override SUI_NETWORK"),
):
    """Fetch an object (type, owner and optionally content) by id."""
    cfg = _cfg(network)

    async def _run():
        async with SuiRpc(SuiRpcConfig(url=cfg.rpc_url, timeout_s=cfg.rpc_timeout_s)) as rpc:
            try:
                res = await rpc.get_object(object_id, show_content=content)
            except SuiRpcError as e:
                raise RpcError(str(e), details={"url": cfg.rpc_url}) from e
        if not (res or {}).get("data"):
            raise NotFound(f"Object {object_id}", details=(res or {}).get("error"))
        return res["data"]

    try:
        _print(asyncio.run(_run()))
    except ApiError as e:
        _print(e.to_problem())
        raise typer.Exit(code=1)


@app.command("master")
def master():
    """Show the master funding address (never the secret)."""
    ident = load_config().master_identity()
    if ident is None:
        typer.echo("MASTER_WALLET_MNEMONIC is not set or not parsable", err=True)
        raise typer.Exit(code=1)
    _print({"address": ident.address})


def _entry():
    app()


if __name__ == "__main__":
    _entry()
