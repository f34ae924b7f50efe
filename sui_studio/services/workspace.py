"""
Ephemeral Move build workspaces.

Each deployment attempt gets its own directory::

    <WORKSPACE_DIR or $TMPDIR>/sui-studio-XXXXXXXX/
        Move.toml
        sources/<module>.move

The directory is removed on every exit path of the scope that opened it:
normal return, exception, or task cancellation. Removal failures are logged
(CleanupError) and never propagate.
"""

from __future__ import annotations

import contextlib
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

from sui_studio.config import FRAMEWORK_GIT, FRAMEWORK_SUBDIR
from sui_studio.errors import CleanupError
from sui_studio.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

PACKAGE_NAME = "sui_studio_pkg"
DEFAULT_MODULE_NAME = "module"
DEFAULT_NAMED_ADDRESS = "sui_studio"
WORKSPACE_PREFIX = "sui-studio-"

_MODULE_RE = re.compile(r"module\s+(\w+::)?(\w+)")
_IDENT_RE = re.compile(r"[A-Za-z_]\w*$")


@dataclass(frozen=True)
class ModuleDecl:
    address: Optional[str]
    name: str


def parse_module_decl(source: str) -> ModuleDecl:
    m = _MODULE_RE.search(source or "")
    if not m:
        return ModuleDecl(address=None, name=DEFAULT_MODULE_NAME)
    addr = m.group(1)[:-2] if m.group(1) else None
    # literal addresses such as 0x0 are not named addresses
    if addr is not None and not _IDENT_RE.match(addr):
        addr = None
    return ModuleDecl(address=addr, name=m.group(2))


def parse_module_name(source: str) -> str:
    """Name of the first declared module, or ``"module"`` when none is found."""
    return parse_module_decl(source).name


def render_manifest(
    *,
    named_address: str = DEFAULT_NAMED_ADDRESS,
    framework_rev: str = "framework/testnet",
) -> str:
    # Named addresses must be 0x0 for a package that is about to be published.
    return (
        "[package]\n"
        f'name = "{PACKAGE_NAME}"\n'
        'edition = "2024.beta"\n'
        "\n"
        "[dependencies]\n"
        f'Sui = {{ git = "{FRAMEWORK_GIT}", subdir = "{FRAMEWORK_SUBDIR}", rev = "{framework_rev}" }}\n'
        "\n"
        "[addresses]\n"
        f'{named_address} = "0x0"\n'
    )


@dataclass(frozen=True)
class Workspace:
    root: Path
    manifest: str
    source_path: Path
    module_name: str

    @property
    def manifest_path(self) -> Path:
        return self.root / "Move.toml"


def _remove(root: Path) -> None:
    try:
        shutil.rmtree(root)
    except FileNotFoundError:
        return
    except OSError as e:
        err = CleanupError(f"could not remove workspace {root}: {e}")
        log.warning("workspace.cleanup_failed", path=str(root), error=str(err))


@contextlib.contextmanager
def open_workspace(
    source: str,
    *,
    parent: Optional[Path | str] = None,
    framework_rev: str = "framework/testnet",
) -> Iterator[Workspace]:
    """
    Create a fresh workspace for ``source`` and remove it when the block exits.
    """
    decl = parse_module_decl(source)
    if parent is not None:
        Path(parent).mkdir(parents=True, exist_ok=True)
    root = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=str(parent) if parent else None))
    try:
        manifest = render_manifest(
            named_address=decl.address or DEFAULT_NAMED_ADDRESS,
            framework_rev=framework_rev,
        )
        (root / "Move.toml").write_text(manifest, encoding="utf-8")
        sources = root / "sources"
        sources.mkdir()
        source_path = sources / f"{decl.name}.move"
        source_path.write_text(source, encoding="utf-8")
        log.debug("workspace.opened", path=str(root), module=decl.name)
        yield Workspace(root=root, manifest=manifest, source_path=source_path, module_name=decl.name)
    finally:
        _remove(root)
        log.debug("workspace.closed", path=str(root))


def with_workspace(source: str, fn: Callable[[Workspace], T], **kwargs) -> T:
    """Run ``fn`` against a fresh workspace; the directory is gone when this returns."""
    with open_workspace(source, **kwargs) as ws:
        return fn(ws)


__all__ = [
    "Workspace",
    "ModuleDecl",
    "PACKAGE_NAME",
    "DEFAULT_MODULE_NAME",
    "parse_module_decl",
    "parse_module_name",
    "render_manifest",
    "open_workspace",
    "with_workspace",
]
