"""
Move compiler adapter (``sui move build``).

Runs the external toolchain against a workspace and normalizes its output to a
stable :class:`BuildArtifact`.

Output contract
---------------
``sui move build --dump-bytecode-as-base64`` prints exactly one JSON object on
stdout (progress lines go to stderr)::

    {"modules": ["<base64>", ...], "dependencies": ["0x1", "0x2"], "digest": [..]}

Anything else (free-form text, missing/empty ``modules``, non-string entries,
undecodable base64, a dependency outside the allowed framework set) is a
:class:`BuildError`. We never scrape bytecode out of arbitrary text.

Typical usage:
    from sui_studio.adapters.move_build import build_package

    artifact = build_package(workspace.root, sui_bin="sui", timeout_s=300)
    artifact.modules_b64  # -> ["oRzrCwYAAAAK...", ...]
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from sui_studio.errors import BuildError

log = logging.getLogger(__name__)

DEFAULT_FRAMEWORK_DEPENDENCIES: Tuple[str, ...] = ("0x1", "0x2")

# Keep diagnostics bounded in API responses
_MAX_DIAG_CHARS = 8000


@dataclass(frozen=True)
class BuildArtifact:
    """
    Compiled package, immutable once produced.

    Attributes
    ----------
    modules : tuple[bytes, ...]
        Bytecode blobs in compiler order. Never empty.
    dependencies : tuple[str, ...]
        Package ids the compiler reported as dependencies.
    digest : bytes | None
        Package digest reported by the compiler, if any.
    """

    modules: Tuple[bytes, ...]
    dependencies: Tuple[str, ...] = DEFAULT_FRAMEWORK_DEPENDENCIES
    digest: Optional[bytes] = None

    def __post_init__(self) -> None:
        if not self.modules:
            raise BuildError("Build produced no compiled modules")

    @property
    def modules_b64(self) -> List[str]:
        return [base64.b64encode(m).decode("ascii") for m in self.modules]


# ----------------------------- parsing ---------------------------------------


def _clip(text: str) -> str:
    text = text or ""
    if len(text) <= _MAX_DIAG_CHARS:
        return text
    return text[-_MAX_DIAG_CHARS:]


def _normalize_id(value: str) -> str:
    s = value.strip().lower()
    if s.startswith("0x"):
        s = s[2:]
    s = s.lstrip("0") or "0"
    return "0x" + s


def parse_build_output(
    stdout: str,
    *,
    allowed_dependencies: Iterable[str] = DEFAULT_FRAMEWORK_DEPENDENCIES,
) -> BuildArtifact:
    """
    Parse compiler stdout per the artifact contract above.

    Raises BuildError on any deviation.
    """
    text = (stdout or "").strip()
    if not text:
        raise BuildError("Compiler produced no output", details={"stdout": ""})

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise BuildError(
            "Compiler output is not a JSON artifact manifest",
            details={"stdout": _clip(text), "error": str(e)},
        ) from e

    if not isinstance(payload, dict):
        raise BuildError("Compiler output must be a JSON object", details={"stdout": _clip(text)})

    raw_modules = payload.get("modules")
    if not isinstance(raw_modules, list):
        raise BuildError("Compiler output is missing the 'modules' list", details={"keys": sorted(payload)})
    if not raw_modules:
        raise BuildError("No compiled modules found in build output")

    modules: List[bytes] = []
    for idx, m in enumerate(raw_modules):
        if not isinstance(m, str) or not m.strip():
            raise BuildError(f"Module #{idx} is not a base64 string")
        try:
            blob = base64.b64decode(m, validate=True)
        except (binascii.Error, ValueError) as e:
            raise BuildError(f"Module #{idx} is not valid base64") from e
        if not blob:
            raise BuildError(f"Module #{idx} decoded to zero bytes")
        modules.append(blob)

    raw_deps = payload.get("dependencies", list(DEFAULT_FRAMEWORK_DEPENDENCIES))
    if not isinstance(raw_deps, list) or not all(isinstance(d, str) for d in raw_deps):
        raise BuildError("Compiler output has a malformed 'dependencies' list")
    deps = tuple(_normalize_id(d) for d in raw_deps)

    allowed = {_normalize_id(d) for d in allowed_dependencies}
    extra = [d for d in deps if d not in allowed]
    if extra:
        raise BuildError(
            "Package depends on packages outside the framework set",
            details={"unsupported": extra, "allowed": sorted(allowed)},
        )

    digest: Optional[bytes] = None
    raw_digest = payload.get("digest")
    if raw_digest is not None:
        if not isinstance(raw_digest, list) or not all(isinstance(b, int) and 0 <= b <= 255 for b in raw_digest):
            raise BuildError("Compiler output has a malformed 'digest'")
        digest = bytes(raw_digest)

    return BuildArtifact(modules=tuple(modules), dependencies=deps, digest=digest)


# ----------------------------- invocation ------------------------------------


def build_command(root: Path | str, *, sui_bin: str = "sui", extra_args: Sequence[str] = ()) -> List[str]:
    return [sui_bin, "move", "build", "--dump-bytecode-as-base64", "--path", str(root), *extra_args]


def build_package(
    root: Path | str,
    *,
    sui_bin: str = "sui",
    timeout_s: Optional[float] = 300.0,
    allowed_dependencies: Iterable[str] = DEFAULT_FRAMEWORK_DEPENDENCIES,
    extra_args: Sequence[str] = (),
) -> BuildArtifact:
    """
    Compile the Move package rooted at ``root``. Blocks until the compiler exits.

    Raises
    ------
    BuildError
        Missing executable, timeout, non-zero exit, or output contract violation.
    """
    cmd = build_command(root, sui_bin=sui_bin, extra_args=extra_args)
    log.debug("running compiler: %s", " ".join(cmd))
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except FileNotFoundError as e:
        raise BuildError(
            f"Compiler executable not found: {sui_bin}",
            details={"command": cmd},
        ) from e
    except subprocess.TimeoutExpired as e:
        raise BuildError(
            f"Compiler timed out after {timeout_s}s",
            details={"command": cmd, "stderr": _clip(_as_text(e.stderr))},
        ) from e

    if proc.returncode != 0:
        raise BuildError(
            "Move build failed",
            details={
                "exit_code": proc.returncode,
                "stderr": _clip(proc.stderr),
                "stdout": _clip(proc.stdout),
            },
        )

    artifact = parse_build_output(proc.stdout, allowed_dependencies=allowed_dependencies)
    log.info("compiled %d module(s) from %s", len(artifact.modules), root)
    return artifact


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return str(value)


__all__ = [
    "BuildArtifact",
    "DEFAULT_FRAMEWORK_DEPENDENCIES",
    "parse_build_output",
    "build_command",
    "build_package",
]
