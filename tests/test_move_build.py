from __future__ import annotations

import base64
import json
import subprocess

import pytest

from sui_studio.adapters.move_build import (BuildArtifact, build_command,
                                            build_package, parse_build_output)
from sui_studio.errors import BuildError

from .conftest import MODULE_B64, MODULE_BYTES, build_stdout


def test_parse_manifest():
    art = parse_build_output(build_stdout())
    assert art.modules == (MODULE_BYTES,)
    assert art.modules_b64 == [MODULE_B64]
    assert art.dependencies == ("0x1", "0x2")
    assert art.digest == bytes(range(32))


def test_parse_normalizes_long_dependency_ids():
    out = build_stdout(dependencies=["0x" + "0" * 63 + "1", "0x0000000000000002"])
    assert parse_build_output(out).dependencies == ("0x1", "0x2")


@pytest.mark.parametrize(
    "stdout",
    [
        "",
        "BUILDING counter\nSuccessfully built",
        "[1, 2, 3]",
        json.dumps({"dependencies": []}),
        json.dumps({"modules": []}),
        json.dumps({"modules": [123]}),
        json.dumps({"modules": ["not base64!!"]}),
        json.dumps({"modules": [MODULE_B64], "dependencies": "0x1"}),
        json.dumps({"modules": [MODULE_B64], "digest": [256]}),
    ],
    ids=["empty", "text", "array", "no-modules", "empty-modules", "non-string", "bad-b64", "bad-deps", "bad-digest"],
)
def test_parse_rejects_contract_violations(stdout):
    with pytest.raises(BuildError) as ei:
        parse_build_output(stdout)
    assert ei.value.status_code == 422
    assert ei.value.code == "build_failed"


def test_parse_rejects_non_framework_dependencies():
    out = build_stdout(dependencies=["0x1", "0x2", "0xabc"])
    with pytest.raises(BuildError) as ei:
        parse_build_output(out)
    assert ei.value.details["unsupported"] == ["0xabc"]
    assert parse_build_output(out, allowed_dependencies=["0x1", "0x2", "0xabc"]).dependencies[-1] == "0xabc"


def test_artifact_requires_modules():
    with pytest.raises(BuildError):
        BuildArtifact(modules=())


def test_build_command(tmp_path):
    cmd = build_command(tmp_path, sui_bin="/opt/sui")
    assert cmd[:4] == ["/opt/sui", "move", "build", "--dump-bytecode-as-base64"]
    assert cmd[-2:] == ["--path", str(tmp_path)]


def test_build_package_success(tmp_path, fake_compiler):
    (tmp_path / "Move.toml").write_text("[package]\n")
    art = build_package(tmp_path, sui_bin="sui")
    assert base64.b64encode(art.modules[0]).decode() == MODULE_B64
    assert fake_compiler.roots == [tmp_path]


def test_build_package_nonzero_exit(tmp_path, fake_compiler):
    (tmp_path / "Move.toml").write_text("[package]\n")
    fake_compiler.returncode = 1
    fake_compiler.stdout = ""
    fake_compiler.stderr = "error[E03002]: unbound module\n  ┌─ sources/counter.move:3:9"
    with pytest.raises(BuildError) as ei:
        build_package(tmp_path)
    assert ei.value.details["exit_code"] == 1
    assert "unbound module" in ei.value.details["stderr"]


def test_build_package_missing_executable(tmp_path, fake_compiler):
    (tmp_path / "Move.toml").write_text("[package]\n")
    fake_compiler.exc = FileNotFoundError("sui")
    with pytest.raises(BuildError, match="not found"):
        build_package(tmp_path, sui_bin="sui")


def test_build_package_timeout(tmp_path, fake_compiler):
    (tmp_path / "Move.toml").write_text("[package]\n")
    fake_compiler.exc = subprocess.TimeoutExpired(cmd="sui", timeout=1.0, stderr=b"still fetching deps")
    with pytest.raises(BuildError, match="timed out") as ei:
        build_package(tmp_path, timeout_s=1.0)
    assert ei.value.details["stderr"] == "still fetching deps"


def test_build_error_body_carries_diagnostics():
    err = BuildError("Move build failed", details={"stderr": "boom"})
    body = err.to_problem()
    assert body["error"] == "Failed to deploy contract"
    assert body["details"] == "Move build failed"
    assert body["diagnostics"] == {"stderr": "boom"}
