"""Shared fixtures for pipeline stage tests."""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from cargocov.config.models import CargoCovConfig, RunConfig
from cargocov.pipeline.toolchain import ToolchainPaths

Completed = Callable[..., subprocess.CompletedProcess[bytes]]


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A cargo workspace root with a manifest."""
    ws = tmp_path / "ws"
    ws.mkdir()
    (ws / "Cargo.toml").write_text('[workspace]\nmembers = ["crate-a"]\n')
    return ws


@pytest.fixture
def config() -> CargoCovConfig:
    return CargoCovConfig()


@pytest.fixture
def run_config(workspace: Path, config: CargoCovConfig) -> RunConfig:
    """RunConfig with an existing coverage directory."""
    rc = RunConfig.from_config(workspace, config)
    rc.coverage_dir.mkdir(parents=True)
    return rc


@pytest.fixture
def toolchain(tmp_path: Path) -> ToolchainPaths:
    return ToolchainPaths(
        profdata=tmp_path / "sysroot" / "bin" / "llvm-profdata",
        llvm_cov=tmp_path / "sysroot" / "bin" / "llvm-cov",
        demangler="rustfilt",
    )


@pytest.fixture
def completed() -> Completed:
    """Factory for CompletedProcess results returned by a patched subprocess.run."""

    def _make(returncode: int = 0, stdout: bytes | None = b"") -> subprocess.CompletedProcess[bytes]:
        return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)

    return _make
