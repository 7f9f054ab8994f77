"""Shared fixtures for CLI tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's global config and CARGOCOV__ env vars out of CLI runs."""
    monkeypatch.setattr(
        "cargocov.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "global-config.yaml"
    )
    for key in list(os.environ):
        if key.upper().startswith("CARGOCOV__"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """CliRunner swaps stderr; drop handlers bound to it after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A cargo workspace with one member crate."""
    ws = tmp_path / "ws"
    (ws / "crate-a" / "src").mkdir(parents=True)
    (ws / "Cargo.toml").write_text('[workspace]\nmembers = ["crate-a"]\n')
    (ws / "crate-a" / "Cargo.toml").write_text('[package]\nname = "crate-a"\nversion = "0.1.0"\n')
    return ws


@pytest.fixture
def lcov_report(workspace: Path) -> Path:
    """An exported LCOV report at the default location."""
    coverage_dir = workspace / "target" / "coverage"
    coverage_dir.mkdir(parents=True)
    lcov = coverage_dir / "lcov.info"
    lcov.write_text(
        f"SF:{workspace.resolve()}/crate-a/src/lib.rs\n"
        "DA:1,1\nDA:2,1\nDA:3,0\nDA:4,0\n"
        "end_of_record\n"
        f"SF:{workspace.resolve()}/crate-a/src/util.rs\n"
        "DA:1,5\n"
        "end_of_record\n"
    )
    return lcov
