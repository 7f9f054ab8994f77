"""CLI utilities."""

import tomllib
from pathlib import Path
from typing import Any

import click

from cargocov.config.loader import load_config
from cargocov.config.models import CargoCovConfig, RunConfig
from cargocov.core.errors import CargoCovError, ConfigError
from cargocov.core.logging import get_log_file_path


def _declares_workspace(manifest: Path) -> bool:
    try:
        data = tomllib.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return isinstance(data.get("workspace"), dict)


def find_workspace_root(start_path: Path | None = None) -> Path:
    """Find the cargo workspace root for the given path.

    Walks up to the nearest Cargo.toml, then keeps walking to an enclosing
    manifest with a [workspace] table, mirroring cargo's own lookup.

    Raises:
        click.ClickException: If no Cargo.toml exists at or above start_path
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()
    nearest: Path | None = None

    for directory in (current, *current.parents):
        manifest = directory / "Cargo.toml"
        if not manifest.is_file():
            continue
        if nearest is None:
            nearest = directory
        if _declares_workspace(manifest):
            return directory

    if nearest is None:
        raise click.ClickException(ConfigError.workspace_not_found(str(start_path)).message)
    return nearest


def load_run_config(path: Path, **overrides: Any) -> tuple[CargoCovConfig, RunConfig]:
    """Resolve workspace, load config with CLI overrides, build the RunConfig."""
    workspace = find_workspace_root(path)
    try:
        config = load_config(workspace, **overrides)
    except ConfigError as e:
        raise click.ClickException(e.message) from e
    return config, RunConfig.from_config(workspace, config)


def fail(error: CargoCovError) -> click.ClickException:
    """Turn a pipeline error into a CLI error, pointing at the log file if any."""
    message = error.message
    log_path = get_log_file_path()
    if log_path is not None:
        message = f"{message}\nSee {log_path} for details."
    return click.ClickException(message)
