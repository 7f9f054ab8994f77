"""Blocking child-process helpers shared by every pipeline stage."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO, Any

import structlog

from cargocov.core.errors import CommandFailedError

log = structlog.get_logger(__name__)


def build_env(overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a copy of the current environment with overrides applied."""
    env = dict(os.environ)
    if overrides:
        env.update(overrides)
    return env


def run_cmd(
    cmd: Sequence[str | Path],
    tool: str,
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    stdout: int | IO[Any] | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run a command to completion and fail on non-zero exit.

    Args:
        cmd: Executable and arguments
        tool: Logical tool name reported in errors ("build", "merge", ...)
        cwd: Working directory for the child
        env: Extra environment variables layered over os.environ
        stdout: subprocess.PIPE to capture, a file object to redirect,
                subprocess.DEVNULL to discard, None to inherit

    Raises:
        CommandFailedError: If the child cannot be spawned or exits non-zero.
    """
    argv = [str(part) for part in cmd]
    log.debug("command_run", tool=tool, argv=argv, cwd=str(cwd) if cwd else None)

    try:
        result = subprocess.run(
            argv,
            cwd=cwd,
            env=build_env(env) if env else None,
            stdout=stdout,
            check=False,
        )
    except OSError as e:
        raise CommandFailedError.spawn_failed(tool, argv, e.strerror or str(e)) from e

    if result.returncode != 0:
        log.warning("command_failed", tool=tool, argv=argv, returncode=result.returncode)
        raise CommandFailedError.exited(tool, argv, result.returncode)

    return result
