"""Build stage: compile instrumented test binaries without running them.

cargo is asked for line-delimited JSON messages; compiler-artifact messages
with ``profile.test == true`` carry the paths of the test executables.
"""

from __future__ import annotations

import os
import re
import subprocess
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError

from cargocov.config.models import BuildConfig, RunConfig, ToolsConfig
from cargocov.pipeline.process import run_cmd

log = structlog.get_logger(__name__)

_LINE_BREAK = re.compile(rb"[\r\n]")


class BuildMessageProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    test: StrictBool


class BuildMessage(BaseModel):
    """One cargo JSON message; only the fields we need, the rest ignored."""

    model_config = ConfigDict(extra="ignore")

    profile: BuildMessageProfile
    filenames: list[str]


def coverage_env(build: BuildConfig) -> dict[str, str]:
    """Environment shared by every cargo invocation of the pipeline."""
    return {
        "RUST_BACKTRACE": "1",
        "CARGO_INCREMENTAL": "0",
        "RUSTFLAGS": build.rust_flags,
        "RUSTDOCFLAGS": build.rust_flags,
    }


def cargo_test_args(run_config: RunConfig, build: BuildConfig) -> list[str]:
    """``test`` plus the selectors shared by the build and test-run stages."""
    return ["test", *build.cargo_args, "--target-dir", str(run_config.coverage_dir)]


def parse_test_binaries(output: bytes) -> list[Path]:
    """Extract test executable paths from cargo's JSON message stream.

    Lines that are not valid messages (plain diagnostics, build-finished
    records, blank lines) are skipped on purpose: cargo interleaves them
    with the artifact messages.
    """
    binaries: list[Path] = []
    skipped = 0
    for line in _LINE_BREAK.split(output):
        try:
            message = BuildMessage.model_validate_json(line)
        except ValidationError:
            skipped += 1
            continue
        if message.profile.test:
            binaries.extend(Path(name) for name in message.filenames)
    log.debug("build_messages_parsed", binaries=len(binaries), skipped=skipped)
    return binaries


def build_coverage_binaries(
    run_config: RunConfig, tools: ToolsConfig, build: BuildConfig
) -> list[Path]:
    """Compile instrumented tests and return the test binary paths.

    Profile writes are discarded while building: doctests may execute
    during compilation and their coverage is not wanted.

    Raises:
        CommandFailedError: tool="build" if cargo fails.
    """
    log.info("coverage_build_start", workspace=str(run_config.workspace_dir))

    env = coverage_env(build)
    env["LLVM_PROFILE_FILE"] = os.devnull

    result = run_cmd(
        [
            tools.cargo,
            *cargo_test_args(run_config, build),
            "--no-run",
            "--message-format=json",
        ],
        "build",
        cwd=run_config.workspace_dir,
        env=env,
        stdout=subprocess.PIPE,
    )
    binaries = parse_test_binaries(result.stdout or b"")
    log.info("coverage_build_done", binaries=len(binaries))
    return binaries
