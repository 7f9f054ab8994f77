"""Execute stage: run the instrumented tests so each process writes a raw profile."""

from __future__ import annotations

import structlog

from cargocov.config.models import BuildConfig, RunConfig, ToolsConfig
from cargocov.pipeline.build import cargo_test_args, coverage_env
from cargocov.pipeline.process import run_cmd

log = structlog.get_logger(__name__)


def run_coverage_binaries(run_config: RunConfig, tools: ToolsConfig, build: BuildConfig) -> None:
    """Run the test suite with LLVM_PROFILE_FILE pointing into the coverage dir.

    The profile template is expanded per process by the instrumented
    binaries, so concurrently running tests never share a raw file.
    Raw files written before a failure are left in place.

    Raises:
        CommandFailedError: tool="test-run" if any test fails.
    """
    profile_file = run_config.coverage_dir / build.profile_template
    log.info("coverage_tests_start", profile_file=str(profile_file))

    env = coverage_env(build)
    env["LLVM_PROFILE_FILE"] = str(profile_file)

    run_cmd(
        [tools.cargo, *cargo_test_args(run_config, build)],
        "test-run",
        cwd=run_config.workspace_dir,
        env=env,
    )
    log.info("coverage_tests_done")
