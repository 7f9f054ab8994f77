"""Coverage pipeline: toolchain, build, execute, merge, export.

Stages run strictly in order; the first failure aborts the run.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from cargocov.config.models import CargoCovConfig, RunConfig
from cargocov.core.errors import IoError
from cargocov.core.logging import clear_run_id, set_run_id, stage_context
from cargocov.pipeline.build import build_coverage_binaries
from cargocov.pipeline.execute import run_coverage_binaries
from cargocov.pipeline.export import export_html, export_lcov
from cargocov.pipeline.merge import clean_raw_profiles, merge_raw_profiles
from cargocov.pipeline.toolchain import ToolchainPaths, ToolchainResolver

log = structlog.get_logger(__name__)

StageWrapper = Callable[[str], AbstractContextManager[None]]


@dataclass
class CoverageResult:
    """Everything a finished pipeline run produced."""

    run_id: str
    toolchain: ToolchainPaths
    test_binaries: list[Path] = field(default_factory=list)
    raw_profiles: list[Path] = field(default_factory=list)
    profdata_path: Path | None = None
    lcov_path: Path | None = None
    html_index: Path | None = None
    duration_seconds: float = 0.0


def _no_wrapper(_name: str) -> AbstractContextManager[None]:
    return nullcontext()


@contextmanager
def _stage(wrap: StageWrapper, name: str) -> Iterator[None]:
    with stage_context(name), wrap(name):
        yield


def prepare_coverage_dir(run_config: RunConfig) -> None:
    """Create the coverage dir and drop raw profiles from earlier runs."""
    try:
        run_config.coverage_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoError.from_os_error("create directory", run_config.coverage_dir, e) from e
    log.info("coverage_cleanup_start", coverage_dir=str(run_config.coverage_dir))
    clean_raw_profiles(run_config.coverage_dir)


def run_coverage(
    run_config: RunConfig,
    config: CargoCovConfig,
    *,
    stage: StageWrapper | None = None,
) -> CoverageResult:
    """Run the whole coverage pipeline.

    Args:
        run_config: Resolved workspace and output paths
        config: Tool names and build settings
        stage: Optional context manager factory wrapped around each stage
               (the CLI uses it for progress lines)

    Raises:
        CargoCovError: Whatever the failing stage raised.
    """
    wrap = stage or _no_wrapper
    tools, build = config.tools, config.build
    run_id = set_run_id()
    start = time.perf_counter()
    log.info("coverage_run_start", workspace=str(run_config.workspace_dir))

    try:
        with _stage(wrap, "Resolving toolchain"):
            toolchain = ToolchainResolver(run_config, tools).resolve()

        result = CoverageResult(run_id=run_id, toolchain=toolchain)

        with _stage(wrap, "Cleaning up old coverage files"):
            prepare_coverage_dir(run_config)

        with _stage(wrap, "Building coverage binaries"):
            result.test_binaries = build_coverage_binaries(run_config, tools, build)

        with _stage(wrap, "Running coverage binaries"):
            run_coverage_binaries(run_config, tools, build)

        with _stage(wrap, "Merging coverage data"):
            result.raw_profiles = merge_raw_profiles(run_config, toolchain.profdata)
            result.profdata_path = run_config.coverage_profdata

        with _stage(wrap, "Exporting coverage LCOV"):
            result.lcov_path = export_lcov(run_config, build, toolchain, result.test_binaries)

        if build.html:
            with _stage(wrap, "Exporting coverage HTML"):
                result.html_index = export_html(
                    run_config, tools, build, toolchain, result.test_binaries
                )

        result.duration_seconds = time.perf_counter() - start
        log.info("coverage_run_done", duration_s=round(result.duration_seconds, 2))
        return result
    finally:
        clear_run_id()
