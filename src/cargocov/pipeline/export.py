"""Export stage: LCOV and HTML reports from the merged profile."""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path

import structlog

from cargocov.config.models import BuildConfig, RunConfig, ToolsConfig
from cargocov.core.errors import IoError
from cargocov.pipeline.process import run_cmd
from cargocov.pipeline.toolchain import ToolchainPaths

log = structlog.get_logger(__name__)


def llvm_cov_common_args(
    run_config: RunConfig, build: BuildConfig, toolchain: ToolchainPaths
) -> list[str]:
    """Demangler and source filters shared by both report formats."""
    args = ["--Xdemangler", toolchain.demangler]
    ignored = [*build.ignore_filename_regex, f"^{re.escape(str(run_config.coverage_dir))}/"]
    for pattern in ignored:
        args.extend(["--ignore-filename-regex", pattern])
    return args


def _profile_and_objects(run_config: RunConfig, test_binaries: Sequence[Path]) -> list[str]:
    args = ["--instr-profile", str(run_config.coverage_profdata)]
    for path in test_binaries:
        args.extend(["--object", str(path)])
    return args


def export_lcov(
    run_config: RunConfig,
    build: BuildConfig,
    toolchain: ToolchainPaths,
    test_binaries: Sequence[Path],
) -> Path:
    """Write the LCOV report; llvm-cov's stdout goes straight to the file.

    Raises:
        IoError: If the report file cannot be created.
        CommandFailedError: tool="export" if llvm-cov fails.
    """
    lcov_path = run_config.lcov_path
    log.info("coverage_export_lcov_start", path=str(lcov_path))

    cmd = [
        toolchain.llvm_cov,
        "export",
        "--format",
        "lcov",
        *llvm_cov_common_args(run_config, build, toolchain),
        *_profile_and_objects(run_config, test_binaries),
    ]
    try:
        lcov_file = lcov_path.open("wb")
    except OSError as e:
        raise IoError.from_os_error("create file", lcov_path, e) from e
    with lcov_file:
        run_cmd(cmd, "export", stdout=lcov_file)

    log.info("coverage_export_lcov_done", path=str(lcov_path))
    return lcov_path


def export_html(
    run_config: RunConfig,
    tools: ToolsConfig,
    build: BuildConfig,
    toolchain: ToolchainPaths,
    test_binaries: Sequence[Path],
) -> Path:
    """Render the annotated HTML report, then apply the style patch.

    Returns:
        Path of the report's index.html.

    Raises:
        CommandFailedError: tool="export" if llvm-cov fails,
            tool="patch" if the style patch does not apply.
    """
    log.info("coverage_export_html_start", output_dir=str(run_config.coverage_dir))

    run_cmd(
        [
            toolchain.llvm_cov,
            "show",
            "--format",
            "html",
            "--show-line-counts-or-regions",
            "--show-instantiations",
            *llvm_cov_common_args(run_config, build, toolchain),
            *_profile_and_objects(run_config, test_binaries),
            "--output-dir",
            str(run_config.coverage_dir),
        ],
        "export",
    )

    if run_config.style_patch is not None:
        run_cmd(
            [tools.patch, "--input", run_config.style_patch],
            "patch",
            cwd=run_config.coverage_dir,
        )
        log.debug("coverage_style_patched", patch=str(run_config.style_patch))

    index_path = run_config.coverage_dir / "index.html"
    log.info("coverage_export_html_done", index=str(index_path))
    return index_path
