"""Coverage pipeline - instrumented cargo builds to LCOV and HTML reports."""

from cargocov.pipeline.build import BuildMessage, build_coverage_binaries, parse_test_binaries
from cargocov.pipeline.execute import run_coverage_binaries
from cargocov.pipeline.export import export_html, export_lcov
from cargocov.pipeline.merge import clean_raw_profiles, list_files, merge_raw_profiles
from cargocov.pipeline.ops import CoverageResult, prepare_coverage_dir, run_coverage
from cargocov.pipeline.toolchain import ToolchainPaths, ToolchainResolver

__all__ = [
    "BuildMessage",
    "CoverageResult",
    "ToolchainPaths",
    "ToolchainResolver",
    "build_coverage_binaries",
    "clean_raw_profiles",
    "export_html",
    "export_lcov",
    "list_files",
    "merge_raw_profiles",
    "parse_test_binaries",
    "prepare_coverage_dir",
    "run_coverage",
    "run_coverage_binaries",
]
