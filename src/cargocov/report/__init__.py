"""LCOV report parsing and summaries.

Usage:
    from cargocov.report import parse_lcov, build_summary

    report = parse_lcov(Path("target/coverage/lcov.info"), base_path=workspace)
    summary = build_summary(report, max_files=10)
"""

from cargocov.report.lcov import parse_lcov, parse_lcov_text
from cargocov.report.models import (
    BranchCoverage,
    CoverageReport,
    CoverageSummary,
    FileCoverage,
    FunctionCoverage,
    LcovParseError,
)
from cargocov.report.summary import (
    build_summary,
    build_text_summary,
    compress_ranges,
    compute_file_stats,
)

__all__ = [
    # Models
    "BranchCoverage",
    "CoverageReport",
    "CoverageSummary",
    "FileCoverage",
    "FunctionCoverage",
    "LcovParseError",
    # Parsing
    "parse_lcov",
    "parse_lcov_text",
    # Summaries
    "build_summary",
    "build_text_summary",
    "compress_ranges",
    "compute_file_stats",
]
