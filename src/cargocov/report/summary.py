"""Structured coverage summaries for the CLI.

Output schema for build_summary:
{
    "summary": {
        "total_files": int,
        "total_lines": int,
        "covered_lines": int,
        "line_coverage_percent": float,
        "total_branches": int,             # only when branches exist
        "covered_branches": int,
        "branch_coverage_percent": float,
        "total_functions": int,            # only when functions exist
        "covered_functions": int,
        "function_coverage_percent": float
    },
    "files": [                             # lowest coverage first
        {
            "path": str,
            "total_lines": int,
            "covered_lines": int,
            "coverage_percent": float,
            "missed_lines": [int, ...],
            "missed_lines_compact": "3-5,9"
        },
        ...
    ]
}
"""

from typing import Any

from cargocov.report.models import CoverageReport


def compress_ranges(lines: list[int]) -> str:
    """Render sorted line numbers as ranges, e.g. [1, 2, 3, 7] -> "1-3,7"."""
    if not lines:
        return ""
    parts: list[str] = []
    start = prev = lines[0]
    for line in lines[1:]:
        if line == prev + 1:
            prev = line
            continue
        parts.append(str(start) if start == prev else f"{start}-{prev}")
        start = prev = line
    parts.append(str(start) if start == prev else f"{start}-{prev}")
    return ",".join(parts)


def compute_file_stats(report: CoverageReport) -> list[dict[str, Any]]:
    """Per-file coverage statistics, sorted by path."""
    file_stats = []
    for path in sorted(report.files):
        fc = report.files[path]
        missed = fc.uncovered_lines
        coverage_percent = fc.line_rate * 100.0 if fc.lines else 100.0
        file_stats.append(
            {
                "path": path,
                "total_lines": fc.lines_found,
                "covered_lines": fc.lines_hit,
                "coverage_percent": round(coverage_percent, 2),
                "missed_lines": missed,
                "missed_lines_compact": compress_ranges(missed),
            }
        )
    return file_stats


def build_summary(
    report: CoverageReport,
    *,
    include_files: bool = True,
    max_files: int | None = None,
    max_missed_lines: int = 20,
) -> dict[str, Any]:
    """Build a structured coverage summary from a report.

    Args:
        report: The coverage report to summarize.
        include_files: Whether to include per-file details.
        max_files: Limit number of files (lowest coverage first). None = all.
        max_missed_lines: Max missed lines to list per file.

    Returns:
        Structured dict suitable for JSON serialization.
    """
    totals = report.summary
    summary_dict: dict[str, Any] = {
        "total_files": totals.files,
        "total_lines": totals.lines_found,
        "covered_lines": totals.lines_hit,
        "line_coverage_percent": totals.line_percent,
    }
    if totals.branches_found:
        summary_dict["total_branches"] = totals.branches_found
        summary_dict["covered_branches"] = totals.branches_hit
        summary_dict["branch_coverage_percent"] = totals.branch_percent
    if totals.functions_found:
        summary_dict["total_functions"] = totals.functions_found
        summary_dict["covered_functions"] = totals.functions_hit
        summary_dict["function_coverage_percent"] = totals.function_percent

    result: dict[str, Any] = {"summary": summary_dict}

    if include_files:
        file_stats = compute_file_stats(report)
        # Stable sort keeps path order among equal percentages
        file_stats.sort(key=lambda f: f["coverage_percent"])
        if max_files is not None:
            file_stats = file_stats[:max_files]
        for fs in file_stats:
            missed = fs["missed_lines"]
            if len(missed) > max_missed_lines:
                fs["missed_lines"] = missed[:max_missed_lines]
                fs["missed_lines_truncated"] = True
        result["files"] = file_stats

    return result


def build_text_summary(report: CoverageReport) -> str:
    """One-line summary for status output."""
    totals = report.summary
    if totals.lines_found == 0:
        return "No coverage data"
    return (
        f"Coverage: {totals.line_percent:.1f}% "
        f"({totals.lines_hit}/{totals.lines_found} lines in {totals.files} files)"
    )
