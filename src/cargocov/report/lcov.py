"""LCOV report parser.

llvm-cov's ``export --format lcov`` writes records like:
- SF:<source file path>
- FN:<line>,<mangled or demangled name>
- FNDA:<hit count>,<name>
- DA:<line>,<hit count>
- BRDA:<line>,<block>,<branch>,<taken or ->
- LF/LH/BRF/BRH/FNF/FNH: totals (recomputed here, so ignored)
- end_of_record
"""

from __future__ import annotations

import contextlib
from pathlib import Path

from cargocov.report.models import (
    BranchCoverage,
    CoverageReport,
    FileCoverage,
    FunctionCoverage,
    LcovParseError,
)


def _count(value: str) -> int:
    # '-' marks a branch that was never evaluated
    return 0 if value == "-" else int(value)


def parse_lcov_text(content: str, *, base_path: Path | None = None) -> CoverageReport:
    """Parse LCOV text. Paths under base_path become relative to it."""
    files: dict[str, FileCoverage] = {}
    current: FileCoverage | None = None
    fn_lines: dict[str, int] = {}

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("SF:"):
            file_path = line[3:]
            if base_path is not None:
                with contextlib.suppress(ValueError):
                    file_path = Path(file_path).relative_to(base_path).as_posix()
            current = FileCoverage(path=file_path)
            fn_lines = {}
            continue

        if line == "end_of_record":
            if current is not None:
                files[current.path] = current
            current = None
            fn_lines = {}
            continue

        if current is None:
            continue

        tag, _, payload = line.partition(":")
        try:
            if tag == "DA":
                parts = payload.split(",")
                current.lines[int(parts[0])] = _count(parts[1])
            elif tag == "BRDA":
                parts = payload.split(",")
                current.branches.append(
                    BranchCoverage(
                        line=int(parts[0]),
                        block_id=int(parts[1]),
                        branch_id=int(parts[2]),
                        hits=_count(parts[3]),
                    )
                )
            elif tag == "FN":
                start, name = payload.split(",", 1)
                fn_lines[name] = int(start)
            elif tag == "FNDA":
                hits, name = payload.split(",", 1)
                current.functions[name] = FunctionCoverage(
                    name=name,
                    start_line=fn_lines.get(name, 0),
                    hits=int(hits),
                )
        except (ValueError, IndexError):
            # Malformed record; keep the rest of the file
            continue

    if current is not None:
        files[current.path] = current

    return CoverageReport(files=files)


def parse_lcov(path: Path, *, base_path: Path | None = None) -> CoverageReport:
    """Parse an LCOV file.

    Raises:
        LcovParseError: If the file is missing or unreadable.
    """
    if not path.is_file():
        raise LcovParseError(f"LCOV file not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LcovParseError(f"Failed to read LCOV file {path}: {e}") from e
    return parse_lcov_text(content, base_path=base_path)
