"""File-centric coverage model built from the exported LCOV report.

Line numbers are 1-based to match source file conventions.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class LcovParseError(Exception):
    """Error reading or parsing an LCOV report."""

    pass


@dataclass(frozen=True, slots=True)
class BranchCoverage:
    """A single branch point (BRDA record)."""

    line: int
    block_id: int
    branch_id: int
    hits: int


@dataclass(frozen=True, slots=True)
class FunctionCoverage:
    """Function coverage (FN + FNDA records)."""

    name: str
    start_line: int
    hits: int


@dataclass(slots=True)
class FileCoverage:
    """Coverage data for a single source file."""

    path: str  # workspace-relative when under the workspace
    lines: dict[int, int] = field(default_factory=dict)  # line_number → hit_count
    branches: list[BranchCoverage] = field(default_factory=list)
    functions: dict[str, FunctionCoverage] = field(default_factory=dict)  # name → coverage

    @property
    def lines_found(self) -> int:
        return len(self.lines)

    @property
    def lines_hit(self) -> int:
        return sum(1 for hits in self.lines.values() if hits > 0)

    @property
    def line_rate(self) -> float:
        """Fraction of lines covered (0.0 to 1.0)."""
        if not self.lines:
            return 0.0
        return self.lines_hit / len(self.lines)

    @property
    def uncovered_lines(self) -> list[int]:
        return sorted(line for line, hits in self.lines.items() if hits == 0)

    @property
    def branches_hit(self) -> int:
        return sum(1 for b in self.branches if b.hits > 0)

    @property
    def functions_hit(self) -> int:
        return sum(1 for f in self.functions.values() if f.hits > 0)


@dataclass(frozen=True, slots=True)
class CoverageSummary:
    """Aggregate coverage statistics. Immutable snapshot of a CoverageReport."""

    files: int
    lines_found: int
    lines_hit: int
    branches_found: int
    branches_hit: int
    functions_found: int
    functions_hit: int

    @property
    def line_percent(self) -> float:
        return _percent(self.lines_hit, self.lines_found)

    @property
    def branch_percent(self) -> float | None:
        return _percent(self.branches_hit, self.branches_found) if self.branches_found else None

    @property
    def function_percent(self) -> float | None:
        return (
            _percent(self.functions_hit, self.functions_found) if self.functions_found else None
        )


@dataclass(slots=True)
class CoverageReport:
    """Parsed LCOV report, files keyed by path."""

    files: dict[str, FileCoverage] = field(default_factory=dict)

    @property
    def summary(self) -> CoverageSummary:
        files = self.files.values()
        return CoverageSummary(
            files=len(self.files),
            lines_found=sum(f.lines_found for f in files),
            lines_hit=sum(f.lines_hit for f in files),
            branches_found=sum(len(f.branches) for f in files),
            branches_hit=sum(f.branches_hit for f in files),
            functions_found=sum(len(f.functions) for f in files),
            functions_hit=sum(f.functions_hit for f in files),
        )


def _percent(hit: int, found: int) -> float:
    # An empty report counts as fully covered
    return round(hit / found * 100.0, 2) if found else 100.0
