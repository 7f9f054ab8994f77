"""Terminal feedback for the CLI.

Everything goes to stderr through one rich console, which keeps stdout
free for ``--json`` output. The test-run stage streams ``cargo test``
output, so ``task`` prints plain start and finish lines rather than a live
spinner that would fight with it::

    with task("Merging coverage data"):
        merge()
    # Merging coverage data...
    # ✓ Merging coverage data (0.4s)
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

log = structlog.get_logger(__name__)

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

# Percent thresholds for coloring the Cover column
_GOOD = 80.0
_FAIR = 50.0


def get_console() -> Console:
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print one line, prefixed by the mark for ``style``.

    ``message`` is printed literally; brackets in paths or error text are
    not treated as rich markup.
    """
    line = " " * indent + _STYLES.get(style, "") + escape(message)
    _console.print(line, highlight=False)
    log.debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """``pluralize(2, "binary", "binaries")`` gives ``"2 binaries"``."""
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"


@contextmanager
def task(name: str) -> Iterator[None]:
    """Announce a pipeline stage, then report how it ended and how long it took.

    Exceptions are reported and re-raised unchanged.
    """
    status(f"{name}...", style="none")
    log.debug("task_start", task=name)
    started = time.monotonic()
    try:
        yield
    except Exception as exc:
        elapsed = time.monotonic() - started
        status(f"{name} failed: {exc}", style="error")
        log.error("task_failed", task=name, elapsed_s=round(elapsed, 3), error=str(exc))
        raise
    elapsed = time.monotonic() - started
    status(f"{name} ({elapsed:.1f}s)", style="success")
    log.debug("task_done", task=name, elapsed_s=round(elapsed, 3))


def _cover_color(percent: float) -> str:
    if percent >= _GOOD:
        return "green"
    return "yellow" if percent >= _FAIR else "red"


def make_coverage_table(files: list[dict[str, object]], *, max_missed: int = 8) -> Table:
    """Per-file rows from ``report.summary`` as a borderless rich table.

    The Missed column is cut to roughly ``max_missed`` ranges.
    """
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Lines", justify="right")
    table.add_column("Cover", justify="right")
    table.add_column("Missed", style="dim")

    limit = max_missed * 6
    for entry in files:
        percent = float(entry["coverage_percent"])  # type: ignore[arg-type]
        color = _cover_color(percent)
        missed = str(entry.get("missed_lines_compact", ""))
        if len(missed) > limit:
            missed = missed[:limit] + "…"
        table.add_row(
            str(entry["path"]),
            f"{entry['covered_lines']}/{entry['total_lines']}",
            f"[{color}]{percent:.1f}%[/{color}]",
            missed,
        )
    return table
