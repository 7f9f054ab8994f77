"""cargocov run command - build, test and report coverage for a workspace."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from cargocov.cli.utils import fail, load_run_config
from cargocov.config.models import RunConfig
from cargocov.core.errors import CargoCovError
from cargocov.core.logging import configure_logging
from cargocov.core.progress import get_console, make_coverage_table, pluralize, status, task
from cargocov.pipeline.ops import CoverageResult, run_coverage
from cargocov.report import LcovParseError, build_summary, build_text_summary, parse_lcov


def _overrides(
    coverage_dir: Path | None, profdata: Path | None, html: bool | None
) -> dict[str, Any]:
    paths: dict[str, Any] = {}
    if coverage_dir is not None:
        paths["coverage_dir"] = str(coverage_dir)
    if profdata is not None:
        paths["profdata"] = str(profdata)
    overrides: dict[str, Any] = {}
    if paths:
        overrides["paths"] = paths
    if html is not None:
        overrides["build"] = {"html": html}
    return overrides


def _result_dict(result: CoverageResult) -> dict[str, Any]:
    return {
        "run_id": result.run_id,
        "test_binaries": [str(p) for p in result.test_binaries],
        "raw_profiles": [str(p) for p in result.raw_profiles],
        "profdata": str(result.profdata_path) if result.profdata_path else None,
        "lcov": str(result.lcov_path) if result.lcov_path else None,
        "html": str(result.html_index) if result.html_index else None,
        "duration_seconds": round(result.duration_seconds, 2),
    }


def _print_summary(run_config: RunConfig, lcov_path: Path, max_files: int) -> None:
    try:
        report = parse_lcov(lcov_path, base_path=run_config.workspace_dir)
    except LcovParseError as e:
        status(str(e), style="warning")
        return
    status(build_text_summary(report), style="none")
    summary = build_summary(report, max_files=max_files)
    if summary.get("files"):
        get_console().print(make_coverage_table(summary["files"]))


@click.command()
@click.argument(
    "path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option(
    "--coverage-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Coverage output directory (default: target/coverage)",
)
@click.option(
    "--profdata",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Merged profile path (default: <coverage-dir>/coverage.profdata)",
)
@click.option("--html/--no-html", default=None, help="Render the HTML report")
@click.option("--summary/--no-summary", default=True, help="Print a coverage summary")
@click.option("--max-files", default=10, show_default=True, help="Files listed in the summary")
@click.option("--json", "as_json", is_flag=True, help="Output result as JSON")
@click.pass_context
def run_command(
    ctx: click.Context,
    path: Path,
    coverage_dir: Path | None,
    profdata: Path | None,
    html: bool | None,
    summary: bool,
    max_files: int,
    as_json: bool,
) -> None:
    """Build instrumented tests, run them, and export coverage reports.

    PATH is any directory inside the cargo workspace (default: current directory).
    """
    config, run_config = load_run_config(path, **_overrides(coverage_dir, profdata, html))

    if ctx.obj and ctx.obj.get("verbose"):
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)

    if not as_json:
        status(f"Workspace: {run_config.workspace_dir}", style="none")

    try:
        result = run_coverage(run_config, config, stage=None if as_json else task)
    except CargoCovError as e:
        raise fail(e) from e

    if as_json:
        payload = _result_dict(result)
        if summary and result.lcov_path is not None:
            try:
                report = parse_lcov(result.lcov_path, base_path=run_config.workspace_dir)
                payload["coverage"] = build_summary(report, max_files=max_files)
            except LcovParseError as e:
                payload["coverage_error"] = str(e)
        click.echo(json.dumps(payload, indent=2))
        return

    status(
        f"{pluralize(len(result.test_binaries), 'test binary', 'test binaries')}, "
        f"{pluralize(len(result.raw_profiles), 'raw profile')} merged "
        f"in {result.duration_seconds:.1f}s",
        style="success",
    )
    if result.lcov_path is not None:
        status(f"LCOV: {result.lcov_path}")
    if result.html_index is not None:
        status(f"HTML: {result.html_index}")
    if summary and result.lcov_path is not None:
        _print_summary(run_config, result.lcov_path, max_files)
