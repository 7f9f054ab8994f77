"""cargocov summary command - summarize an existing LCOV report."""

import json
from pathlib import Path

import click

from cargocov.cli.utils import load_run_config
from cargocov.core.progress import get_console, make_coverage_table
from cargocov.report import LcovParseError, build_summary, build_text_summary, parse_lcov


@click.command()
@click.argument(
    "path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("--max-files", default=10, show_default=True, help="Files listed (lowest first)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def summary_command(path: Path, max_files: int, as_json: bool) -> None:
    """Summarize the LCOV report from the last coverage run.

    PATH is any directory inside the cargo workspace (default: current directory).
    """
    _, run_config = load_run_config(path)

    try:
        report = parse_lcov(run_config.lcov_path, base_path=run_config.workspace_dir)
    except LcovParseError as e:
        raise click.ClickException(f"{e}. Run 'cargocov run' first.") from e

    summary = build_summary(report, max_files=max_files)
    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    click.echo(build_text_summary(report))
    if summary.get("files"):
        get_console().print(make_coverage_table(summary["files"]))
