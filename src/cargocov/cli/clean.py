"""cargocov clean command - remove stale raw profiles."""

from pathlib import Path

import click

from cargocov.cli.utils import fail, load_run_config
from cargocov.core.errors import CargoCovError
from cargocov.core.progress import pluralize
from cargocov.pipeline.merge import clean_raw_profiles


@click.command()
@click.argument(
    "path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
def clean_command(path: Path) -> None:
    """Delete raw profiles left in the coverage directory.

    PATH is any directory inside the cargo workspace (default: current directory).
    """
    _, run_config = load_run_config(path)

    if not run_config.coverage_dir.is_dir():
        click.echo(f"Nothing to clean: {run_config.coverage_dir} does not exist")
        return

    try:
        removed = clean_raw_profiles(run_config.coverage_dir)
    except CargoCovError as e:
        raise fail(e) from e
    click.echo(f"Removed {pluralize(removed, 'raw profile')} from {run_config.coverage_dir}")
