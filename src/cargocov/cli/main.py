"""cargocov CLI - cargocov command."""

import click

from cargocov.cli.clean import clean_command
from cargocov.cli.run import run_command
from cargocov.cli.summary import summary_command
from cargocov.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="cargocov")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """cargocov - LLVM source-based coverage reports for cargo workspaces."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(run_command, name="run")
cli.add_command(clean_command, name="clean")
cli.add_command(summary_command, name="summary")


if __name__ == "__main__":
    cli()
