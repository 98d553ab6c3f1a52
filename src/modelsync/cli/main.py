"""ModelSync CLI - modelsync command."""

import click

from modelsync.cli.sync import sync_command
from modelsync.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="modelsync")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """ModelSync - keep a C# data-access layer in sync with its database."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(sync_command, name="sync")


if __name__ == "__main__":
    cli()
