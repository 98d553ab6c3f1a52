"""modelsync sync command - reconcile a C# project with its database."""

import sys
from pathlib import Path

import click
from rich.table import Table

from modelsync.config.loader import load_config
from modelsync.core.errors import ConfigError
from modelsync.core.logging import configure_logging
from modelsync.core.progress import get_console, pluralize, set_decorated, spinner, status
from modelsync.sync import SyncOptions, SyncResult, synchronize


@click.command()
@click.option("-c", "--connection", required=True, help="SQLAlchemy database URL")
@click.option("-d", "--database", default=None, help="Database name (overrides the URL)")
@click.option(
    "-p",
    "--code-path",
    "code_path",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Root of the C# project (default: current directory)",
)
@click.option("--dry-run", is_flag=True, help="Compute changes without writing files")
@click.option(
    "--std-decorate", is_flag=True, help="Prefix every output line for IDE integrations"
)
@click.option("--scan-suffixes", is_flag=True, help="Also match singular-named tables")
@click.option("--no-dump", is_flag=True, help="Skip Schema/<table>.sql documentation")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def sync_command(
    ctx: click.Context,
    connection: str,
    database: str | None,
    code_path: Path,
    dry_run: bool,
    std_decorate: bool,
    scan_suffixes: bool,
    no_dump: bool,
    verbose: bool,
) -> None:
    """Synchronize models, DAOs and the DbContext registry with the database."""
    verbose = verbose or bool((ctx.obj or {}).get("verbose"))
    set_decorated(std_decorate)
    project_root = code_path.resolve()

    try:
        config = load_config(project_root)
    except ConfigError as e:
        status(f"Invalid configuration: {e.message}", style="error")
        sys.exit(1)

    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)

    options = SyncOptions(
        dry_run=dry_run,
        decorate_messages=std_decorate,
        scan_table_suffixes=True if scan_suffixes else None,
        dump_schema=False if no_dump else None,
    )

    with spinner(f"Synchronizing {project_root.name}"):
        result = synchronize(connection, database, project_root, options, config=config)

    if result.error is not None:
        status(f"Failed at step '{result.error.step.value}': {result.error.message}", style="error")
        if result.error.raw_cause:
            status(result.error.raw_cause, style="error")
        sys.exit(1)

    _report(result, decorated=std_decorate)


def _report(result: SyncResult, *, decorated: bool) -> None:
    for failure in result.failures:
        target = f" ({failure.target})" if failure.target else ""
        status(f"{failure.step.value}{target}: {failure.message}", style="warning")

    summary = result.summary
    prefix = "Would change" if result.dry_run else "Changed"
    status(
        f"{prefix} {pluralize(len(result.deltas), 'file')} in {summary.elapsed_ms / 1000:.1f}s",
        style="success" if not result.failures else "warning",
    )
    if not result.deltas:
        return
    for delta in result.deltas:
        status(f"{delta.action:<8} {delta.path}", style="none", indent=2)
    if decorated:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Artifact")
    table.add_column("Created", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Deleted", justify="right")
    table.add_row(
        "Models",
        str(summary.models_created),
        str(summary.models_updated),
        str(summary.models_deleted),
    )
    table.add_row(
        "DAOs", str(summary.daos_created), str(summary.daos_updated), str(summary.daos_deleted)
    )
    table.add_row("Schema", str(summary.schema_written), "-", str(summary.schema_deleted))
    table.add_row("Registry", "-", "yes" if summary.registry_updated else "no", "-")

    get_console().print(table)
