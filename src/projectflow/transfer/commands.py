"""CLI commands for exporting and importing data."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from projectflow.context import AppContext, pass_app
from projectflow.core.prompts import confirm
from projectflow.transfer.exporter import EXPORT_FORMATS, write_export
from projectflow.transfer.importer import ImportFormatError, import_backup

console = Console()


@click.group(name="data")
def data() -> None:
    """Export or import all projects, courses, and links."""
    pass


@data.command(name="export")
@click.option(
    "-f", "--format", "fmt",
    type=click.Choice(EXPORT_FORMATS),
    default="json",
    help="JSON backup or one CSV table",
)
@click.option(
    "-o", "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="File or directory (default: .projectflow/exports/)",
)
@pass_app
def export_cmd(app: AppContext, fmt: str, output: Path | None) -> None:
    """Export the current data.

    Examples:
        pf data export                         # JSON backup
        pf data export -f csv-projects -o .    # projects table
    """
    store = app.store()
    destination = output if output is not None else app.paths.exports
    if output is None:
        destination.mkdir(parents=True, exist_ok=True)
    try:
        written = write_export(store, fmt, destination)
    except OSError as e:
        raise click.ClickException(f"Could not write export: {e}") from e
    console.print(f"[green]Exported {fmt} to {written}[/green]")


@data.command(name="import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation")
@pass_app
def import_cmd(app: AppContext, source: Path, yes: bool) -> None:
    """Replace all data with a JSON backup.

    The current store files are backed up first. An invalid file leaves
    everything unchanged.
    """
    store = app.store()
    if not confirm("Replace all current data with this backup?", auto_yes=yes):
        console.print("[dim]Cancelled.[/dim]")
        return

    try:
        ok = app.run(import_backup(
            store,
            source,
            store_files=[app.paths.local_store, app.paths.database],
            backup_dir=app.paths.backups,
        ))
    except ImportFormatError as e:
        console.print(f"[red]Import Failed: {e}[/red]")
        raise SystemExit(1) from e
    except OSError as e:
        console.print(f"[red]Import Failed: could not read {source}: {e}[/red]")
        raise SystemExit(1) from e

    if not ok:
        console.print("[red]Import Failed: the store rejected the data[/red]")
        raise SystemExit(1)

    console.print(
        f"[green]Import Successful.[/green] {len(store.ideas)} ideas, "
        f"{len(store.completed)} completed, {len(store.courses)} courses, "
        f"{len(store.links)} links."
    )
