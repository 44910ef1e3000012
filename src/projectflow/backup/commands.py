"""
Backup management CLI commands.

Provides commands for listing, cleaning, and restoring backups of the
local store and the sqlite database.
"""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from projectflow.config.commands import get_config_value
from projectflow.core.backup import (
    DEFAULT_KEEP_COUNT,
    DEFAULT_KEEP_DAYS,
    BackupInfo,
    list_backups,
    restore_backup,
)
from projectflow.core.cache import ViewCache
from projectflow.core.config import get_paths
from projectflow.core.crypto import compute_file_hash

console = Console()

# Store names are the file stems the backups are named after
ALL_STORES = ["local_store", "projectflow"]


def _get_keep_days() -> int:
    """Get configured keep_days value."""
    return int(get_config_value("backup.keep_days", DEFAULT_KEEP_DAYS))


def _get_keep_count() -> int:
    """Get configured keep_count value."""
    return int(get_config_value("backup.keep_count", DEFAULT_KEEP_COUNT))


def _get_store_path(store_name: str) -> Path:
    """Get the file a store name refers to."""
    paths = get_paths()
    return {
        "local_store": paths.local_store,
        "projectflow": paths.database,
    }[store_name]


def _selected(store: str) -> list[str]:
    return ALL_STORES if store == "all" else [store]


def _format_age(days: float) -> str:
    """Format age in human-readable form."""
    if days < 1:
        hours = days * 24
        if hours < 1:
            return f"{int(hours * 60)}m ago"
        return f"{int(hours)}h ago"
    elif days < 7:
        return f"{int(days)}d ago"
    elif days < 30:
        return f"{int(days / 7)}w ago"
    else:
        return f"{int(days / 30)}mo ago"


@click.group()
def backup():
    """Manage store backups.

    Backups are taken before every import and restore.
    """
    pass


@backup.command(name="list")
@click.option(
    "-s", "--store",
    type=click.Choice(ALL_STORES + ["all"]),
    default="all",
    help="Which store's backups to list",
)
@click.option("-n", "--limit", type=int, default=10, help="Maximum backups to show per store")
@click.option("--all", "show_all", is_flag=True, help="Show all backups (no limit)")
@click.option("--hash", "show_hash", is_flag=True, help="Show a sha256 of each backup")
def list_cmd(store: str, limit: int, show_all: bool, show_hash: bool):
    """List available backups, newest first."""
    backup_dir = get_paths().backups

    total_count = 0
    total_size = 0

    for store_name in _selected(store):
        backups = list_backups(backup_dir, store_name)

        if not backups:
            console.print(f"[dim]No backups found for {store_name}[/dim]")
            continue

        total_count += len(backups)
        total_size += sum(b.size_bytes for b in backups)

        display_backups = backups if show_all else backups[:limit]
        hidden = len(backups) - len(display_backups)

        table = Table(
            title=f"[bold]{store_name}[/bold] ({len(backups)} backups)",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("#", style="dim", width=4)
        table.add_column("Date", style="green")
        table.add_column("Age", style="yellow", justify="right")
        table.add_column("Size", style="blue", justify="right")
        table.add_column("Filename", style="dim")
        if show_hash:
            table.add_column("SHA-256", style="dim")

        for i, info in enumerate(display_backups):
            row = [
                str(i),
                info.timestamp.strftime("%Y-%m-%d %H:%M"),
                _format_age(info.age_days),
                info.size_human,
                info.path.name,
            ]
            if show_hash:
                row.append(compute_file_hash(info.path, prefix=False)[:12])
            table.add_row(*row)

        console.print(table)

        if hidden > 0:
            console.print(f"  [dim]... and {hidden} older backups (use --all to see all)[/dim]")
        console.print()

    if total_count > 0:
        size_mb = total_size / (1024 * 1024)
        console.print(f"[dim]Total: {total_count} backups, {size_mb:.1f} MB[/dim]")


@backup.command(name="status")
def status_cmd():
    """Show backup counts and the retention policy."""
    backup_dir = get_paths().backups
    keep_days = _get_keep_days()
    keep_count = _get_keep_count()

    table = Table(title="Backup Status", show_header=True, header_style="bold cyan")
    table.add_column("Store")
    table.add_column("Count", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Latest", justify="right")
    table.add_column("Oldest", justify="right")
    table.add_column(f">{keep_days}d", justify="right", style="yellow")

    for store_name in ALL_STORES:
        backups = list_backups(backup_dir, store_name)
        if not backups:
            table.add_row(store_name, "0", "-", "-", "-", "[green]0[/green]")
            continue
        size = sum(b.size_bytes for b in backups)
        stale = sum(1 for b in backups if b.age_days > keep_days)
        table.add_row(
            store_name,
            str(len(backups)),
            f"{size / 1024:.1f} KB",
            backups[0].timestamp.strftime("%Y-%m-%d"),
            backups[-1].timestamp.strftime("%Y-%m-%d"),
            str(stale) if stale else "[green]0[/green]",
        )

    console.print(table)
    console.print()
    console.print(Panel(
        f"[bold]Retention Policy[/bold]\n"
        f"Keep minimum: [cyan]{keep_count}[/cyan] backups\n"
        f"Delete older than: [cyan]{keep_days}[/cyan] days\n\n"
        f"[dim]Use 'pf config set backup.keep_days N' to change retention.[/dim]",
        title="Settings",
    ))


@backup.command(name="clean")
@click.option(
    "-s", "--store",
    type=click.Choice(ALL_STORES + ["all"]),
    default="all",
    help="Which store's backups to clean",
)
@click.option("--days", type=int, default=None,
              help="Remove backups older than this many days (default: from config)")
@click.option("--keep", type=int, default=None,
              help="Always keep at least this many backups (default: from config)")
@click.option("--dry-run", "-n", is_flag=True, help="Preview what would be deleted")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def clean_cmd(store: str, days: int | None, keep: int | None, dry_run: bool, force: bool):
    """Clean up old backups.

    Removes backups older than --days while always keeping at least --keep
    backups per store.

    Examples:
        pf backup clean                    # Use configured defaults
        pf backup clean --days 7           # Delete backups older than 7 days
        pf backup clean -n                 # Preview what would be deleted
    """
    if days is None:
        days = _get_keep_days()
    if keep is None:
        keep = _get_keep_count()

    backup_dir = get_paths().backups

    to_delete: list[BackupInfo] = []
    for store_name in _selected(store):
        for i, info in enumerate(list_backups(backup_dir, store_name)):
            if i < keep:
                continue
            if info.age_days > days:
                to_delete.append(info)

    if not to_delete:
        console.print("[green]No old backups to clean up.[/green]")
        return

    console.print(f"[bold]Found {len(to_delete)} backup(s) to delete:[/bold]")
    for info in to_delete[:10]:
        console.print(
            f"  [red]x[/red] {info.path.name} "
            f"[dim]({_format_age(info.age_days)}, {info.size_human})[/dim]"
        )
    if len(to_delete) > 10:
        console.print(f"  [dim]... and {len(to_delete) - 10} more[/dim]")

    if dry_run:
        console.print("\n[yellow]DRY RUN - no files deleted[/yellow]")
        return

    if not force and not click.confirm("\nProceed with deletion?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    deleted = 0
    for info in to_delete:
        try:
            info.path.unlink(missing_ok=True)
            deleted += 1
        except OSError as e:
            console.print(f"[red]Failed to delete {info.path.name}: {e}[/red]")

    console.print(f"\n[green]Deleted {deleted} backup(s)[/green]")


@backup.command(name="restore")
@click.argument("store", type=click.Choice(ALL_STORES))
@click.option("-i", "--index", type=int, default=0,
              help="Backup index to restore (0 = most recent)")
@click.option("--dry-run", "-n", is_flag=True, help="Preview without making changes")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def restore_cmd(store: str, index: int, dry_run: bool, force: bool):
    """Restore a store file from backup.

    Creates a backup of the current state before restoring.

    Examples:
        pf backup restore local_store          # Most recent backup
        pf backup restore projectflow -i 1     # Second most recent
    """
    backup_dir = get_paths().backups
    backups = list_backups(backup_dir, store)
    if not backups:
        console.print(f"[red]No backups found for {store}[/red]")
        return
    if index >= len(backups):
        console.print(f"[red]Backup index {index} out of range (only {len(backups)} backups)[/red]")
        return

    chosen = backups[index]
    target = _get_store_path(store)

    console.print(Panel(
        f"[bold]Store:[/bold] {store}\n"
        f"[bold]Current:[/bold] {target.name}\n"
        f"[bold]Restore from:[/bold] {chosen.path.name}\n"
        f"[bold]Backup date:[/bold] {chosen.timestamp.strftime('%Y-%m-%d %H:%M:%S')}\n"
        f"[bold]Backup age:[/bold] {_format_age(chosen.age_days)}\n"
        f"[bold]Backup size:[/bold] {chosen.size_human}",
        title="Restore Preview",
    ))

    if dry_run:
        console.print("\n[yellow]DRY RUN - no changes made[/yellow]")
        return

    if not force:
        console.print("\n[yellow]Warning: This will back up the current state, then restore.[/yellow]")
        if not click.confirm("Proceed with restore?"):
            console.print("[yellow]Cancelled[/yellow]")
            return

    try:
        restore_backup(target, backup_dir, index)
    except (FileNotFoundError, OSError) as e:
        console.print(f"[red]Restore failed: {e}[/red]")
        raise click.Abort() from e
    ViewCache(get_paths().dashboard_cache).invalidate()
    console.print(f"\n[green]Restored {store} from {chosen.path.name}[/green]")
    console.print("[dim]A backup of the previous state was created.[/dim]")
