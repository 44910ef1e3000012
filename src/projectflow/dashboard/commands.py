"""Dashboard CLI commands: summary stats and search."""

from __future__ import annotations

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from projectflow.context import AppContext, pass_app
from projectflow.dashboard.stats import cached_stats, search

console = Console()


@click.command(name="stats")
@pass_app
def stats(app: AppContext) -> None:
    """Show the dashboard summary."""
    store = app.store()
    summary = cached_stats(store, app.view_cache)
    settings = app.settings

    header = f"[bold]{settings.profile_name}[/bold]"
    if settings.github:
        header += f"  [dim]github.com/{settings.github}[/dim]"

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Projects", str(summary["total_projects"]))
    table.add_row("  Ideas", str(summary["ideas"]))
    table.add_row("  Completed", str(summary["completed"]))
    table.add_row("Average progress", f"{summary['average_progress']}%")
    overdue = summary["overdue"]
    table.add_row("Overdue", f"[red]{overdue}[/red]" if overdue else "0")
    table.add_row("Courses", f"{summary['completed_courses']}/{summary['courses']} done")
    table.add_row("Links", str(summary["links"]))

    console.print(Panel(table, title=header, subtitle=f"[dim]{store.storage_mode} storage[/dim]", expand=False))


@click.command(name="search")
@click.argument("term")
@pass_app
def search_cmd(app: AppContext, term: str) -> None:
    """Search titles, descriptions, tags, and names."""
    results = search(app.store(), term)
    total = sum(len(items) for items in results.values())
    if total == 0:
        console.print(f"[dim]Nothing matches '{term}'.[/dim]")
        return

    table = Table(title=f"Results for '{term}' ({total})", show_header=True, header_style="bold cyan")
    table.add_column("Kind", style="dim")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="green")

    for kind, items in results.items():
        for item in items:
            label = getattr(item, "title", None) or getattr(item, "name", "")
            table.add_row(kind, item.id, label)
    console.print(table)
