"""CLI commands for bookmarked links."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from projectflow.context import AppContext, pass_app
from projectflow.core.prompts import confirm
from projectflow.store.models import Link

console = Console()


def _find_or_fail(app: AppContext, link_id: str) -> Link:
    link = app.store().find("links", link_id)
    if link is None:
        raise click.ClickException(f"No link with id {link_id}")
    return link


def _report(ok: bool, success: str, failure: str) -> None:
    if ok:
        console.print(f"[green]{success}[/green]")
    else:
        console.print(f"[red]{failure}[/red]")
        raise SystemExit(1)


@click.group(name="links")
def links() -> None:
    """Manage bookmarked links."""
    pass


@links.command(name="list")
@pass_app
def list_cmd(app: AppContext) -> None:
    """List links in their stored order."""
    items = app.store().links
    if not items:
        console.print("[dim]No links yet.[/dim]")
        return

    table = Table(title=f"Links ({len(items)})", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=3)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="green")
    table.add_column("URL", style="blue")
    table.add_column("Description")
    for i, link in enumerate(items):
        table.add_row(str(i), link.id, link.title, link.url, link.description or "")
    console.print(table)


@links.command(name="add")
@click.argument("title")
@click.argument("url")
@click.option("-d", "--description", help="What the link is for")
@pass_app
def add_cmd(app: AppContext, title: str, url: str, description: str | None) -> None:
    """Add a link."""
    link = Link.create(title, url, description)
    ok = app.run(app.store().actions.add_link(link))
    _report(ok, f"Added link {link.id}", f"Could not save {title}")


@links.command(name="edit")
@click.argument("link_id")
@click.option("--title", help="New title")
@click.option("--url", help="New URL")
@click.option("-d", "--description", help="New description, empty string clears it")
@pass_app
def edit_cmd(
    app: AppContext,
    link_id: str,
    title: str | None,
    url: str | None,
    description: str | None,
) -> None:
    """Edit a link."""
    link = _find_or_fail(app, link_id)
    changes = {key: value for key, value in (("title", title), ("url", url)) if value is not None}
    updated = link.replace(**changes)
    if description is not None:
        updated = updated.replace(description=description or None)

    if updated.to_dict() == link.to_dict():
        console.print("[dim]Nothing to change.[/dim]")
        return
    ok = app.run(app.store().actions.update_link(updated))
    _report(ok, f"Updated {link_id}", f"Could not update {link_id}")


@links.command(name="delete")
@click.argument("link_id")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation")
@pass_app
def delete_cmd(app: AppContext, link_id: str, yes: bool) -> None:
    """Delete a link."""
    link = _find_or_fail(app, link_id)
    if not confirm(f"Delete '{link.title}'?", auto_yes=yes):
        console.print("[dim]Cancelled.[/dim]")
        return
    ok = app.run(app.store().actions.delete_link(link_id))
    _report(ok, f"Deleted {link_id}", f"Could not delete {link_id}")


@links.command(name="reorder")
@click.argument("link_id")
@click.argument("position", type=int)
@pass_app
def reorder_cmd(app: AppContext, link_id: str, position: int) -> None:
    """Move a link to POSITION (0-based)."""
    _find_or_fail(app, link_id)

    def move_to(items: list) -> list:
        dragged = next(item for item in items if item.id == link_id)
        rest = [item for item in items if item.id != link_id]
        index = max(0, min(position, len(rest)))
        return rest[:index] + [dragged] + rest[index:]

    ok = app.run(app.store().actions.set_links(move_to))
    _report(ok, f"Moved {link_id} to position {position}", "Reorder failed")
