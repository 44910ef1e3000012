"""CLI commands for projects (ideas and completed)."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from projectflow.context import AppContext, pass_app
from projectflow.core.blobstore import LOGO_PREFIX, handle_from_logo
from projectflow.core.prompts import confirm
from projectflow.requirements import get_parser
from projectflow.store.models import (
    COMPLETED,
    IDEAS,
    PROJECT_COLLECTIONS,
    Project,
    clamp_progress,
    parse_link_spec,
)

console = Console()

COLLECTION_CHOICE = click.Choice(list(PROJECT_COLLECTIONS))


def _truncate(text: str, max_len: int) -> str:
    """Truncate text with ellipsis if it exceeds max_len."""
    if len(text) > max_len:
        return text[:max_len] + "..."
    return text


def _find_or_fail(app: AppContext, project_id: str) -> tuple[Project, str]:
    found = app.store().find_project(project_id)
    if found is None:
        raise click.ClickException(f"No project with id {project_id}")
    return found


def _report(ok: bool, success: str, failure: str) -> None:
    if ok:
        console.print(f"[green]{success}[/green]")
    else:
        console.print(f"[red]{failure}[/red]")
        raise SystemExit(1)


def _parse_links(specs: tuple[str, ...]) -> list[dict[str, str]]:
    try:
        return [parse_link_spec(spec) for spec in specs]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--link") from e


@click.group(name="projects")
def projects() -> None:
    """Manage project ideas and completed projects."""
    pass


@projects.command(name="list")
@click.option("--completed", "show_completed", is_flag=True, help="List completed projects")
@click.option("--all", "show_all", is_flag=True, help="List both collections")
@click.option("--tag", help="Only projects with this tag")
@pass_app
def list_cmd(app: AppContext, show_completed: bool, show_all: bool, tag: str | None) -> None:
    """List projects in their stored order."""
    store = app.store()
    if show_all:
        names = list(PROJECT_COLLECTIONS)
    else:
        names = [COMPLETED if show_completed else IDEAS]

    for name in names:
        items = store.collection(name)
        if tag:
            items = [p for p in items if tag.lower() in (t.lower() for t in p.tags)]

        table = Table(title=f"{name.title()} ({len(items)})", show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", width=3)
        table.add_column("ID", style="dim")
        table.add_column("Title", style="green")
        table.add_column("Progress", justify="right")
        table.add_column("Tags", style="blue")
        table.add_column("Due", style="yellow")

        for i, project in enumerate(items):
            table.add_row(
                str(i),
                project.id,
                _truncate(project.title, 40),
                f"{project.progress}%",
                ", ".join(project.tags),
                (project.due_date or "")[:10],
            )
        console.print(table)


@projects.command(name="show")
@click.argument("project_id")
@pass_app
def show_cmd(app: AppContext, project_id: str) -> None:
    """Show one project with requirements, links, and notes."""
    project, collection = _find_or_fail(app, project_id)

    lines = [
        f"[bold]{project.title}[/bold]  [dim]({collection}, {project.progress}%)[/dim]",
    ]
    if project.description:
        lines.append(project.description)
    if project.tags:
        lines.append(f"[blue]Tags:[/blue] {', '.join(project.tags)}")
    if project.due_date:
        lines.append(f"[yellow]Due:[/yellow] {project.due_date[:10]}")
    if project.repo_url:
        lines.append(f"[cyan]Repo:[/cyan] {project.repo_url}")
    if project.logo:
        lines.append(f"[dim]Logo: {_truncate(project.logo, 60)}[/dim]")

    requirements = project.requirement_items
    if requirements:
        lines.append("\n[bold]Requirements[/bold]")
        lines.extend(f"  {i}. {item}" for i, item in enumerate(requirements, 1))
    if project.links:
        lines.append("\n[bold]Links[/bold]")
        lines.extend(f"  - {link.get('title', '')}: {link.get('url', '')}" for link in project.links)

    notes = project.notes
    lines.append("\n[bold]Notes[/bold]")
    if notes:
        # Newest first
        for note in reversed(notes):
            lines.append(f"  [dim]{note.date[:10]} {note.id}[/dim] {note.content}")
    else:
        lines.append("  [dim]No notes added yet.[/dim]")

    console.print(Panel("\n".join(lines), title=project.id, expand=False))


@projects.command(name="add")
@click.argument("title")
@click.option("-d", "--description", default="", help="Short description")
@click.option("-t", "--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("-p", "--progress", type=int, default=0, help="Progress 0-100")
@click.option("--due", help="Due date (ISO-8601)")
@click.option("--repo", help="Repository URL")
@click.option("-l", "--link", "links", multiple=True, help="Link as Title=URL (repeatable)")
@click.option("-r", "--requirements", help="Requirements text")
@click.option("--parse", "parse_requirements", is_flag=True, help="Split requirements text into items")
@click.option("--logo", help="Logo URL or data URI")
@click.option("--completed", "as_completed", is_flag=True, help="Add straight to completed")
@pass_app
def add_cmd(
    app: AppContext,
    title: str,
    description: str,
    tags: tuple[str, ...],
    progress: int,
    due: str | None,
    repo: str | None,
    links: tuple[str, ...],
    requirements: str | None,
    parse_requirements: bool,
    logo: str | None,
    as_completed: bool,
) -> None:
    """Add a new project idea."""
    store = app.store()

    reqs: str | list[str] = []
    if requirements:
        reqs = get_parser(app.settings).parse(requirements) if parse_requirements else requirements

    project = Project.create(
        title,
        description=description,
        tags=list(tags),
        progress=100 if as_completed else progress,
        dueDate=due,
        repoUrl=repo,
        links=_parse_links(links),
        requirements=reqs,
        logo=logo,
    )
    collection = COMPLETED if as_completed else IDEAS
    ok = app.run(store.actions.add_project(project, collection))
    _report(ok, f"Added {project.id} to {collection}", f"Could not save {title}")


@projects.command(name="edit")
@click.argument("project_id")
@click.option("--title", help="New title")
@click.option("-d", "--description", help="New description")
@click.option("-p", "--progress", type=int, help="Progress 0-100")
@click.option("-t", "--tag", "tags", multiple=True, help="Replace tags (repeatable)")
@click.option("--due", help="Due date (ISO-8601), empty string clears it")
@click.option("--repo", help="Repository URL, empty string clears it")
@click.option("-l", "--link", "links", multiple=True, help="Replace links, Title=URL (repeatable)")
@click.option("-r", "--requirements", help="Replace requirements text")
@click.option("--parse", "parse_requirements", is_flag=True, help="Split requirements text into items")
@pass_app
def edit_cmd(
    app: AppContext,
    project_id: str,
    title: str | None,
    description: str | None,
    progress: int | None,
    tags: tuple[str, ...],
    due: str | None,
    repo: str | None,
    links: tuple[str, ...],
    requirements: str | None,
    parse_requirements: bool,
) -> None:
    """Edit fields of a project in place."""
    project, collection = _find_or_fail(app, project_id)
    changes: dict = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description
    if progress is not None:
        changes["progress"] = clamp_progress(progress)
    if tags:
        changes["tags"] = list(tags)
    if links:
        changes["links"] = _parse_links(links)
    if requirements is not None:
        changes["requirements"] = (
            get_parser(app.settings).parse(requirements) if parse_requirements else requirements
        )

    updated = project.replace(**changes)
    # Empty strings clear optional fields
    if due is not None:
        updated = updated.replace(dueDate=due or None)
    if repo is not None:
        updated = updated.replace(repoUrl=repo or None)

    if updated.to_dict() == project.to_dict():
        console.print("[dim]Nothing to change.[/dim]")
        return

    ok = app.run(app.store().actions.update_project(updated, collection))
    _report(ok, f"Updated {project_id}", f"Could not update {project_id}")


@projects.command(name="delete")
@click.argument("project_id")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation")
@pass_app
def delete_cmd(app: AppContext, project_id: str, yes: bool) -> None:
    """Delete a project and its stored logo."""
    project, collection = _find_or_fail(app, project_id)
    if not confirm(f"Delete '{project.title}'?", auto_yes=yes):
        console.print("[dim]Cancelled.[/dim]")
        return

    ok = app.run(app.store().actions.delete_project(project_id, collection))
    if ok:
        handle = handle_from_logo(project.logo)
        if handle:
            app.blobs.remove(handle)
    _report(ok, f"Deleted {project_id}", f"Could not delete {project_id}")


@projects.command(name="move")
@click.argument("project_id")
@click.argument("destination", type=COLLECTION_CHOICE)
@pass_app
def move_cmd(app: AppContext, project_id: str, destination: str) -> None:
    """Move a project to 'completed' or back to 'ideas'."""
    project, source = _find_or_fail(app, project_id)
    if source == destination:
        console.print(f"[dim]{project_id} is already in {destination}.[/dim]")
        return
    ok = app.run(app.store().actions.move_project(project_id, source, destination))
    if destination == COMPLETED:
        _report(ok, f"Project Completed! \"{project.title}\" moved to Completed.", "Move failed")
    else:
        _report(ok, f"\"{project.title}\" moved to Ideas.", "Move failed")


@projects.command(name="reorder")
@click.argument("project_id")
@click.argument("position", type=int)
@pass_app
def reorder_cmd(app: AppContext, project_id: str, position: int) -> None:
    """Move a project to POSITION (0-based) within its collection."""
    _, collection = _find_or_fail(app, project_id)
    store = app.store()

    def move_to(items: list) -> list:
        dragged = next(p for p in items if p.id == project_id)
        rest = [p for p in items if p.id != project_id]
        index = max(0, min(position, len(rest)))
        return rest[:index] + [dragged] + rest[index:]

    setter = store.actions.set_completed if collection == COMPLETED else store.actions.set_ideas
    ok = app.run(setter(move_to))
    if ok and store.storage_mode == "sqlite" and not app.settings.durable_reorder:
        console.print("[yellow]Order is not saved in sqlite mode (storage.durable_reorder is off).[/yellow]")
    _report(ok, f"Moved {project_id} to position {position}", "Reorder failed")


@projects.command(name="note-add")
@click.argument("project_id")
@click.argument("content")
@pass_app
def note_add_cmd(app: AppContext, project_id: str, content: str) -> None:
    """Append a note to a project's log."""
    _find_or_fail(app, project_id)
    try:
        note = app.run(app.store().actions.add_note("project", project_id, content))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="CONTENT") from e
    _report(note is not None, f"Note added ({note.id if note else ''})", "Could not add note")


@projects.command(name="note-delete")
@click.argument("project_id")
@click.argument("note_id")
@pass_app
def note_delete_cmd(app: AppContext, project_id: str, note_id: str) -> None:
    """Delete a note from a project's log."""
    _find_or_fail(app, project_id)
    ok = app.run(app.store().actions.delete_note("project", project_id, note_id))
    _report(ok, "Note deleted.", f"No note {note_id} on {project_id}")


@projects.command(name="logo-set")
@click.argument("project_id")
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_app
def logo_set_cmd(app: AppContext, project_id: str, image: Path) -> None:
    """Store IMAGE in the blob store and use it as the project logo."""
    project, collection = _find_or_fail(app, project_id)
    handle = app.blobs.store(image.read_bytes())
    ok = app.run(app.store().actions.update_project(
        project.replace(logo=f"{LOGO_PREFIX}{handle}"), collection
    ))
    if not ok:
        app.blobs.remove(handle)
    else:
        old = handle_from_logo(project.logo)
        if old:
            app.blobs.remove(old)
    _report(ok, f"Logo stored as {handle}", "Could not update logo")


@projects.command(name="logo-export")
@click.argument("project_id")
@click.argument("destination", type=click.Path(dir_okay=False, path_type=Path))
@pass_app
def logo_export_cmd(app: AppContext, project_id: str, destination: Path) -> None:
    """Write a project's stored logo to DESTINATION."""
    project, _ = _find_or_fail(app, project_id)
    handle = handle_from_logo(project.logo)
    if handle is None:
        raise click.ClickException(f"{project_id} has no stored logo (logo: {project.logo or 'none'})")

    ref = app.blobs.resolve(handle)
    if ref is None:
        raise click.ClickException(f"Logo payload {handle} is missing")
    try:
        data = app.blobs.read_ref(ref)
        destination.write_bytes(data or b"")
    finally:
        app.blobs.release(ref)
    console.print(f"[green]Wrote {destination}[/green]")


@projects.command(name="parse-requirements")
@click.argument("text")
@pass_app
def parse_requirements_cmd(app: AppContext, text: str) -> None:
    """Split a free-text plan into numbered requirements."""
    items = get_parser(app.settings).parse(text)
    if not items:
        console.print("[yellow]No requirements found.[/yellow]")
        return
    for i, item in enumerate(items, 1):
        console.print(f"{i}. {item}")
