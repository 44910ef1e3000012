"""CLI commands for courses."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from projectflow.context import AppContext, pass_app
from projectflow.core.blobstore import handle_from_logo
from projectflow.core.prompts import confirm
from projectflow.store.models import Course, parse_link_spec

console = Console()


def _find_or_fail(app: AppContext, course_id: str) -> Course:
    course = app.store().find("courses", course_id)
    if course is None:
        raise click.ClickException(f"No course with id {course_id}")
    return course


def _report(ok: bool, success: str, failure: str) -> None:
    if ok:
        console.print(f"[green]{success}[/green]")
    else:
        console.print(f"[red]{failure}[/red]")
        raise SystemExit(1)


@click.group(name="courses")
def courses() -> None:
    """Track courses and their notes."""
    pass


@courses.command(name="list")
@click.option("--pending", is_flag=True, help="Only courses not yet completed")
@pass_app
def list_cmd(app: AppContext, pending: bool) -> None:
    """List courses."""
    items = app.store().courses
    if pending:
        items = [c for c in items if not c.completed]
    if not items:
        console.print("[dim]No courses yet.[/dim]")
        return

    table = Table(title=f"Courses ({len(items)})", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="green")
    table.add_column("Done", justify="center")
    table.add_column("Reason")
    table.add_column("Links", justify="right", style="blue")
    table.add_column("Notes", justify="right", style="blue")

    for course in items:
        table.add_row(
            course.id,
            course.name,
            "[green]yes[/green]" if course.completed else "[dim]no[/dim]",
            course.reason or "",
            str(len(course.links)),
            str(len(course.notes)),
        )
    console.print(table)


@courses.command(name="add")
@click.argument("name")
@click.option("--reason", help="Why you are taking it")
@click.option("-l", "--link", "links", multiple=True, help="Link as Title=URL (repeatable)")
@pass_app
def add_cmd(app: AppContext, name: str, reason: str | None, links: tuple[str, ...]) -> None:
    """Add a course."""
    try:
        parsed = [parse_link_spec(spec) for spec in links]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--link") from e
    course = Course.create(name, reason=reason, links=parsed)
    ok = app.run(app.store().actions.add_course(course))
    _report(ok, f"Added course {course.id}", f"Could not save {name}")


@courses.command(name="edit")
@click.argument("course_id")
@click.option("--name", help="New name")
@click.option("--reason", help="New reason, empty string clears it")
@click.option("-l", "--link", "links", multiple=True, help="Replace links, Title=URL (repeatable)")
@pass_app
def edit_cmd(
    app: AppContext,
    course_id: str,
    name: str | None,
    reason: str | None,
    links: tuple[str, ...],
) -> None:
    """Edit a course."""
    course = _find_or_fail(app, course_id)
    updated = course
    if name is not None:
        updated = updated.replace(name=name)
    if reason is not None:
        updated = updated.replace(reason=reason or None)
    if links:
        try:
            updated = updated.replace(links=[parse_link_spec(spec) for spec in links])
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--link") from e

    if updated.to_dict() == course.to_dict():
        console.print("[dim]Nothing to change.[/dim]")
        return
    ok = app.run(app.store().actions.update_course(updated))
    _report(ok, f"Updated {course_id}", f"Could not update {course_id}")


@courses.command(name="complete")
@click.argument("course_id")
@click.option("--undo", is_flag=True, help="Mark as not completed")
@pass_app
def complete_cmd(app: AppContext, course_id: str, undo: bool) -> None:
    """Mark a course completed (or not, with --undo)."""
    course = _find_or_fail(app, course_id)
    ok = app.run(app.store().actions.update_course(course.replace(completed=not undo)))
    state = "not completed" if undo else "completed"
    _report(ok, f"{course.name} marked {state}", f"Could not update {course_id}")


@courses.command(name="delete")
@click.argument("course_id")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation")
@pass_app
def delete_cmd(app: AppContext, course_id: str, yes: bool) -> None:
    """Delete a course."""
    course = _find_or_fail(app, course_id)
    if not confirm(f"Delete '{course.name}'?", auto_yes=yes):
        console.print("[dim]Cancelled.[/dim]")
        return
    ok = app.run(app.store().actions.delete_course(course_id))
    if ok:
        handle = handle_from_logo(course.logo)
        if handle:
            app.blobs.remove(handle)
    _report(ok, f"Deleted {course_id}", f"Could not delete {course_id}")


@courses.command(name="note-add")
@click.argument("course_id")
@click.argument("content")
@pass_app
def note_add_cmd(app: AppContext, course_id: str, content: str) -> None:
    """Append a note to a course."""
    _find_or_fail(app, course_id)
    try:
        note = app.run(app.store().actions.add_note("course", course_id, content))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="CONTENT") from e
    _report(note is not None, f"Note added ({note.id if note else ''})", "Could not add note")


@courses.command(name="note-delete")
@click.argument("course_id")
@click.argument("note_id")
@pass_app
def note_delete_cmd(app: AppContext, course_id: str, note_id: str) -> None:
    """Delete a note from a course."""
    _find_or_fail(app, course_id)
    ok = app.run(app.store().actions.delete_note("course", course_id, note_id))
    _report(ok, "Note deleted.", f"No note {note_id} on {course_id}")
