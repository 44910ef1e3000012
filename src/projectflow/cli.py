"""
Main CLI dispatcher for projectflow.

Usage:
    pf init                              # Initialize .projectflow/ directory
    pf projects [list|show|add|edit|move|...]
    pf courses [list|add|complete|...]
    pf links [list|add|reorder|...]
    pf data [export|import]
    pf stats
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from projectflow import __version__
from projectflow.context import AppContext
from projectflow.core.config import DATA_DIR_NAME, STORAGE_MODES

console = Console()


def configure_logging(verbose: bool) -> None:
    """Route library log records through rich; DEBUG with -v, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="pf")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--mode", type=click.Choice(STORAGE_MODES), default=None,
              help="Override storage.mode for this run")
@click.option("--pin", default=None, help="PIN for a locked store (or set PROJECTFLOW_PIN)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, mode: str | None, pin: str | None) -> None:
    """Track project ideas, completed projects, courses, and links."""
    configure_logging(verbose)
    ctx.obj = AppContext(verbose=verbose, mode=mode, pin=pin)


@main.command()
@click.option("--force", "-f", is_flag=True, help="Recreate missing subdirectories of an existing .projectflow/")
def init(force: bool) -> None:
    """Initialize .projectflow/ directory structure in the current directory."""
    from pathlib import Path

    root = Path.cwd()
    data_dir = root / DATA_DIR_NAME

    if data_dir.exists() and not force:
        console.print(f"[yellow]{DATA_DIR_NAME}/ directory already exists at {data_dir}[/yellow]")
        console.print("[dim]Use --force to reinitialize.[/dim]")
        return

    console.print(f"[cyan]Initializing {DATA_DIR_NAME}/ directory at {root}[/cyan]")

    for dir_path in [
        data_dir,
        data_dir / "cache",
        data_dir / "blobs",
        data_dir / "backups",
        data_dir / "exports",
    ]:
        dir_path.mkdir(parents=True, exist_ok=True)
        console.print(f"  [green]Created[/green] {dir_path.relative_to(root)}")

    gitignore_path = root / ".gitignore"
    gitignore_entry = f"{DATA_DIR_NAME}/cache/"
    if gitignore_path.exists():
        content = gitignore_path.read_text()
        if gitignore_entry not in content:
            with open(gitignore_path, "a") as f:
                f.write(f"\n# projectflow cache\n{gitignore_entry}\n")
            console.print(f"  [green]Updated[/green] .gitignore with {gitignore_entry}")

    console.print()
    console.print(f"[green]Done![/green] {DATA_DIR_NAME}/ directory initialized.")


# Import and register command groups (imports after main definition intentional)
from projectflow.backup.commands import backup  # noqa: E402
from projectflow.config.commands import config  # noqa: E402
from projectflow.courses.commands import courses  # noqa: E402
from projectflow.dashboard.commands import search_cmd, stats  # noqa: E402
from projectflow.links.commands import links  # noqa: E402
from projectflow.lock.commands import lock  # noqa: E402
from projectflow.projects.commands import projects  # noqa: E402
from projectflow.transfer.commands import data  # noqa: E402

main.add_command(projects)
main.add_command(courses)
main.add_command(links)
main.add_command(data)
main.add_command(stats)
main.add_command(search_cmd)
main.add_command(lock)
main.add_command(backup)
main.add_command(config)


if __name__ == "__main__":
    main()
