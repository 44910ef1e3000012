"""CLI commands for the PIN app lock."""

from __future__ import annotations

import click
from rich.console import Console

from projectflow.context import AppContext, pass_app

console = Console()


@click.group(name="lock")
def lock() -> None:
    """Protect the data with a 6-digit PIN."""
    pass


@lock.command(name="status")
@pass_app
def status_cmd(app: AppContext) -> None:
    """Show whether a PIN is set and how many attempts remain."""
    pin_lock = app.pin_lock
    if not pin_lock.has_pin:
        console.print("[dim]No PIN set. Data is unlocked.[/dim]")
        return
    if pin_lock.locked_out:
        console.print("[red]Locked out.[/red] Run 'pf lock reset' with the master PIN.")
        return
    console.print(
        f"[green]PIN set.[/green] {pin_lock.attempts_remaining} of "
        f"{pin_lock.max_attempts} attempts remaining."
    )


@lock.command(name="set")
@click.option("--new-pin", prompt="New PIN", hide_input=True, confirmation_prompt=True,
              help="Six-digit PIN")
@pass_app
def set_cmd(app: AppContext, new_pin: str) -> None:
    """Set or change the PIN.

    Changing an existing PIN requires unlocking with the current one.
    """
    pin_lock = app.pin_lock
    if pin_lock.has_pin:
        app.require_unlocked()
    try:
        pin_lock.set_pin(new_pin)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--new-pin") from e
    console.print("[green]PIN set.[/green]")


@lock.command(name="clear")
@pass_app
def clear_cmd(app: AppContext) -> None:
    """Remove the PIN (requires the current PIN)."""
    pin_lock = app.pin_lock
    if not pin_lock.has_pin:
        console.print("[dim]No PIN set.[/dim]")
        return
    app.require_unlocked()
    pin_lock.clear_pin()
    console.print("[green]PIN removed.[/green]")


@lock.command(name="reset")
@click.option("--master", prompt="Master PIN", hide_input=True, help="Master PIN")
@pass_app
def reset_cmd(app: AppContext, master: str) -> None:
    """Clear the PIN and the lockout with the master PIN."""
    if not app.pin_lock.reset(master):
        console.print("[red]Invalid master PIN.[/red]")
        raise SystemExit(1)
    console.print("[green]PIN and failed attempts cleared.[/green]")
