"""
Interactive CLI prompts.
"""

from __future__ import annotations

from rich.console import Console
from rich.prompt import Confirm

console = Console()


def confirm(message: str, default: bool = False, auto_yes: bool = False) -> bool:
    """Ask for yes/no confirmation.

    Args:
        message: Question to ask
        default: Default value if user presses Enter
        auto_yes: If True, return True without prompting
    """
    if auto_yes:
        console.print(f"{message} [auto-yes]")
        return True

    return bool(Confirm.ask(message, default=default))
