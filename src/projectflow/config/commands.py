"""
Configuration management CLI commands.

Manages projectflow settings stored in .projectflow/config.yaml.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table

from projectflow.core.backup import DEFAULT_KEEP_COUNT, DEFAULT_KEEP_DAYS
from projectflow.core.config import (
    COLOR_THEMES,
    DEFAULT_MASTER_PIN,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_QUOTA_BYTES,
    FONTS,
    LAYOUTS,
    STORAGE_MODES,
    assign_key,
    drop_key,
    get_paths,
    lookup_key,
    read_config_file,
)

console = Console()


def get_config_path() -> Path:
    """Get path to config file."""
    return get_paths().config_file


def load_config() -> dict[str, Any]:
    """Load configuration from file (YAML, or legacy JSON)."""
    return read_config_file(get_config_path())


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to file (YAML format)."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.dump(config, default_flow_style=False, sort_keys=False))


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key."""
    return lookup_key(load_config(), key, default)


def set_config_value(key: str, value: Any) -> None:
    """Set a configuration value by dotted key."""
    config = load_config()
    assign_key(config, key, value)
    save_config(config)


# Configuration schema with defaults and descriptions
CONFIG_SCHEMA: dict[str, dict[str, Any]] = {
    "storage.mode": {
        "default": "local",
        "type": str,
        "choices": STORAGE_MODES,
        "description": "Where data lives: local JSON store or sqlite database",
    },
    "storage.durable_reorder": {
        "default": False,
        "type": bool,
        "description": "Persist manual ordering in sqlite mode",
    },
    "storage.quota_bytes": {
        "default": DEFAULT_QUOTA_BYTES,
        "type": int,
        "description": "Size limit of the local store",
    },
    "profile.name": {
        "default": "Guest",
        "type": str,
        "description": "Display name on the dashboard",
    },
    "profile.github": {
        "default": None,
        "type": str,
        "description": "GitHub username",
    },
    "profile.avatar": {
        "default": None,
        "type": str,
        "description": "Avatar image URL",
    },
    "profile.font": {
        "default": "sans",
        "type": str,
        "choices": FONTS,
        "description": "Font family",
    },
    "profile.layout": {
        "default": "comfortable",
        "type": str,
        "choices": LAYOUTS,
        "description": "Layout density",
    },
    "profile.color_theme": {
        "default": "light",
        "type": str,
        "choices": COLOR_THEMES,
        "description": "Color theme",
    },
    "lock.master_pin": {
        "default": DEFAULT_MASTER_PIN,
        "type": str,
        "description": "PIN that resets the app lock",
    },
    "lock.max_attempts": {
        "default": DEFAULT_MAX_ATTEMPTS,
        "type": int,
        "description": "Failed PIN attempts before lockout",
    },
    "requirements.endpoint": {
        "default": None,
        "type": str,
        "description": "HTTP service that splits requirements text",
    },
    "backup.keep_days": {
        "default": DEFAULT_KEEP_DAYS,
        "type": int,
        "description": "Maximum age of backups in days",
    },
    "backup.keep_count": {
        "default": DEFAULT_KEEP_COUNT,
        "type": int,
        "description": "Minimum number of backups to keep",
    },
}


def _unknown_setting(key: str) -> None:
    console.print(f"[red]Unknown setting: {key}[/red]")
    console.print("\nAvailable settings:")
    for k in CONFIG_SCHEMA:
        console.print(f"  - {k}")


def convert_value(key: str, value: str) -> Any:
    """Convert a CLI string to the type CONFIG_SCHEMA declares for key.

    Raises:
        ValueError: If the value has the wrong type or is not an allowed choice
    """
    schema = CONFIG_SCHEMA[key]
    if schema["type"] is int:
        typed: Any = int(value)
    elif schema["type"] is bool:
        typed = value.lower() in ("true", "1", "yes")
    else:
        typed = value

    choices = schema.get("choices")
    if choices and typed not in choices:
        raise ValueError(f"Expected one of: {', '.join(choices)}")
    return typed


@click.group()
def config():
    """Manage projectflow configuration.

    Settings are stored in .projectflow/config.yaml.
    """
    pass


@config.command(name="show")
@click.option("--all", "show_all", is_flag=True, help="Show all settings including defaults")
def show_cmd(show_all: bool):
    """Show current configuration.

    Without --all, only shows settings that differ from defaults.
    """
    config = load_config()
    config_path = get_config_path()

    if not config and not show_all:
        console.print("[dim]No custom configuration set. Using defaults.[/dim]")
        console.print(f"[dim]Config file: {config_path}[/dim]")
        console.print("\n[dim]Use 'pf config show --all' to see all settings.[/dim]")
        return

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value", style="green")
    table.add_column("Default", style="dim")
    table.add_column("Description", style="dim")

    for key, schema in CONFIG_SCHEMA.items():
        current = get_config_value(key)
        default = schema["default"]
        is_custom = current is not None and current != default

        if show_all or is_custom:
            if key == "lock.master_pin":
                current = "******" if current is not None else None
                default = "******"
            display_value = str(current) if current is not None else f"[dim]{default}[/dim]"
            table.add_row(key, display_value, str(default), schema["description"])

    console.print(table)
    console.print(f"\n[dim]Config file: {config_path}[/dim]")


@config.command(name="get")
@click.argument("key")
def get_cmd(key: str):
    """Get a configuration value.

    Examples:
        pf config get storage.mode
        pf config get backup.keep_days
    """
    if key not in CONFIG_SCHEMA:
        _unknown_setting(key)
        return

    value = get_config_value(key)
    default = CONFIG_SCHEMA[key]["default"]

    if value is None:
        console.print(f"{key} = {default} [dim](default)[/dim]")
    else:
        console.print(f"{key} = {value}")


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_cmd(key: str, value: str):
    """Set a configuration value.

    Examples:
        pf config set storage.mode sqlite
        pf config set profile.color_theme ocean
    """
    if key not in CONFIG_SCHEMA:
        _unknown_setting(key)
        return

    try:
        typed_value = convert_value(key, value)
    except ValueError as e:
        expected = CONFIG_SCHEMA[key]["type"].__name__
        console.print(f"[red]Invalid value for {key} ({expected}): {e}[/red]")
        return

    set_config_value(key, typed_value)
    console.print(f"[green]Set {key} = {typed_value}[/green]")


@config.command(name="reset")
@click.argument("key", required=False)
@click.option("--all", "reset_all", is_flag=True, help="Reset all settings to defaults")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def reset_cmd(key: str | None, reset_all: bool, force: bool):
    """Reset configuration to defaults.

    Examples:
        pf config reset profile.font   # Reset single setting
        pf config reset --all          # Reset all settings
    """
    if not key and not reset_all:
        console.print("[red]Specify a key or use --all to reset all settings[/red]")
        return

    if reset_all:
        if not force and not click.confirm("Reset all settings to defaults?"):
            console.print("[yellow]Cancelled[/yellow]")
            return

        config_path = get_config_path()
        if config_path.exists():
            config_path.unlink()
        console.print("[green]All settings reset to defaults[/green]")
        return

    if key not in CONFIG_SCHEMA:
        console.print(f"[red]Unknown setting: {key}[/red]")
        return

    config = load_config()
    if not drop_key(config, key):
        console.print(f"[dim]{key} is already at default[/dim]")
        return

    save_config(config)
    console.print(f"[green]Reset {key} to default ({CONFIG_SCHEMA[key]['default']})[/green]")


@config.command(name="path")
def path_cmd():
    """Show path to config file."""
    console.print(str(get_config_path()))
