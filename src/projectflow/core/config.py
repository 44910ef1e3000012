"""
Configuration and path management.

Provides data-root detection, standard paths, and the application settings
object handed to the data store, the app lock, and the requirements parser.
Uses a .projectflow/ directory for all data (stores, blobs, cache, backups).

Resolution order for the data root:
  1. PROJECTFLOW_ROOT environment variable (highest priority)
  2. Walk up from cwd looking for .projectflow/ directory
  3. Global config file (~/.config/projectflow/config.yaml) root key
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

DATA_DIR_NAME = ".projectflow"

STORAGE_MODES = ("local", "sqlite")
FONTS = ("sans", "serif")
LAYOUTS = ("compact", "comfortable")
COLOR_THEMES = ("light", "dark", "earthy", "purple", "vintage", "frost", "ocean")

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_MASTER_PIN = "741852"


@dataclass(frozen=True)
class AppPaths:
    """Standard paths for projectflow data."""

    root: Path
    data_dir: Path

    # Stores
    local_store: Path
    database: Path
    blobs: Path

    # Cache
    cache: Path
    dashboard_cache: Path

    config_file: Path
    backups: Path
    exports: Path


@dataclass
class AppSettings:
    """Explicit application state, built once and passed to collaborators."""

    storage_mode: str = "local"
    durable_reorder: bool = False
    quota_bytes: int = DEFAULT_QUOTA_BYTES
    profile_name: str = "Guest"
    github: str | None = None
    avatar: str | None = None
    font: str = "sans"
    layout: str = "comfortable"
    color_theme: str = "light"
    master_pin: str = DEFAULT_MASTER_PIN
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    requirements_endpoint: str | None = None

    def __post_init__(self) -> None:
        if self.storage_mode not in STORAGE_MODES:
            raise ValueError(
                f"Unknown storage mode: {self.storage_mode!r} "
                f"(expected one of {', '.join(STORAGE_MODES)})"
            )
        if self.font not in FONTS:
            self.font = "sans"
        if self.layout not in LAYOUTS:
            self.layout = "comfortable"
        if self.color_theme not in COLOR_THEMES:
            self.color_theme = "light"


def get_global_config_path() -> Path:
    """Return the path to the global projectflow config file.

    Respects XDG_CONFIG_HOME if set, otherwise defaults to
    ~/.config/projectflow/config.yaml.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "projectflow" / "config.yaml"


def read_config_file(config_path: Path) -> dict[str, Any]:
    """Read a YAML (or legacy JSON) config file.

    Returns:
        Configuration dict, or empty dict if file is missing, empty, or invalid.
    """
    if not config_path.is_file():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError:
        return {}
    if not content.strip():
        return {}

    try:
        if content.strip().startswith("{"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (ValueError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def load_global_config() -> dict:
    """Load the global projectflow configuration."""
    return read_config_file(get_global_config_path())


def _walk_up_for_data_dir(start_path: Path) -> Path | None:
    """Walk up directory tree looking for a .projectflow/ directory."""
    current = start_path.resolve()
    while current != current.parent:
        if (current / DATA_DIR_NAME).is_dir():
            return current
        current = current.parent
    return None


def find_root(start_path: Path | None = None) -> Path:
    """Find the data root using 3-tier resolution.

    Args:
        start_path: Starting path for the directory walk (defaults to cwd)

    Returns:
        Path to the directory containing .projectflow/

    Raises:
        FileNotFoundError: If .projectflow/ is not found by any method
    """
    env_root = os.environ.get("PROJECTFLOW_ROOT")
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if (env_path / DATA_DIR_NAME).is_dir():
            return env_path
        raise FileNotFoundError(
            f"PROJECTFLOW_ROOT={env_root} does not contain a {DATA_DIR_NAME}/ directory."
        )

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_data_dir(Path(start_path))
    if result is not None:
        return result

    global_root = load_global_config().get("root")
    if global_root:
        global_path = Path(global_root).expanduser().resolve()
        if (global_path / DATA_DIR_NAME).is_dir():
            return global_path
        raise FileNotFoundError(
            f"Global config root={global_root} does not contain a {DATA_DIR_NAME}/ directory."
        )

    raise FileNotFoundError(
        f"Could not find {DATA_DIR_NAME}/ directory starting from {start_path}. "
        f"Run 'pf init' to initialize, set PROJECTFLOW_ROOT, or configure "
        f"root in {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_root() -> Path:
    """Get the cached data root path."""
    return find_root()


def get_paths(root: Path | None = None) -> AppPaths:
    """Get all standard paths.

    Args:
        root: Data root (uses cached default if not provided)
    """
    if root is None:
        root = get_root()

    root = Path(root)
    data_dir = root / DATA_DIR_NAME

    return AppPaths(
        root=root,
        data_dir=data_dir,
        local_store=data_dir / "local_store.json",
        database=data_dir / "projectflow.db",
        blobs=data_dir / "blobs",
        cache=data_dir / "cache",
        dashboard_cache=data_dir / "cache" / "dashboard.json",
        config_file=data_dir / "config.yaml",
        backups=data_dir / "backups",
        exports=data_dir / "exports",
    )


def lookup_key(config: dict[str, Any], key: str, default: Any = None) -> Any:
    """Value at a dotted key such as "storage.mode", or default."""
    current: Any = config
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default
    return default if current is None else current


def assign_key(config: dict[str, Any], key: str, value: Any) -> None:
    """Set a dotted key, creating intermediate tables."""
    *parents, leaf = key.split(".")
    current = config
    for part in parents:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[leaf] = value


def drop_key(config: dict[str, Any], key: str) -> bool:
    """Remove a dotted key; False if it was not set."""
    *parents, leaf = key.split(".")
    current: Any = config
    for part in parents:
        current = current.get(part) if isinstance(current, dict) else None
    if not isinstance(current, dict) or leaf not in current:
        return False
    del current[leaf]
    return True


def load_settings(paths: AppPaths | None = None, **overrides: Any) -> AppSettings:
    """Build AppSettings from .projectflow/config.yaml.

    Args:
        paths: Paths to read the config file from (defaults to get_paths())
        **overrides: Field values that take precedence over the file

    Raises:
        ValueError: If the configured storage mode is unknown
    """
    if paths is None:
        paths = get_paths()
    config = read_config_file(paths.config_file)

    values: dict[str, Any] = {
        "storage_mode": str(lookup_key(config, "storage.mode", "local")),
        "durable_reorder": bool(lookup_key(config, "storage.durable_reorder", False)),
        "quota_bytes": int(lookup_key(config, "storage.quota_bytes", DEFAULT_QUOTA_BYTES)),
        "profile_name": str(lookup_key(config, "profile.name", "Guest")),
        "github": lookup_key(config, "profile.github"),
        "avatar": lookup_key(config, "profile.avatar"),
        "font": str(lookup_key(config, "profile.font", "sans")),
        "layout": str(lookup_key(config, "profile.layout", "comfortable")),
        "color_theme": str(lookup_key(config, "profile.color_theme", "light")),
        "master_pin": str(lookup_key(config, "lock.master_pin", DEFAULT_MASTER_PIN)),
        "max_attempts": int(lookup_key(config, "lock.max_attempts", DEFAULT_MAX_ATTEMPTS)),
        "requirements_endpoint": lookup_key(config, "requirements.endpoint"),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return AppSettings(**values)
