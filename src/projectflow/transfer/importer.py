"""
Restore the data store from a JSON backup.

Imports are all-or-nothing: the document must carry the ideas, completed,
and links sequences (courses is optional) or nothing changes. A valid
document replaces every collection, in memory and on disk.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from projectflow.core.backup import create_backup
from projectflow.store.backends import COLLECTIONS, entities_from_dicts
from projectflow.store.datastore import DataStore

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("ideas", "completed", "links")


class ImportFormatError(ValueError):
    """The file is not a valid projectflow backup."""


def parse_backup(text: str) -> dict[str, list]:
    """Validate a backup document and return its entity collections.

    Raises:
        ImportFormatError: If the text is not JSON or lacks required sequences
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ImportFormatError(f"Backup is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ImportFormatError("Backup must be a JSON object")

    missing = [key for key in REQUIRED_KEYS if not isinstance(data.get(key), list)]
    if missing:
        raise ImportFormatError(f"Backup is missing sequences: {', '.join(missing)}")
    if "courses" in data and not isinstance(data["courses"], list):
        raise ImportFormatError("Backup 'courses' must be a list")

    collections = {}
    for name in COLLECTIONS:
        items: list[Any] = data.get(name) or []
        if any(not isinstance(item, dict) or not item.get("id") for item in items):
            raise ImportFormatError(f"Every record in '{name}' needs an id")
        collections[name] = entities_from_dicts(name, items)
    return collections


def backup_current_state(store_files: list[Path], backup_dir: Path) -> list[Path]:
    """Copy whichever store files exist before they are overwritten."""
    return [create_backup(path, backup_dir) for path in store_files if Path(path).exists()]


async def import_backup(
    store: DataStore,
    source: Path,
    store_files: list[Path] | None = None,
    backup_dir: Path | None = None,
) -> bool:
    """Replace the store's contents with a backup file.

    Args:
        store: Loaded data store
        source: Backup JSON file
        store_files: Files to back up first (local store, database)
        backup_dir: Where those backups go

    Returns:
        True if the backend confirmed the replacement

    Raises:
        ImportFormatError: If the file is invalid (store untouched)
        OSError: If the file cannot be read
    """
    collections = parse_backup(Path(source).read_text(encoding="utf-8"))
    if store_files and backup_dir is not None:
        for path in backup_current_state(store_files, backup_dir):
            logger.info("Backed up %s before import", path)
    return await store.actions.replace_all(collections)
