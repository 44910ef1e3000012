"""
Store file backups and atomic JSON writes.

Two files hold all user data: ``local_store.json`` (local mode) and
``projectflow.db`` (sqlite mode). Backups are timestamped copies named
``<stem>_<YYYYmmdd_HHMMSS>[_<n>]<suffix>`` in ``.projectflow/backups``.
Database files are copied through SQLite's online backup API so a copy
taken while another connection writes is still consistent.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import shutil
import sqlite3
import tempfile
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

DEFAULT_KEEP_COUNT = 10
DEFAULT_KEEP_DAYS = 30
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
DATABASE_SUFFIXES = (".db", ".sqlite", ".sqlite3")

_BACKUP_NAME = re.compile(r"^(?P<store>.+)_(?P<stamp>\d{8}_\d{6})(?:_\d+)?\.[A-Za-z0-9]+$")
_STAMP = re.compile(r"_(\d{8}_\d{6})(?:_\d+)?\.")


@dataclass(frozen=True)
class BackupInfo:
    """One backup file of a store."""

    path: Path
    timestamp: datetime
    size_bytes: int
    store_name: str

    @classmethod
    def from_path(cls, path: Path) -> BackupInfo | None:
        """Describe path, or None if its name is not a backup name."""
        match = _BACKUP_NAME.match(path.name)
        if match is None:
            return None
        try:
            stamp = datetime.strptime(match["stamp"], TIMESTAMP_FORMAT)
        except ValueError:
            return None
        return cls(path, stamp, path.stat().st_size, match["store"])

    @property
    def age_days(self) -> float:
        return (datetime.now() - self.timestamp).total_seconds() / 86400

    @property
    def size_human(self) -> str:
        if self.size_bytes < 1024:
            return f"{self.size_bytes} B"
        kb = self.size_bytes / 1024
        if kb < 1024:
            return f"{kb:.1f} KB"
        return f"{kb / 1024:.1f} MB"


def parse_backup_timestamp(filename: str) -> datetime | None:
    """Timestamp embedded in a backup name such as 'projectflow_20251212_144234.db'."""
    match = _STAMP.search(filename)
    if match is None:
        return None
    try:
        return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        return None


def is_database(path: Path) -> bool:
    return Path(path).suffix.lower() in DATABASE_SUFFIXES


def copy_store_file(source: Path, destination: Path) -> None:
    """Copy a store file, using the SQLite backup API for databases."""
    if not is_database(source):
        shutil.copy2(source, destination)
        return
    with closing(sqlite3.connect(source)) as src, closing(sqlite3.connect(destination)) as dst:
        src.backup(dst)


def list_backups(backup_dir: Path, store_name: str | None = None) -> list[BackupInfo]:
    """Backups in backup_dir, newest first.

    Args:
        backup_dir: Directory containing backups
        store_name: Only backups of this store file stem (e.g. 'projectflow')
    """
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return []

    found = (BackupInfo.from_path(path) for path in backup_dir.iterdir() if path.is_file())
    backups = [
        info for info in found
        if info is not None and (store_name is None or info.store_name == store_name)
    ]
    backups.sort(key=lambda info: (info.timestamp, info.path.name), reverse=True)
    return backups


def _free_backup_path(backup_dir: Path, store_file: Path) -> Path:
    stamp = datetime.now().strftime(TIMESTAMP_FORMAT)
    candidate = backup_dir / f"{store_file.stem}_{stamp}{store_file.suffix}"
    n = 1
    while candidate.exists():
        candidate = backup_dir / f"{store_file.stem}_{stamp}_{n}{store_file.suffix}"
        n += 1
    return candidate


def create_backup(file_path: Path, backup_dir: Path | None = None) -> Path:
    """Write a timestamped copy of a store file.

    Args:
        file_path: Store file to copy
        backup_dir: Destination (defaults to file_path.parent / 'backups')

    Returns:
        Path to the new backup

    Raises:
        FileNotFoundError: If file_path doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Cannot backup non-existent file: {file_path}")

    target_dir = Path(backup_dir) if backup_dir is not None else file_path.parent / "backups"
    target_dir.mkdir(parents=True, exist_ok=True)

    backup_path = _free_backup_path(target_dir, file_path)
    copy_store_file(file_path, backup_path)
    return backup_path


def cleanup_old_backups(
    backup_dir: Path,
    store_name: str | None = None,
    keep_last: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = None,
) -> list[Path]:
    """Delete backups outside the retention policy.

    Retention is per store: a backup survives if it is one of the keep_last
    newest of its store, or if it is younger than keep_days.

    Returns:
        Paths of deleted backups
    """
    cutoff = datetime.now() - timedelta(days=keep_days) if keep_days is not None else None
    seen: dict[str, int] = {}
    removed = []

    for info in list_backups(backup_dir, store_name):
        rank = seen.get(info.store_name, 0)
        seen[info.store_name] = rank + 1
        if rank < keep_last:
            continue
        if cutoff is not None and info.timestamp >= cutoff:
            continue
        info.path.unlink()
        removed.append(info.path)

    return removed


def restore_backup(target: Path, backup_dir: Path, backup_index: int = 0) -> Path:
    """Overwrite a store file with one of its backups.

    The current file is backed up first, so a restore can be undone with
    another restore.

    Args:
        target: Store file to overwrite
        backup_dir: Directory containing backups
        backup_index: 0 = most recent, 1 = the one before, ...

    Returns:
        Path to the backup that was restored

    Raises:
        FileNotFoundError: If the store has no backup at that index
    """
    target = Path(target)
    candidates = list_backups(backup_dir, target.stem)
    if not candidates:
        raise FileNotFoundError(f"No backups found for {target.stem}")
    if not 0 <= backup_index < len(candidates):
        raise FileNotFoundError(
            f"Backup index {backup_index} out of range (only {len(candidates)} backups)"
        )

    chosen = candidates[backup_index].path
    if target.exists():
        create_backup(target, backup_dir)
    copy_store_file(chosen, target)
    return chosen


def safe_write_json(
    file_path: Path,
    data: Any,
    create_backup_first: bool = True,
    backup_dir: Path | None = None,
    indent: int | None = 2,
    keep_backups: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = DEFAULT_KEEP_DAYS,
) -> Path | None:
    """Replace file_path with data as JSON, never leaving a half-written file.

    The payload is serialized before anything on disk changes, written to a
    sibling temp file, fsynced and renamed over the target.

    Returns:
        The backup of the previous file, if one was made

    Raises:
        ValueError: If data is not JSON serializable
        OSError: If the write or rename fails
    """
    file_path = Path(file_path)
    try:
        payload = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    backup_path = None
    if create_backup_first and file_path.exists():
        target_dir = Path(backup_dir) if backup_dir is not None else file_path.parent / "backups"
        backup_path = create_backup(file_path, target_dir)
        cleanup_old_backups(target_dir, file_path.stem, keep_backups, keep_days)

    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{file_path.name}.", suffix=".tmp", dir=file_path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(file_path)
    except OSError as e:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise OSError(f"Failed to write {file_path}: {e}") from e

    return backup_path
