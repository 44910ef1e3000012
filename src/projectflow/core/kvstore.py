"""
Persistent key-value store backed by a single JSON file.

Each key maps to the raw JSON text of its value, the way browser local
storage holds strings. Writes are broadcast on an in-process EventBus so
independent readers of the same file stay consistent without sharing a
cache. Reads and writes never raise to the caller.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from projectflow.core.backup import safe_write_json
from projectflow.core.codec import decode_json, encode_json
from projectflow.core.config import DEFAULT_QUOTA_BYTES

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class StorageQuotaExceeded(OSError):
    """Raised internally when a write would exceed the store quota."""


@dataclass
class StorageUsage:
    """Approximate space accounting for a LocalStore."""

    used_bytes: int
    quota_bytes: int

    @property
    def has_space(self) -> bool:
        return self.used_bytes < self.quota_bytes

    @property
    def remaining_bytes(self) -> int:
        return max(0, self.quota_bytes - self.used_bytes)


class EventBus:
    """Synchronous publish/subscribe channel keyed by (store path, key)."""

    def __init__(self) -> None:
        self._listeners: dict[tuple[Path, str], list[Listener]] = {}

    def subscribe(self, path: Path, key: str, listener: Listener) -> Callable[[], None]:
        channel = (Path(path).resolve(), key)
        self._listeners.setdefault(channel, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(channel, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def publish(self, path: Path, key: str, value: Any) -> None:
        channel = (Path(path).resolve(), key)
        for listener in list(self._listeners.get(channel, [])):
            try:
                listener(copy.deepcopy(value))
            except Exception:
                logger.exception("Listener for %r raised", key)

    def listener_count(self, path: Path, key: str) -> int:
        return len(self._listeners.get((Path(path).resolve(), key), []))


# Shared by every LocalStore in the process unless one is injected.
default_bus = EventBus()


def _approx_size(raw: dict[str, str]) -> int:
    # UTF-16 accounting, two bytes per character
    return sum((len(k) + len(v)) * 2 for k, v in raw.items())


class LocalStore:
    """JSON-file key-value store with change notifications."""

    def __init__(
        self,
        path: Path,
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
        bus: EventBus | None = None,
    ):
        self.path = Path(path)
        self.quota_bytes = quota_bytes
        self.bus = bus if bus is not None else default_bus
        self._seen: dict[str, str | None] = {}

    def _load_raw(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable store file %s, treating as empty", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def read(self, key: str, fallback: Any = None) -> Any:
        """Read and decode a value, returning fallback if absent or malformed."""
        raw = self._load_raw().get(key)
        self._seen[key] = raw
        return decode_json(raw, fallback)

    def write(self, key: str, value: Any) -> None:
        """Encode and persist a value, then notify subscribers.

        Failures are logged and swallowed; subscribers are only notified
        after a successful write.
        """
        try:
            raw_value = encode_json(value)
            raw = self._load_raw()
            raw[key] = raw_value
            used = _approx_size(raw)
            if used > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"Writing {key!r} needs {used} bytes, quota is {self.quota_bytes}"
                )
            safe_write_json(self.path, raw, create_backup_first=False, indent=None)
        except (OSError, ValueError) as e:
            logger.warning("Error setting store key %r: %s", key, e)
            return

        self._seen[key] = raw_value
        self.bus.publish(self.path, key, value)

    def remove(self, key: str) -> None:
        """Delete a key; subscribers receive None."""
        raw = self._load_raw()
        if key not in raw:
            return
        del raw[key]
        try:
            safe_write_json(self.path, raw, create_backup_first=False, indent=None)
        except (OSError, ValueError) as e:
            logger.warning("Error removing store key %r: %s", key, e)
            return
        self._seen[key] = None
        self.bus.publish(self.path, key, None)

    def subscribe(self, key: str, on_change: Listener) -> Callable[[], None]:
        """Register on_change for key; returns an idempotent unsubscribe callable."""
        return self.bus.subscribe(self.path, key, on_change)

    def keys(self) -> list[str]:
        return list(self._load_raw())

    def usage(self) -> StorageUsage:
        return StorageUsage(used_bytes=_approx_size(self._load_raw()), quota_bytes=self.quota_bytes)

    def sync(self) -> list[str]:
        """Pick up writes made by other processes.

        Compares the file against the raw text this instance last observed
        for each key it has read or written, and notifies subscribers of
        keys that changed.

        Returns:
            Keys whose value changed
        """
        raw = self._load_raw()
        changed = []
        for key, seen in list(self._seen.items()):
            current = raw.get(key)
            if current != seen:
                self._seen[key] = current
                changed.append(key)
                self.bus.publish(self.path, key, decode_json(current, None))
        return changed
