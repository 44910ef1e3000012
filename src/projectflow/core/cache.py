"""
Cache of the rendered dashboard summary.

The relational gateway invalidates it after every mutation so the next
render is recomputed from the database.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from projectflow.core.backup import safe_write_json

logger = logging.getLogger(__name__)


class ViewCache:
    """Single JSON document cached on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def put(self, view: dict[str, Any]) -> None:
        try:
            safe_write_json(self.path, view, create_backup_first=False)
        except (OSError, ValueError) as e:
            logger.warning("Could not cache view at %s: %s", self.path, e)

    def invalidate(self) -> None:
        if self.path.exists():
            self.path.unlink(missing_ok=True)
            logger.debug("Invalidated %s", self.path)
