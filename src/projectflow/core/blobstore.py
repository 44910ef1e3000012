"""
Binary attachment storage (project and course logos).

Payloads live as files under the blob directory, keyed by an opaque handle.
Entities store "blobstore:<handle>" instead of the bytes. For display the
store hands out ephemeral "blob:projectflow/<uuid>" references that live
only as long as this BlobStore instance; callers must release them, and
must remove payloads when the owning entity is deleted.
"""

from __future__ import annotations

import logging
import re
import secrets
import time
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

LOGO_PREFIX = "blobstore:"
REF_PREFIX = "blob:projectflow/"
HANDLE_PATTERN = re.compile(r"^logo-\d+-[0-9a-z]{7}$")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def new_handle() -> str:
    """Mint a handle like 'logo-1718000000000-k3x9a0b'."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"logo-{int(time.time() * 1000)}-{suffix}"


def is_handle(value: str | None) -> bool:
    return bool(value) and HANDLE_PATTERN.match(value) is not None


def handle_from_logo(logo: str | None) -> str | None:
    """Extract the handle from a 'blobstore:<handle>' logo value."""
    if logo and logo.startswith(LOGO_PREFIX):
        handle = logo[len(LOGO_PREFIX):]
        if is_handle(handle):
            return handle
    return None


class BlobStore:
    """Directory of binary payloads plus a table of live references."""

    def __init__(self, blob_dir: Path):
        self.blob_dir = Path(blob_dir)
        self._refs: dict[str, str] = {}

    def _path_for(self, handle: str) -> Path:
        return self.blob_dir / handle

    def store(self, data: bytes) -> str:
        """Persist bytes and return their handle.

        Raises:
            OSError: If the payload cannot be written
        """
        self.blob_dir.mkdir(parents=True, exist_ok=True)
        handle = new_handle()
        while self._path_for(handle).exists():
            handle = new_handle()
        self._path_for(handle).write_bytes(data)
        return handle

    def exists(self, handle: str) -> bool:
        return is_handle(handle) and self._path_for(handle).is_file()

    def resolve(self, handle: str) -> str | None:
        """Return a fresh ephemeral reference for handle, or None if absent."""
        if not self.exists(handle):
            return None
        ref = f"{REF_PREFIX}{uuid.uuid4()}"
        self._refs[ref] = handle
        return ref

    def read_ref(self, ref: str) -> bytes | None:
        """Bytes behind a live reference; None once released or removed."""
        handle = self._refs.get(ref)
        if handle is None:
            return None
        try:
            return self._path_for(handle).read_bytes()
        except OSError:
            logger.debug("Blob %s vanished behind live ref %s", handle, ref)
            return None

    def release(self, ref: str) -> None:
        self._refs.pop(ref, None)

    @property
    def active_refs(self) -> int:
        return len(self._refs)

    def remove(self, handle: str) -> None:
        """Delete a payload. Unknown or malformed handles are ignored."""
        if not is_handle(handle):
            return
        path = self._path_for(handle)
        if path.exists():
            path.unlink()

    def handles(self) -> list[str]:
        if not self.blob_dir.is_dir():
            return []
        return sorted(p.name for p in self.blob_dir.iterdir() if is_handle(p.name))


def resolve_logo(blobs: BlobStore, logo: str | None) -> str | None:
    """Turn a stored logo value into something displayable.

    URLs and data URIs pass through; blobstore values resolve to an
    ephemeral reference (None if the payload is gone).
    """
    if not logo:
        return None
    handle = handle_from_logo(logo)
    if handle is not None:
        return blobs.resolve(handle)
    if logo.startswith(LOGO_PREFIX):
        return None
    return logo
