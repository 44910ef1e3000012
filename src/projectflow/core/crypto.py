"""
Hashing helpers.

PINs are stored as salted digests, never in clear text. File hashing backs
the integrity column of backup listings.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from pathlib import Path


def hash_pin(pin: str, salt: str | None = None, algorithm: str = "sha256") -> str:
    """Hash a PIN with a random (or given) salt.

    Returns:
        String of the form "<algorithm>$<salt>$<hexdigest>"

    Raises:
        ValueError: If algorithm is not supported
    """
    if salt is None:
        salt = secrets.token_hex(8)
    try:
        hasher = hashlib.new(algorithm)
    except ValueError as e:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}") from e
    hasher.update(f"{salt}:{pin}".encode("utf-8"))
    return f"{algorithm}${salt}${hasher.hexdigest()}"


def verify_pin(pin: str, stored: str) -> bool:
    """Check a PIN attempt against a value produced by hash_pin()."""
    try:
        algorithm, salt, _digest = stored.split("$", 2)
    except ValueError:
        return False
    try:
        candidate = hash_pin(pin, salt=salt, algorithm=algorithm)
    except ValueError:
        return False
    return hmac.compare_digest(candidate, stored)


def compute_file_hash(
    file_path: Path,
    algorithm: str = "sha256",
    chunk_size: int = 8192,
    prefix: bool = True,
) -> str:
    """Compute hash of a file using chunked reading.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If algorithm is not supported
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Cannot hash non-existent file: {file_path}")

    try:
        hasher = hashlib.new(algorithm)
    except ValueError as e:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}") from e

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)

    digest = hasher.hexdigest()
    return f"{algorithm}:{digest}" if prefix else digest
