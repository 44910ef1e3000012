"""Core utilities for projectflow."""

from projectflow.core.backup import (
    DEFAULT_KEEP_COUNT,
    DEFAULT_KEEP_DAYS,
    BackupInfo,
    cleanup_old_backups,
    create_backup,
    list_backups,
    restore_backup,
    safe_write_json,
)
from projectflow.core.blobstore import BlobStore, resolve_logo
from projectflow.core.cache import ViewCache
from projectflow.core.codec import decode_json, decode_list, encode_json
from projectflow.core.config import AppPaths, AppSettings, get_paths, get_root, load_settings
from projectflow.core.kvstore import EventBus, LocalStore, StorageQuotaExceeded

__all__ = [
    # Backup
    "create_backup",
    "safe_write_json",
    "cleanup_old_backups",
    "list_backups",
    "restore_backup",
    "BackupInfo",
    "DEFAULT_KEEP_COUNT",
    "DEFAULT_KEEP_DAYS",
    # Storage
    "BlobStore",
    "resolve_logo",
    "EventBus",
    "LocalStore",
    "StorageQuotaExceeded",
    "ViewCache",
    # Codec
    "decode_json",
    "decode_list",
    "encode_json",
    # Config
    "AppPaths",
    "AppSettings",
    "get_root",
    "get_paths",
    "load_settings",
]
