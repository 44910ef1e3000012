"""Wiring: build the backend and data store a settings object asks for."""

from __future__ import annotations

from dataclasses import replace

from projectflow.core.cache import ViewCache
from projectflow.core.config import AppPaths, AppSettings, get_paths, load_settings
from projectflow.core.kvstore import LocalStore
from projectflow.store.backends import Backend, LocalBackend, RelationalBackend
from projectflow.store.datastore import DataStore
from projectflow.store.gateway import RelationalGateway
from projectflow.store.seed import seed_collections


def build_backend(settings: AppSettings, paths: AppPaths, seed: bool = True) -> Backend:
    """Return the backend strategy for settings.storage_mode.

    Args:
        settings: Application settings
        paths: Data paths
        seed: Show starter records in an empty local store

    Raises:
        ValueError: On an unknown storage mode
    """
    if settings.storage_mode == "local":
        kv = LocalStore(paths.local_store, quota_bytes=settings.quota_bytes)
        return LocalBackend(kv, defaults=seed_collections() if seed else None)
    if settings.storage_mode == "sqlite":
        cache = ViewCache(paths.dashboard_cache)
        gateway = RelationalGateway(paths.database, on_change=[cache.invalidate])
        return RelationalBackend(gateway, durable_reorder=settings.durable_reorder)
    raise ValueError(f"Unknown storage mode: {settings.storage_mode!r}")


def open_store(
    paths: AppPaths | None = None,
    settings: AppSettings | None = None,
    seed: bool = True,
) -> DataStore:
    """Build an (unloaded) DataStore; call ``await store.load()`` next."""
    if paths is None:
        paths = get_paths()
    if settings is None:
        settings = load_settings(paths)
    return DataStore(build_backend(settings, paths, seed=seed))


async def switch_mode(
    store: DataStore,
    mode: str,
    paths: AppPaths | None = None,
    settings: AppSettings | None = None,
) -> bool:
    """Move every collection of a loaded store to another storage mode.

    Nothing is copied between backends; the store shows whatever the new
    backend holds. This is library API for long-lived embedders; the pf
    command picks the mode once per process from --mode or storage.mode.

    Raises:
        ValueError: On an unknown storage mode
    """
    if paths is None:
        paths = get_paths()
    if settings is None:
        settings = load_settings(paths)
    settings = replace(settings, storage_mode=mode)
    return await store.switch_backend(build_backend(settings, paths))
