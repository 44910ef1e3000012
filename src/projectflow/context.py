"""Shared state handed to every CLI command."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Coroutine
from functools import cached_property
from typing import Any, TypeVar

import click
from rich.console import Console

from projectflow.core.blobstore import BlobStore
from projectflow.core.cache import ViewCache
from projectflow.core.config import AppPaths, AppSettings, get_paths, load_settings
from projectflow.core.kvstore import LocalStore
from projectflow.lock.pin import PinLock
from projectflow.store.datastore import DataStore
from projectflow.store.factory import open_store

console = Console()

T = TypeVar("T")


class AppContext:
    """Paths, settings, and lazily opened stores for one CLI invocation."""

    def __init__(self, verbose: bool = False, mode: str | None = None, pin: str | None = None):
        self.verbose = verbose
        self.mode = mode
        self.pin = pin
        self.console = console
        self._store: DataStore | None = None

    @cached_property
    def paths(self) -> AppPaths:
        return get_paths()

    @cached_property
    def settings(self) -> AppSettings:
        return load_settings(self.paths, storage_mode=self.mode)

    @cached_property
    def kv(self) -> LocalStore:
        return LocalStore(self.paths.local_store, quota_bytes=self.settings.quota_bytes)

    @cached_property
    def blobs(self) -> BlobStore:
        return BlobStore(self.paths.blobs)

    @cached_property
    def view_cache(self) -> ViewCache:
        return ViewCache(self.paths.dashboard_cache)

    @cached_property
    def pin_lock(self) -> PinLock:
        return PinLock(self.kv, self.settings)

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        return asyncio.run(coro)

    def require_unlocked(self) -> None:
        """Ask for the PIN when one is set.

        Raises:
            click.ClickException: If the PIN is wrong or attempts are exhausted
        """
        lock = self.pin_lock
        if not lock.is_locked:
            return
        if lock.locked_out:
            raise click.ClickException(
                "Too many failed attempts. Run 'pf lock reset' with the master PIN."
            )
        attempt = self.pin or os.environ.get("PROJECTFLOW_PIN")
        if attempt is None:
            attempt = click.prompt("PIN", hide_input=True)
        if not lock.unlock(attempt):
            raise click.ClickException(
                f"Invalid PIN. {lock.attempts_remaining} attempts remaining."
            )

    def store(self) -> DataStore:
        """Open and load the data store for the configured mode (once)."""
        if self._store is None:
            self.require_unlocked()
            store = open_store(self.paths, self.settings)
            if not self.run(store.load()):
                self.console.print(f"[yellow]Could not load {store.storage_mode} data[/yellow]")
            self._store = store
        return self._store


pass_app = click.make_pass_decorator(AppContext, ensure=True)
