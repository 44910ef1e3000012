"""
In-memory collection state and the optimistic update combinator.

A mutation snapshots only the collections it touches, applies itself to
memory right away, then awaits the backend. On failure the snapshot is
restored, unless a later mutation has touched one of those collections in
the meantime. Restoring would then clobber newer state, so the collections
are marked stale and the caller's reload hook runs once no mutation on them
is still awaiting its backend.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from projectflow.store.backends import StorageError

logger = logging.getLogger(__name__)


class StoreState:
    """Named entity collections with per-collection revision counters."""

    def __init__(self, names: Iterable[str]):
        self._collections: dict[str, list[Any]] = {name: [] for name in names}
        self._revisions: dict[str, int] = {name: 0 for name in self._collections}
        self._in_flight: dict[str, int] = {name: 0 for name in self._collections}
        self._stale: set[str] = set()

    def _check(self, name: str) -> None:
        if name not in self._collections:
            raise ValueError(f"Unknown collection: {name!r}")

    def get(self, name: str) -> list[Any]:
        self._check(name)
        return self._collections[name]

    def set(self, name: str, items: list[Any]) -> None:
        self._check(name)
        self._collections[name] = list(items)
        self._revisions[name] += 1

    def revision(self, name: str) -> int:
        self._check(name)
        return self._revisions[name]

    def snapshot(self, names: Iterable[str]) -> dict[str, list[Any]]:
        """Copy the listed collections (entities copied too)."""
        return {name: [item.copy() for item in self.get(name)] for name in names}

    def restore(self, snapshot: dict[str, list[Any]]) -> None:
        for name, items in snapshot.items():
            self.set(name, items)

    def as_dict(self) -> dict[str, list[Any]]:
        return {name: list(items) for name, items in self._collections.items()}

    def begin(self, names: Iterable[str]) -> None:
        for name in names:
            self._check(name)
            self._in_flight[name] += 1

    def settle(self, names: Iterable[str]) -> None:
        for name in names:
            self._in_flight[name] -= 1

    def mark_stale(self, names: Iterable[str]) -> None:
        self._stale.update(names)

    def take_stale(self) -> set[str]:
        """Stale collections with nothing in flight; clears their stale mark."""
        ready = {name for name in self._stale if self._in_flight[name] == 0}
        self._stale -= ready
        return ready


async def optimistic(
    state: StoreState,
    touched: Iterable[str],
    apply: Callable[[], None],
    commit: Callable[[], Awaitable[Any]],
    on_stale: Callable[[], Awaitable[Any]] | None = None,
    label: str = "mutation",
) -> bool:
    """Apply a mutation to memory first, then confirm it with the backend.

    Args:
        state: Collections being mutated
        touched: Names of every collection apply() changes
        apply: Synchronous in-memory mutation
        commit: Coroutine persisting the mutation; raises StorageError on failure
        on_stale: Reload coroutine used instead of a rollback when a newer
            mutation touched the same collections before this one failed;
            it runs after the last mutation in flight on them settles
        label: Description used in log messages

    Returns:
        True if the backend confirmed, False if it failed (state rolled back
        or reloaded)
    """
    touched = list(dict.fromkeys(touched))
    snapshot = state.snapshot(touched)
    apply()
    applied = {name: state.revision(name) for name in touched}

    state.begin(touched)
    try:
        await commit()
    except StorageError as e:
        logger.error("Failed to %s: %s", label, e)
        if all(state.revision(name) == rev for name, rev in applied.items()):
            state.restore(snapshot)
        else:
            logger.warning("Newer changes landed during failed %s; reloading", label)
            state.mark_stale(touched)
        ok = False
    else:
        ok = True
    finally:
        state.settle(touched)

    if on_stale is not None and state.take_stale():
        await on_stale()
    return ok
