"""
Storage strategies behind the data store.

Both backends share one contract: load every collection, and commit a list
of Change records describing what the in-memory state just did. The local
backend rewrites whole collections in the key-value store; the relational
backend translates each change into a gateway call.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from projectflow.core.kvstore import LocalStore
from projectflow.store.gateway import RelationalGateway
from projectflow.store.models import COMPLETED, IDEAS, Course, Entity, Link, Project

logger = logging.getLogger(__name__)

COURSES = "courses"
LINKS = "links"
COLLECTIONS = (IDEAS, COMPLETED, COURSES, LINKS)

ENTITY_TYPES: dict[str, type[Entity]] = {
    IDEAS: Project,
    COMPLETED: Project,
    COURSES: Course,
    LINKS: Link,
}

LOCAL_KEYS = {
    IDEAS: "projectflow-ideas",
    COMPLETED: "projectflow-completed",
    COURSES: "projectflow-courses",
    LINKS: "projectflow-links",
}


class StorageError(RuntimeError):
    """A backend could not persist a change."""


@dataclass
class Change:
    """One persisted effect of a store action.

    op is one of "save", "delete", "move", "reorder", "replace".
    For "move", collection is the destination and source the origin.
    """

    op: str
    collection: str
    entity: Entity | None = None
    entity_id: str | None = None
    source: str | None = None


def entities_from_dicts(collection: str, items: Any) -> list[Entity]:
    """Build entities from stored dicts, skipping anything that isn't a record."""
    if not isinstance(items, list):
        return []
    entity_type = ENTITY_TYPES[collection]
    return [entity_type.from_dict(item) for item in items if isinstance(item, dict)]


def apply_order(items: Sequence[Entity], ids: Any) -> list[Entity]:
    """Sort items by a saved id order; unknown ids keep their place at the end."""
    if not isinstance(ids, list):
        return list(items)
    rank = {entity_id: i for i, entity_id in enumerate(ids)}
    indexed = list(enumerate(items))
    indexed.sort(key=lambda pair: (rank.get(pair[1].id, len(rank)), pair[0]))
    return [item for _, item in indexed]


class Backend(ABC):
    """Strategy interface shared by the local and relational stores."""

    mode: str = ""

    @abstractmethod
    async def load(self) -> dict[str, list[Entity]]:
        """Return every collection, keyed by collection name.

        Raises:
            StorageError: If the backing store cannot be read
        """

    @abstractmethod
    async def commit(self, changes: Sequence[Change], state: Mapping[str, list[Entity]]) -> None:
        """Persist changes already applied to state.

        Raises:
            StorageError: If any change could not be persisted
        """

    def watch(self, on_external: Callable[[str, list[Entity]], None]) -> Callable[[], None]:
        """Subscribe to changes made outside this store; returns unsubscribe."""
        return lambda: None


class LocalBackend(Backend):
    """Collections as JSON lists under fixed keys of a LocalStore.

    Writes never fail from the caller's view: LocalStore logs and swallows
    persistence errors, so in-memory state is kept even when disk is not
    updated.
    """

    mode = "local"

    def __init__(self, kv: LocalStore, defaults: Mapping[str, list[dict]] | None = None):
        self.kv = kv
        self.defaults = dict(defaults or {})

    async def load(self) -> dict[str, list[Entity]]:
        return {
            name: entities_from_dicts(name, self.kv.read(LOCAL_KEYS[name], self.defaults.get(name, [])))
            for name in COLLECTIONS
        }

    async def commit(self, changes: Sequence[Change], state: Mapping[str, list[Entity]]) -> None:
        touched: list[str] = []
        for change in changes:
            if change.op == "replace":
                touched.extend(COLLECTIONS)
                continue
            touched.append(change.collection)
            if change.source:
                touched.append(change.source)
        for name in dict.fromkeys(touched):
            self.kv.write(LOCAL_KEYS[name], [entity.to_dict() for entity in state[name]])

    def watch(self, on_external: Callable[[str, list[Entity]], None]) -> Callable[[], None]:
        unsubscribers = []
        for name in COLLECTIONS:

            def listener(value: Any, name: str = name) -> None:
                on_external(name, entities_from_dicts(name, value))

            unsubscribers.append(self.kv.subscribe(LOCAL_KEYS[name], listener))

        def unsubscribe_all() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return unsubscribe_all


class RelationalBackend(Backend):
    """Collections in the SQLite database, reached through the gateway.

    Gateway calls run in a worker thread. Reordering is kept in memory only
    unless durable_reorder is set, in which case the id order of each
    collection is stored in the settings table.
    """

    mode = "sqlite"

    def __init__(self, gateway: RelationalGateway, durable_reorder: bool = False):
        self.gateway = gateway
        self.durable_reorder = durable_reorder

    def _load_sync(self) -> dict[str, list[Entity]]:
        projects = self.gateway.list_projects()
        collections: dict[str, list[Entity]] = {
            IDEAS: list(projects[IDEAS]),
            COMPLETED: list(projects[COMPLETED]),
            COURSES: list(self.gateway.list_courses()),
            LINKS: list(self.gateway.list_links()),
        }
        if self.durable_reorder:
            for name, items in collections.items():
                collections[name] = apply_order(items, self.gateway.get_setting(f"order.{name}"))
        return collections

    async def load(self) -> dict[str, list[Entity]]:
        try:
            return await asyncio.to_thread(self._load_sync)
        except sqlite3.Error as e:
            raise StorageError(f"Could not read {self.gateway.db_path}: {e}") from e

    def _save(self, collection: str, entity: Entity) -> None:
        if collection in (IDEAS, COMPLETED):
            self.gateway.save_project(entity, collection)
        elif collection == COURSES:
            self.gateway.save_course(entity)
        else:
            self.gateway.save_link(entity)

    def _delete(self, collection: str, entity_id: str) -> bool:
        if collection in (IDEAS, COMPLETED):
            return self.gateway.delete_project(entity_id)
        if collection == COURSES:
            return self.gateway.delete_course(entity_id)
        return self.gateway.delete_link(entity_id)

    def _commit_sync(self, changes: Sequence[Change], state: Mapping[str, list[Entity]]) -> None:
        for change in changes:
            if change.op in ("save", "move"):
                self._save(change.collection, change.entity)
            elif change.op == "delete":
                if not self._delete(change.collection, change.entity_id):
                    raise StorageError(f"Delete of {change.entity_id} failed")
            elif change.op == "reorder":
                if self.durable_reorder:
                    ids = [entity.id for entity in state[change.collection]]
                    self.gateway.set_setting(f"order.{change.collection}", ids)
            elif change.op == "replace":
                self.gateway.replace_all(
                    state[IDEAS], state[COMPLETED], state[COURSES], state[LINKS]
                )
                if self.durable_reorder:
                    for name in COLLECTIONS:
                        self.gateway.set_setting(f"order.{name}", [e.id for e in state[name]])
            else:
                raise ValueError(f"Unknown change op: {change.op!r}")

    async def commit(self, changes: Sequence[Change], state: Mapping[str, list[Entity]]) -> None:
        # Entities are copied so the worker thread never sees later in-memory edits
        frozen = {name: [entity.copy() for entity in items] for name, items in state.items()}
        try:
            await asyncio.to_thread(self._commit_sync, changes, frozen)
        except (sqlite3.Error, ValueError) as e:
            raise StorageError(str(e)) from e
