"""
Unified data store.

One object holds the four collections (ideas, completed, courses, links) in
memory and exposes every mutation through ``store.actions``. Which backend
persists them (local key-value store or SQLite) is a strategy chosen when
the store is built; callers never branch on the mode.

Mutations are optimistic: memory changes first, the backend confirms
afterwards, and a failed confirmation rolls the touched collections back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, Union

from projectflow.store.backends import (
    COLLECTIONS,
    COURSES,
    LINKS,
    Backend,
    Change,
    StorageError,
)
from projectflow.store.models import (
    COMPLETED,
    IDEAS,
    PROJECT_COLLECTIONS,
    Course,
    Entity,
    Link,
    Note,
    Project,
)
from projectflow.store.transaction import StoreState, optimistic

logger = logging.getLogger(__name__)

Reorder = Union[Sequence[Entity], Callable[[list[Entity]], Sequence[Entity]]]


class DataStore:
    """In-memory collections mirrored to a pluggable backend."""

    def __init__(self, backend: Backend):
        self.backend = backend
        self.state = StoreState(COLLECTIONS)
        self.is_loaded = False
        self._unwatch: Callable[[], None] = lambda: None
        self.actions = StoreActions(self)

    @property
    def storage_mode(self) -> str:
        return self.backend.mode

    @property
    def ideas(self) -> list[Project]:
        return list(self.state.get(IDEAS))

    @property
    def completed(self) -> list[Project]:
        return list(self.state.get(COMPLETED))

    @property
    def courses(self) -> list[Course]:
        return list(self.state.get(COURSES))

    @property
    def links(self) -> list[Link]:
        return list(self.state.get(LINKS))

    def collection(self, name: str) -> list[Entity]:
        return list(self.state.get(name))

    async def load(self) -> bool:
        """(Re)load every collection from the backend.

        Returns:
            False if the backend could not be read (collections left as they were)
        """
        self._unwatch()
        try:
            collections = await self.backend.load()
        except StorageError as e:
            logger.error("Failed to load %s data: %s", self.storage_mode, e)
            self.is_loaded = True
            return False
        for name in COLLECTIONS:
            self.state.set(name, collections.get(name, []))
        self._unwatch = self.backend.watch(self._on_external)
        self.is_loaded = True
        return True

    async def switch_backend(self, backend: Backend) -> bool:
        """Swap the backend for all collections at once and reload."""
        self._unwatch()
        self._unwatch = lambda: None
        self.backend = backend
        self.is_loaded = False
        return await self.load()

    def close(self) -> None:
        self._unwatch()
        self._unwatch = lambda: None

    def _on_external(self, name: str, items: list[Entity]) -> None:
        current = [entity.to_dict() for entity in self.state.get(name)]
        if current != [entity.to_dict() for entity in items]:
            logger.debug("Picked up external change to %s", name)
            self.state.set(name, items)

    def find(self, name: str, entity_id: str) -> Entity | None:
        for entity in self.state.get(name):
            if entity.id == entity_id:
                return entity
        return None

    def find_project(self, project_id: str) -> tuple[Project, str] | None:
        """Locate a project in either collection; returns (project, collection)."""
        for name in PROJECT_COLLECTIONS:
            project = self.find(name, project_id)
            if project is not None:
                return project, name
        return None

    async def mutate(
        self,
        changes: Sequence[Change],
        touched: Sequence[str],
        apply: Callable[[], None],
        label: str,
    ) -> bool:
        async def commit() -> None:
            await self.backend.commit(changes, self.state.as_dict())

        return await optimistic(
            self.state, touched, apply, commit, on_stale=self.load, label=label
        )


def _check_project_collection(name: str) -> None:
    if name not in PROJECT_COLLECTIONS:
        raise ValueError(f"Unknown project collection: {name!r}")


class StoreActions:
    """Every mutation of a DataStore, one coroutine per verb.

    Each returns True when the backend confirmed the change and False when
    it failed and memory was rolled back. Programming errors (unknown
    collection, duplicate id, reorder that adds or drops records) raise
    ValueError before anything changes.
    """

    def __init__(self, store: DataStore):
        self.store = store

    # --- generic helpers ---

    async def _add(self, name: str, entity: Entity, label: str) -> bool:
        if self.store.find(name, entity.id) is not None:
            raise ValueError(f"Duplicate id {entity.id!r} in {name}")
        state = self.store.state
        return await self.store.mutate(
            [Change("save", name, entity=entity)],
            [name],
            lambda: state.set(name, state.get(name) + [entity]),
            label,
        )

    async def _update(self, name: str, entity: Entity, label: str) -> bool:
        if self.store.find(name, entity.id) is None:
            logger.warning("Cannot %s: %s not in %s", label, entity.id, name)
            return False
        state = self.store.state
        return await self.store.mutate(
            [Change("save", name, entity=entity)],
            [name],
            lambda: state.set(name, [entity if e.id == entity.id else e for e in state.get(name)]),
            label,
        )

    async def _delete(self, name: str, entity_id: str, label: str) -> bool:
        if self.store.find(name, entity_id) is None:
            logger.warning("Cannot %s: %s not in %s", label, entity_id, name)
            return False
        state = self.store.state
        return await self.store.mutate(
            [Change("delete", name, entity_id=entity_id)],
            [name],
            lambda: state.set(name, [e for e in state.get(name) if e.id != entity_id]),
            label,
        )

    async def _reorder(self, name: str, value: Reorder) -> bool:
        current = self.store.collection(name)
        reordered = list(value(current) if callable(value) else value)
        if sorted(e.id for e in reordered) != sorted(e.id for e in current):
            raise ValueError(f"Reordering {name} must keep the same records")
        state = self.store.state
        return await self.store.mutate(
            [Change("reorder", name)],
            [name],
            lambda: state.set(name, reordered),
            f"reorder {name}",
        )

    # --- projects ---

    async def add_project(self, project: Project, collection: str = IDEAS) -> bool:
        _check_project_collection(collection)
        if self.store.find_project(project.id) is not None:
            raise ValueError(f"Duplicate project id {project.id!r}")
        return await self._add(collection, project, "add project")

    async def update_project(self, project: Project, collection: str | None = None) -> bool:
        if collection is None:
            found = self.store.find_project(project.id)
            if found is None:
                logger.warning("Cannot update project: %s not found", project.id)
                return False
            collection = found[1]
        _check_project_collection(collection)
        return await self._update(collection, project, "update project")

    async def delete_project(self, project_id: str, collection: str | None = None) -> bool:
        if collection is None:
            found = self.store.find_project(project_id)
            collection = found[1] if found else IDEAS
        _check_project_collection(collection)
        return await self._delete(collection, project_id, "delete project")

    async def move_project(self, project_id: str, from_collection: str, to_collection: str) -> bool:
        """Move a project between ideas and completed.

        Completing sets progress to 100; reopening a project at 100 drops it
        to 99. Both collections are snapshotted and restored together.

        Returns:
            True on success; False if nothing moved or the backend failed
        """
        _check_project_collection(from_collection)
        _check_project_collection(to_collection)
        if from_collection == to_collection:
            return False
        project = self.store.find(from_collection, project_id)
        if project is None:
            logger.warning("Cannot move %s: not in %s", project_id, from_collection)
            return False

        moved = project.completed_copy() if to_collection == COMPLETED else project.reopened_copy()
        state = self.store.state

        def apply() -> None:
            state.set(from_collection, [e for e in state.get(from_collection) if e.id != project_id])
            state.set(to_collection, state.get(to_collection) + [moved])

        return await self.store.mutate(
            [Change("move", to_collection, entity=moved, source=from_collection)],
            [from_collection, to_collection],
            apply,
            "move project",
        )

    async def set_ideas(self, value: Reorder) -> bool:
        return await self._reorder(IDEAS, value)

    async def set_completed(self, value: Reorder) -> bool:
        return await self._reorder(COMPLETED, value)

    # --- courses ---

    async def add_course(self, course: Course) -> bool:
        return await self._add(COURSES, course, "add course")

    async def update_course(self, course: Course) -> bool:
        return await self._update(COURSES, course, "update course")

    async def delete_course(self, course_id: str) -> bool:
        return await self._delete(COURSES, course_id, "delete course")

    async def set_courses(self, value: Reorder) -> bool:
        return await self._reorder(COURSES, value)

    # --- links ---

    async def add_link(self, link: Link) -> bool:
        return await self._add(LINKS, link, "add link")

    async def update_link(self, link: Link) -> bool:
        return await self._update(LINKS, link, "update link")

    async def delete_link(self, link_id: str) -> bool:
        return await self._delete(LINKS, link_id, "delete link")

    async def set_links(self, value: Reorder) -> bool:
        return await self._reorder(LINKS, value)

    # --- notes ---

    def _note_parent(self, kind: str, parent_id: str) -> tuple[Entity, str] | None:
        if kind == "project":
            return self.store.find_project(parent_id)
        if kind == "course":
            course = self.store.find(COURSES, parent_id)
            return (course, COURSES) if course is not None else None
        raise ValueError(f"Notes attach to 'project' or 'course', not {kind!r}")

    async def add_note(self, kind: str, parent_id: str, content: str) -> Note | None:
        """Append a note to a project or course.

        Returns:
            The new Note, or None if the parent is missing or the save failed

        Raises:
            ValueError: If content is blank or kind is unknown
        """
        note = Note.create(content)
        found = self._note_parent(kind, parent_id)
        if found is None:
            logger.warning("Cannot add note: %s %s not found", kind, parent_id)
            return None
        parent, name = found
        ok = await self._update(name, parent.with_note(note), f"add note to {kind}")
        return note if ok else None

    async def delete_note(self, kind: str, parent_id: str, note_id: str) -> bool:
        found = self._note_parent(kind, parent_id)
        if found is None:
            return False
        parent, name = found
        if not any(n.id == note_id for n in parent.notes):
            return False
        return await self._update(name, parent.without_note(note_id), f"delete note from {kind}")

    # --- bulk ---

    async def replace_all(self, collections: dict[str, list[Any]]) -> bool:
        """Replace every collection wholesale (import)."""
        replacement = {name: list(collections.get(name, [])) for name in COLLECTIONS}
        for name, items in replacement.items():
            ids = [e.id for e in items]
            if len(ids) != len(set(ids)):
                raise ValueError(f"Duplicate ids in imported {name}")
        state = self.store.state

        def apply() -> None:
            for name, items in replacement.items():
                state.set(name, items)

        return await self.store.mutate(
            [Change("replace", IDEAS)], list(COLLECTIONS), apply, "replace all data"
        )
