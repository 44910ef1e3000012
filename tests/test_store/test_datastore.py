"""Tests for projectflow.store.datastore module.

Most tests run against both backends through the parametrized
``loaded_store`` fixture; behaviour must not depend on the storage mode.
"""

import asyncio
import sqlite3
from contextlib import closing

import pytest

from projectflow.core.kvstore import EventBus, LocalStore
from projectflow.store.backends import (
    LOCAL_KEYS,
    Backend,
    LocalBackend,
    RelationalBackend,
    StorageError,
)
from projectflow.store.datastore import DataStore
from projectflow.store.gateway import RelationalGateway
from projectflow.store.models import Course, Link, Project


def _reopen(store):
    """A second store over the same backend storage, freshly loaded."""
    backend = store.backend
    if isinstance(backend, LocalBackend):
        fresh = LocalBackend(LocalStore(backend.kv.path, bus=EventBus()))
    else:
        fresh = RelationalBackend(RelationalGateway(backend.gateway.db_path), backend.durable_reorder)
    other = DataStore(fresh)
    assert asyncio.run(other.load())
    return other


class FailingBackend(Backend):
    """Loads fixed data and rejects every commit."""

    mode = "failing"

    def __init__(self, collections):
        self.collections = collections

    async def load(self):
        return {name: list(items) for name, items in self.collections.items()}

    async def commit(self, changes, state):
        raise StorageError("backend offline")


class GatedBackend(Backend):
    """Holds each commit until its gate opens; titles in fail are rejected."""

    mode = "gated"

    def __init__(self, fail):
        self.fail = set(fail)
        self.gates = {}
        self.durable = []

    async def load(self):
        return {"links": list(self.durable)}

    async def commit(self, changes, state):
        entity = changes[0].entity
        gate = self.gates.setdefault(entity.title, asyncio.Event())
        await gate.wait()
        if entity.title in self.fail:
            raise StorageError("rejected")
        self.durable.append(entity)


class TestLoad:
    """Tests for loading."""

    def test_empty_store(self, loaded_store):
        assert loaded_store.is_loaded
        assert loaded_store.ideas == []
        assert loaded_store.links == []

    def test_local_defaults_used_until_saved(self, tmp_path):
        kv = LocalStore(tmp_path / "kv.json", bus=EventBus())
        backend = LocalBackend(kv, defaults={"links": [{"id": "seed", "title": "Seed", "url": "https://s"}]})
        store = DataStore(backend)
        asyncio.run(store.load())
        assert [link.id for link in store.links] == ["seed"]

    def test_unreadable_database_reports_failure(self, tmp_path):
        db_path = tmp_path / "db.sqlite"
        db_path.write_text("this is not a database")
        store = DataStore(RelationalBackend(RelationalGateway(db_path)))
        assert asyncio.run(store.load()) is False
        assert store.ideas == []


class TestProjectActions:
    """Tests for project mutations on both backends."""

    def test_add_persists(self, loaded_store, sample_project):
        assert asyncio.run(loaded_store.actions.add_project(sample_project))
        assert [p.id for p in loaded_store.ideas] == ["idea-1"]
        assert [p.id for p in _reopen(loaded_store).ideas] == ["idea-1"]

    def test_duplicate_id_rejected(self, loaded_store, sample_project):
        asyncio.run(loaded_store.actions.add_project(sample_project))
        with pytest.raises(ValueError):
            asyncio.run(loaded_store.actions.add_project(sample_project, "completed"))

    def test_update(self, loaded_store, sample_project):
        asyncio.run(loaded_store.actions.add_project(sample_project))
        ok = asyncio.run(loaded_store.actions.update_project(sample_project.replace(progress=80)))
        assert ok
        assert _reopen(loaded_store).ideas[0].progress == 80

    def test_update_missing_returns_false(self, loaded_store, sample_project):
        assert asyncio.run(loaded_store.actions.update_project(sample_project)) is False

    def test_delete(self, loaded_store, sample_project):
        asyncio.run(loaded_store.actions.add_project(sample_project))
        assert asyncio.run(loaded_store.actions.delete_project("idea-1"))
        assert _reopen(loaded_store).ideas == []

    def test_delete_missing_returns_false(self, loaded_store):
        assert asyncio.run(loaded_store.actions.delete_project("nope")) is False

    def test_move_to_completed_and_back(self, loaded_store, sample_project):
        actions = loaded_store.actions
        asyncio.run(actions.add_project(sample_project))

        assert asyncio.run(actions.move_project("idea-1", "ideas", "completed"))
        assert loaded_store.ideas == []
        assert loaded_store.completed[0].progress == 100
        assert _reopen(loaded_store).completed[0].progress == 100

        assert asyncio.run(actions.move_project("idea-1", "completed", "ideas"))
        assert loaded_store.ideas[0].progress == 99
        reopened = _reopen(loaded_store)
        assert [p.id for p in reopened.ideas] == ["idea-1"]
        assert reopened.completed == []

    def test_move_to_same_collection_is_noop(self, loaded_store, sample_project):
        asyncio.run(loaded_store.actions.add_project(sample_project))
        assert asyncio.run(loaded_store.actions.move_project("idea-1", "ideas", "ideas")) is False
        assert [p.id for p in loaded_store.ideas] == ["idea-1"]

    def test_unknown_collection_raises(self, loaded_store):
        with pytest.raises(ValueError):
            asyncio.run(loaded_store.actions.move_project("x", "ideas", "archive"))

    def test_reorder_in_memory(self, loaded_store):
        actions = loaded_store.actions
        for title in ("A", "B", "C"):
            asyncio.run(actions.add_project(Project.create(title)))

        assert asyncio.run(actions.set_ideas(lambda items: list(reversed(items))))
        assert [p.title for p in loaded_store.ideas] == ["C", "B", "A"]

    def test_reorder_must_keep_records(self, loaded_store, sample_project):
        asyncio.run(loaded_store.actions.add_project(sample_project))
        with pytest.raises(ValueError):
            asyncio.run(loaded_store.actions.set_ideas([]))


class TestCoursesLinksNotes:
    """Tests for course, link, and note mutations."""

    def test_course_lifecycle(self, loaded_store, sample_course):
        actions = loaded_store.actions
        assert asyncio.run(actions.add_course(sample_course))
        assert asyncio.run(actions.update_course(sample_course.replace(completed=True)))
        assert _reopen(loaded_store).courses[0].completed is True
        assert asyncio.run(actions.delete_course("course-1"))
        assert _reopen(loaded_store).courses == []

    def test_link_lifecycle(self, loaded_store, sample_link):
        actions = loaded_store.actions
        assert asyncio.run(actions.add_link(sample_link))
        assert asyncio.run(actions.update_link(sample_link.replace(title="Docs")))
        assert _reopen(loaded_store).links[0].title == "Docs"
        assert asyncio.run(actions.delete_link("link-1"))
        assert loaded_store.links == []

    def test_notes_on_project_and_course(self, loaded_store, sample_project, sample_course):
        actions = loaded_store.actions
        asyncio.run(actions.add_project(sample_project))
        asyncio.run(actions.add_course(sample_course))

        project_note = asyncio.run(actions.add_note("project", "idea-1", "kickoff"))
        course_note = asyncio.run(actions.add_note("course", "course-1", "week 1"))

        reopened = _reopen(loaded_store)
        assert [n.content for n in reopened.ideas[0].notes] == ["kickoff"]
        assert [n.content for n in reopened.courses[0].notes] == ["week 1"]

        assert asyncio.run(actions.delete_note("project", "idea-1", project_note.id))
        assert asyncio.run(actions.delete_note("course", "course-1", course_note.id))
        assert asyncio.run(actions.delete_note("course", "course-1", course_note.id)) is False
        assert _reopen(loaded_store).ideas[0].notes == []

    def test_note_on_missing_parent(self, loaded_store):
        assert asyncio.run(loaded_store.actions.add_note("project", "nope", "hello")) is None

    def test_blank_note_rejected(self, loaded_store, sample_project):
        asyncio.run(loaded_store.actions.add_project(sample_project))
        with pytest.raises(ValueError):
            asyncio.run(loaded_store.actions.add_note("project", "idea-1", "  "))

    def test_replace_all(self, loaded_store, sample_project, sample_course, sample_link):
        asyncio.run(loaded_store.actions.add_link(Link.create("Old", "https://old")))
        ok = asyncio.run(loaded_store.actions.replace_all({
            "ideas": [sample_project],
            "completed": [],
            "courses": [sample_course],
            "links": [sample_link],
        }))
        assert ok
        reopened = _reopen(loaded_store)
        assert [p.id for p in reopened.ideas] == ["idea-1"]
        assert [link.id for link in reopened.links] == ["link-1"]

    def test_replace_all_rejects_duplicate_ids(self, loaded_store, sample_link):
        with pytest.raises(ValueError):
            asyncio.run(loaded_store.actions.replace_all({"links": [sample_link, sample_link]}))


class TestRollback:
    """Tests for failed commits."""

    def test_failed_move_restores_both_collections(self, sample_project):
        done = Project(id="done-1", data={"title": "Done", "progress": 100})
        store = DataStore(FailingBackend({"ideas": [sample_project], "completed": [done]}))
        asyncio.run(store.load())

        ok = asyncio.run(store.actions.move_project("idea-1", "ideas", "completed"))

        assert ok is False
        assert [p.to_dict() for p in store.ideas] == [sample_project.to_dict()]
        assert [p.id for p in store.completed] == ["done-1"]

    def test_failed_add_is_rolled_back(self):
        store = DataStore(FailingBackend({}))
        asyncio.run(store.load())
        assert asyncio.run(store.actions.add_course(Course.create("Stats"))) is False
        assert store.courses == []

    def test_earlier_failure_keeps_later_confirmed_change(self):
        backend = GatedBackend(fail=["A"])
        store = DataStore(backend)

        async def scenario():
            await store.load()
            backend.gates["A"] = asyncio.Event()
            backend.gates["B"] = asyncio.Event()
            first = asyncio.create_task(store.actions.add_link(Link.create("A", "https://a")))
            await asyncio.sleep(0)
            second = asyncio.create_task(store.actions.add_link(Link.create("B", "https://b")))
            await asyncio.sleep(0)
            backend.gates["A"].set()
            first_result = await first
            backend.gates["B"].set()
            return first_result, await second

        assert asyncio.run(scenario()) == (False, True)
        assert [link.title for link in store.links] == ["B"]
        assert [link.title for link in backend.durable] == ["B"]

    def test_sqlite_failed_move_restores_both_collections(self, tmp_path, sample_project, monkeypatch):
        gateway = RelationalGateway(tmp_path / "db.sqlite")
        store = DataStore(RelationalBackend(gateway))
        asyncio.run(store.load())
        done = Project(id="done-1", data={"title": "Done", "progress": 100})
        asyncio.run(store.actions.add_project(sample_project))
        asyncio.run(store.actions.add_project(done, "completed"))
        ideas_before = [p.to_dict() for p in store.ideas]
        completed_before = [p.to_dict() for p in store.completed]

        def locked_save(project, status):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(gateway, "save_project", locked_save)

        ok = asyncio.run(store.actions.move_project("idea-1", "ideas", "completed"))

        assert ok is False
        assert [p.to_dict() for p in store.ideas] == ideas_before
        assert [p.to_dict() for p in store.completed] == completed_before
        with closing(sqlite3.connect(gateway.db_path)) as conn:
            row = conn.execute("SELECT status, progress FROM projects WHERE id = 'idea-1'").fetchone()
        assert row == ("idea", 40)

    def test_sqlite_delete_of_vanished_row_rolls_back(self, tmp_path, sample_link):
        gateway = RelationalGateway(tmp_path / "db.sqlite")
        store = DataStore(RelationalBackend(gateway))
        asyncio.run(store.load())
        asyncio.run(store.actions.add_link(sample_link))
        # Row removed behind the store's back
        gateway.delete_link("link-1")

        assert asyncio.run(store.actions.delete_link("link-1")) is False
        assert [link.id for link in store.links] == ["link-1"]

    def test_local_write_failure_keeps_memory(self, tmp_path, sample_link):
        kv = LocalStore(tmp_path / "kv.json", quota_bytes=10, bus=EventBus())
        store = DataStore(LocalBackend(kv))
        asyncio.run(store.load())

        # Over quota: the write is logged and dropped, memory keeps the change
        assert asyncio.run(store.actions.add_link(sample_link)) is True
        assert [link.id for link in store.links] == ["link-1"]
        assert kv.read(LOCAL_KEYS["links"], []) == []


class TestModeSpecifics:
    """Tests for behaviour specific to one backend."""

    def test_sqlite_reorder_not_durable_by_default(self, tmp_path):
        store = DataStore(RelationalBackend(RelationalGateway(tmp_path / "db.sqlite")))
        asyncio.run(store.load())
        for title in ("A", "B"):
            asyncio.run(store.actions.add_project(Project.create(title)))
        asyncio.run(store.actions.set_ideas(lambda items: list(reversed(items))))

        assert [p.title for p in store.ideas] == ["B", "A"]
        assert [p.title for p in _reopen(store).ideas] == ["A", "B"]

    def test_sqlite_durable_reorder(self, tmp_path):
        backend = RelationalBackend(RelationalGateway(tmp_path / "db.sqlite"), durable_reorder=True)
        store = DataStore(backend)
        asyncio.run(store.load())
        for title in ("A", "B", "C"):
            asyncio.run(store.actions.add_project(Project.create(title)))
        asyncio.run(store.actions.set_ideas(lambda items: list(reversed(items))))

        assert [p.title for p in _reopen(store).ideas] == ["C", "B", "A"]

    def test_local_reorder_persists(self, tmp_path):
        store = DataStore(LocalBackend(LocalStore(tmp_path / "kv.json", bus=EventBus())))
        asyncio.run(store.load())
        for title in ("A", "B"):
            asyncio.run(store.actions.add_link(Link.create(title, f"https://{title}")))
        asyncio.run(store.actions.set_links(lambda items: list(reversed(items))))

        assert [link.title for link in _reopen(store).links] == ["B", "A"]

    def test_local_external_write_updates_store(self, tmp_path, sample_link):
        bus = EventBus()
        first = DataStore(LocalBackend(LocalStore(tmp_path / "kv.json", bus=bus)))
        second = DataStore(LocalBackend(LocalStore(tmp_path / "kv.json", bus=bus)))
        asyncio.run(first.load())
        asyncio.run(second.load())

        asyncio.run(first.actions.add_link(sample_link))

        assert [link.id for link in second.links] == ["link-1"]
        second.close()

    def test_switch_backend_reloads(self, tmp_path, sample_link):
        local = LocalBackend(LocalStore(tmp_path / "kv.json", bus=EventBus()))
        store = DataStore(local)
        asyncio.run(store.load())
        asyncio.run(store.actions.add_link(sample_link))

        assert asyncio.run(store.switch_backend(RelationalBackend(RelationalGateway(tmp_path / "db.sqlite"))))
        assert store.storage_mode == "sqlite"
        assert store.links == []
