"""
Relational store gateway over a single-file SQLite database.

Structured sub-fields (links, notes, tags, requirements, apiKeys) live in
JSON text columns, encoded on write and decoded with an empty-list fallback
on read. Saves are upserts keyed by id; deletes report success as a bool.
Every successful mutation fires the invalidation hooks so cached views are
recomputed.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any

from projectflow.core.codec import decode_json, decode_list, encode_json
from projectflow.store.models import (
    COLLECTION_FOR_STATUS,
    COMPLETED,
    IDEAS,
    STATUS_FOR_COLLECTION,
    Course,
    Link,
    Project,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    requirements TEXT,
    logo TEXT,
    links TEXT,
    notes TEXT,
    progress INTEGER,
    tags TEXT,
    repoUrl TEXT,
    apiKeys TEXT,
    apiKeyPin TEXT,
    dueDate TEXT,
    status TEXT DEFAULT 'idea'
);

CREATE TABLE IF NOT EXISTS courses (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    completed INTEGER DEFAULT 0,
    links TEXT,
    logo TEXT,
    notes TEXT,
    reason TEXT
);

CREATE TABLE IF NOT EXISTS links (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    description TEXT
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

PROJECT_JSON_COLUMNS = ("requirements", "links", "notes", "tags", "apiKeys")
PROJECT_COLUMNS = (
    "id", "title", "description", "requirements", "logo", "links", "notes",
    "progress", "tags", "repoUrl", "apiKeys", "apiKeyPin", "dueDate", "status",
)
COURSE_COLUMNS = ("id", "name", "completed", "links", "logo", "notes", "reason")
LINK_COLUMNS = ("id", "title", "url", "description")


def _upsert_sql(table: str, columns: tuple[str, ...]) -> str:
    names = ", ".join(columns)
    params = ", ".join(f":{c}" for c in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
    return (
        f"INSERT INTO {table} ({names}) VALUES ({params}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )


def _without_nulls(row: sqlite3.Row) -> dict[str, Any]:
    return {key: row[key] for key in row.keys() if row[key] is not None}


def _project_params(project: Project, status: str) -> dict[str, Any]:
    record = project.to_dict()
    params = {column: record.get(column) for column in PROJECT_COLUMNS}
    for column in PROJECT_JSON_COLUMNS:
        params[column] = encode_json(record.get(column) or [])
    params["title"] = record.get("title", "")
    params["status"] = status
    return params


def _course_params(course: Course) -> dict[str, Any]:
    record = course.to_dict()
    params = {column: record.get(column) for column in COURSE_COLUMNS}
    params["name"] = record.get("name", "")
    params["completed"] = 1 if record.get("completed") else 0
    params["links"] = encode_json(record.get("links") or [])
    params["notes"] = encode_json(record.get("notes") or [])
    return params


def _link_params(link: Link) -> dict[str, Any]:
    record = link.to_dict()
    params = {column: record.get(column) for column in LINK_COLUMNS}
    params["title"] = record.get("title", "")
    params["url"] = record.get("url", "")
    return params


class RelationalGateway:
    """CRUD facade over projectflow.db."""

    def __init__(
        self,
        db_path: Path,
        on_change: list[Callable[[], None]] | None = None,
    ):
        self.db_path = Path(db_path)
        self.on_change: list[Callable[[], None]] = list(on_change or [])
        self._initialized = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Short-lived connection, committed on success."""
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            if not self._initialized:
                conn.executescript(SCHEMA)
                self._initialized = True
            with conn:
                yield conn

    def _changed(self) -> None:
        for hook in self.on_change:
            try:
                hook()
            except Exception:
                logger.exception("Invalidation hook failed")

    def _delete(self, table: str, entity_id: str) -> bool:
        try:
            with self._connect() as conn:
                cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (entity_id,))
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error("Failed to delete %s from %s: %s", entity_id, table, e)
            return False
        if not deleted:
            logger.info("No row %s in %s to delete", entity_id, table)
            return False
        self._changed()
        return True

    # --- Projects ---

    def list_projects(self) -> dict[str, list[Project]]:
        """Return projects split into {"ideas": [...], "completed": [...]}."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM projects ORDER BY rowid").fetchall()

        result: dict[str, list[Project]] = {IDEAS: [], COMPLETED: []}
        for row in rows:
            data = _without_nulls(row)
            for column in PROJECT_JSON_COLUMNS:
                if column == "requirements":
                    value = decode_json(row[column], [])
                    data[column] = value if isinstance(value, (str, list)) else []
                else:
                    data[column] = decode_list(row[column])
            status = data.pop("status", "idea")
            collection = COLLECTION_FOR_STATUS.get(status)
            if collection is None:
                logger.warning("Project %s has unknown status %r", data.get("id"), status)
                continue
            result[collection].append(Project.from_dict(data))
        return result

    def save_project(self, project: Project, status: str) -> Project:
        """Insert or fully overwrite a project row.

        Args:
            project: Project to store
            status: "idea" or "completed" (collection names are accepted too)

        Raises:
            ValueError: On an unknown status
            sqlite3.Error: If the write fails
        """
        status = STATUS_FOR_COLLECTION.get(status, status)
        if status not in COLLECTION_FOR_STATUS:
            raise ValueError(f"Unknown project status: {status!r}")

        with self._connect() as conn:
            conn.execute(_upsert_sql("projects", PROJECT_COLUMNS), _project_params(project, status))
        self._changed()
        return project

    def delete_project(self, project_id: str) -> bool:
        return self._delete("projects", project_id)

    # --- Courses ---

    def list_courses(self) -> list[Course]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM courses ORDER BY rowid").fetchall()

        courses = []
        for row in rows:
            data = _without_nulls(row)
            data["completed"] = bool(row["completed"])
            data["links"] = decode_list(row["links"])
            data["notes"] = decode_list(row["notes"])
            courses.append(Course.from_dict(data))
        return courses

    def save_course(self, course: Course) -> Course:
        with self._connect() as conn:
            conn.execute(_upsert_sql("courses", COURSE_COLUMNS), _course_params(course))
        self._changed()
        return course

    def delete_course(self, course_id: str) -> bool:
        return self._delete("courses", course_id)

    # --- Links ---

    def list_links(self) -> list[Link]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM links ORDER BY rowid").fetchall()
        return [Link.from_dict(_without_nulls(row)) for row in rows]

    def save_link(self, link: Link) -> Link:
        with self._connect() as conn:
            conn.execute(_upsert_sql("links", LINK_COLUMNS), _link_params(link))
        self._changed()
        return link

    def delete_link(self, link_id: str) -> bool:
        return self._delete("links", link_id)

    # --- Settings ---

    def get_setting(self, key: str, fallback: Any = None) -> Any:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return decode_json(row["value"] if row else None, fallback)

    def set_setting(self, key: str, value: Any) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, encode_json(value)),
            )
        self._changed()

    def replace_all(
        self,
        ideas: list[Project],
        completed: list[Project],
        courses: list[Course],
        links: list[Link],
    ) -> None:
        """Wipe the entity tables and insert the given records in one transaction."""
        with self._connect() as conn:
            conn.execute("DELETE FROM projects")
            conn.execute("DELETE FROM courses")
            conn.execute("DELETE FROM links")
            for project in ideas:
                conn.execute(_upsert_sql("projects", PROJECT_COLUMNS), _project_params(project, "idea"))
            for project in completed:
                conn.execute(
                    _upsert_sql("projects", PROJECT_COLUMNS), _project_params(project, "completed")
                )
            for course in courses:
                conn.execute(_upsert_sql("courses", COURSE_COLUMNS), _course_params(course))
            for link in links:
                conn.execute(_upsert_sql("links", LINK_COLUMNS), _link_params(link))
        self._changed()
