"""
Entity records: projects, courses, links, and notes.

Each entity is an id plus the dict of stored fields under their wire names
(camelCase, as written to the local store, the database, and exports).
Properties give typed access with sensible defaults.
"""

from __future__ import annotations

import copy
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

IDEAS = "ideas"
COMPLETED = "completed"
PROJECT_COLLECTIONS = (IDEAS, COMPLETED)

# Relational status column values for each project collection
STATUS_FOR_COLLECTION = {IDEAS: "idea", COMPLETED: "completed"}
COLLECTION_FOR_STATUS = {v: k for k, v in STATUS_FOR_COLLECTION.items()}


def new_id(prefix: str) -> str:
    """Mint an opaque id such as 'idea-1718000000000-3fa2c1'."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def clamp_progress(value: Any) -> int:
    """Coerce progress to an int in 0..100."""
    try:
        progress = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, progress))


@dataclass
class Note:
    """A dated log entry attached to a project or course."""

    id: str
    date: str
    content: str

    @classmethod
    def create(cls, content: str) -> Note:
        content = content.strip()
        if not content:
            raise ValueError("Note content cannot be empty")
        return cls(id=new_id("note"), date=now_iso(), content=content)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Note:
        return cls(
            id=str(data.get("id", "")),
            date=str(data.get("date", "")),
            content=str(data.get("content", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "date": self.date, "content": self.content}


@dataclass
class Entity:
    """Base record: an id plus stored fields."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        fields = {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}
        return cls(id=str(data.get("id", "")), data=fields)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **copy.deepcopy(self.data)}

    def copy(self):
        return type(self)(id=self.id, data=copy.deepcopy(self.data))

    def replace(self, **changes: Any):
        """Return a copy with fields changed (None removes a field)."""
        updated = self.copy()
        for key, value in changes.items():
            if value is None:
                updated.data.pop(key, None)
            else:
                updated.data[key] = value
        return updated

    @property
    def logo(self) -> str | None:
        return self.data.get("logo")

    @property
    def links(self) -> list[dict]:
        """Get links [{title, url}]."""
        return list(self.data.get("links") or [])

    @property
    def notes(self) -> list[Note]:
        return [Note.from_dict(n) for n in self.data.get("notes") or [] if isinstance(n, dict)]

    def with_note(self, note: Note):
        return self.replace(notes=[n.to_dict() for n in self.notes] + [note.to_dict()])

    def without_note(self, note_id: str):
        return self.replace(notes=[n.to_dict() for n in self.notes if n.id != note_id])


@dataclass
class Project(Entity):
    """A project idea or a completed project."""

    @classmethod
    def create(cls, title: str, **fields: Any) -> Project:
        data: dict[str, Any] = {
            "title": title,
            "description": "",
            "requirements": [],
            "links": [],
            "progress": 0,
            "tags": [],
            "notes": [],
        }
        data.update({k: v for k, v in fields.items() if v is not None})
        data["progress"] = clamp_progress(data["progress"])
        return cls(id=new_id("idea"), data=data)

    @property
    def title(self) -> str:
        return str(self.data.get("title", ""))

    @property
    def description(self) -> str:
        return str(self.data.get("description") or "")

    @property
    def requirements(self) -> str | list[str]:
        value = self.data.get("requirements")
        if isinstance(value, (str, list)):
            return value
        return []

    @property
    def requirement_items(self) -> list[str]:
        """Requirements as a list, splitting legacy multi-line text."""
        value = self.requirements
        if isinstance(value, str):
            return [line for line in value.splitlines() if line.strip()]
        return [str(item) for item in value]

    @property
    def progress(self) -> int:
        return clamp_progress(self.data.get("progress", 0))

    @property
    def tags(self) -> list[str]:
        return list(self.data.get("tags") or [])

    @property
    def repo_url(self) -> str | None:
        return self.data.get("repoUrl")

    @property
    def due_date(self) -> str | None:
        return self.data.get("dueDate")

    @property
    def api_keys(self) -> list:
        return list(self.data.get("apiKeys") or [])

    @property
    def api_key_pin(self) -> str | None:
        return self.data.get("apiKeyPin")

    def completed_copy(self) -> Project:
        """Copy as it should look after moving to the completed collection."""
        return self.replace(progress=100)

    def reopened_copy(self) -> Project:
        """Copy as it should look after moving back to ideas."""
        if self.progress == 100:
            return self.replace(progress=99)
        return self.copy()

    def matches(self, term: str) -> bool:
        term = term.lower()
        return (
            term in self.title.lower()
            or term in self.description.lower()
            or any(term in tag.lower() for tag in self.tags)
        )


@dataclass
class Course(Entity):
    """A course being taken or finished."""

    @classmethod
    def create(cls, name: str, **fields: Any) -> Course:
        data: dict[str, Any] = {"name": name, "completed": False, "links": [], "notes": []}
        data.update({k: v for k, v in fields.items() if v is not None})
        data["completed"] = bool(data["completed"])
        return cls(id=new_id("course"), data=data)

    @property
    def name(self) -> str:
        return str(self.data.get("name", ""))

    @property
    def completed(self) -> bool:
        return bool(self.data.get("completed", False))

    @property
    def reason(self) -> str | None:
        return self.data.get("reason")

    def matches(self, term: str) -> bool:
        return term.lower() in self.name.lower()


@dataclass
class Link(Entity):
    """A bookmarked resource."""

    @classmethod
    def create(cls, title: str, url: str, description: str | None = None) -> Link:
        data: dict[str, Any] = {"title": title, "url": url}
        if description:
            data["description"] = description
        return cls(id=new_id("link"), data=data)

    @property
    def title(self) -> str:
        return str(self.data.get("title", ""))

    @property
    def url(self) -> str:
        return str(self.data.get("url", ""))

    @property
    def description(self) -> str | None:
        return self.data.get("description")

    def matches(self, term: str) -> bool:
        term = term.lower()
        return term in self.title.lower() or term in (self.description or "").lower()


def parse_link_spec(spec: str) -> dict[str, str]:
    """Parse a CLI link argument, 'Title=https://...' or a bare URL.

    Raises:
        ValueError: If no URL is given
    """
    title, sep, url = spec.partition("=")
    if not sep:
        title, url = spec, spec
    title, url = title.strip(), url.strip()
    if not url:
        raise ValueError(f"Link needs a URL: {spec!r}")
    return {"title": title or url, "url": url}
