"""
Export the data store as a JSON backup or as flat CSV tables.

The JSON document is the one the importer reads back:
{ideas, completed, links, courses, exportedAt}.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from projectflow.store.datastore import DataStore
from projectflow.store.models import STATUS_FOR_COLLECTION, COMPLETED, IDEAS

EXPORT_FORMATS = ("json", "csv-projects", "csv-links", "csv-courses")

PROJECT_CSV_COLUMNS = [
    "id", "title", "description", "status", "progress",
    "tags", "dueDate", "repoUrl", "links", "requirements",
]
LINK_CSV_COLUMNS = ["id", "title", "url", "description"]
COURSE_CSV_COLUMNS = ["id", "name", "completed", "reason", "links", "notes"]


def export_backup(store: DataStore) -> dict[str, Any]:
    """Full backup document of every collection."""
    return {
        "ideas": [p.to_dict() for p in store.ideas],
        "completed": [p.to_dict() for p in store.completed],
        "links": [link.to_dict() for link in store.links],
        "courses": [c.to_dict() for c in store.courses],
        "exportedAt": datetime.now(timezone.utc).isoformat(),
    }


def _to_csv(columns: list[str], rows: list[dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore", lineterminator="\r\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "" if v is None else v for k, v in row.items()})
    return buffer.getvalue()


def export_projects_csv(store: DataStore) -> str:
    """Projects from both collections, with a status column."""
    rows = []
    for collection in (IDEAS, COMPLETED):
        for project in store.collection(collection):
            requirements = project.requirements
            if isinstance(requirements, list):
                # Literal backslash-n, so each project stays on one CSV line
                requirements = "\\n".join(str(r) for r in requirements)
            rows.append({
                "id": project.id,
                "title": project.title,
                "description": project.description,
                "status": STATUS_FOR_COLLECTION[collection],
                "progress": project.progress,
                "tags": ", ".join(project.tags),
                "dueDate": project.due_date,
                "repoUrl": project.repo_url,
                "links": json.dumps(project.links),
                "requirements": requirements,
            })
    return _to_csv(PROJECT_CSV_COLUMNS, rows)


def export_links_csv(store: DataStore) -> str:
    return _to_csv(LINK_CSV_COLUMNS, [link.to_dict() for link in store.links])


def export_courses_csv(store: DataStore) -> str:
    rows = [
        {
            "id": course.id,
            "name": course.name,
            "completed": "true" if course.completed else "false",
            "reason": course.reason,
            "links": json.dumps(course.links),
            "notes": json.dumps([n.to_dict() for n in course.notes]),
        }
        for course in store.courses
    ]
    return _to_csv(COURSE_CSV_COLUMNS, rows)


def render_export(store: DataStore, fmt: str) -> str:
    """Render one export format as text.

    Raises:
        ValueError: On an unknown format
    """
    if fmt == "json":
        return json.dumps(export_backup(store), indent=2, ensure_ascii=False)
    if fmt == "csv-projects":
        return export_projects_csv(store)
    if fmt == "csv-links":
        return export_links_csv(store)
    if fmt == "csv-courses":
        return export_courses_csv(store)
    raise ValueError(f"Unknown export format: {fmt!r} (expected one of {', '.join(EXPORT_FORMATS)})")


def default_export_name(fmt: str, when: datetime | None = None) -> str:
    """File name like 'projectflow-backup-2025-01-31T10-20-30-000000.json'."""
    when = when or datetime.now(timezone.utc)
    timestamp = when.strftime("%Y-%m-%dT%H-%M-%S-%f")
    if fmt == "json":
        return f"projectflow-backup-{timestamp}.json"
    kind = fmt.split("-", 1)[1]
    return f"projectflow-{kind}-{timestamp}.csv"


def write_export(store: DataStore, fmt: str, destination: Path) -> Path:
    """Write an export to destination (a file, or a directory for the default name)."""
    destination = Path(destination)
    if destination.is_dir():
        destination = destination / default_export_name(fmt)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(render_export(store, fmt), encoding="utf-8")
    return destination
