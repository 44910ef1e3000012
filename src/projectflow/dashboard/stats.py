"""Dashboard summary and search over a loaded data store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from projectflow.core.cache import ViewCache
from projectflow.store.datastore import DataStore
from projectflow.store.models import Course, Link, Project


def _is_overdue(project: Project, now: datetime) -> bool:
    if not project.due_date:
        return False
    try:
        due = datetime.fromisoformat(project.due_date.replace("Z", "+00:00"))
    except ValueError:
        return False
    if due.tzinfo is None:
        due = due.replace(tzinfo=timezone.utc)
    return due < now


def compute_stats(store: DataStore, now: datetime | None = None) -> dict[str, Any]:
    """Counts shown on the dashboard header."""
    now = now or datetime.now(timezone.utc)
    ideas = store.ideas
    completed = store.completed
    courses = store.courses

    average = round(sum(p.progress for p in ideas) / len(ideas)) if ideas else 0
    return {
        "total_projects": len(ideas) + len(completed),
        "ideas": len(ideas),
        "completed": len(completed),
        "average_progress": average,
        "overdue": sum(1 for p in ideas if _is_overdue(p, now)),
        "courses": len(courses),
        "completed_courses": sum(1 for c in courses if c.completed),
        "links": len(store.links),
    }


def cached_stats(store: DataStore, cache: ViewCache, now: datetime | None = None) -> dict[str, Any]:
    """Stats for the relational store, reusing the cached render when valid.

    The gateway invalidates the cache on every mutation. The overdue count
    depends on the date, so a render from an earlier day is recomputed. The
    local store is always computed fresh.
    """
    if store.storage_mode != "sqlite":
        return compute_stats(store, now)
    now = now or datetime.now(timezone.utc)
    today = now.date().isoformat()
    cached = cache.get()
    if cached is not None and cached.get("computed_on") == today:
        return {k: v for k, v in cached.items() if k != "computed_on"}
    stats = compute_stats(store, now)
    cache.put({**stats, "computed_on": today})
    return stats


def search(store: DataStore, term: str) -> dict[str, list[Project] | list[Course] | list[Link]]:
    """Case-insensitive match over titles, descriptions, tags, and names."""
    return {
        "ideas": [p for p in store.ideas if p.matches(term)],
        "completed": [p for p in store.completed if p.matches(term)],
        "courses": [c for c in store.courses if c.matches(term)],
        "links": [link for link in store.links if link.matches(term)],
    }
