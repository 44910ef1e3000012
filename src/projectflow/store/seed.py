"""Starter records shown by the local store until the user saves anything."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any


def _in_days(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def seed_collections() -> dict[str, list[dict[str, Any]]]:
    """Fresh copies of the starter collections, keyed by collection name."""
    return {
        "ideas": [
            {
                "id": "idea-1",
                "title": "AI-Powered Project Manager",
                "description": "An intelligent assistant to automate task assignments and progress tracking.",
                "requirements": "1. User Authentication\n2. AI Model Integration\n3. Real-time notifications",
                "links": [{"title": "OpenAI API", "url": "https://openai.com"}],
                "progress": 25,
                "tags": ["AI", "Productivity"],
                "notes": [],
                "dueDate": _in_days(7),
            },
            {
                "id": "idea-2",
                "title": "Gamified Fitness App",
                "description": "A mobile app that turns workouts into quests and challenges.",
                "requirements": "1. Gamification elements\n2. Workout tracking\n3. Social features",
                "links": [],
                "progress": 50,
                "tags": ["Fitness", "Mobile"],
                "notes": [],
                "dueDate": _in_days(-2),
            },
        ],
        "completed": [
            {
                "id": "completed-1",
                "title": "Personal Portfolio Website",
                "description": "A responsive website to showcase my work and skills.",
                "requirements": "1. About Me section\n2. Project gallery\n3. Contact form",
                "links": [],
                "progress": 100,
                "tags": ["Web", "Portfolio"],
                "notes": [],
            },
        ],
        "courses": [
            {
                "id": "course-1",
                "name": "Python for Data Analysis",
                "completed": False,
                "links": [],
                "notes": [],
                "reason": "Sharpen pandas skills",
            },
        ],
        "links": [
            {
                "id": "link-1",
                "title": "Python Docs",
                "url": "https://docs.python.org/3/",
                "description": "The official Python documentation.",
            },
        ],
    }
