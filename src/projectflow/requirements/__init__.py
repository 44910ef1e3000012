"""Requirement parsing: turn a free-text plan into discrete requirement strings.

Provides a Protocol so the CLI can use either the local line splitter or a
remote parsing service configured with ``requirements.endpoint``.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.request
from typing import Protocol, runtime_checkable

from projectflow.core.config import AppSettings

logger = logging.getLogger(__name__)

_MARKER = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


@runtime_checkable
class RequirementsParser(Protocol):
    """Anything that splits plan text into requirement strings."""

    def parse(self, text: str) -> list[str]: ...


class LineRequirementsParser:
    """Local parser: one requirement per numbered/bulleted line or sentence."""

    name = "local"

    def parse(self, text: str) -> list[str]:
        lines = [line for line in text.splitlines() if line.strip()]
        if len(lines) <= 1:
            lines = _SENTENCE_END.split(text.strip())
        items = []
        for line in lines:
            item = _MARKER.sub("", line).strip()
            if item:
                items.append(item)
        return items


class HttpRequirementsParser:
    """Remote parser: POST {"sentences": text}, expect {"requirements": [...]}."""

    name = "http"

    def __init__(self, endpoint: str, timeout: int = 20):
        self.endpoint = endpoint
        self.timeout = timeout

    def parse(self, text: str) -> list[str]:
        """Ask the service to split text.

        Returns:
            Requirement strings, or [] on any error
        """
        body = json.dumps({"sentences": text}).encode("utf-8")
        try:
            req = urllib.request.Request(
                self.endpoint,
                data=body,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                data = json.loads(response.read().decode("utf-8"))
        except Exception:
            logger.warning("Requirements service at %s failed", self.endpoint, exc_info=True)
            return []

        requirements = data.get("requirements") if isinstance(data, dict) else None
        if not isinstance(requirements, list):
            logger.warning("Requirements service returned no 'requirements' list")
            return []
        return [str(item).strip() for item in requirements if str(item).strip()]


def get_parser(settings: AppSettings) -> RequirementsParser:
    """HTTP parser when an endpoint is configured, local splitter otherwise."""
    if settings.requirements_endpoint:
        return HttpRequirementsParser(settings.requirements_endpoint)
    return LineRequirementsParser()
