"""
JSON encoding helpers shared by the storage layers.

Stored JSON is treated as untrusted: decoding never raises, it falls back
to a caller-supplied default instead.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def decode_json(text: str | None, fallback: Any) -> Any:
    """Decode JSON text, returning a copy of ``fallback`` on any problem.

    Args:
        text: Raw JSON text (may be None, empty, or the literal "undefined")
        fallback: Value to return when text is absent or malformed

    Returns:
        Decoded value, or a deep copy of fallback
    """
    if text is None or text == "" or text == "undefined":
        return copy.deepcopy(fallback)
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        logger.debug("Malformed JSON, using fallback: %.80r", text)
        return copy.deepcopy(fallback)


def decode_list(text: str | None) -> list:
    """Decode JSON text that should hold a list.

    Anything that decodes to a non-list (or fails to decode) becomes [].
    """
    value = decode_json(text, [])
    return value if isinstance(value, list) else []


def encode_json(value: Any) -> str:
    """Encode a value as compact JSON text.

    Raises:
        ValueError: If value cannot be serialized
    """
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot serialize value to JSON: {e}") from e
