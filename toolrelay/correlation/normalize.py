"""Canonical text form of tool outputs."""

import json
from typing import Any

from toolrelay.errors import ProcessingError


def normalize_output(value: Any) -> str:
    """Render a tool output as text.

    dict/list -> indented JSON, str -> stripped, bool -> true/false,
    numbers -> str, anything else -> JSON with a str fallback.

    Raises:
        ProcessingError: If the result is empty
    """
    if isinstance(value, str):
        text = value.strip()
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, int | float):
        text = str(value)
    elif isinstance(value, dict | list):
        text = json.dumps(value, indent=2, ensure_ascii=False, default=str)
    else:
        text = json.dumps(value, default=str)

    if not text:
        raise ProcessingError("Tool output is empty after normalization")
    return text


def truncate_output(text: str, max_chars: int, marker: str) -> tuple[str, bool]:
    """Cut text to max_chars and append marker.

    Text at or below the limit is returned unchanged.

    Returns:
        (text, truncated)
    """
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars] + marker, True
