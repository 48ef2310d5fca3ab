"""
Save-format classification for project descriptors.

Older saves carry block scripts as XML markup; those must pass through an
external converter before the graph can be used.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Mapping


LEGACY_SCRIPT_MARKER = "<xml"

LegacyConverter = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class ProjectFormat(str, Enum):
    """Save format of a project descriptor."""
    CURRENT = "current"
    LEGACY_MARKUP = "legacy_markup"


def classify_project(raw: Mapping[str, Any]) -> ProjectFormat:
    """
    Classify a decoded project descriptor by its first object's script.

    Args:
        raw: The decoded project.json payload.

    Returns:
        LEGACY_MARKUP when the first object's script starts with the XML marker,
        CURRENT otherwise.
    """
    objects = raw.get("objects") or []
    if not isinstance(objects, list) or not objects:
        return ProjectFormat.CURRENT
    first = objects[0]
    if not isinstance(first, Mapping):
        return ProjectFormat.CURRENT
    script = first.get("script")
    if isinstance(script, str) and script.startswith(LEGACY_SCRIPT_MARKER):
        return ProjectFormat.LEGACY_MARKUP
    return ProjectFormat.CURRENT
