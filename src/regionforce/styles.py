"""Status and group style tables.

The core only hands out style *keys*; colours are looked up by renderers.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "default"

STATUS_COLORS: dict[str, str] = {
    "Friend": "#00a46d",
    "Cordial": "#90f8d5",
    "Best Friend": "#006241",
    "Companion": "#006241",
    "Rival": "#b55e16",
    "Dislike": "#b55e16",
    "Enemy": "#821818",
    "Hate": "#821818",
    "Family": "#3b82f6",
    "LoveInterest": "#ff7af6",
    "Familiar": "#6b7280",
    DEFAULT_STYLE: "#9ca3af",
}

GROUP_COLORS: dict[str, str] = {
    "Slytherin": "#1a5f3b",
    "Ravenclaw": "#1e3a8a",
    "Gryffindor": "#991b1b",
    "Hufflepuff": "#ca8a04",
    "Hogwarts Staff": "#6b7280",
    "Student": "#4b5563",
    "Other Hogwarts": "#9ca3af",
    "Outside of Hogwarts": "#4b5563",
    "Non-Academic Residents": "#8b5cf6",
}

_MUTUAL_PLURALS: dict[str, str] = {
    "Friend": "Friends",
    "Rival": "Rivals",
    "Enemy": "Enemies",
    "Colleague": "Colleagues",
    "Family": "Family Members",
}

def style_key(status: str | None) -> str:
    """Style key for a relationship status; unrecognised statuses get the default."""
    if status in STATUS_COLORS:
        return status
    logger.debug("no style for status %r, using %r", status, DEFAULT_STYLE)
    return DEFAULT_STYLE


def status_color(key: str) -> str:
    return STATUS_COLORS.get(key, STATUS_COLORS[DEFAULT_STYLE])


def group_color(group: str) -> str:
    return GROUP_COLORS.get(group, GROUP_COLORS["Other Hogwarts"])


def mutual_label(status: str) -> str:
    """Edge label for a mutual relationship: ``Friend`` → ``Friends``."""
    return _MUTUAL_PLURALS.get(status, status + "s")
