"""Physical keyboard layout shared by the melodic mapper and the session."""

from __future__ import annotations

from typing import Dict, Optional

# Three rows of ten keys, top row first.
KEYBOARD_LAYOUT = "qwertyuiopasdfghjkl;zxcvbnm,./"
LAYOUT_SIZE = len(KEYBOARD_LAYOUT)

LAYOUT_POSITIONS: Dict[str, int] = {char: pos for pos, char in enumerate(KEYBOARD_LAYOUT)}

# Keys that carry a chord preset in bass mode
BASS_KEYS = frozenset("abcdefghijklmnopqrstuvwxyz4567890,-.;[=")


def layout_position(key: str) -> Optional[int]:
    """Position of a physical key in the layout (0-29), or None if absent."""
    return LAYOUT_POSITIONS.get(key)


def is_layout_key(key: str) -> bool:
    return key in LAYOUT_POSITIONS


def is_bass_key(key: str) -> bool:
    return key in BASS_KEYS


__all__ = [
    "KEYBOARD_LAYOUT",
    "LAYOUT_SIZE",
    "LAYOUT_POSITIONS",
    "BASS_KEYS",
    "layout_position",
    "is_layout_key",
    "is_bass_key",
]
