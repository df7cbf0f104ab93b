"""Laptop Accordion pitch mapping

Scale/mode/key pitch lookup, bass chord lookup and practice-key assignment.
"""

__version__ = "0.1.0"

from .layout import KEYBOARD_LAYOUT, layout_position, is_layout_key, is_bass_key
from .tables import (
    KEY_NAMES,
    Scale,
    Mode,
    parse_scales,
    parse_modes,
    parse_basses,
    default_table,
)
from .mapper import (
    MappingError,
    Selection,
    PitchMapper,
    build_window,
    clamp_pitch,
)
from .bass import BassMapper
from .practice import (
    PRACTICE_KEYS,
    NoteEvent,
    PracticeSong,
    assign,
    build_practice_song,
    key_step,
    top_pitch,
    pitches_to_melody,
)

__all__ = [
    # Layout
    "KEYBOARD_LAYOUT",
    "layout_position",
    "is_layout_key",
    "is_bass_key",
    # Tables
    "KEY_NAMES",
    "Scale",
    "Mode",
    "parse_scales",
    "parse_modes",
    "parse_basses",
    "default_table",
    # Mappers
    "MappingError",
    "Selection",
    "PitchMapper",
    "BassMapper",
    "build_window",
    "clamp_pitch",
    # Practice mode
    "PRACTICE_KEYS",
    "NoteEvent",
    "PracticeSong",
    "assign",
    "build_practice_song",
    "key_step",
    "top_pitch",
    "pitches_to_melody",
]
