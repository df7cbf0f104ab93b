"""Scale/mode/key lookup: maps a physical key press to one MIDI pitch.

Each lookup builds a 30-slot pitch window around the selected key. Slot 10
holds the tonic; slots below and above walk the selected scale downward and
upward, adding or removing an octave every time the scale wraps. The selected
mode then picks one window slot per physical key.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from .layout import LAYOUT_SIZE, layout_position
from .tables import (
    KEY_NAMES,
    MELODIC_KEY_BASE,
    Mode,
    Scale,
    TableSource,
    build_key_table,
    parse_modes,
    parse_scales,
)

logger = logging.getLogger(__name__)

WINDOW_SIZE = 30
WINDOW_CENTER = 10  # slot holding the tonic

MIDI_MIN = 0
MIDI_MAX = 127


class MappingError(LookupError):
    """A lookup hit a key, selection index or mode slot outside its table."""


@dataclass(frozen=True)
class Selection:
    """Snapshot of the current scale, mode and key indices."""

    scale_index: int = 0
    mode_index: int = 0
    key_index: int = 0


def clamp_pitch(pitch: int) -> int:
    """Saturate a pitch into the MIDI range."""
    return max(MIDI_MIN, min(MIDI_MAX, pitch))


def build_window(base: int, offsets: Sequence[int]) -> List[int]:
    """Build the pitch window for relative scale positions -10 .. 19.

    Floor division and Python's modulo keep both the octave term and the
    degree index correct below the tonic, e.g. with seven degrees position -1
    is degree 6 one octave down.
    """
    size = len(offsets)
    return [
        base + 12 * (i // size) + offsets[i % size]
        for i in range(-WINDOW_CENTER, WINDOW_SIZE - WINDOW_CENTER)
    ]


class PitchMapper:
    """Maps keyboard presses to MIDI pitches for the selected scale, mode and key.

    Setters are lenient by default: they store any index and leave range
    errors to surface at lookup time as MappingError. Pass ``strict=True``
    to have setters reject out-of-range indices instead.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.initialized = False
        self._lock = threading.RLock()
        self._scales: List[Scale] = []
        self._modes: List[Mode] = []
        self._key_table: Dict[str, int] = {}
        self._selection = Selection()

    def initialize(self, scale_source: TableSource, mode_source: TableSource) -> bool:
        """Load scales and modes, build the key table and reset the selection.

        Returns False, leaving the mapper uninitialized, when any table
        comes out empty (including when a source file cannot be read).
        """
        with self._lock:
            self.initialized = False
            self._key_table = build_key_table(MELODIC_KEY_BASE)
            try:
                self._scales = parse_scales(scale_source)
                self._modes = parse_modes(mode_source)
            except OSError as exc:
                logger.error(f"Could not read mapping tables: {exc}")
                self._scales, self._modes = [], []

            if not self._scales or not self._key_table or not self._modes:
                logger.warning(
                    f"Mapper not initialized: {len(self._scales)} scales, "
                    f"{len(self._key_table)} keys, {len(self._modes)} modes"
                )
                return False

            self.initialized = True
            self._selection = Selection()
            logger.info(
                f"Loaded {len(self._scales)} scales and {len(self._modes)} modes"
            )
            return True

    # Accessors for presentation

    @property
    def scales(self) -> List[str]:
        return [scale.name for scale in self._scales]

    @property
    def modes(self) -> List[str]:
        return [mode.name for mode in self._modes]

    @property
    def keys(self) -> List[str]:
        return list(self._key_table)

    @property
    def selection(self) -> Selection:
        with self._lock:
            return self._selection

    # Mutators

    def set_scale_index(self, index: int) -> bool:
        return self._select("scale_index", index, len(self._scales))

    def set_mode_index(self, index: int) -> bool:
        return self._select("mode_index", index, len(self._modes))

    def set_key_index(self, index: int) -> bool:
        return self._select("key_index", index, len(self._key_table))

    def restore(self, selection: Selection) -> bool:
        """Reinstate a previously captured selection snapshot."""
        with self._lock:
            if not self.initialized:
                return False
            if self.strict and not self._in_range(selection):
                return False
            self._selection = selection
            return True

    def _select(self, field: str, index: int, size: int) -> bool:
        with self._lock:
            if not self.initialized:
                return False
            if self.strict and not 0 <= index < size:
                logger.debug(f"Rejected {field}={index} (table size {size})")
                return False
            self._selection = replace(self._selection, **{field: index})
            return True

    def _in_range(self, selection: Selection) -> bool:
        return (
            0 <= selection.scale_index < len(self._scales)
            and 0 <= selection.mode_index < len(self._modes)
            and 0 <= selection.key_index < len(self._key_table)
        )

    # Lookups

    def get_pitch(self, key: str) -> Optional[int]:
        """MIDI pitch for a physical key, saturated to 0-127.

        Returns None when the mapper is not initialized.
        """
        with self._lock:
            if not self.initialized:
                return None
            window = self._window()
            return clamp_pitch(window[self._slot(key)])

    def get_scale_position(self, key: str) -> Optional[int]:
        """Raw window slot (out of 30) the selected mode assigns to a key."""
        with self._lock:
            if not self.initialized:
                return None
            return self._slot(key)

    def pitch_window(self) -> List[int]:
        """Unclamped pitch window for the current selection."""
        with self._lock:
            if not self.initialized:
                return []
            return self._window()

    def validate(self) -> List[str]:
        """Describe every inconsistency in the selection and mode tables."""
        problems = []
        with self._lock:
            if not self.initialized:
                return ["mapper is not initialized"]
            sel = self._selection
            for field, size in (
                ("scale_index", len(self._scales)),
                ("mode_index", len(self._modes)),
                ("key_index", len(self._key_table)),
            ):
                value = getattr(sel, field)
                if not 0 <= value < size:
                    problems.append(f"{field} {value} out of range 0..{size - 1}")
            for mode in self._modes:
                if len(mode.slots) != LAYOUT_SIZE:
                    problems.append(
                        f"mode {mode.name!r} has {len(mode.slots)} slots, expected {LAYOUT_SIZE}"
                    )
                bad = [slot for slot in mode.slots if not 0 <= slot < WINDOW_SIZE]
                if bad:
                    problems.append(f"mode {mode.name!r} has slots outside 0..29: {bad}")
        return problems

    def _window(self) -> List[int]:
        sel = self._selection
        scale = self._lookup(self._scales, sel.scale_index, "scale")
        base = self._key_table[self._lookup(KEY_NAMES, sel.key_index, "key")]
        return build_window(base, scale.offsets)

    def _slot(self, key: str) -> int:
        position = layout_position(key)
        if position is None:
            raise MappingError(f"Key {key!r} is not on the keyboard layout")
        mode = self._lookup(self._modes, self._selection.mode_index, "mode")
        if position >= len(mode.slots):
            raise MappingError(f"Mode {mode.name!r} has no slot for key {key!r}")
        slot = mode.slots[position]
        if not 0 <= slot < WINDOW_SIZE:
            raise MappingError(f"Mode {mode.name!r} maps {key!r} to invalid slot {slot}")
        return slot

    @staticmethod
    def _lookup(table: Sequence, index: int, label: str):
        # Negative indices would silently wrap, so range-check explicitly
        if not 0 <= index < len(table):
            raise MappingError(f"{label} index {index} out of range 0..{len(table) - 1}")
        return table[index]


__all__ = [
    "WINDOW_SIZE",
    "WINDOW_CENTER",
    "MIDI_MIN",
    "MIDI_MAX",
    "MappingError",
    "Selection",
    "clamp_pitch",
    "build_window",
    "PitchMapper",
]
