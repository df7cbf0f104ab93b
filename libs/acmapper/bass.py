"""Bass mode: maps a key press to a chord relative to the selected key."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Tuple

from .mapper import MappingError, clamp_pitch
from .tables import BASS_KEY_BASE, KEY_NAMES, TableSource, build_key_table, parse_basses

logger = logging.getLogger(__name__)


class BassMapper:
    """Chord lookup keyed by input character.

    Presets are semitone offsets from the selected key's bass root (C = 48).
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.initialized = False
        self.key_index = 0
        self._lock = threading.RLock()
        self._key_table: Dict[str, int] = {}
        self._presets: Dict[str, Tuple[int, ...]] = {}

    def initialize(self, chord_source: TableSource) -> bool:
        """Load chord presets. Preset completeness is not checked."""
        with self._lock:
            self.initialized = False
            self._key_table = build_key_table(BASS_KEY_BASE)
            try:
                self._presets = parse_basses(chord_source)
            except OSError as exc:
                logger.error(f"Could not read bass presets: {exc}")
                return False

            self.initialized = True
            self.key_index = 0
            logger.info(f"Loaded {len(self._presets)} bass presets")
            return True

    @property
    def keys(self) -> List[str]:
        return list(self._key_table)

    @property
    def presets(self) -> Dict[str, Tuple[int, ...]]:
        return dict(self._presets)

    def has_preset(self, char: str) -> bool:
        return char in self._presets

    def set_key_index(self, index: int) -> bool:
        with self._lock:
            if not self.initialized:
                return False
            if self.strict and not 0 <= index < len(self._key_table):
                return False
            self.key_index = index
            return True

    def get_pitches(self, char: str) -> List[int]:
        """Chord pitches for a character, each clamped to 0-127.

        Unknown characters and an uninitialized mapper give an empty chord.
        """
        with self._lock:
            if not self.initialized:
                return []
            offsets = self._presets.get(char, ())
            if not offsets:
                return []
            if not 0 <= self.key_index < len(KEY_NAMES):
                raise MappingError(f"key index {self.key_index} out of range 0..11")
            base = self._key_table[KEY_NAMES[self.key_index]]
            return [clamp_pitch(base + offset) for offset in offsets]


__all__ = ["BassMapper"]
