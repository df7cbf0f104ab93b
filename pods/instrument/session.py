"""Keyboard session: turns key presses and releases into tone commands.

Handles three ways of playing:
- normal play, where each layout key sounds the pitch of the selected
  scale, mode and key;
- bass mode, where keys sound chord presets;
- practice mode, where any layout key sounds the next cluster of a song
  (hard mode only accepts the highlighted practice key).

Control keys:
    1  toggle bass mode           0  toggle hard mode
    =  start/stop practice        -  select next song
    ]  next key    [  next scale  '  next mode
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

from acmapper import (
    BassMapper,
    NoteEvent,
    PitchMapper,
    PracticeSong,
    build_practice_song,
    is_bass_key,
    is_layout_key,
)
from acmelody import MelodyDecodeError, decode_midi, song_title

from tone import ToneGenerator, all_notes_off

logger = logging.getLogger(__name__)

PREVIEW_COUNT = 6


class InstrumentSession:
    """Mutable performance state around a pitch mapper and a bass mapper."""

    def __init__(
        self,
        mapper: PitchMapper,
        bass_mapper: BassMapper,
        tone: ToneGenerator,
        channel: int = 1,
        velocity: int = 127,
        debounce_ms: float = 35,
        song_files: Optional[Sequence[Path]] = None,
    ):
        self.mapper = mapper
        self.bass_mapper = bass_mapper
        self.tone = tone
        self.channel = channel
        self.velocity = velocity
        self.debounce_ms = debounce_ms
        self.song_files: List[Path] = list(song_files or [])
        self.song_index = 0

        self.bass_mode = False
        self.practice = False
        self.hard_mode = False
        # Bellows state; hard mode stays silent while closed
        self.sounding = True

        self.song = PracticeSong()
        self.song_position = 0
        self.highlight: Optional[str] = None
        self.previews: List[str] = []

        self.playing: Set[int] = set()
        self.pressed: Set[str] = set()
        self._held: Dict[str, List[int]] = {}
        self._key_positions: Dict[str, int] = {}
        self._last_press_ms = float("-inf")
        self._lock = threading.RLock()

    # Key events

    def press(self, key: str, now_ms: Optional[float] = None) -> None:
        now_ms = time.monotonic() * 1000 if now_ms is None else now_ms
        with self._lock:
            if not self.bass_mode and is_layout_key(key):
                if self.practice:
                    self._practice_press(key, now_ms)
                else:
                    self._melodic_press(key)
            elif self.bass_mode and is_bass_key(key):
                self._bass_press(key)
            self._control(key)

    def release(self, key: str) -> None:
        with self._lock:
            # Notes keep sounding across mode switches until their own key is released
            if key in self._held:
                self._release_held(key)
                return
            if not self.bass_mode and is_layout_key(key):
                if self.practice:
                    self._practice_release(key)
                else:
                    self._release_held(key)
            elif self.bass_mode and is_bass_key(key):
                self._release_held(key)

    def _melodic_press(self, key: str) -> None:
        pitch = self.mapper.get_pitch(key)
        if pitch is None or pitch in self.playing:
            return
        self.tone.note_on(self.channel, pitch, self.velocity)
        self.playing.add(pitch)
        self.pressed.add(key)
        self._held[key] = [pitch]

    def _bass_press(self, key: str) -> None:
        sounded = []
        for pitch in self.bass_mapper.get_pitches(key):
            if pitch in self.playing:
                continue
            self.tone.note_on(self.channel, pitch, self.velocity)
            self.playing.add(pitch)
            sounded.append(pitch)
        if sounded:
            self.pressed.add(key)
            self._held.setdefault(key, []).extend(sounded)

    def _release_held(self, key: str) -> None:
        for pitch in self._held.pop(key, []):
            if pitch not in self.playing:
                continue
            self.tone.note_off(self.channel, pitch)
            self.playing.discard(pitch)
        self.pressed.discard(key)

    def _practice_press(self, key: str, now_ms: float) -> None:
        # One trigger per physical press, even for ignored keys
        if key in self.pressed:
            return
        self.pressed.add(key)

        if self.hard_mode and not self.sounding:
            return
        if key in self._key_positions:
            return
        if now_ms - self._last_press_ms < self.debounce_ms:
            return  # likely an accidental key mash
        if self.hard_mode and key != self.highlight:
            return
        if self.song_position >= len(self.song):
            return

        self._key_positions[key] = self.song_position
        for note in self.song.clusters[self.song_position]:
            self.tone.note_on(self.channel, note.pitch, self.velocity)

        if self.hard_mode:
            self._update_highlights(self.song_position + 1)
        self._last_press_ms = now_ms
        self.song_position += 1

    def _practice_release(self, key: str) -> None:
        if key not in self._key_positions:
            self.pressed.discard(key)
            return

        for note in self.song.clusters[self._key_positions.pop(key)]:
            self.tone.note_off(self.channel, note.pitch)
        self.pressed.discard(key)

        if self.song_position >= len(self.song):
            logger.info("Practice song finished", extra={"position": self.song_position})
            self.stop_practice()

    # Control keys

    def _control(self, key: str) -> None:
        if key == "1" and not self.practice:
            self.bass_mode = not self.bass_mode
            logger.info(f"Bass mode {'enabled' if self.bass_mode else 'disabled'}")

        if key == "0" and not self.practice and not self.bass_mode:
            self.hard_mode = not self.hard_mode

        if key == "=" and not self.bass_mode:
            if self.practice:
                self.stop_practice()
            else:
                self.start_practice()

        if key == "]":
            self.next_key()
        if key == "[":
            self.next_scale()
        if key == "'":
            self.next_mode()

        if key == "-" and not self.practice and not self.bass_mode:
            self.next_song()

    def next_key(self) -> None:
        keys = self.mapper.keys
        if not keys:
            return
        index = (self.mapper.selection.key_index + 1) % len(keys)
        self.mapper.set_key_index(index)
        self.bass_mapper.set_key_index(index)

    def next_scale(self) -> None:
        scales = self.mapper.scales
        if scales:
            self.mapper.set_scale_index((self.mapper.selection.scale_index + 1) % len(scales))

    def next_mode(self) -> None:
        modes = self.mapper.modes
        if modes:
            self.mapper.set_mode_index((self.mapper.selection.mode_index + 1) % len(modes))

    def next_song(self) -> None:
        if self.song_files:
            self.song_index = (self.song_index + 1) % len(self.song_files)

    # Practice lifecycle

    @property
    def selected_song(self) -> Optional[Path]:
        if not self.song_files:
            return None
        return self.song_files[self.song_index]

    def start_practice(self, melody: Optional[Sequence[Sequence[NoteEvent]]] = None) -> bool:
        """Enter practice mode with ``melody`` or the selected song file.

        Returns False, staying out of practice mode, when there is no song or
        the song decodes to nothing.
        """
        with self._lock:
            title = None
            if melody is None:
                path = self.selected_song
                if path is None:
                    logger.warning("No practice songs loaded")
                    return False
                try:
                    melody = decode_midi(path)
                except MelodyDecodeError as exc:
                    logger.error(f"Could not load practice song: {exc}", extra={"song": song_title(path)})
                    return False
                title = song_title(path)

            song = build_practice_song(melody)
            if not len(song):
                logger.warning("Practice song has no notes")
                return False

            self._silence()
            self.song = song
            self.song_position = 0
            self._key_positions.clear()
            self.practice = True
            if self.hard_mode:
                self._update_highlights(0)
            logger.info(f"Practice started with {len(song)} clusters", extra={"song": title})
            return True

    def stop_practice(self) -> None:
        with self._lock:
            self.practice = False
            all_notes_off(self.tone, self.channel)
            self.playing.clear()
            self._held.clear()
            self.pressed.clear()
            self._key_positions.clear()
            self.previews = []
            self.highlight = None

    def _silence(self) -> None:
        # Keys still physically down stay in `pressed` so they cannot retrigger
        if self.playing:
            all_notes_off(self.tone, self.channel)
        self.playing.clear()
        self._held.clear()

    def _update_highlights(self, position: int) -> None:
        upcoming = self.song.upcoming_keys(position, PREVIEW_COUNT + 1)
        # Past the last cluster the highlight keeps its previous key
        if upcoming:
            self.highlight = upcoming[0]
        self.previews = upcoming[1:]

    def state(self) -> Dict[str, Any]:
        """Snapshot for presentation."""
        with self._lock:
            selection = self.mapper.selection
            song = self.selected_song
            return {
                "bass_mode": self.bass_mode,
                "practice": self.practice,
                "hard_mode": self.hard_mode,
                "sounding": self.sounding,
                "scale_index": selection.scale_index,
                "mode_index": selection.mode_index,
                "key_index": selection.key_index,
                "song": song_title(song) if song else None,
                "song_position": self.song_position,
                "song_length": len(self.song),
                "highlight": self.highlight,
                "previews": list(self.previews),
                "playing": sorted(self.playing),
            }


__all__ = ["PREVIEW_COUNT", "InstrumentSession"]
