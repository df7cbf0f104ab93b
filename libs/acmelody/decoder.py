"""Standard MIDI File decoding into clusters of simultaneous notes.

All tracks are merged, then every group of note-on events sharing one tick
becomes a cluster. Each note's duration is the time in seconds until its
matching note-off (or a note-on with velocity 0), honoring tempo changes.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from pathlib import Path
from typing import Deque, Dict, Iterable, List, Tuple, Union

import mido

from acmapper.practice import NoteEvent

logger = logging.getLogger(__name__)

DEFAULT_TEMPO = 500000  # microseconds per beat (120 BPM)


class MelodyDecodeError(ValueError):
    """The file could not be read as a Standard MIDI File."""


def _is_note_on(msg: mido.Message) -> bool:
    return msg.type == "note_on" and msg.velocity > 0


def _is_note_off(msg: mido.Message) -> bool:
    return msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0)


def clusters_from_messages(
    messages: Iterable[mido.Message],
    ticks_per_beat: int,
) -> List[List[NoteEvent]]:
    """Group a merged message stream (delta times in ticks) into clusters.

    Args:
        messages: Messages of a single merged track
        ticks_per_beat: Resolution of the source file

    Returns:
        Ordered clusters; notes inside a cluster keep file order
    """
    tempo = DEFAULT_TEMPO
    tick = 0
    seconds = 0.0
    cluster_tick = -1

    # (cluster index, note index, pitch, onset seconds)
    starts: List[Tuple[int, int, int, float]] = []
    durations: Dict[Tuple[int, int], float] = {}
    open_notes: Dict[Tuple[int, int], Deque[Tuple[int, int]]] = defaultdict(deque)
    cluster_sizes: List[int] = []

    for msg in messages:
        if msg.time:
            tick += msg.time
            seconds += mido.tick2second(msg.time, ticks_per_beat, tempo)

        if msg.type == "set_tempo":
            tempo = msg.tempo
        elif _is_note_on(msg):
            if tick != cluster_tick:
                cluster_tick = tick
                cluster_sizes.append(0)
            cluster_idx = len(cluster_sizes) - 1
            note_idx = cluster_sizes[cluster_idx]
            cluster_sizes[cluster_idx] += 1
            starts.append((cluster_idx, note_idx, msg.note, seconds))
            open_notes[(msg.channel, msg.note)].append((cluster_idx, note_idx))
        elif _is_note_off(msg):
            pending = open_notes.get((msg.channel, msg.note))
            if pending:
                durations[pending.popleft()] = seconds

    clusters: List[List[NoteEvent]] = [[] for _ in cluster_sizes]
    for cluster_idx, note_idx, pitch, onset in starts:
        # Notes never released last until the end of the file
        end = durations.get((cluster_idx, note_idx), seconds)
        clusters[cluster_idx].append(NoteEvent(pitch=pitch, duration=max(0.0, end - onset)))

    return clusters


def decode_midi(source: Union[str, Path, mido.MidiFile]) -> List[List[NoteEvent]]:
    """Decode a MIDI file (path or loaded MidiFile) into clusters.

    Raises:
        MelodyDecodeError: if the file cannot be read or parsed.
    """
    if isinstance(source, mido.MidiFile):
        midi_file = source
    else:
        try:
            midi_file = mido.MidiFile(str(source))
        except (OSError, EOFError, ValueError, KeyError) as exc:
            raise MelodyDecodeError(f"Could not read MIDI file {source}: {exc}") from exc

    merged = mido.merge_tracks(midi_file.tracks)
    clusters = clusters_from_messages(merged, midi_file.ticks_per_beat)
    logger.info(f"Decoded {len(clusters)} clusters from {midi_file.filename or 'MIDI data'}")
    return clusters


__all__ = ["DEFAULT_TEMPO", "MelodyDecodeError", "clusters_from_messages", "decode_midi"]
