"""Practice-key assignment for play-along mode.

Reduces a melody to four control keys so every cluster of simultaneous notes
can be triggered in order. The key for each cluster moves around the four
key alphabet by a step chosen from the interval between consecutive top
notes, so small melodic steps feel like small finger moves and leaps like
jumps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

PRACTICE_KEYS = "fghj"
START_KEY_INDEX = 2  # 'h'


@dataclass(frozen=True)
class NoteEvent:
    """A decoded note: MIDI pitch and duration in seconds."""

    pitch: int
    duration: float = 0.0


Cluster = Sequence[NoteEvent]


@dataclass
class PracticeSong:
    """A melody together with its practice keys and top pitches."""

    clusters: List[List[NoteEvent]] = field(default_factory=list)
    keys: List[str] = field(default_factory=list)
    top_pitches: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.clusters)

    def upcoming_keys(self, position: int, count: int) -> List[str]:
        """Keys of up to ``count`` clusters starting at ``position``."""
        return self.keys[position : position + count]


def top_pitch(cluster: Cluster) -> int:
    """Highest pitch sounding in a cluster."""
    return max(note.pitch for note in cluster)


def top_pitches(melody: Sequence[Cluster]) -> List[int]:
    return [top_pitch(cluster) for cluster in melody]


def key_step(diff: int) -> int:
    """Signed step through the key alphabet for a top-note interval."""
    if diff == 0:
        return 0
    if 0 < diff < 3:
        return 1
    if 2 < diff < 5:
        return 2
    if diff > 4:
        return 3
    if -3 < diff < 0:
        return -1
    if -5 < diff < -2:
        return -2
    return -3


def assign(
    melody: Sequence[Cluster],
    alphabet: str = PRACTICE_KEYS,
    start_index: int = START_KEY_INDEX,
) -> List[str]:
    """Assign one practice key per cluster.

    Args:
        melody: Ordered clusters of simultaneous notes
        alphabet: Control keys, walked cyclically
        start_index: Alphabet index of the first cluster's key

    Returns:
        One key per cluster, same order and length as ``melody``
    """
    if not melody:
        return []

    pitches = top_pitches(melody)
    index = start_index
    keys = [alphabet[index]]

    for previous, current in zip(pitches, pitches[1:]):
        index = (index + key_step(current - previous)) % len(alphabet)
        keys.append(alphabet[index])

    return keys


def build_practice_song(
    melody: Sequence[Cluster],
    alphabet: str = PRACTICE_KEYS,
    start_index: int = START_KEY_INDEX,
) -> PracticeSong:
    clusters = [list(cluster) for cluster in melody]
    return PracticeSong(
        clusters=clusters,
        keys=assign(clusters, alphabet, start_index),
        top_pitches=top_pitches(clusters),
    )


def pitches_to_melody(pitches: Sequence[int], duration: float = 0.5) -> List[List[NoteEvent]]:
    """Wrap single pitches as one-note clusters."""
    return [[NoteEvent(pitch=int(p), duration=duration)] for p in pitches]


__all__ = [
    "PRACTICE_KEYS",
    "START_KEY_INDEX",
    "NoteEvent",
    "Cluster",
    "PracticeSong",
    "top_pitch",
    "top_pitches",
    "key_step",
    "assign",
    "build_practice_song",
    "pitches_to_melody",
]
