"""Configuration tables for the pitch and bass mappers.

Tables are plain text, one record per line, whitespace separated:

    scales.txt   <name> <offset> <offset> ...
    modes.txt    <name> <index_1> ... <index_30>
    basses.txt   <char> <offset> <offset> ...

Parsing is lenient: a line stops contributing integers at its first
non-integer token and never raises. Blank lines are skipped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from .layout import LAYOUT_SIZE

logger = logging.getLogger(__name__)

KEY_NAMES: Tuple[str, ...] = ("C", "C#", "D", "Eb", "E", "F", "F#", "G", "Ab", "A", "Bb", "B")

# Octave anchors: melodic keys start at middle C, bass keys an octave lower
MELODIC_KEY_BASE = 60
BASS_KEY_BASE = 48

INT_PREFIX = re.compile(r"[+-]?[0-9]+")

TableSource = Union[str, Path, Iterable[str]]


@dataclass(frozen=True)
class Scale:
    """Named scale: semitone offsets of each degree relative to the tonic."""

    name: str
    offsets: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.offsets)


@dataclass(frozen=True)
class Mode:
    """Named keyboard mode: one pitch-window slot per layout position."""

    name: str
    slots: Tuple[int, ...]


def build_key_table(anchor: int) -> Dict[str, int]:
    """Map each of the 12 key names to its MIDI base pitch."""
    return {name: index + anchor for index, name in enumerate(KEY_NAMES)}


def display_name(raw: str) -> str:
    """Treat names like Harmonic_Minor as Harmonic Minor."""
    return raw.replace("_", " ")


def read_lines(source: TableSource) -> List[str]:
    """Return the lines of a table given a path or an iterable of lines."""
    if isinstance(source, (str, Path)):
        return Path(source).read_text(encoding="utf-8").splitlines()
    return list(source)


def parse_ints(tokens: Iterable[str]) -> List[int]:
    """Consume integer tokens until the first one that does not parse.

    A token with trailing garbage contributes its leading integer and ends
    the line, so "5x 7" gives [5].
    """
    values = []
    for token in tokens:
        match = INT_PREFIX.match(token)
        if match is None:
            break
        values.append(int(match.group()))
        if match.end() != len(token):
            break
    return values


def parse_records(lines: Iterable[str]) -> Iterator[Tuple[str, List[int]]]:
    """Yield (first token, integers) for every non-blank line."""
    for line in lines:
        tokens = line.split()
        if not tokens:
            continue
        yield tokens[0], parse_ints(tokens[1:])


def parse_scales(source: TableSource) -> List[Scale]:
    scales = []
    for name, offsets in parse_records(read_lines(source)):
        if not offsets:
            logger.warning(f"Skipping scale {name!r}: no offsets")
            continue
        scales.append(Scale(name=display_name(name), offsets=tuple(offsets)))
    return scales


def parse_modes(source: TableSource) -> List[Mode]:
    modes = []
    for name, slots in parse_records(read_lines(source)):
        if len(slots) != LAYOUT_SIZE:
            logger.warning(
                f"Mode {name!r} has {len(slots)} slots, expected {LAYOUT_SIZE}"
            )
        modes.append(Mode(name=display_name(name), slots=tuple(slots)))
    return modes


def parse_basses(source: TableSource) -> Dict[str, Tuple[int, ...]]:
    """Parse chord presets keyed by the first character of each record."""
    presets: Dict[str, Tuple[int, ...]] = {}
    for token, offsets in parse_records(read_lines(source)):
        presets[token[0]] = tuple(offsets)
    return presets


def default_table(name: str) -> List[str]:
    """Lines of one of the tables bundled with the package."""
    return resources.files("acmapper").joinpath("data").joinpath(name).read_text(encoding="utf-8").splitlines()


__all__ = [
    "KEY_NAMES",
    "MELODIC_KEY_BASE",
    "BASS_KEY_BASE",
    "Scale",
    "Mode",
    "TableSource",
    "build_key_table",
    "display_name",
    "read_lines",
    "parse_ints",
    "parse_records",
    "parse_scales",
    "parse_modes",
    "parse_basses",
    "default_table",
]
