"""Laptop Accordion melody input

MIDI decoding into note clusters and practice song discovery.
"""

__version__ = "0.1.0"

from .decoder import MelodyDecodeError, clusters_from_messages, decode_midi
from .songs import list_midi_files, song_title

__all__ = [
    "MelodyDecodeError",
    "clusters_from_messages",
    "decode_midi",
    "list_midi_files",
    "song_title",
]
