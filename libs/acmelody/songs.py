"""Practice song discovery."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

SONG_SUFFIX = ".mid"


def list_midi_files(directory: Optional[Union[str, Path]]) -> List[Path]:
    """Sorted ``*.mid`` files directly inside ``directory``.

    A missing or unreadable directory yields an empty list.
    """
    if directory is None:
        return []
    root = Path(directory)
    if not root.is_dir():
        logger.warning(f"Song directory not found: {root}")
        return []
    return sorted(
        p for p in root.iterdir()
        if p.is_file() and p.name.endswith(SONG_SUFFIX) and len(p.name) > len(SONG_SUFFIX)
    )


def song_title(path: Union[str, Path]) -> str:
    """Display title: file name without the .mid suffix."""
    name = Path(path).name
    return name[: -len(SONG_SUFFIX)] if name.endswith(SONG_SUFFIX) else name


__all__ = ["SONG_SUFFIX", "list_midi_files", "song_title"]
