"""Tone generator boundary: where note and control commands leave the instrument."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Protocol

import mido

logger = logging.getLogger(__name__)

ALL_NOTES_OFF = 123  # MIDI channel mode message


class ToneGenerator(Protocol):
    def note_on(self, channel: int, pitch: int, velocity: int) -> None: ...

    def note_off(self, channel: int, pitch: int) -> None: ...

    def control_change(self, channel: int, controller: int, value: int) -> None: ...


@dataclass(frozen=True)
class ToneCommand:
    """One outbound command. ``data`` fields follow the MIDI message layout."""

    kind: str  # note_on | note_off | control_change
    channel: int
    data1: int
    data2: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CommandRecorder:
    """Tone generator that records commands instead of sounding them."""

    def __init__(self):
        self.commands: List[ToneCommand] = []

    def note_on(self, channel: int, pitch: int, velocity: int) -> None:
        self.commands.append(ToneCommand("note_on", channel, pitch, velocity))

    def note_off(self, channel: int, pitch: int) -> None:
        self.commands.append(ToneCommand("note_off", channel, pitch))

    def control_change(self, channel: int, controller: int, value: int) -> None:
        self.commands.append(ToneCommand("control_change", channel, controller, value))

    def drain(self) -> List[ToneCommand]:
        """Return and forget everything recorded so far."""
        commands, self.commands = self.commands, []
        return commands


class MidoToneGenerator:
    """Sends commands to a mido output port (e.g. a FluidSynth virtual port)."""

    def __init__(self, port: Any):
        self.port = port

    @classmethod
    def open(cls, name: Optional[str] = None) -> "MidoToneGenerator":
        """Open a named output port, or the system default when ``name`` is None."""
        port = mido.open_output(name)
        logger.info(f"Opened MIDI output {port.name}")
        return cls(port)

    def note_on(self, channel: int, pitch: int, velocity: int) -> None:
        self.port.send(mido.Message("note_on", channel=channel, note=pitch, velocity=velocity))

    def note_off(self, channel: int, pitch: int) -> None:
        self.port.send(mido.Message("note_off", channel=channel, note=pitch))

    def control_change(self, channel: int, controller: int, value: int) -> None:
        self.port.send(
            mido.Message("control_change", channel=channel, control=controller, value=value)
        )

    def close(self) -> None:
        self.port.close()


class ToneFanout:
    """Forwards every command to several tone generators in order."""

    def __init__(self, *targets: ToneGenerator):
        self.targets = targets

    def note_on(self, channel: int, pitch: int, velocity: int) -> None:
        for target in self.targets:
            target.note_on(channel, pitch, velocity)

    def note_off(self, channel: int, pitch: int) -> None:
        for target in self.targets:
            target.note_off(channel, pitch)

    def control_change(self, channel: int, controller: int, value: int) -> None:
        for target in self.targets:
            target.control_change(channel, controller, value)


def all_notes_off(tone: ToneGenerator, channel: int) -> None:
    tone.control_change(channel, ALL_NOTES_OFF, 0)


__all__ = [
    "ALL_NOTES_OFF",
    "ToneGenerator",
    "ToneCommand",
    "CommandRecorder",
    "MidoToneGenerator",
    "ToneFanout",
    "all_notes_off",
]
