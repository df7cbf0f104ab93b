"""Instrument pod configuration and initialization."""

import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Configuration for instrument pod."""

    # Service
    SERVICE_NAME = "instrument"
    SERVICE_VERSION = "0.1.0"
    SERVICE_PORT = int(os.getenv("INSTRUMENT_PORT", 8010))
    ENV = os.getenv("ENV", "dev")

    # Optional MIDI output port; commands are only returned over HTTP when unset
    MIDI_OUTPUT = os.getenv("INSTRUMENT_MIDI_OUTPUT") or None


__all__ = ["Config"]
