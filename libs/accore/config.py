"""Configuration loading for the Laptop Accordion instrument.

Reads environment variables into a typed settings object using Pydantic v2.

Env variables (see .env.example):
- AC_DATA_DIR (optional: directory with scales.txt, modes.txt, basses.txt)
- AC_SONGS_DIR (optional: directory searched for *.mid practice songs)
- AC_CHANNEL (default: 1)
- AC_VELOCITY (default: 127)
- AC_DEBOUNCE_MS (default: 35)
- AC_STRICT_SELECTION (default: false)
- AC_OTEL_ENDPOINT (optional)
- AC_LOG_LEVEL (default: INFO)
- AC_ENV (default: development)
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError


class Settings(BaseModel):
    AC_DATA_DIR: Optional[Path] = Field(
        default=None, description="Directory holding the mapping tables"
    )
    AC_SONGS_DIR: Optional[Path] = Field(
        default=None, description="Directory searched for practice MIDI files"
    )
    AC_CHANNEL: int = Field(default=1, ge=0, le=15, description="MIDI output channel")
    AC_VELOCITY: int = Field(default=127, ge=0, le=127, description="Note-on velocity")
    AC_DEBOUNCE_MS: int = Field(
        default=35, ge=0, description="Minimum gap between accepted practice presses"
    )
    AC_STRICT_SELECTION: bool = Field(
        default=False, description="Reject out-of-range selection indices"
    )

    AC_OTEL_ENDPOINT: Optional[str] = Field(
        default=None, description="OTLP HTTP endpoint (e.g., http://localhost:4318)"
    )
    AC_LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    AC_ENV: str = Field(default="development", description="Environment name")

    model_config = {"extra": "ignore"}

    def table_path(self, name: str) -> Optional[Path]:
        """Return the path of a table file inside AC_DATA_DIR, if configured."""
        if self.AC_DATA_DIR is None:
            return None
        return self.AC_DATA_DIR / name


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment and memoize.

    Raises:
        ValueError: if an environment variable holds an invalid value.
    """

    env = {
        "AC_DATA_DIR": os.getenv("AC_DATA_DIR") or None,
        "AC_SONGS_DIR": os.getenv("AC_SONGS_DIR") or None,
        "AC_CHANNEL": os.getenv("AC_CHANNEL", "1"),
        "AC_VELOCITY": os.getenv("AC_VELOCITY", "127"),
        "AC_DEBOUNCE_MS": os.getenv("AC_DEBOUNCE_MS", "35"),
        "AC_STRICT_SELECTION": os.getenv("AC_STRICT_SELECTION", "false"),
        "AC_OTEL_ENDPOINT": os.getenv("AC_OTEL_ENDPOINT"),
        "AC_LOG_LEVEL": os.getenv("AC_LOG_LEVEL", "INFO"),
        "AC_ENV": os.getenv("AC_ENV", "development"),
    }

    try:
        return Settings.model_validate(env)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors()})
        raise ValueError(
            f"Invalid environment variables: {', '.join(fields)}"
        ) from exc


__all__ = ["Settings", "get_settings"]
