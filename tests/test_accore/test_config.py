"""Tests for settings and logging setup."""

import json
import logging
from pathlib import Path

import pytest

from accore.config import get_settings
from accore.logging import JsonFormatter, setup_logging

ENV_VARS = [
    "AC_DATA_DIR",
    "AC_SONGS_DIR",
    "AC_CHANNEL",
    "AC_VELOCITY",
    "AC_DEBOUNCE_MS",
    "AC_STRICT_SELECTION",
    "AC_OTEL_ENDPOINT",
    "AC_LOG_LEVEL",
    "AC_ENV",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults(self):
        s = get_settings()
        assert s.AC_DATA_DIR is None
        assert s.AC_CHANNEL == 1
        assert s.AC_VELOCITY == 127
        assert s.AC_DEBOUNCE_MS == 35
        assert s.AC_STRICT_SELECTION is False
        assert s.table_path("scales.txt") is None

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AC_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("AC_CHANNEL", "3")
        monkeypatch.setenv("AC_STRICT_SELECTION", "true")
        s = get_settings()
        assert s.AC_CHANNEL == 3
        assert s.AC_STRICT_SELECTION is True
        assert s.table_path("modes.txt") == Path(tmp_path) / "modes.txt"

    def test_memoized(self):
        assert get_settings() is get_settings()

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv("AC_VELOCITY", "300")
        with pytest.raises(ValueError, match="AC_VELOCITY"):
            get_settings()


class TestLogging:
    def test_json_formatter(self):
        record = logging.LogRecord("acmapper.mapper", logging.INFO, __file__, 1, "loaded %d", (3,), None)
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "INFO"
        assert payload["name"] == "acmapper.mapper"
        assert payload["message"] == "loaded 3"
        assert "service" not in payload

    def test_context_fields(self):
        record = logging.LogRecord("session", logging.INFO, __file__, 1, "note", (), None)
        record.key = "a"
        record.pitch = 60
        payload = json.loads(JsonFormatter(service="instrument").format(record))
        assert payload["service"] == "instrument"
        assert payload["key"] == "a"
        assert payload["pitch"] == 60
        assert "song" not in payload

    def test_setup_logging_level(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("warning")
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
