"""Tests for Instrument Pod."""

import sys
from pathlib import Path

import mido
import pytest
from fastapi.testclient import TestClient

# Add pod and project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "pods/instrument"))

from accore.config import get_settings  # noqa: E402
from pods.instrument.main import app, reset_session  # noqa: E402


@pytest.fixture
def client(monkeypatch):
    """FastAPI test client with a fresh session and default settings."""
    for name in ("AC_DATA_DIR", "AC_SONGS_DIR", "AC_STRICT_SELECTION", "AC_CHANNEL", "AC_VELOCITY"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    reset_session()
    yield TestClient(app)
    reset_session()
    get_settings.cache_clear()


@pytest.fixture
def reference_melody():
    return {"clusters": [[{"pitch": p, "duration": 0.5}] for p in (60, 62, 67, 60)]}


class TestInstrumentPod:
    """Pod-level API tests."""

    def test_health(self, client):
        response = client.post("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "instrument"

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "instrument"
        assert "endpoints" in data

    def test_tables(self, client):
        response = client.get("/tables")
        assert response.status_code == 200
        data = response.json()
        assert data["scales"][0] == "Major"
        assert "Harmonic Minor" in data["scales"]
        assert len(data["keys"]) == 12
        assert data["bass_presets"]["s"] == [0, 4, 7]
        assert data["selection"]["scale"] == "Major"
        assert data["selection"]["problems"] == []

    def test_pitch(self, client):
        response = client.post("/pitch", json={"key": "a"})
        assert response.status_code == 200
        assert response.json() == {"key": "a", "pitch": 60, "position": 10}

    def test_selection_transposes_both_mappers(self, client):
        response = client.post("/selection", json={"key_index": 2})
        assert response.status_code == 200
        assert response.json()["key"] == "D"

        assert client.post("/pitch", json={"key": "a"}).json()["pitch"] == 62
        assert client.post("/bass", json={"key": "s"}).json()["pitches"] == [50, 54, 57]

    def test_lenient_out_of_range_selection(self, client):
        response = client.post("/selection", json={"scale_index": 99})
        assert response.status_code == 200
        data = response.json()
        assert data["scale"] is None
        assert data["problems"]

        response = client.post("/pitch", json={"key": "a"})
        assert response.status_code == 400

    def test_strict_selection(self, client, monkeypatch):
        monkeypatch.setenv("AC_STRICT_SELECTION", "true")
        get_settings.cache_clear()
        reset_session()
        response = client.post("/selection", json={"scale_index": 99})
        assert response.status_code == 400

    def test_rejected_selection_changes_nothing(self, client, monkeypatch):
        monkeypatch.setenv("AC_STRICT_SELECTION", "true")
        get_settings.cache_clear()
        reset_session()
        response = client.post("/selection", json={"scale_index": 2, "key_index": 99})
        assert response.status_code == 400

        selection = client.get("/tables").json()["selection"]
        assert selection["scale_index"] == 0
        assert selection["scale"] == "Major"
        assert selection["key_index"] == 0

    def test_key_must_be_single_char(self, client):
        assert client.post("/pitch", json={"key": "ab"}).status_code == 422

    def test_key_off_layout(self, client):
        assert client.post("/pitch", json={"key": "1"}).status_code == 400

    def test_unknown_bass_key(self, client):
        response = client.post("/bass", json={"key": "/"})
        assert response.status_code == 200
        assert response.json()["pitches"] == []

    def test_practice_assign(self, client, reference_melody):
        response = client.post("/practice/assign", json=reference_melody)
        assert response.status_code == 200
        data = response.json()
        assert data["keys"] == ["h", "j", "h", "j"]
        assert data["top_pitches"] == [60, 62, 67, 60]

    def test_practice_assign_empty(self, client):
        response = client.post("/practice/assign", json={"clusters": []})
        assert response.status_code == 200
        assert response.json()["keys"] == []

    def test_practice_assign_rejects_empty_cluster(self, client):
        response = client.post("/practice/assign", json={"clusters": [[]]})
        assert response.status_code == 422

    def test_missing_tables(self, client, monkeypatch, tmp_path):
        monkeypatch.setenv("AC_DATA_DIR", str(tmp_path / "nowhere"))
        get_settings.cache_clear()
        reset_session()
        assert client.get("/tables").status_code == 503


class TestKeyEvents:
    def test_press_release(self, client):
        response = client.post("/keys/press", json={"key": "a"})
        assert response.status_code == 200
        data = response.json()
        assert data["commands"] == [{"kind": "note_on", "channel": 1, "data1": 60, "data2": 127}]
        assert data["state"]["playing"] == [60]

        data = client.post("/keys/release", json={"key": "a"}).json()
        assert data["commands"] == [{"kind": "note_off", "channel": 1, "data1": 60, "data2": 0}]
        assert data["state"]["playing"] == []

    def test_control_key(self, client):
        data = client.post("/keys/press", json={"key": "1"}).json()
        assert data["commands"] == []
        assert data["state"]["bass_mode"] is True

    def test_practice_round_trip(self, client, reference_melody):
        response = client.post("/practice/start", json=reference_melody)
        assert response.status_code == 200
        assert response.json()["state"]["song_length"] == 4

        data = client.post("/keys/press", json={"key": "f", "time_ms": 0}).json()
        assert [c["data1"] for c in data["commands"]] == [60]
        assert data["state"]["song_position"] == 1

        data = client.post("/practice/stop").json()
        assert data["commands"] == [{"kind": "control_change", "channel": 1, "data1": 123, "data2": 0}]
        assert data["state"]["practice"] is False

    def test_practice_without_songs(self, client):
        assert client.post("/practice/start", json={}).status_code == 400

    def test_session_state(self, client):
        data = client.get("/session").json()
        assert data["practice"] is False
        assert data["scale_index"] == 0


class TestSongs:
    def test_songs_from_directory(self, client, monkeypatch, tmp_path):
        midi = mido.MidiFile(type=0)
        midi.tracks.append(mido.MidiTrack([
            mido.Message("note_on", note=64, velocity=90, time=0),
            mido.Message("note_off", note=64, velocity=0, time=480),
        ]))
        midi.save(str(tmp_path / "scale.mid"))
        monkeypatch.setenv("AC_SONGS_DIR", str(tmp_path))
        get_settings.cache_clear()
        reset_session()

        data = client.get("/songs").json()
        assert data == {"songs": ["scale"], "selected": "scale"}

        response = client.post("/practice/start", json={})
        assert response.status_code == 200
        assert response.json()["state"]["song"] == "scale"
