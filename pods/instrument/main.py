"""Instrument Pod: FastAPI service around the Laptop Accordion mapping engine.

Exposes the mapping tables and selection, single lookups, practice-key
assignment and a keyboard session that answers each key event with the tone
commands it produced.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator

from accore.config import get_settings
from accore.logging import setup_logging, setup_tracing
from acmapper import (
    BassMapper,
    MappingError,
    NoteEvent,
    PitchMapper,
    build_practice_song,
    default_table,
)
from acmelody import list_midi_files, song_title

from config import Config
from session import InstrumentSession
from tone import CommandRecorder, MidoToneGenerator, ToneFanout

logger = logging.getLogger(__name__)

SERVICE_NAME = Config.SERVICE_NAME
SERVICE_VERSION = Config.SERVICE_VERSION


# ============================================================================
# Request/Response Models
# ============================================================================

class NoteModel(BaseModel):
    """Single note of a melody cluster."""

    pitch: int = Field(..., ge=0, le=127)
    duration: float = Field(default=0.0, ge=0.0)


class ToneCommandModel(BaseModel):
    kind: str
    channel: int
    data1: int
    data2: int = 0


class SelectionRequest(BaseModel):
    """Any subset of the three selection indices."""

    scale_index: Optional[int] = None
    mode_index: Optional[int] = None
    key_index: Optional[int] = None


class SelectionResponse(BaseModel):
    scale_index: int
    mode_index: int
    key_index: int
    scale: Optional[str] = None
    mode: Optional[str] = None
    key: Optional[str] = None
    problems: List[str] = Field(default_factory=list)


class TablesResponse(BaseModel):
    scales: List[str]
    modes: List[str]
    keys: List[str]
    bass_presets: Dict[str, List[int]]
    selection: SelectionResponse


class KeyRequest(BaseModel):
    key: str = Field(..., min_length=1, max_length=1, description="Single key character")


class KeyEventRequest(KeyRequest):
    time_ms: Optional[float] = Field(
        default=None, description="Event time in milliseconds (defaults to server clock)"
    )


class PitchResponse(BaseModel):
    key: str
    pitch: int
    position: int


class BassResponse(BaseModel):
    key: str
    pitches: List[int]


class MelodyRequest(BaseModel):
    """Decoded melody: ordered clusters of simultaneous notes."""

    clusters: List[List[NoteModel]] = Field(default_factory=list)

    @field_validator("clusters")
    @classmethod
    def validate_clusters(cls, value: List[List[NoteModel]]) -> List[List[NoteModel]]:
        if any(not cluster for cluster in value):
            raise ValueError("clusters must not be empty")
        return value

    def to_melody(self) -> List[List[NoteEvent]]:
        return [
            [NoteEvent(pitch=note.pitch, duration=note.duration) for note in cluster]
            for cluster in self.clusters
        ]


class PracticeStartRequest(BaseModel):
    clusters: Optional[List[List[NoteModel]]] = Field(
        default=None, description="Melody to practice; the selected song file when omitted"
    )


class AssignResponse(BaseModel):
    keys: List[str]
    top_pitches: List[int]


class KeyEventResponse(BaseModel):
    commands: List[ToneCommandModel]
    state: Dict[str, Any]


class SongsResponse(BaseModel):
    songs: List[str]
    selected: Optional[str] = None


# ============================================================================
# Session
# ============================================================================

_session: Optional[InstrumentSession] = None
_recorder: Optional[CommandRecorder] = None


def build_session() -> InstrumentSession:
    """Load the mapping tables named by settings and wire a session."""
    global _recorder

    settings = get_settings()
    scale_source = settings.table_path("scales.txt") or default_table("scales.txt")
    mode_source = settings.table_path("modes.txt") or default_table("modes.txt")
    bass_source = settings.table_path("basses.txt") or default_table("basses.txt")

    mapper = PitchMapper(strict=settings.AC_STRICT_SELECTION)
    if not mapper.initialize(scale_source, mode_source):
        raise RuntimeError("Scale and mode tables could not be loaded")
    bass_mapper = BassMapper(strict=settings.AC_STRICT_SELECTION)
    if not bass_mapper.initialize(bass_source):
        raise RuntimeError("Bass presets could not be loaded")

    _recorder = CommandRecorder()
    tone = _recorder
    if Config.MIDI_OUTPUT:
        tone = ToneFanout(_recorder, MidoToneGenerator.open(Config.MIDI_OUTPUT))

    return InstrumentSession(
        mapper,
        bass_mapper,
        tone,
        channel=settings.AC_CHANNEL,
        velocity=settings.AC_VELOCITY,
        debounce_ms=settings.AC_DEBOUNCE_MS,
        song_files=list_midi_files(settings.AC_SONGS_DIR),
    )


def get_session() -> InstrumentSession:
    global _session
    if _session is None:
        try:
            _session = build_session()
        except (RuntimeError, ValueError) as exc:
            logger.error(f"Instrument unavailable: {exc}")
            raise HTTPException(status_code=503, detail=str(exc)) from exc
    return _session


def reset_session() -> None:
    """Drop the current session so the next request reloads configuration."""
    global _session, _recorder
    _session = None
    _recorder = None


def drain_commands() -> List[ToneCommandModel]:
    if _recorder is None:
        return []
    return [ToneCommandModel(**command.to_dict()) for command in _recorder.drain()]


def selection_payload(session: InstrumentSession) -> SelectionResponse:
    mapper = session.mapper
    sel = mapper.selection

    def name(names: List[str], index: int) -> Optional[str]:
        return names[index] if 0 <= index < len(names) else None

    return SelectionResponse(
        scale_index=sel.scale_index,
        mode_index=sel.mode_index,
        key_index=sel.key_index,
        scale=name(mapper.scales, sel.scale_index),
        mode=name(mapper.modes, sel.mode_index),
        key=name(mapper.keys, sel.key_index),
        problems=mapper.validate(),
    )


# ============================================================================
# Startup/Shutdown
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown hooks for logging/tracing."""
    try:
        setup_logging(service=SERVICE_NAME)
    except ValueError as exc:  # pragma: no cover - logging fallback
        logging.basicConfig(level=logging.INFO)
        logger.warning(f"Logging fallback (invalid env?): {exc}")

    try:
        if setup_tracing(service_name=f"{SERVICE_NAME}-pod"):
            logger.info("Tracing enabled")
    except ValueError as exc:  # pragma: no cover - optional tracing
        logger.info(f"Tracing not configured: {exc}")
    logger.info(f"{SERVICE_NAME} pod starting (v{SERVICE_VERSION})...")
    yield
    logger.info(f"{SERVICE_NAME} pod shutting down...")


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Instrument Pod",
    description="Keyboard-to-MIDI pitch mapping, bass chords and practice mode",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/")
async def root():
    """API info endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Keyboard-to-MIDI pitch mapping engine",
        "endpoints": {
            "GET /": "This info",
            "POST /health": "Health check",
            "GET /tables": "Scale, mode, key and bass preset tables",
            "POST /selection": "Change scale/mode/key selection",
            "POST /pitch": "Pitch for a key",
            "POST /bass": "Chord pitches for a key",
            "POST /practice/assign": "Practice keys for a melody",
            "POST /practice/start": "Enter practice mode",
            "POST /practice/stop": "Leave practice mode",
            "GET /songs": "Practice song files",
            "POST /keys/press": "Key press event",
            "POST /keys/release": "Key release event",
            "GET /session": "Session state",
        },
    }


@app.post("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@app.get("/tables", response_model=TablesResponse)
async def tables():
    session = get_session()
    return TablesResponse(
        scales=session.mapper.scales,
        modes=session.mapper.modes,
        keys=session.mapper.keys,
        bass_presets={char: list(offsets) for char, offsets in session.bass_mapper.presets.items()},
        selection=selection_payload(session),
    )


@app.post("/selection", response_model=SelectionResponse)
async def select(request: SelectionRequest):
    """Change any of the selection indices; the bass key follows the key index."""
    session = get_session()
    mapper = session.mapper
    snapshot = mapper.selection
    updates = (
        (request.scale_index, mapper.set_scale_index, "scale_index"),
        (request.mode_index, mapper.set_mode_index, "mode_index"),
        (request.key_index, mapper.set_key_index, "key_index"),
    )
    for value, setter, field in updates:
        if value is not None and not setter(value):
            mapper.restore(snapshot)
            raise HTTPException(status_code=400, detail=f"Rejected {field}={value}")
    if request.key_index is not None:
        session.bass_mapper.set_key_index(request.key_index)
    return selection_payload(session)


@app.post("/pitch", response_model=PitchResponse)
async def pitch(request: KeyRequest):
    session = get_session()
    try:
        value = session.mapper.get_pitch(request.key)
        position = session.mapper.get_scale_position(request.key)
    except MappingError as exc:
        logger.error(f"Lookup error: {exc}")
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return PitchResponse(key=request.key, pitch=value, position=position)


@app.post("/bass", response_model=BassResponse)
async def bass(request: KeyRequest):
    session = get_session()
    try:
        pitches = session.bass_mapper.get_pitches(request.key)
    except MappingError as exc:
        logger.error(f"Lookup error: {exc}")
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return BassResponse(key=request.key, pitches=pitches)


@app.post("/practice/assign", response_model=AssignResponse)
async def practice_assign(request: MelodyRequest):
    """Assign practice keys to a posted melody (does not touch the session)."""
    song = build_practice_song(request.to_melody())
    return AssignResponse(keys=song.keys, top_pitches=song.top_pitches)


@app.post("/practice/start", response_model=KeyEventResponse)
def practice_start(request: PracticeStartRequest):
    session = get_session()
    melody = None
    if request.clusters is not None:
        melody = MelodyRequest(clusters=request.clusters).to_melody()
    if not session.start_practice(melody):
        raise HTTPException(status_code=400, detail="No playable practice song")
    return KeyEventResponse(commands=drain_commands(), state=session.state())


@app.post("/practice/stop", response_model=KeyEventResponse)
async def practice_stop():
    session = get_session()
    session.stop_practice()
    return KeyEventResponse(commands=drain_commands(), state=session.state())


@app.get("/songs", response_model=SongsResponse)
async def songs():
    session = get_session()
    selected = session.selected_song
    return SongsResponse(
        songs=[song_title(path) for path in session.song_files],
        selected=song_title(selected) if selected else None,
    )


@app.post("/keys/press", response_model=KeyEventResponse)
async def key_press(request: KeyEventRequest):
    session = get_session()
    try:
        session.press(request.key, request.time_ms)
    except MappingError as exc:
        drain_commands()
        logger.error(f"Key press error: {exc}", extra={"key": request.key})
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return KeyEventResponse(commands=drain_commands(), state=session.state())


@app.post("/keys/release", response_model=KeyEventResponse)
async def key_release(request: KeyEventRequest):
    session = get_session()
    try:
        session.release(request.key)
    except MappingError as exc:
        drain_commands()
        logger.error(f"Key release error: {exc}", extra={"key": request.key})
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return KeyEventResponse(commands=drain_commands(), state=session.state())


@app.get("/session")
async def session_state():
    return get_session().state()


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    port = int(os.getenv("INSTRUMENT_PORT", Config.SERVICE_PORT))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=Config.ENV == "dev",
        log_level="info",
    )
