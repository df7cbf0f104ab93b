"""Structured logging and optional OpenTelemetry setup for the instrument.

Every record is rendered as one JSON line. Performance context passed through
``extra=`` (the key pressed, the pitch sounded, the practice song) is copied
into the payload so key events can be filtered without parsing messages.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Iterable, Optional

from .config import get_settings

try:
    # Optional OTEL tracing
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
except ImportError:  # pragma: no cover - OTEL is optional
    trace = None  # type: ignore

CONTEXT_FIELDS = ("key", "pitch", "pitches", "channel", "song", "position", "selection")

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("uvicorn.access", "mido")


class JsonFormatter(logging.Formatter):
    def __init__(self, service: Optional[str] = None, fields: Iterable[str] = CONTEXT_FIELDS):
        super().__init__()
        self.service = service
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload = {
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        if self.service:
            payload["service"] = self.service
        for field in self.fields:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        span = trace.get_current_span() if trace else None
        if span is not None:
            ctx = span.get_span_context()
            if ctx and ctx.is_valid:
                payload["trace_id"] = format(ctx.trace_id, "032x")
                payload["span_id"] = format(ctx.span_id, "016x")
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None, service: Optional[str] = None) -> None:
    """Route the root logger through a single JSON handler on stdout.

    Raises:
        ValueError: if the environment holds invalid settings.
    """
    s = get_settings()
    log_level = (level or s.AC_LOG_LEVEL).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(service=service))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level, logging.INFO))

    if root.level <= logging.INFO and s.AC_ENV != "development":
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def setup_tracing(service_name: str = "accordion") -> bool:
    """Initialize OpenTelemetry tracing if an endpoint is configured.

    Returns True when a tracer provider was installed.
    """
    s = get_settings()
    if not s.AC_OTEL_ENDPOINT or not trace:
        return False

    resource = Resource.create({"service.name": service_name, "deployment.environment": s.AC_ENV})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=s.AC_OTEL_ENDPOINT)))
    trace.set_tracer_provider(provider)
    return True


__all__ = ["CONTEXT_FIELDS", "setup_logging", "setup_tracing", "JsonFormatter"]
