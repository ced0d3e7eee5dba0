"""Logging and tracing for seriesdb.

Loggers are plain stdlib loggers named after their module. Spans follow one
convention so traces from every gateway call line up:

* one span per gateway call, named ``seriesdb.query`` or ``seriesdb.execute``
* ``db.system`` is ``postgresql`` and ``db.statement`` holds the SQL text
* ``seriesdb.reconnects`` counts reconnects the call needed before it succeeded
* ``seriesdb.error.code`` carries the SQLSTATE of a failed statement, when known

``configure_observability`` installs a console handler and, with
``otlp_enabled``, ships logs and spans over OTLP/HTTP.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider as OtelLoggerProvider
from opentelemetry.sdk._logs import LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import settings

logger = logging.getLogger(settings.observability_service_name)
tracer = trace.get_tracer(settings.observability_service_name)

SPAN_PREFIX = "seriesdb"
ATTR_DB_SYSTEM = "db.system"
ATTR_STATEMENT = "db.statement"
ATTR_RECONNECTS = "seriesdb.reconnects"
ATTR_ERROR_CODE = "seriesdb.error.code"

_configured = False


def _resource() -> Resource:
    """Build OTEL resource attributes shared by traces/logs."""
    attributes = {
        "service.name": settings.observability_service_name,
        "deployment.environment": settings.observability_environment,
    }
    return Resource(attributes={k: v for k, v in attributes.items() if v})


def configure_observability() -> None:
    """Install console logging and, when enabled, OTLP log + span exporters."""
    global _configured, logger, tracer

    if _configured:
        return

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    handlers: list[logging.Handler] = [console_handler]

    if settings.otlp_enabled:
        resource = _resource()

        trace_provider = TracerProvider(resource=resource)
        trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
        trace.set_tracer_provider(trace_provider)
        tracer = trace.get_tracer(settings.observability_service_name)

        logger_provider = OtelLoggerProvider(resource=resource)
        logger_provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter()))

        otel_handler = LoggingHandler(logger_provider=logger_provider)
        otel_handler.setLevel(log_level)
        handlers.append(otel_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    logger = logging.getLogger(settings.observability_service_name)
    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-specific logger."""
    return logging.getLogger(name or settings.observability_service_name)


def get_tracer() -> trace.Tracer:
    """Return the tracer installed by ``configure_observability`` (or the default)."""
    return tracer


@contextmanager
def statement_span(kind: str, statement: str) -> Iterator[trace.Span]:
    """Open the ``seriesdb.<kind>`` span for one statement and tag its SQL."""
    with get_tracer().start_as_current_span(f"{SPAN_PREFIX}.{kind}") as span:
        span.set_attribute(ATTR_DB_SYSTEM, "postgresql")
        span.set_attribute(ATTR_STATEMENT, statement)
        yield span


__all__ = [
    "ATTR_DB_SYSTEM",
    "ATTR_ERROR_CODE",
    "ATTR_RECONNECTS",
    "ATTR_STATEMENT",
    "SPAN_PREFIX",
    "configure_observability",
    "get_logger",
    "get_tracer",
    "logger",
    "statement_span",
    "tracer",
]
