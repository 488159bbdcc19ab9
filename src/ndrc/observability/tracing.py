"""OpenTelemetry tracing for the NDRC case service.

Tracing is off unless NDRC_OTEL_ENABLED=1. The connectors open their own
eis.case.submit and file_transfer.transfer spans tagged with the correlation id;
FastAPI and httpx are auto-instrumented on top of that.

Environment Variables:
    NDRC_OTEL_ENABLED: "1" turns tracing on (default: off)
    NDRC_OTEL_SERVICE_NAME: service.name resource attribute (default: ndrc-case-service)
    NDRC_OTEL_EXPORTER: "otlp", "console" or "memory" (default: otlp)
    NDRC_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP traces endpoint (default: the SDK's)

Span attributes never carry bearer tokens, request bodies, claim descriptions
or URL query strings (pre-signed download URLs).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Final
from urllib.parse import urlsplit, urlunsplit

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanProcessor,
)
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from ndrc.config import ConfigError

logger = logging.getLogger(__name__)

TRACER_NAME: Final[str] = "ndrc"

ENV_OTEL_ENABLED: Final[str] = "NDRC_OTEL_ENABLED"
ENV_OTEL_SERVICE_NAME: Final[str] = "NDRC_OTEL_SERVICE_NAME"
ENV_OTEL_EXPORTER: Final[str] = "NDRC_OTEL_EXPORTER"
ENV_OTEL_ENDPOINT: Final[str] = "NDRC_OTEL_EXPORTER_OTLP_ENDPOINT"

EXPORTERS: Final[frozenset[str]] = frozenset({"otlp", "console", "memory"})

_provider: TracerProvider | None = None
_memory_exporter: InMemorySpanExporter | None = None


@dataclass(frozen=True)
class TracingSettings:
    """Tracing switches read from the environment."""

    enabled: bool = False
    service_name: str = "ndrc-case-service"
    exporter: str = "otlp"
    endpoint: str | None = None

    def __post_init__(self) -> None:
        if self.exporter not in EXPORTERS:
            raise ConfigError(
                f"{ENV_OTEL_EXPORTER} must be one of {sorted(EXPORTERS)}, got '{self.exporter}'"
            )

    @classmethod
    def from_env(cls) -> TracingSettings:
        """Read NDRC_OTEL_* variables.

        Raises:
            ConfigError: If NDRC_OTEL_EXPORTER names an unknown exporter.
        """
        return cls(
            enabled=_env(ENV_OTEL_ENABLED).lower() in ("1", "true", "yes"),
            service_name=_env(ENV_OTEL_SERVICE_NAME) or cls.service_name,
            exporter=_env(ENV_OTEL_EXPORTER).lower() or cls.exporter,
            endpoint=_env(ENV_OTEL_ENDPOINT) or None,
        )


def _env(key: str) -> str:
    return os.environ.get(key, "").strip()


def _span_processor(settings: TracingSettings) -> SpanProcessor:
    global _memory_exporter

    if settings.exporter == "memory":
        _memory_exporter = InMemorySpanExporter()
        return SimpleSpanProcessor(_memory_exporter)
    if settings.exporter == "console":
        return SimpleSpanProcessor(ConsoleSpanExporter())

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    return BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.endpoint))


def configure_tracing(settings: TracingSettings | None = None) -> bool:
    """Install the global tracer provider once per process.

    Args:
        settings: Tracing switches; read from the environment when omitted.

    Returns:
        True if tracing is on, False if it is disabled.

    Raises:
        ConfigError: If the exporter setting is invalid.
    """
    global _provider

    settings = settings or TracingSettings.from_env()
    if not settings.enabled:
        logger.debug("OpenTelemetry tracing disabled (%s not set)", ENV_OTEL_ENABLED)
        return False
    # OpenTelemetry refuses to replace a global provider; later apps share it.
    if _provider is not None:
        return True

    provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))
    provider.add_span_processor(_span_processor(settings))
    trace.set_tracer_provider(provider)
    _provider = provider
    logger.info(
        "OpenTelemetry tracing configured: service=%s, exporter=%s",
        settings.service_name,
        settings.exporter,
    )
    return True


def instrument_app(app: Any) -> None:
    """Auto-instrument the FastAPI app and every httpx client.

    Instrumentation failures are logged and never stop the service from starting.
    """
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

        HTTPXClientInstrumentor().instrument()
        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI/httpx: %s", e)


def get_tracer() -> trace.Tracer:
    """Tracer for the service's own spans (a no-op tracer when disabled)."""
    return trace.get_tracer(TRACER_NAME)


def get_current_trace_id() -> str | None:
    """Hex trace id of the active span, or None outside a recorded span."""
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return format(ctx.trace_id, "032x")


def set_span_attributes(attributes: dict[str, Any]) -> None:
    """Set string attributes on the current span, skipping None values."""
    span = trace.get_current_span()
    if not span.is_recording():
        return
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, str(value))


def sanitize_url_for_span(url: str) -> str:
    """Strip userinfo, query string and fragment from a URL.

    Args:
        url: Raw URL, possibly a pre-signed download URL.

    Returns:
        scheme://host[:port]/path, or "unknown" if the URL is malformed.
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
        if not host:
            return "unknown"
        port = f":{parts.port}" if parts.port else ""
        return urlunsplit((parts.scheme, f"{host}{port}", parts.path, "", "")) or "unknown"
    except ValueError:
        return "unknown"


def captured_spans() -> list[ReadableSpan]:
    """Finished spans held by the "memory" exporter, oldest first."""
    if _memory_exporter is None:
        return []
    return list(_memory_exporter.get_finished_spans())


def clear_captured_spans() -> None:
    if _memory_exporter is not None:
        _memory_exporter.clear()
