"""Observability: OpenTelemetry tracing for the NDRC case service."""

from ndrc.observability.tracing import (
    TracingSettings,
    configure_tracing,
    get_tracer,
    instrument_app,
    sanitize_url_for_span,
)

__all__ = [
    "TracingSettings",
    "configure_tracing",
    "get_tracer",
    "instrument_app",
    "sanitize_url_for_span",
]
