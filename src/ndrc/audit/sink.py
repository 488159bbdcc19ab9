"""Audit event sink implementations.

Every sink takes one JSON-compatible event dict per call. Sinks are synchronous
and raise AuditSinkError on any failure; the AuditEmitter runs them off the
event loop and decides what a failure means for the request (nothing).

Event envelope:
    {"auditSource": <app name>, "auditType": "CreateCase" | "UpdateCase",
     "detail": <AuditRecord>}
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

from ndrc.config import DEFAULT_AUDIT_LOG_PATH, ENV_AUDIT_LOG_PATH, ServiceConfig

logger = logging.getLogger(__name__)

DEFAULT_DATASTREAM_TIMEOUT_SECONDS = 10.0


class AuditSinkError(Exception):
    """Raised when audit event emission fails."""


@runtime_checkable
class AuditSink(Protocol):
    """Protocol for audit event sinks."""

    def emit(self, event: dict[str, Any]) -> None:
        """Emit an audit event to the sink.

        Args:
            event: Audit event envelope.

        Raises:
            AuditSinkError: If emission fails for any reason.
        """
        ...


def _serialize(event: dict[str, Any]) -> str:
    try:
        return json.dumps(event, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise AuditSinkError(f"Failed to serialize audit event: {e}") from e


class JsonlFileAuditSink:
    """Append-only JSONL file sink.

    Configuration:
    - File path from env NDRC_AUDIT_LOG_PATH (default: ./var/audit/audit_events.jsonl)
    - Creates parent directories if missing
    - Appends one line per event with sorted keys and minimal separators
    - Never truncates/overwrites existing content

    Writes from concurrent requests are serialized with a lock so lines never
    interleave.
    """

    def __init__(self, file_path: str | None = None) -> None:
        """Initialize the JSONL file sink.

        Args:
            file_path: Override path for the audit log file. If None, reads
                NDRC_AUDIT_LOG_PATH, falling back to DEFAULT_AUDIT_LOG_PATH.
        """
        if file_path is not None:
            self._file_path = Path(file_path)
        else:
            self._file_path = Path(os.environ.get(ENV_AUDIT_LOG_PATH) or DEFAULT_AUDIT_LOG_PATH)
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def _ensure_parent_directory(self) -> None:
        parent = self._file_path.parent
        if not parent.exists():
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise AuditSinkError(f"Failed to create audit log directory {parent}: {e}") from e

    def emit(self, event: dict[str, Any]) -> None:
        """Append the event as one JSON line.

        Raises:
            AuditSinkError: If serialization or file write fails.
        """
        line = _serialize(event) + "\n"
        self._ensure_parent_directory()

        try:
            with self._lock, open(self._file_path, mode="a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise AuditSinkError(f"Failed to write audit event to {self._file_path}: {e}") from e


class InMemoryAuditSink:
    """In-memory audit sink for testing (no disk writes)."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def emit(self, event: dict[str, Any]) -> None:
        # Round-trip through JSON so tests see exactly what a real sink would write.
        line = _serialize(event)
        with self._lock:
            self._events.append(json.loads(line))

    @property
    def events(self) -> list[dict[str, Any]]:
        """Return all emitted events."""
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()


class DatastreamAuditSink:
    """Posts each event to an HTTP audit collector.

    Any non-2xx response or transport error raises AuditSinkError.
    """

    def __init__(
        self,
        url: str,
        http_client: httpx.Client | None = None,
        timeout_seconds: float = DEFAULT_DATASTREAM_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the datastream sink.

        Args:
            url: Collector endpoint receiving one JSON event per POST.
            http_client: Optional httpx.Client for dependency injection (testing).
            timeout_seconds: Timeout of each POST.
        """
        self._url = url
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def emit(self, event: dict[str, Any]) -> None:
        """POST the event to the collector.

        Raises:
            AuditSinkError: If the collector cannot be reached or rejects the event.
        """
        content = _serialize(event)
        try:
            response = self._client.post(
                self._url,
                content=content,
                headers={"content-type": "application/json"},
            )
        except httpx.RequestError as e:
            raise AuditSinkError(f"Audit datastream unreachable: {type(e).__name__}") from e

        if not 200 <= response.status_code < 300:
            raise AuditSinkError(f"Audit datastream rejected event: HTTP {response.status_code}")


def get_audit_sink(config: ServiceConfig | None = None) -> AuditSink:
    """Build the configured audit sink.

    Returns:
        DatastreamAuditSink when a datastream URL is configured, otherwise a
        JsonlFileAuditSink at the configured path.
    """
    if config is None:
        return JsonlFileAuditSink()
    if config.audit_datastream_url:
        logger.info("Audit events will be sent to the audit datastream")
        return DatastreamAuditSink(config.audit_datastream_url)
    return JsonlFileAuditSink(config.audit_log_path)
