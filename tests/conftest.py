"""Pytest configuration and fixtures for NDRC tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ndrc.audit.sink import InMemoryAuditSink
from ndrc.config import ENV_AUDIT_LOG_PATH, ServiceConfig
from tests.fixtures.cases.payloads import FixedClock, SequenceIdGenerator


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the real audit log and from tracing exporters."""
    monkeypatch.setenv(ENV_AUDIT_LOG_PATH, str(tmp_path / "audit.jsonl"))
    monkeypatch.delenv("NDRC_OTEL_ENABLED", raising=False)
    monkeypatch.delenv("NDRC_OTEL_EXPORTER", raising=False)
    monkeypatch.delenv("NDRC_AUDIT_DATASTREAM_URL", raising=False)


@pytest.fixture
def service_config(tmp_path: Path) -> ServiceConfig:
    """Config with no EIS retries so failure tests never sleep."""
    return ServiceConfig(
        eis_base_url="http://eis.test",
        eis_token="test-token",
        eis_environment="qa",
        eis_max_retries=0,
        file_transfer_base_url="http://file-transfer.test",
        file_transfer_timeout_seconds=5.0,
        file_transfer_max_concurrency=2,
        audit_log_path=str(tmp_path / "audit.jsonl"),
    )


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def id_generator() -> SequenceIdGenerator:
    return SequenceIdGenerator()
