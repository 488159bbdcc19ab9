"""Tests for correlation id resolution and the EIS acknowledgement reference."""

from __future__ import annotations

import uuid

import pytest

from ndrc.services.correlation import (
    Clock,
    IdGenerator,
    SystemClock,
    UuidGenerator,
    acknowledgement_reference,
    resolve_correlation_id,
)
from tests.fixtures.cases.payloads import SequenceIdGenerator


class TestResolveCorrelationId:
    def test_supplied_id_is_used(self) -> None:
        generator = SequenceIdGenerator()
        assert resolve_correlation_id("abc-123", generator) == "abc-123"
        assert generator.new_id() == "generated-1"

    def test_supplied_id_is_stripped(self) -> None:
        assert resolve_correlation_id("  abc-123 ", SequenceIdGenerator()) == "abc-123"

    @pytest.mark.parametrize("supplied", [None, "", "   ", "-leading-dash", "has space", "x" * 129])
    def test_missing_or_malformed_id_is_generated(self, supplied: str | None) -> None:
        assert resolve_correlation_id(supplied, SequenceIdGenerator()) == "generated-1"

    def test_default_generator_produces_uuid4(self) -> None:
        generated = resolve_correlation_id(None, UuidGenerator())
        assert uuid.UUID(generated).version == 4


class TestAcknowledgementReference:
    def test_uuid_maps_to_32_hex_digits(self) -> None:
        correlation_id = "0f4b3c2a-9d1e-4c57-8a6b-1e2f3a4b5c6d"
        assert acknowledgement_reference(correlation_id) == "0f4b3c2a9d1e4c578a6b1e2f3a4b5c6d"

    def test_long_ids_are_truncated(self) -> None:
        assert len(acknowledgement_reference("a" * 100)) == 32


def test_default_implementations_satisfy_protocols() -> None:
    assert isinstance(UuidGenerator(), IdGenerator)
    assert isinstance(SystemClock(), Clock)
    assert SystemClock().now().tzinfo is not None
