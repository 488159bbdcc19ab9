"""Per-request correlation id and the injectable id/clock seams.

The correlation id is resolved exactly once per inbound request (in the
correlation middleware) and then passed explicitly to every component that
makes a remote call or writes an audit record.
"""

from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime
from typing import Final, Protocol, runtime_checkable

CORRELATION_ID_HEADER: Final[str] = "X-Correlation-ID"

_CORRELATION_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")

ACKNOWLEDGEMENT_REFERENCE_LENGTH: Final[int] = 32


@runtime_checkable
class IdGenerator(Protocol):
    """Source of fresh correlation ids."""

    def new_id(self) -> str:
        """Return a new, unique id."""
        ...


@runtime_checkable
class Clock(Protocol):
    """Source of the current time for transfer and audit timestamps."""

    def now(self) -> datetime:
        """Return the current timezone-aware time."""
        ...


class UuidGenerator:
    """IdGenerator backed by uuid4."""

    def new_id(self) -> str:
        return str(uuid.uuid4())


class SystemClock:
    """Clock backed by the system UTC time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


def is_valid_correlation_id(value: str) -> bool:
    return bool(_CORRELATION_ID_PATTERN.match(value))


def resolve_correlation_id(supplied: str | None, id_generator: IdGenerator) -> str:
    """Use the caller's correlation id when well-formed, otherwise mint one.

    Args:
        supplied: Value of the inbound X-Correlation-ID header, if any.
        id_generator: Generator used when no usable id was supplied.

    Returns:
        The correlation id for this request.
    """
    if supplied is not None:
        candidate = supplied.strip()
        if candidate and is_valid_correlation_id(candidate):
            return candidate
    return id_generator.new_id()


def acknowledgement_reference(correlation_id: str) -> str:
    """Derive the EIS AcknowledgementReference from a correlation id.

    Dashes are removed and the result is cut to 32 characters, so a uuid4
    correlation id maps to its 32 hex digits.
    """
    return correlation_id.replace("-", "")[:ACKNOWLEDGEMENT_REFERENCE_LENGTH]
