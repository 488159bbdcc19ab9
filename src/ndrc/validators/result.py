"""Accumulating validation result.

A Validated holds either a value or a non-empty, ordered tuple of Violations.
Rules are evaluated independently and merged with combine(), so a payload with
several problems reports all of them at once instead of the first one only.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")

MISSING_FIELD = "MISSING_FIELD"
INVALID_ENUM = "INVALID_ENUM"
INVALID_DATE = "INVALID_DATE"
INVALID_FORMAT = "INVALID_FORMAT"
INCONSISTENT = "INCONSISTENT"


@dataclass(frozen=True)
class Violation:
    """A single business-rule violation."""

    code: str
    message: str
    path: str

    def __str__(self) -> str:
        return f"{self.message} at {self.path}"


@dataclass(frozen=True)
class Validated(Generic[T]):
    """Either a validated value or the violations that prevented it."""

    value: T | None = None
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @classmethod
    def valid(cls, value: T) -> Validated[T]:
        """Create a successful result."""
        return cls(value=value)

    @classmethod
    def invalid(cls, *violations: Violation) -> Validated[T]:
        """Create a failed result. At least one violation is required."""
        if not violations:
            raise ValueError("An invalid result needs at least one violation")
        return cls(value=None, violations=tuple(violations))

    def with_value(self, value: U) -> Validated[U]:
        """Replace the value of a successful result; failures pass through unchanged."""
        if self.is_valid:
            return Validated(value=value)
        return Validated(value=None, violations=self.violations)


OK: Validated[None] = Validated(value=None)


def combine(results: Iterable[Validated[Any]]) -> Validated[None]:
    """Merge independent results, keeping every violation in evaluation order."""
    violations: list[Violation] = []
    for result in results:
        violations.extend(result.violations)
    if violations:
        return Validated.invalid(*violations)
    return OK


def ensure(condition: bool, code: str, message: str, path: str) -> Validated[None]:
    """Single-rule helper: OK when condition holds, else one violation."""
    if condition:
        return OK
    return Validated.invalid(Violation(code=code, message=message, path=path))
