"""Retry/backoff primitives for the case-submission call.

Only failures that cannot have reached EIS business logic are retried:
connection errors and 502/503/504 gateway statuses. Timeouts are not retried,
since the upstream may already have created the case.

Backoff schedule (default base=0.5s, cap=5s):
  Retry 0: 0.5s
  Retry 1: 1.0s
  Retry 2: 2.0s
  Retry 3: 4.0s
  Retry 4: 5.0s (capped)
"""

from __future__ import annotations

import random
from typing import Final

DEFAULT_BASE_SECONDS: Final[float] = 0.5
DEFAULT_CAP_SECONDS: Final[float] = 5.0

RETRYABLE_STATUS_CODES: Final[frozenset[int]] = frozenset({502, 503, 504})


def compute_backoff_seconds(
    attempt_index: int,
    base_seconds: float = DEFAULT_BASE_SECONDS,
    cap_seconds: float = DEFAULT_CAP_SECONDS,
    jitter: bool = False,
) -> float:
    """Compute the delay before a retry.

    Uses exponential backoff: base * 2^attempt_index, capped at cap_seconds.

    Args:
        attempt_index: Zero-based retry index (0 = first retry).
        base_seconds: Base delay in seconds.
        cap_seconds: Maximum delay in seconds.
        jitter: If True, add random jitter up to 10% of the delay.

    Returns:
        Delay in seconds.

    Example:
        >>> compute_backoff_seconds(0)
        0.5
        >>> compute_backoff_seconds(10)
        5.0
    """
    if attempt_index < 0:
        return 0.0

    delay = min(base_seconds * (2**attempt_index), cap_seconds)

    if jitter:
        delay += delay * 0.1 * random.random()

    return float(delay)


def is_retryable_status(status_code: int) -> bool:
    """Check whether an upstream status warrants another attempt."""
    return status_code in RETRYABLE_STATUS_CODES

