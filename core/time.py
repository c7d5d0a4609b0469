# PATH: core/time.py
"""
Time utilities for the Portal client.

Clock abstraction for the dataset cache plus freshness helpers.
"""

import time
from typing import Optional, Protocol


class Clock(Protocol):
    """Monotonic time source, injectable for deterministic tests."""

    def now(self) -> float:
        ...


class SystemClock:
    """Clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock advanced by hand. Used by tests and simulations."""

    def __init__(self, start: float = 0.0):
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


def now_ms() -> int:
    """Get current monotonic time in milliseconds."""
    return int(time.monotonic() * 1000)


def is_fresh(
    timestamp: float,
    max_age_seconds: float,
    current_time: Optional[float] = None,
) -> bool:
    """
    Check if a timestamp is still fresh.

    Stale once age >= max_age_seconds.

    Args:
        timestamp: Time the value was taken (same time base as current_time)
        max_age_seconds: Time to live
        current_time: Current time (defaults to time.monotonic())

    Returns:
        True if timestamp is fresh
    """
    current = time.monotonic() if current_time is None else current_time
    age = current - timestamp
    return age < max_age_seconds
