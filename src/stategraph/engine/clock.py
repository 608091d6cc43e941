# src/stategraph/engine/clock.py
"""Clock abstraction for step and run timing.

The executor measures node and run durations through a Clock so tests can
assert exact durations. Production code uses SystemClock (the default);
tests inject MockClock and advance it from inside node functions.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Abstract monotonic clock."""

    def monotonic(self) -> float:
        """Return monotonic time in seconds (never goes backwards)."""
        ...


class SystemClock:
    """Production clock using time.monotonic()."""

    def monotonic(self) -> float:
        return time.monotonic()


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=0.0)
        executor = GraphExecutor(graph, clock=clock)

        async def slow_node(state):
            clock.advance(0.25)
            return {}

        result = await executor.execute()
        assert result.steps[0].duration_ms == 250.0
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance mock time by seconds.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds


DEFAULT_CLOCK: Clock = SystemClock()
