"""Clock abstraction for the kiosk's simulated timers.

WallClock: real time, used by the running kiosk
SimClock: deterministic time for tests; sleeping advances it instantly

The payment delay and the dispensing ticks only ever wait through a clock.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Clock interface used by all time-dependent kiosk code."""

    def monotonic(self) -> float:
        """Seconds on a monotonic scale (origin unspecified)."""
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class WallClock:
    """Real time."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class SimClock:
    """Simulated clock. Time moves only when someone sleeps or calls advance().

    sleep() still yields to the event loop once, so concurrently started
    coroutines interleave the same way they would on a real clock.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._time = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self._time

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"SimClock cannot go backwards: {seconds}")
        self._time += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)
