"""
Clocks supply the engine's notion of "now" in whole seconds.

The engine never schedules anything; elapsed-time effects are computed from
whatever the clock reports when the next action runs.
"""

import time


def system_clock() -> int:
    return int(time.time())


class ManualClock:
    """Deterministic clock for simulations and tests. Never moves backwards."""

    def __init__(self, start: int = 0):
        self._now = int(start)

    def __call__(self) -> int:
        return self._now

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError("clock cannot move backwards")
        self._now = int(timestamp)
        return self._now

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"
