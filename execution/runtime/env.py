"""
execution.runtime.env — block time for the settlement ledger.

Contracts never read the wall clock directly. The chain samples a clock once at
the start of every top-level call and hands that value down every nested frame
as `msg.timestamp`; views that need "now" (remaining time, expiry flag) ask the
chain, which asks the same clock.

Two clocks are provided:

- `SystemClock`  : Unix seconds from `time.time()`.
- `ManualClock`  : a settable clock for tests and simulations
                   (`advance(seconds)`, `set(timestamp)`).

Block time never goes backwards: `BlockTime` clamps each sample to the last
value it returned, so a wall-clock step back cannot reopen an expired quiz.

Example
-------
    from execution.runtime.env import ManualClock, BlockTime

    clock = ManualClock(1_725_000_000)
    bt = BlockTime(clock)
    t0 = bt.now()
    clock.advance(24 * 60 * 60)
    assert bt.now() - t0 == 86_400
"""

from __future__ import annotations

import threading
import time
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Anything that can report the current Unix time in whole seconds."""

    def now(self) -> int: ...


class SystemClock:
    """Wall-clock seconds."""

    def now(self) -> int:
        return int(time.time())

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return "SystemClock()"


class ManualClock:
    """
    Deterministic clock for tests and simulations.

    Starts at `start` (default: current wall-clock second) and only moves when
    told to.
    """

    def __init__(self, start: Optional[int] = None) -> None:
        self._now = int(time.time()) if start is None else int(start)
        if self._now < 0:
            raise ValueError("start must be non-negative")
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        """Move forward by `seconds` (>= 0). Returns the new time."""
        if seconds < 0:
            raise ValueError("cannot advance by a negative amount")
        with self._lock:
            self._now += int(seconds)
            return self._now

    def set(self, timestamp: int) -> None:
        """Jump to an absolute timestamp (may be earlier; BlockTime clamps)."""
        if timestamp < 0:
            raise ValueError("timestamp must be non-negative")
        with self._lock:
            self._now = int(timestamp)

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"ManualClock(now={self._now})"


class BlockTime:
    """Monotonic view over a `Clock`."""

    def __init__(self, clock: Clock) -> None:
        self.clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        sample = int(self.clock.now())
        with self._lock:
            if sample > self._last:
                self._last = sample
            return self._last


__all__ = ["Clock", "SystemClock", "ManualClock", "BlockTime"]
