"""Clocks and countdowns for timed assessments.

The engine never sleeps or spawns timer threads. A driver calls tick() once
per second of wall time (or of virtual time in tests) and every running
Countdown loses one second. Pausing a countdown keeps its remaining whole
seconds; the part of a second elapsed since the last tick is dropped, so a
pause/resume cycle can shift expiry by up to one tick.
"""

import logging
import time
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Source of timestamps in seconds."""

    def now(self) -> float:
        ...


class SystemClock:
    """Wall clock backed by time.time()."""

    def now(self) -> float:
        return time.time()


class ManualClock:
    """Clock that only moves when advanced, for deterministic tests."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self._now += seconds


class Countdown:
    """Pausable, cancellable one-second countdown.

    on_expire fires exactly once per run, on the tick that reaches zero.
    reset() starts a new run with the full budget.
    """

    def __init__(self, budget: int, on_expire: Optional[Callable[[], None]] = None, name: str = ""):
        if budget <= 0:
            raise ValueError(f"Countdown budget must be positive, got {budget}")
        self.budget = budget
        self.remaining = budget
        self.on_expire = on_expire
        self.name = name or "countdown"
        self.running = False
        self.expired = False

    def start(self) -> None:
        if not self.expired:
            self.running = True

    def pause(self) -> None:
        self.running = False

    def resume(self) -> None:
        self.start()

    def cancel(self) -> None:
        self.running = False
        self.on_expire = None

    def reset(self) -> None:
        """Refill the budget and arm the countdown again (keeps running state)."""
        self.remaining = self.budget
        self.expired = False

    def tick(self) -> bool:
        """Advance one second. Returns True if this tick expired the countdown."""
        if not self.running or self.expired:
            return False
        self.remaining = max(0, self.remaining - 1)
        if self.remaining > 0:
            return False

        self.expired = True
        self.running = False
        logger.debug(f"{self.name} expired")
        if self.on_expire is not None:
            self.on_expire()
        return True
