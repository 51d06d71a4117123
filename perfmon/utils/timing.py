"""
Timing utilities for tick-driven sampling.

Provides tick cost accounting, interval throttling and tick pacing.
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional


class TickCostTracker:
    """
    Accumulates how long the profiler spends per tick.

    Usage:
        costs = TickCostTracker()
        with costs.measure():
            profiler.tick(reading)
        print(f"mean {costs.mean_ms:.3f} ms, worst {costs.max_ms:.3f} ms")
    """

    def __init__(self):
        self._count = 0
        self._total_ms = 0.0
        self._max_ms = 0.0

    @contextmanager
    def measure(self) -> Iterator[None]:
        began = time.monotonic()
        try:
            yield
        finally:
            self.add((time.monotonic() - began) * 1000.0)

    def add(self, cost_ms: float) -> None:
        self._count += 1
        self._total_ms += cost_ms
        self._max_ms = max(self._max_ms, cost_ms)

    @property
    def count(self) -> int:
        return self._count

    @property
    def mean_ms(self) -> float:
        return self._total_ms / self._count if self._count else 0.0

    @property
    def max_ms(self) -> float:
        return self._max_ms


class ThrottledInterval:
    """
    Gate that opens at most once per interval.

    The gate is open when ``now >= last + interval``. The first call always
    opens it (``last`` starts at negative infinity) unless ``start`` is given.
    Time values are supplied by the caller so the gate follows whatever
    clock the host ticks with.
    """

    def __init__(self, interval_s: float, start: Optional[float] = None):
        if interval_s < 0:
            raise ValueError("interval_s must be non-negative")

        self._interval_s = interval_s
        self._last: float = float("-inf") if start is None else start

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @interval_s.setter
    def interval_s(self, value: float) -> None:
        if value < 0:
            raise ValueError("interval_s must be non-negative")
        self._interval_s = value

    @property
    def last(self) -> float:
        """Time the gate last opened."""
        return self._last

    def due(self, now: float) -> bool:
        """Check whether the gate would open at ``now`` without consuming it."""
        return now >= self._last + self._interval_s

    def ready(self, now: float) -> bool:
        """
        Open the gate if the interval has elapsed.

        Args:
            now: Current time in seconds

        Returns:
            True if the gate opened (and ``last`` moved to ``now``)
        """
        if not self.due(now):
            return False
        self._last = now
        return True

    def reset(self) -> None:
        self._last = float("-inf")


class TickPacer:
    """
    Paces a host loop to a target tick rate and reports tick deltas.

    ``begin()`` marks a tick and measures the start-to-start delta a real
    engine would report as its unscaled delta time. ``finish()`` sleeps off
    whatever is left of the tick budget.
    """

    def __init__(self, tick_rate: float):
        """
        Initialize pacer.

        Args:
            tick_rate: Target ticks per second (must be > 0)
        """
        if tick_rate <= 0:
            raise ValueError("tick_rate must be positive")

        self._tick_rate = tick_rate
        self._budget_s = 1.0 / tick_rate
        self._previous: Optional[float] = None
        self._delta_s = 0.0
        self._ticks = 0
        self._overruns = 0

    @property
    def tick_rate(self) -> float:
        return self._tick_rate

    @property
    def budget_ms(self) -> float:
        return self._budget_s * 1000.0

    @property
    def delta_s(self) -> float:
        """Start-to-start time of the two most recent ticks (0.0 before the second tick)."""
        return self._delta_s

    @property
    def ticks(self) -> int:
        """Ticks finished so far."""
        return self._ticks

    @property
    def overruns(self) -> int:
        """Ticks whose work took longer than the budget."""
        return self._overruns

    def begin(self) -> float:
        """
        Mark the start of a tick.

        Returns:
            Monotonic timestamp of the tick start
        """
        began = time.monotonic()
        if self._previous is not None:
            self._delta_s = began - self._previous
        self._previous = began
        return began

    def finish(self, began: float) -> float:
        """
        Close a tick, sleeping until its budget is used up.

        Args:
            began: Timestamp returned by begin()

        Returns:
            Seconds slept (0 when the tick overran its budget)
        """
        left = self._budget_s - (time.monotonic() - began)
        self._ticks += 1

        if left <= 0:
            self._overruns += 1
            return 0.0

        time.sleep(left)
        return left
