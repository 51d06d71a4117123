"""
Custom metric registry.

Custom metrics are user-supplied samplers tracked only while a benchmark is
running. Names are labels, not keys: registering the same name twice gives
two metrics with separate histories.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Iterator, List, Optional, Union

from perfmon.alerts import Direction

logger = logging.getLogger(__name__)


Sampler = Callable[[], float]
History = Union[List[float], Deque[float]]


@dataclass(eq=False)
class CustomMetric:
    """
    User-registered measurement sampled once per tick during a benchmark.

    Compared by identity. The sampler is a live callable and is never
    persisted.
    """
    name: str
    sampler: Optional[Sampler]
    warning_threshold: float
    critical_threshold: float
    direction: Direction = Direction.HIGHER_IS_WORSE
    history: History = field(default_factory=list)

    def sample(self) -> float:
        """
        Read the current value.

        Raises:
            RuntimeError: If no sampler is attached
        """
        if self.sampler is None:
            raise RuntimeError(f"Custom metric {self.name!r} has no sampler")
        return float(self.sampler())

    def record(self, value: float) -> None:
        self.history.append(value)

    def clear_history(self) -> None:
        self.history.clear()


class MetricRegistry:
    """
    Ordered collection of custom metrics.

    Args:
        history_limit: Keep at most this many samples per metric (oldest
            dropped first). None keeps every sample for the life of the run.
    """

    def __init__(self, history_limit: Optional[int] = None):
        if history_limit is not None and history_limit <= 0:
            raise ValueError("history_limit must be positive")
        self._history_limit = history_limit
        self._metrics: List[CustomMetric] = []

    @property
    def history_limit(self) -> Optional[int]:
        return self._history_limit

    def new_history(self) -> History:
        """Empty sample buffer honouring ``history_limit``."""
        if self._history_limit is None:
            return []
        return deque(maxlen=self._history_limit)

    def register(
        self,
        name: str,
        sampler: Optional[Sampler],
        warning_threshold: float,
        critical_threshold: float,
        direction: Direction = Direction.HIGHER_IS_WORSE,
    ) -> CustomMetric:
        """
        Register a new custom metric.

        Args:
            name: Display name (duplicates allowed)
            sampler: Zero-argument callable returning the current value
            warning_threshold: Warning level
            critical_threshold: Critical level
            direction: Which side of the thresholds is bad

        Returns:
            The registered metric
        """
        metric = CustomMetric(
            name=name,
            sampler=sampler,
            warning_threshold=warning_threshold,
            critical_threshold=critical_threshold,
            direction=direction,
            history=self.new_history(),
        )
        self._metrics.append(metric)
        logger.debug(f"Registered custom metric: {name}")
        return metric

    def add(self, metric: CustomMetric) -> None:
        """Adopt an existing metric object if it is not already registered."""
        if metric in self._metrics:
            return
        if self._history_limit is not None and not isinstance(metric.history, deque):
            metric.history = deque(metric.history, maxlen=self._history_limit)
        self._metrics.append(metric)

    def clear_histories(self) -> None:
        for metric in self._metrics:
            metric.clear_history()

    def __iter__(self) -> Iterator[CustomMetric]:
        return iter(list(self._metrics))

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, metric: object) -> bool:
        return metric in self._metrics
