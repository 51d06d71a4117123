"""Threshold evaluator - classifies metric values and emits alerts."""

import logging
import time
from typing import Callable, List, Optional

from .types import AlertEvent, Direction, Severity

logger = logging.getLogger(__name__)


AlertListener = Callable[[AlertEvent], None]


def classify(
    value: float,
    warning_threshold: float,
    critical_threshold: float,
    direction: Direction = Direction.LOWER_IS_WORSE,
) -> Severity:
    """
    Classify a value against warning and critical thresholds.

    The critical level is checked first, with strict comparisons on both
    levels. For lower-is-worse metrics this assumes
    critical_threshold <= warning_threshold; inverted thresholds invert the
    severity ordering. NaN never crosses a threshold.

    Args:
        value: Value to classify
        warning_threshold: Warning level
        critical_threshold: Critical level
        direction: Which side of the thresholds is bad

    Returns:
        Severity of the value
    """
    if direction is Direction.LOWER_IS_WORSE:
        if value < critical_threshold:
            return Severity.CRITICAL
        if value < warning_threshold:
            return Severity.WARNING
        return Severity.NOMINAL

    if value > critical_threshold:
        return Severity.CRITICAL
    if value > warning_threshold:
        return Severity.WARNING
    return Severity.NOMINAL


class ThresholdEvaluator:
    """
    Evaluates metric values and dispatches alerts.

    Every WARNING or CRITICAL classification produces an AlertEvent that is
    written to the log and handed to each registered listener.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize evaluator.

        Args:
            clock: Time source used when evaluate() is not given a timestamp
        """
        self._clock = clock
        self._listeners: List[AlertListener] = []
        self._alert_count = 0
        self._last_alert: Optional[AlertEvent] = None

    @property
    def alert_count(self) -> int:
        """Total alerts emitted."""
        return self._alert_count

    @property
    def last_alert(self) -> Optional[AlertEvent]:
        return self._last_alert

    def add_listener(self, listener: AlertListener) -> None:
        """Register a callback receiving every emitted AlertEvent."""
        self._listeners.append(listener)

    def remove_listener(self, listener: AlertListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def evaluate(
        self,
        metric: str,
        value: float,
        warning_threshold: float,
        critical_threshold: float,
        direction: Direction = Direction.LOWER_IS_WORSE,
        timestamp: Optional[float] = None,
        source: str = "",
    ) -> Severity:
        """
        Classify a value and emit an alert if it crosses a threshold.

        Returns:
            Severity of the value
        """
        severity = classify(value, warning_threshold, critical_threshold, direction)
        if not severity.is_alert:
            return severity

        threshold = critical_threshold if severity is Severity.CRITICAL else warning_threshold
        event = AlertEvent(
            metric=metric,
            severity=severity,
            value=value,
            threshold=threshold,
            timestamp=self._clock() if timestamp is None else timestamp,
            source=source,
        )
        self._emit(event)
        return severity

    def _emit(self, event: AlertEvent) -> None:
        self._alert_count += 1
        self._last_alert = event

        if event.severity is Severity.CRITICAL:
            logger.error(event.message)
        else:
            logger.warning(event.message)

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Alert listener failed: {e}")
