"""Alert severities, threshold directions and alert events."""

from enum import Enum
from dataclasses import dataclass


class Severity(Enum):
    """Threshold classification result, ordered by urgency."""
    NOMINAL = "nominal"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def level(self) -> int:
        """Urgency level (0=nominal, 2=critical)."""
        levels = {
            Severity.NOMINAL: 0,
            Severity.WARNING: 1,
            Severity.CRITICAL: 2,
        }
        return levels[self]

    @property
    def is_alert(self) -> bool:
        return self is not Severity.NOMINAL


class Direction(Enum):
    """Which side of a threshold is bad for a metric."""
    LOWER_IS_WORSE = "lower_is_worse"    # FPS, battery
    HIGHER_IS_WORSE = "higher_is_worse"  # memory, frame time, load


@dataclass(frozen=True)
class AlertEvent:
    """Represents one threshold crossing observed on a tick."""
    metric: str
    severity: Severity
    value: float
    threshold: float
    timestamp: float
    source: str = ""

    @property
    def message(self) -> str:
        if self.severity is Severity.CRITICAL:
            return f"Critical threshold exceeded: {self.metric} = {self.value:.2f}"
        return f"Warning threshold approached: {self.metric} = {self.value:.2f}"

    def __lt__(self, other: "AlertEvent") -> bool:
        """Compare by severity for sorting (most urgent first)."""
        return self.severity.level > other.severity.level
