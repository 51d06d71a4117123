"""Benchmark comparison results."""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ComparisonResult:
    """
    Summary of one completed benchmark run.

    Metric mappings keep registration order. Duplicate metric names
    collapse to the last registered metric's values. The mappings are
    read-only copies, so results kept in a controller's history cannot be
    edited through the objects handed out.
    """
    benchmark_name: str
    timestamp: datetime
    average_metrics: Mapping[str, float] = field(default_factory=dict)
    peak_metrics: Mapping[str, float] = field(default_factory=dict)
    alerts: Tuple[str, ...] = ()
    sample_count: int = 0
    duration_s: float = 0.0
    mean_frame_interval_ms: Optional[float] = None
    max_frame_interval_ms: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "average_metrics", MappingProxyType(dict(self.average_metrics)))
        object.__setattr__(self, "peak_metrics", MappingProxyType(dict(self.peak_metrics)))
        object.__setattr__(self, "alerts", tuple(self.alerts))

    @property
    def has_alerts(self) -> bool:
        return bool(self.alerts)

    @property
    def has_frame_intervals(self) -> bool:
        return self.mean_frame_interval_ms is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            "benchmark_name": self.benchmark_name,
            "timestamp": self.timestamp.isoformat(),
            "average_metrics": {k: round(v, 4) for k, v in self.average_metrics.items()},
            "peak_metrics": {k: round(v, 4) for k, v in self.peak_metrics.items()},
            "alerts": list(self.alerts),
            "sample_count": self.sample_count,
            "duration_s": round(self.duration_s, 3),
        }
        if self.has_frame_intervals:
            data["mean_frame_interval_ms"] = round(self.mean_frame_interval_ms, 3)
            data["max_frame_interval_ms"] = round(self.max_frame_interval_ms, 3)
        return data
