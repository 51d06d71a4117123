"""
Runtime performance monitor.

Tick-driven sampling of frame rate, frame time, memory and platform
channels, with threshold alerts, CSV time-series logging and timed
benchmark runs over user-registered metrics.
"""

from .config import Config, PlatformMode, load_config
from .profiler import Profiler, ProfilerState, DisplaySnapshot
from .telemetry import TickReading
from .benchmark import BenchmarkConfig, ComparisonResult
from .alerts import Direction, Severity

__all__ = [
    "Config",
    "PlatformMode",
    "load_config",
    "Profiler",
    "ProfilerState",
    "DisplaySnapshot",
    "TickReading",
    "BenchmarkConfig",
    "ComparisonResult",
    "Direction",
    "Severity",
]
