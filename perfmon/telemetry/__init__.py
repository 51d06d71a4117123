"""
Telemetry module for the runtime performance monitor.

Provides metric channels, platform metrics, CSV time-series logging and
benchmark reports.
"""

from .channel import Channel, MetricSampler, BuiltinChannels, TickReading, lerp
from .platform_metrics import (
    PlatformMetricsProvider,
    PlatformProbe,
    SystemProbe,
    GenericMetrics,
    ConsoleMetrics,
    MobileMetrics,
    HighEndPCMetrics,
)
from .logger import TimeSeriesLogger, LogRecord
from .report import ReportGenerator

__all__ = [
    "Channel",
    "MetricSampler",
    "BuiltinChannels",
    "TickReading",
    "lerp",
    "PlatformMetricsProvider",
    "PlatformProbe",
    "SystemProbe",
    "GenericMetrics",
    "ConsoleMetrics",
    "MobileMetrics",
    "HighEndPCMetrics",
    "TimeSeriesLogger",
    "LogRecord",
    "ReportGenerator",
]
