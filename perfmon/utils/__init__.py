"""Utility modules for the runtime performance monitor."""

from perfmon.utils.platform import get_platform_name, get_cpu_temperature, get_battery_percent
from perfmon.utils.timing import TickCostTracker, ThrottledInterval, TickPacer

__all__ = [
    "get_platform_name",
    "get_cpu_temperature",
    "get_battery_percent",
    "TickCostTracker",
    "ThrottledInterval",
    "TickPacer",
]
