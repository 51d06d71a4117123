"""Shared fixtures for the performance monitor tests."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from perfmon.telemetry.platform_metrics import PlatformProbe


FIXED_TIME = datetime(2026, 1, 1, 12, 0, 0)


class FakeProbe(PlatformProbe):
    """Probe returning fixed values and counting reads."""

    def __init__(self, **values):
        self.values = {
            "draw_calls": 1500.0,
            "shader_complexity": 0.4,
            "battery_percent": 80.0,
            "thermal_throttle": 10.0,
            "ray_tracing_load": 60.0,
            "gpu_compute_utilization": 30.0,
        }
        self.values.update(values)
        self.calls = {name: 0 for name in self.values}

    def _read(self, name):
        self.calls[name] += 1
        value = self.values[name]
        if isinstance(value, Exception):
            raise value
        return value

    def draw_calls(self):
        return self._read("draw_calls")

    def shader_complexity(self):
        return self._read("shader_complexity")

    def battery_percent(self):
        return self._read("battery_percent")

    def thermal_throttle(self):
        return self._read("thermal_throttle")

    def ray_tracing_load(self):
        return self._read("ray_tracing_load")

    def gpu_compute_utilization(self):
        return self._read("gpu_compute_utilization")


@pytest.fixture
def fixed_wall_clock():
    """Wall clock frozen at 2026-01-01 12:00:00."""
    return lambda: FIXED_TIME


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def make_probe():
    """Factory for probes with overridden values."""
    return FakeProbe
