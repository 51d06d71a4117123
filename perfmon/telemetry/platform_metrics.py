"""
Platform-specific metric channels.

Each platform mode owns a small set of extra fields. The provider refreshes
them at most once per display update interval and only fills the fields
whose tracking flag is enabled.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

from perfmon.config import Config, PlatformMode
from perfmon.utils.platform import get_battery_percent, get_cpu_temperature
from perfmon.utils.timing import ThrottledInterval

logger = logging.getLogger(__name__)


@dataclass
class GenericMetrics:
    """Generic platform: no extra fields."""


@dataclass
class ConsoleMetrics:
    draw_calls: float = 0.0
    shader_complexity: float = 0.0


@dataclass
class MobileMetrics:
    battery_percent: float = 0.0
    thermal_throttle: float = 0.0


@dataclass
class HighEndPCMetrics:
    ray_tracing_load: float = 0.0
    gpu_compute_utilization: float = 0.0


PlatformMetrics = Union[GenericMetrics, ConsoleMetrics, MobileMetrics, HighEndPCMetrics]


# (warning, critical) display thresholds per platform field
PLATFORM_DISPLAY_THRESHOLDS: Dict[str, Tuple[float, float]] = {
    "draw_calls": (1000.0, 2000.0),
    "shader_complexity": (50.0, 75.0),
    "battery_percent": (20.0, 10.0),
    "thermal_throttle": (50.0, 75.0),
    "ray_tracing_load": (50.0, 75.0),
    "gpu_compute_utilization": (50.0, 75.0),
}


def metrics_for_mode(mode: PlatformMode) -> PlatformMetrics:
    """Create the empty metrics variant for a platform mode."""
    if mode == PlatformMode.CONSOLE:
        return ConsoleMetrics()
    elif mode == PlatformMode.MOBILE:
        return MobileMetrics()
    elif mode == PlatformMode.HIGH_END_PC:
        return HighEndPCMetrics()
    return GenericMetrics()


class PlatformProbe(ABC):
    """Source of the raw values behind the platform channels."""

    @abstractmethod
    def draw_calls(self) -> float:
        """Estimated draw calls for the current frame."""

    @abstractmethod
    def shader_complexity(self) -> float:
        """Shader complexity score, 0-1."""

    @abstractmethod
    def battery_percent(self) -> float:
        """Remaining battery, 0-100."""

    @abstractmethod
    def thermal_throttle(self) -> float:
        """Thermal throttling score, 0-100."""

    @abstractmethod
    def ray_tracing_load(self) -> float:
        """Ray tracing load, 0-100."""

    @abstractmethod
    def gpu_compute_utilization(self) -> float:
        """GPU compute utilization, 0-100."""


class SystemProbe(PlatformProbe):
    """
    Probe backed by psutil plus optional host callbacks.

    Battery and thermal values are read from the operating system. Renderer
    values (draw calls, shader complexity, ray tracing, GPU compute) only
    the host knows; supply them as callables or they read as 0.
    """

    # CPU temperature mapped linearly onto the 0-100 throttle score
    THERMAL_IDLE_C = 40.0
    THERMAL_LIMIT_C = 90.0

    def __init__(
        self,
        draw_calls_fn: Optional[Callable[[], float]] = None,
        shader_complexity_fn: Optional[Callable[[], float]] = None,
        ray_tracing_load_fn: Optional[Callable[[], float]] = None,
        gpu_compute_fn: Optional[Callable[[], float]] = None,
    ):
        self._draw_calls_fn = draw_calls_fn
        self._shader_complexity_fn = shader_complexity_fn
        self._ray_tracing_load_fn = ray_tracing_load_fn
        self._gpu_compute_fn = gpu_compute_fn

    @staticmethod
    def _call(fn: Optional[Callable[[], float]]) -> float:
        return float(fn()) if fn is not None else 0.0

    def draw_calls(self) -> float:
        return self._call(self._draw_calls_fn)

    def shader_complexity(self) -> float:
        return self._call(self._shader_complexity_fn)

    def battery_percent(self) -> float:
        percent = get_battery_percent()
        return percent if percent is not None else 100.0

    def thermal_throttle(self) -> float:
        temp = get_cpu_temperature()
        if temp is None:
            return 0.0
        span = self.THERMAL_LIMIT_C - self.THERMAL_IDLE_C
        score = (temp - self.THERMAL_IDLE_C) / span * 100.0
        return min(max(score, 0.0), 100.0)

    def ray_tracing_load(self) -> float:
        return self._call(self._ray_tracing_load_fn)

    def gpu_compute_utilization(self) -> float:
        return self._call(self._gpu_compute_fn)


class PlatformMetricsProvider:
    """
    Keeps the active platform metrics variant up to date.

    Usage:
        provider = PlatformMetricsProvider(config, SystemProbe())

        # In tick loop:
        provider.update(now)
        metrics = provider.metrics
    """

    def __init__(self, config: Config, probe: Optional[PlatformProbe] = None):
        self._probe = probe if probe is not None else SystemProbe()
        self._config = config
        self._throttle = ThrottledInterval(config.display_update_interval)
        self._metrics: PlatformMetrics = metrics_for_mode(config.platform_mode)
        self._update_count = 0

    @property
    def metrics(self) -> PlatformMetrics:
        return self._metrics

    @property
    def mode(self) -> PlatformMode:
        return self._config.platform_mode

    @property
    def update_count(self) -> int:
        """Number of throttled refreshes performed."""
        return self._update_count

    def configure(self, config: Config) -> None:
        """Adopt a new config; a changed platform mode starts a fresh variant."""
        if config.platform_mode != self._config.platform_mode:
            self._metrics = metrics_for_mode(config.platform_mode)
        self._config = config
        self._throttle.interval_s = config.display_update_interval

    def update(self, now: float) -> bool:
        """
        Refresh platform fields if the display interval has elapsed.

        Args:
            now: Current time in seconds

        Returns:
            True if the fields were refreshed this tick
        """
        if not self._throttle.ready(now):
            return False

        metrics = self._metrics
        config = self._config

        if isinstance(metrics, ConsoleMetrics):
            self._refresh(metrics, "draw_calls", config.track_draw_calls, self._probe.draw_calls)
            self._refresh(metrics, "shader_complexity", config.track_shader_complexity,
                          self._probe.shader_complexity)
        elif isinstance(metrics, MobileMetrics):
            self._refresh(metrics, "battery_percent", config.track_battery_consumption,
                          self._probe.battery_percent)
            self._refresh(metrics, "thermal_throttle", config.track_thermal_performance,
                          self._probe.thermal_throttle)
        elif isinstance(metrics, HighEndPCMetrics):
            self._refresh(metrics, "ray_tracing_load", config.track_ray_tracing_performance,
                          self._probe.ray_tracing_load)
            self._refresh(metrics, "gpu_compute_utilization", config.track_advanced_gpu_metrics,
                          self._probe.gpu_compute_utilization)

        self._update_count += 1
        return True

    @staticmethod
    def _refresh(metrics: PlatformMetrics, name: str, enabled: bool, read: Callable[[], float]) -> None:
        if not enabled:
            return
        try:
            setattr(metrics, name, float(read()))
        except Exception as e:
            # Field keeps its previous value
            logger.warning(f"Platform probe failed for {name}: {e}")
