"""
Runtime profiler - the tick-driven entry point.

Owns every piece of profiler state and runs the per-tick pipeline:
1. Built-in channel sampling (FPS, frame time, memory)
2. Platform metrics (throttled)
3. Display snapshot (throttled)
4. Built-in threshold alerts
5. Time-series CSV row (1 Hz)
6. Benchmark sampling and completion check
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from perfmon.alerts import AlertEvent, Direction, Severity, ThresholdEvaluator, classify
from perfmon.benchmark import (
    BenchmarkConfig,
    BenchmarkController,
    ComparisonResult,
    CustomMetric,
    MetricRegistry,
)
from perfmon.benchmark.registry import Sampler
from perfmon.config import Color, Config
from perfmon.config_store import ConfigStore
from perfmon.errors import ConfigurationError, PersistenceError
from perfmon.telemetry import (
    BuiltinChannels,
    MetricSampler,
    PlatformMetricsProvider,
    PlatformProbe,
    ReportGenerator,
    TickReading,
    TimeSeriesLogger,
)
from perfmon.telemetry.channel import update_builtin_channels
from perfmon.telemetry.platform_metrics import PLATFORM_DISPLAY_THRESHOLDS, PlatformMetrics
from perfmon.utils.timing import ThrottledInterval

logger = logging.getLogger(__name__)


# Frame time display levels (ms): 60 FPS and 30 FPS budgets
FRAME_TIME_WARNING_MS = 16.67
FRAME_TIME_CRITICAL_MS = 33.33
MEMORY_CRITICAL_DISPLAY = 0.9


@dataclass(frozen=True)
class DisplayRow:
    """One labelled value an overlay would render."""
    label: str
    value: float
    severity: Severity
    color: Color


@dataclass(frozen=True)
class DisplaySnapshot:
    """Channel values frozen at the last display update."""
    timestamp: float
    rows: Tuple[DisplayRow, ...] = ()

    def as_dict(self) -> Dict[str, float]:
        return {row.label: row.value for row in self.rows}


@dataclass
class ProfilerState:
    """Everything one profiler instance owns."""
    config: Config
    channels: BuiltinChannels
    sampler: MetricSampler
    platform: PlatformMetricsProvider
    evaluator: ThresholdEvaluator
    benchmark: BenchmarkController
    ts_logger: TimeSeriesLogger
    store: ConfigStore
    display_throttle: ThrottledInterval
    display: DisplaySnapshot = field(default_factory=lambda: DisplaySnapshot(timestamp=0.0))
    last_now: Optional[float] = None
    tick_count: int = 0
    stage_errors: int = 0


class Profiler:
    """
    In-process performance profiler driven by host ticks.

    Usage:
        profiler = Profiler(load_config())
        profiler.register_custom_metric("GPU Load", read_gpu_load, 50.0, 75.0)
        profiler.start_benchmark(BenchmarkConfig(benchmark_duration=30.0))

        # Once per frame:
        profiler.tick(TickReading.capture(delta))

        # On shutdown:
        profiler.shutdown()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        probe: Optional[PlatformProbe] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize profiler.

        Args:
            config: Configuration (defaults if None)
            probe: Source of platform metric values (psutil-backed if None)
            clock: Monotonic time source for operations called without ``now``
            wall_clock: Time source for file names and result timestamps
        """
        config = config if config is not None else Config()
        system = config.system

        evaluator = ThresholdEvaluator(clock=clock)
        benchmark = BenchmarkController(
            evaluator,
            registry=MetricRegistry(history_limit=system.history_limit),
            reports=ReportGenerator(system.log_directory),
            clock=clock,
            wall_clock=wall_clock,
        )
        ts_logger = TimeSeriesLogger(
            system.log_directory,
            log_interval=system.log_interval_s,
            async_writes=system.async_writes,
            clock=wall_clock,
        )

        self._clock = clock
        self._state = ProfilerState(
            config=config,
            channels=BuiltinChannels.seeded(),
            sampler=MetricSampler(config.convergence_factor),
            platform=PlatformMetricsProvider(config, probe),
            evaluator=evaluator,
            benchmark=benchmark,
            ts_logger=ts_logger,
            store=ConfigStore(system.profile_directory),
            display_throttle=ThrottledInterval(config.display_update_interval),
        )
        ts_logger.start()

        logger.info(
            f"Profiler initialized: profile={config.profile_name}, "
            f"platform={config.platform_mode.value}, factor={config.convergence_factor:.3f}"
        )

    @property
    def state(self) -> ProfilerState:
        return self._state

    @property
    def config(self) -> Config:
        return self._state.config

    @property
    def channels(self) -> BuiltinChannels:
        return self._state.channels

    @property
    def platform_metrics(self) -> PlatformMetrics:
        return self._state.platform.metrics

    @property
    def benchmark(self) -> BenchmarkController:
        return self._state.benchmark

    def _now(self, now: Optional[float]) -> float:
        if now is not None:
            return now
        if self._state.last_now is not None:
            return self._state.last_now
        return self._clock()

    # ------------------------------------------------------------------
    # Tick pipeline
    # ------------------------------------------------------------------

    def tick(self, reading: TickReading) -> None:
        """
        Run one tick of the pipeline.

        A failing stage is logged and skipped; later stages still run.
        """
        state = self._state
        now = reading.now
        state.last_now = now

        self._run_stage("sampling", self._update_channels, reading)
        self._run_stage("platform", state.platform.update, now)
        self._run_stage("display", self._update_display, now)
        self._run_stage("thresholds", self._check_thresholds, now)
        self._run_stage("logging", state.ts_logger.log_sample, now, state.channels)

        if state.benchmark.is_running:
            self._run_stage("benchmark", state.benchmark.update, now)

        state.tick_count += 1

    def _run_stage(self, name: str, stage: Callable, *args) -> None:
        try:
            stage(*args)
        except Exception as e:
            self._state.stage_errors += 1
            logger.error(f"Tick stage '{name}' failed: {e}")

    def _update_channels(self, reading: TickReading) -> None:
        config = self._state.config
        update_builtin_channels(
            self._state.sampler,
            self._state.channels,
            reading,
            enable_fps=config.enable_fps,
            enable_gpu=config.enable_gpu,
            enable_memory=config.enable_memory,
        )

    def _check_thresholds(self, now: float) -> None:
        config = self._state.config
        channels = self._state.channels
        evaluator = self._state.evaluator

        if config.enable_fps:
            evaluator.evaluate(
                "FPS",
                channels.fps.live,
                config.fps_warning_threshold,
                config.fps_critical_threshold,
                direction=Direction.LOWER_IS_WORSE,
                timestamp=now,
                source="builtin",
            )

        if config.enable_memory:
            # Memory has a warning level only
            evaluator.evaluate(
                "Memory",
                channels.memory.live,
                config.memory_warning_threshold,
                float("inf"),
                direction=Direction.HIGHER_IS_WORSE,
                timestamp=now,
                source="builtin",
            )

    # ------------------------------------------------------------------
    # Display snapshot
    # ------------------------------------------------------------------

    def _color_for(self, severity: Severity) -> Color:
        config = self._state.config
        if severity is Severity.CRITICAL:
            return config.critical_color
        if severity is Severity.WARNING:
            return config.warning_color
        return config.primary_color

    def _row(self, label: str, value: float, warning: float, critical: float,
             direction: Direction) -> DisplayRow:
        severity = classify(value, warning, critical, direction)
        return DisplayRow(label=label, value=value, severity=severity, color=self._color_for(severity))

    def _update_display(self, now: float) -> bool:
        state = self._state
        if not state.display_throttle.ready(now):
            return False

        config = state.config
        channels = state.channels
        rows: List[DisplayRow] = []

        if config.enable_fps:
            rows.append(self._row("FPS (Live)", channels.fps.live, config.fps_warning_threshold,
                                  config.fps_critical_threshold, Direction.LOWER_IS_WORSE))
            rows.append(self._row("FPS (Avg)", channels.fps.average, config.fps_warning_threshold,
                                  config.fps_critical_threshold, Direction.LOWER_IS_WORSE))

        if config.enable_gpu:
            rows.append(self._row("GPU Frame Time (ms)", channels.gpu.live, FRAME_TIME_WARNING_MS,
                                  FRAME_TIME_CRITICAL_MS, Direction.HIGHER_IS_WORSE))

        if config.enable_memory:
            warning = config.memory_warning_threshold * 100
            critical = MEMORY_CRITICAL_DISPLAY * 100
            rows.append(self._row("Memory (Live)", channels.memory.live * 100, warning, critical,
                                  Direction.HIGHER_IS_WORSE))
            rows.append(self._row("Memory (Avg)", channels.memory.average * 100, warning, critical,
                                  Direction.HIGHER_IS_WORSE))

        for name, value in vars(state.platform.metrics).items():
            warning, critical = PLATFORM_DISPLAY_THRESHOLDS[name]
            if name == "shader_complexity":
                value = value * 100
            direction = Direction.LOWER_IS_WORSE if name == "battery_percent" else Direction.HIGHER_IS_WORSE
            label = name.replace("_", " ").title()
            rows.append(self._row(label, value, warning, critical, direction))

        if config.enable_custom_metrics:
            for metric in state.benchmark.registry:
                if metric.history:
                    rows.append(self._row(metric.name, metric.history[-1], metric.warning_threshold,
                                          metric.critical_threshold, metric.direction))

        state.display = DisplaySnapshot(timestamp=now, rows=tuple(rows))
        return True

    def display_snapshot(self) -> DisplaySnapshot:
        """Values as of the last display update."""
        return self._state.display

    def add_alert_listener(self, listener: Callable[[AlertEvent], None]) -> None:
        self._state.evaluator.add_listener(listener)

    # ------------------------------------------------------------------
    # Benchmarks
    # ------------------------------------------------------------------

    def register_custom_metric(
        self,
        name: str,
        sampler: Optional[Sampler],
        warning_threshold: float,
        critical_threshold: float,
        direction: Direction = Direction.HIGHER_IS_WORSE,
    ) -> CustomMetric:
        """Register a custom metric for benchmark runs."""
        return self._state.benchmark.register(
            name, sampler, warning_threshold, critical_threshold, direction
        )

    def start_benchmark(self, config: Optional[BenchmarkConfig] = None, now: Optional[float] = None) -> None:
        """Start (or silently restart) a benchmark run."""
        self._state.benchmark.start(config, self._now(now))

    def end_benchmark(self, now: Optional[float] = None) -> ComparisonResult:
        """Force-end the current run and return its result."""
        return self._state.benchmark.end(self._now(now))

    def cancel_benchmark(self) -> bool:
        """Discard the current run without a result."""
        return self._state.benchmark.cancel()

    def compare_benchmarks(self) -> List[ComparisonResult]:
        """All benchmark results, most recent first."""
        return self._state.benchmark.compare()

    # ------------------------------------------------------------------
    # Configuration profiles
    # ------------------------------------------------------------------

    def apply_config(self, config: Config) -> None:
        """
        Make a configuration current.

        Channel smoothing, platform metrics and the display throttle follow
        the new profile. The ``system`` section is only read at construction.
        """
        state = self._state
        state.config = config
        state.sampler = MetricSampler(config.convergence_factor)
        state.platform.configure(config)
        state.display_throttle.interval_s = config.display_update_interval

    def save_configuration(self, profile_name: str) -> bool:
        """
        Save the current configuration under a profile name.

        Returns:
            True on success; failures are logged
        """
        try:
            named = self._state.store.save(self._state.config, profile_name)
        except (PersistenceError, ValueError) as e:
            logger.error(f"Failed to save configuration '{profile_name}': {e}")
            return False

        self._state.config = named
        return True

    def load_configuration(self, profile_name: str) -> bool:
        """
        Load a configuration profile and make it current.

        On failure the current configuration is kept.

        Returns:
            True on success; failures are logged
        """
        try:
            config = self._state.store.load(profile_name, base=self._state.config)
        except (PersistenceError, ConfigurationError, ValueError) as e:
            logger.error(f"Failed to load configuration '{profile_name}': {e}")
            return False

        self.apply_config(config)
        logger.info(f"Configuration '{profile_name}' active")
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Stop logging. A benchmark still running is discarded."""
        if self._state.benchmark.is_running:
            logger.warning("Shutting down with a benchmark in progress; discarding it")
            self._state.benchmark.cancel()

        self._state.ts_logger.stop()
        logger.info(
            f"Profiler shut down after {self._state.tick_count} ticks "
            f"({self._state.stage_errors} stage errors)"
        )

    def __enter__(self) -> "Profiler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
