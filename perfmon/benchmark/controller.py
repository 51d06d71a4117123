"""
Benchmark controller - runs timed collection windows over custom metrics.

State machine:
    IDLE --start--> RUNNING --duration elapsed / end()--> COMPLETED
    RUNNING --cancel()--> CANCELLED
    any state --start--> RUNNING (a running benchmark restarts silently)
"""

import logging
import math
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np

from perfmon.alerts import Direction, ThresholdEvaluator
from perfmon.errors import PersistenceError
from perfmon.telemetry.report import ReportGenerator
from .registry import CustomMetric, History, MetricRegistry, Sampler
from .result import ComparisonResult

logger = logging.getLogger(__name__)


class BenchmarkState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class BenchmarkConfig:
    """Settings for one benchmark run."""
    benchmark_name: str = "Default Benchmark"
    custom_metrics: List[CustomMetric] = field(default_factory=list)
    benchmark_duration: float = 60.0  # seconds
    record_frame_timestamps: bool = True
    generate_detailed_report: bool = True


@dataclass
class BenchmarkRun:
    """Transient state of the run in progress."""
    config: BenchmarkConfig
    start_time: float
    active: bool = True
    sample_count: int = 0
    frame_timestamps: History = field(default_factory=list)


class BenchmarkController:
    """
    Orchestrates benchmark runs and keeps their results.

    The result history grows for the life of the controller; nothing is
    evicted.

    Usage:
        controller = BenchmarkController(ThresholdEvaluator(), reports=ReportGenerator("logs"))
        controller.register("GPU Load", read_gpu_load, 50.0, 75.0)
        controller.start(BenchmarkConfig(benchmark_duration=30.0), now)

        # In tick loop:
        result = controller.update(now)  # not None once the run completes
    """

    def __init__(
        self,
        evaluator: ThresholdEvaluator,
        registry: Optional[MetricRegistry] = None,
        reports: Optional[ReportGenerator] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize benchmark controller.

        Args:
            evaluator: Threshold evaluator receiving every custom metric sample
            registry: Custom metric registry (a new unbounded one if None)
            reports: Report writer used when a run asks for a detailed report
            clock: Monotonic time source for calls made without ``now``
            wall_clock: Time source for result timestamps
        """
        self._evaluator = evaluator
        self._registry = registry if registry is not None else MetricRegistry()
        self._reports = reports
        self._clock = clock
        self._wall_clock = wall_clock

        self._config = BenchmarkConfig()
        self._run: Optional[BenchmarkRun] = None
        self._state = BenchmarkState.IDLE
        self._history: List[ComparisonResult] = []

    @property
    def state(self) -> BenchmarkState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is BenchmarkState.RUNNING

    @property
    def config(self) -> BenchmarkConfig:
        """Configuration of the current (or most recent) run."""
        return self._config

    @property
    def run(self) -> Optional[BenchmarkRun]:
        return self._run

    @property
    def registry(self) -> MetricRegistry:
        return self._registry

    @property
    def history(self) -> List[ComparisonResult]:
        """Results in completion order."""
        return list(self._history)

    def register(
        self,
        name: str,
        sampler: Optional[Sampler],
        warning_threshold: float,
        critical_threshold: float,
        direction: Direction = Direction.HIGHER_IS_WORSE,
    ) -> CustomMetric:
        """Register a custom metric; it is sampled from the next tick on."""
        metric = self._registry.register(
            name, sampler, warning_threshold, critical_threshold, direction
        )
        if metric not in self._config.custom_metrics:
            self._config.custom_metrics.append(metric)
        return metric

    def start(self, config: Optional[BenchmarkConfig] = None, now: Optional[float] = None) -> None:
        """
        Begin a benchmark run.

        A run already in progress is discarded without producing a result.

        Args:
            config: Run settings; None repeats the current configuration
            now: Current time in seconds
        """
        now = self._clock() if now is None else now

        if self.is_running:
            logger.info(f"Restarting benchmark: {self._config.benchmark_name}")

        if config is not None:
            for metric in config.custom_metrics:
                self._registry.add(metric)
            # The caller's config may be shared; the controller keeps its own copy
            self._config = replace(config, custom_metrics=list(self._registry))

        self._registry.clear_histories()
        self._run = BenchmarkRun(
            config=self._config,
            start_time=now,
            frame_timestamps=self._registry.new_history(),
        )
        self._state = BenchmarkState.RUNNING

        logger.info(
            f"Benchmark started: {self._config.benchmark_name} "
            f"({self._config.benchmark_duration:.1f}s, {len(self._registry)} metrics)"
        )
        if self._reports is not None:
            logger.info(f"Performance logs directory: {self._reports.directory.resolve()}")

    def update(self, now: Optional[float] = None) -> Optional[ComparisonResult]:
        """
        Sample every custom metric once and check for completion.

        Args:
            now: Current time in seconds

        Returns:
            The ComparisonResult if this tick completed the run, else None
        """
        if not self.is_running or self._run is None:
            return None

        now = self._clock() if now is None else now
        run = self._run

        for metric in self._registry:
            try:
                value = metric.sample()
            except Exception as e:
                logger.warning(f"Sampling failed for custom metric {metric.name!r}: {e}")
                continue

            if not math.isfinite(value):
                logger.warning(f"Ignoring non-finite sample for {metric.name!r}: {value}")
                continue

            metric.record(value)
            self._evaluator.evaluate(
                metric.name,
                value,
                metric.warning_threshold,
                metric.critical_threshold,
                direction=metric.direction,
                timestamp=now,
                source=run.config.benchmark_name,
            )

        run.sample_count += 1
        if run.config.record_frame_timestamps:
            run.frame_timestamps.append(now)

        if now - run.start_time >= run.config.benchmark_duration:
            return self.end(now)
        return None

    def end(self, now: Optional[float] = None) -> ComparisonResult:
        """
        Finish the current run and build its ComparisonResult.

        Calling this with no run in progress returns an empty result that is
        not added to the history.

        Args:
            now: Current time in seconds

        Returns:
            Summary of the run
        """
        now = self._clock() if now is None else now

        if not self.is_running or self._run is None:
            logger.warning("end() called with no benchmark running")
            return ComparisonResult(
                benchmark_name=self._config.benchmark_name,
                timestamp=self._wall_clock(),
            )

        run = self._run
        run.active = False
        self._state = BenchmarkState.COMPLETED

        averages = {}
        peaks = {}
        alerts = []
        for metric in self._registry:
            if not metric.history:
                continue

            values = np.asarray(metric.history, dtype=float)
            average = float(values.mean())
            averages[metric.name] = average
            peaks[metric.name] = float(values.max())

            # Only the average is compared, and only against the warning level
            if average > metric.warning_threshold:
                alerts.append(f"{metric.name} exceeded warning threshold")

        mean_interval, max_interval = self._frame_intervals(run)

        result = ComparisonResult(
            benchmark_name=run.config.benchmark_name,
            timestamp=self._wall_clock(),
            average_metrics=averages,
            peak_metrics=peaks,
            alerts=tuple(alerts),
            sample_count=run.sample_count,
            duration_s=max(now - run.start_time, 0.0),
            mean_frame_interval_ms=mean_interval,
            max_frame_interval_ms=max_interval,
        )
        self._history.append(result)

        logger.info(
            f"Benchmark completed: {result.benchmark_name} "
            f"({result.sample_count} samples, {len(result.alerts)} alerts)"
        )

        if run.config.generate_detailed_report and self._reports is not None:
            try:
                self._reports.generate(result)
            except PersistenceError as e:
                logger.error(f"Benchmark report not written: {e}")

        return result

    @staticmethod
    def _frame_intervals(run: BenchmarkRun) -> Tuple[Optional[float], Optional[float]]:
        """Mean and worst gap between recorded ticks, in ms (None under two ticks)."""
        if len(run.frame_timestamps) < 2:
            return None, None
        intervals = np.diff(np.asarray(run.frame_timestamps, dtype=float)) * 1000.0
        return float(intervals.mean()), float(intervals.max())

    def cancel(self) -> bool:
        """
        Abandon the run in progress without producing a result.

        Returns:
            True if a run was cancelled
        """
        if not self.is_running or self._run is None:
            return False

        self._run.active = False
        self._state = BenchmarkState.CANCELLED
        logger.info(f"Benchmark cancelled: {self._config.benchmark_name}")
        return True

    def compare(self) -> List[ComparisonResult]:
        """All results, most recent timestamp first."""
        return sorted(self._history, key=lambda r: r.timestamp, reverse=True)
