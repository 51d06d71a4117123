"""
Unit tests for the benchmark controller, metric registry and results.

Tests the run state machine, result aggregation and report generation.
"""

import math
from collections import deque
from datetime import datetime, timedelta

import pytest

from perfmon.alerts import Direction, ThresholdEvaluator
from perfmon.benchmark import (
    BenchmarkConfig,
    BenchmarkController,
    BenchmarkState,
    ComparisonResult,
    CustomMetric,
    MetricRegistry,
)
from perfmon.telemetry.report import ReportGenerator


# =============================================================================
# Fixtures
# =============================================================================

def _sequence(*values):
    """Sampler returning the given values in order."""
    it = iter(values)
    return lambda: next(it)


@pytest.fixture
def evaluator():
    return ThresholdEvaluator(clock=lambda: 0.0)


@pytest.fixture
def controller(evaluator, fixed_wall_clock):
    return BenchmarkController(evaluator, wall_clock=fixed_wall_clock)


@pytest.fixture
def stepping_wall_clock():
    """Wall clock advancing one minute per call."""
    start = datetime(2026, 1, 1, 12, 0, 0)
    calls = {"n": 0}

    def clock():
        calls["n"] += 1
        return start + timedelta(minutes=calls["n"])

    return clock


# =============================================================================
# Registry
# =============================================================================

class TestMetricRegistry:
    """Test custom metric registration."""

    def test_register_keeps_order(self):
        registry = MetricRegistry()
        registry.register("A", lambda: 1.0, 1.0, 2.0)
        registry.register("B", lambda: 2.0, 1.0, 2.0)

        assert [m.name for m in registry] == ["A", "B"]
        assert len(registry) == 2

    def test_default_direction_higher_is_worse(self):
        metric = MetricRegistry().register("Load", lambda: 1.0, 50.0, 75.0)
        assert metric.direction is Direction.HIGHER_IS_WORSE

    def test_duplicate_names_are_separate_metrics(self):
        registry = MetricRegistry()
        first = registry.register("Load", lambda: 1.0, 1.0, 2.0)
        second = registry.register("Load", lambda: 2.0, 1.0, 2.0)

        first.record(5.0)

        assert first is not second
        assert second.history == []
        assert len(registry) == 2

    def test_add_is_idempotent(self):
        registry = MetricRegistry()
        metric = CustomMetric("A", lambda: 1.0, 1.0, 2.0)

        registry.add(metric)
        registry.add(metric)

        assert len(registry) == 1
        assert metric in registry

    def test_history_limit(self):
        registry = MetricRegistry(history_limit=2)
        metric = registry.register("A", lambda: 1.0, 1.0, 2.0)

        for value in (1.0, 2.0, 3.0):
            metric.record(value)

        assert list(metric.history) == [2.0, 3.0]

    def test_add_converts_history_when_limited(self):
        registry = MetricRegistry(history_limit=3)
        metric = CustomMetric("A", lambda: 1.0, 1.0, 2.0, history=[1.0, 2.0])

        registry.add(metric)

        assert isinstance(metric.history, deque)
        assert list(metric.history) == [1.0, 2.0]

    def test_invalid_history_limit(self):
        with pytest.raises(ValueError):
            MetricRegistry(history_limit=0)

    def test_sample_without_sampler(self):
        metric = CustomMetric("A", None, 1.0, 2.0)
        with pytest.raises(RuntimeError):
            metric.sample()


# =============================================================================
# Controller state machine
# =============================================================================

class TestBenchmarkLifecycle:
    """Test start, completion, cancel and restart."""

    def test_initial_state(self, controller):
        assert controller.state is BenchmarkState.IDLE
        assert not controller.is_running
        assert controller.run is None

    def test_default_config(self):
        config = BenchmarkConfig()
        assert config.benchmark_name == "Default Benchmark"
        assert config.benchmark_duration == 60.0
        assert config.record_frame_timestamps is True
        assert config.generate_detailed_report is True

    def test_completes_exactly_at_duration(self, controller):
        controller.register("Load", lambda: 1.0, 5.0, 10.0)
        controller.start(BenchmarkConfig(benchmark_duration=60.0, generate_detailed_report=False), now=0.0)

        assert controller.update(59.9) is None
        assert controller.is_running

        result = controller.update(60.0)

        assert isinstance(result, ComparisonResult)
        assert controller.state is BenchmarkState.COMPLETED
        assert result.sample_count == 2
        assert result.duration_s == pytest.approx(60.0)

    def test_update_when_idle_does_nothing(self, controller):
        metric = controller.register("Load", lambda: 1.0, 5.0, 10.0)
        assert controller.update(1.0) is None
        assert metric.history == []

    def test_cancel_discards_run(self, controller):
        controller.register("Load", lambda: 1.0, 5.0, 10.0)
        controller.start(BenchmarkConfig(), now=0.0)
        controller.update(1.0)

        assert controller.cancel() is True
        assert controller.state is BenchmarkState.CANCELLED
        assert controller.compare() == []
        assert controller.cancel() is False

    def test_restart_discards_previous_run(self, controller):
        metric = controller.register("Load", _sequence(1.0, 2.0, 3.0), 5.0, 10.0)
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        controller.update(1.0)
        controller.update(2.0)

        controller.start(now=10.0)

        assert controller.is_running
        assert metric.history == []
        assert controller.run.start_time == 10.0
        assert controller.compare() == []

        controller.update(11.0)
        assert metric.history == [3.0]

    def test_end_when_idle_returns_empty_result(self, controller):
        result = controller.end(5.0)

        assert result.benchmark_name == "Default Benchmark"
        assert result.average_metrics == {}
        assert result.alerts == ()
        assert controller.compare() == []
        assert controller.state is BenchmarkState.IDLE

    def test_frame_timestamps(self, controller):
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        controller.update(0.5)
        controller.update(1.0)
        assert controller.run.frame_timestamps == [0.5, 1.0]

    def test_frame_timestamps_disabled(self, controller):
        config = BenchmarkConfig(record_frame_timestamps=False, generate_detailed_report=False)
        controller.start(config, now=0.0)
        controller.update(0.5)
        assert controller.run.frame_timestamps == []

        result = controller.end(0.5)
        assert result.mean_frame_interval_ms is None
        assert "mean_frame_interval_ms" not in result.to_dict()

    def test_frame_timestamps_bounded_by_history_limit(self, evaluator, fixed_wall_clock):
        controller = BenchmarkController(
            evaluator, registry=MetricRegistry(history_limit=2), wall_clock=fixed_wall_clock
        )
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        for now in (0.1, 0.2, 0.3, 0.4):
            controller.update(now)

        assert list(controller.run.frame_timestamps) == [0.3, 0.4]
        assert controller.run.sample_count == 4

    def test_frame_interval_stats(self, controller):
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        for now in (1.0, 1.02, 1.05, 1.06):
            controller.update(now)

        result = controller.end(1.06)

        assert result.mean_frame_interval_ms == pytest.approx(20.0)
        assert result.max_frame_interval_ms == pytest.approx(30.0)
        assert result.to_dict()["max_frame_interval_ms"] == pytest.approx(30.0)

    def test_single_tick_has_no_frame_interval(self, controller):
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        controller.update(1.0)

        result = controller.end(1.0)

        assert result.has_frame_intervals is False


# =============================================================================
# Aggregation
# =============================================================================

class TestBenchmarkResults:
    """Test averages, peaks and end-of-run alerts."""

    def test_average_peak_and_alert(self, controller):
        controller.register("Load", _sequence(10.0, 20.0, 30.0), 15.0, 40.0)
        controller.start(BenchmarkConfig(benchmark_duration=100.0, generate_detailed_report=False), now=0.0)

        for now in (1.0, 2.0, 3.0):
            controller.update(now)
        result = controller.end(3.0)

        assert result.average_metrics == {"Load": pytest.approx(20.0)}
        assert result.peak_metrics == {"Load": 30.0}
        assert result.alerts == ("Load exceeded warning threshold",)
        assert result.has_alerts
        assert result.sample_count == 3

    def test_average_equal_to_warning_is_not_an_alert(self, controller):
        controller.register("Load", _sequence(10.0, 30.0), 20.0, 40.0)
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        controller.update(1.0)
        controller.update(2.0)

        assert controller.end(2.0).alerts == ()

    def test_metric_without_samples_omitted(self, controller):
        controller.register("Load", lambda: 1.0, 5.0, 10.0)
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)

        result = controller.end(1.0)

        assert result.average_metrics == {}
        assert result.peak_metrics == {}

    def test_duplicate_names_independent_histories(self, controller):
        first = controller.register("Load", lambda: 1.0, 5.0, 10.0)
        second = controller.register("Load", lambda: 3.0, 5.0, 10.0)
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        controller.update(1.0)

        assert first.history == [1.0]
        assert second.history == [3.0]

        result = controller.end(1.0)
        assert result.average_metrics == {"Load": 3.0}

    def test_failing_sampler_skipped(self, controller):
        def broken():
            raise RuntimeError("sensor offline")

        bad = controller.register("Bad", broken, 5.0, 10.0)
        good = controller.register("Good", lambda: 2.0, 5.0, 10.0)
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        controller.update(1.0)

        assert bad.history == []
        assert good.history == [2.0]
        assert controller.run.sample_count == 1

    def test_non_finite_sample_skipped(self, controller):
        metric = controller.register("NaN", lambda: math.nan, 5.0, 10.0)
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        controller.update(1.0)
        assert metric.history == []

    def test_samples_are_evaluated(self, controller, evaluator):
        events = []
        evaluator.add_listener(events.append)
        controller.register("Load", lambda: 90.0, 50.0, 75.0)
        controller.start(BenchmarkConfig(benchmark_name="Run", generate_detailed_report=False), now=0.0)

        controller.update(1.0)

        assert len(events) == 1
        assert events[0].metric == "Load"
        assert events[0].source == "Run"

    def test_lower_is_worse_samples(self, controller, evaluator):
        events = []
        evaluator.add_listener(events.append)
        controller.register("Battery", lambda: 15.0, 20.0, 10.0, direction=Direction.LOWER_IS_WORSE)
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)

        controller.update(1.0)

        assert events[0].threshold == 20.0


class TestMetricAdoption:
    """Test how registry and benchmark config share metrics."""

    def test_register_appends_to_current_config(self, controller):
        metric = controller.register("Load", lambda: 1.0, 5.0, 10.0)
        assert metric in controller.config.custom_metrics

    def test_config_metrics_adopted_into_registry(self, controller):
        metric = CustomMetric("Preset", lambda: 4.0, 5.0, 10.0)
        config = BenchmarkConfig(custom_metrics=[metric], generate_detailed_report=False)

        controller.start(config, now=0.0)
        controller.update(1.0)

        assert metric in controller.registry
        assert metric.history == [4.0]

    def test_registered_metrics_join_new_config(self, controller):
        metric = controller.register("Load", lambda: 1.0, 5.0, 10.0)
        config = BenchmarkConfig(generate_detailed_report=False)

        controller.start(config, now=0.0)

        assert controller.config.custom_metrics == [metric]
        assert controller.config.benchmark_name == config.benchmark_name

    def test_caller_config_left_untouched(self, controller):
        controller.register("Load", lambda: 1.0, 5.0, 10.0)
        config = BenchmarkConfig(generate_detailed_report=False)

        controller.start(config, now=0.0)
        controller.register("Later", lambda: 2.0, 5.0, 10.0)

        assert config.custom_metrics == []
        assert controller.config is not config

    def test_shared_config_does_not_leak_between_controllers(self, evaluator, fixed_wall_clock):
        first = BenchmarkController(evaluator, wall_clock=fixed_wall_clock)
        second = BenchmarkController(evaluator, wall_clock=fixed_wall_clock)
        first.register("First only", lambda: 1.0, 5.0, 10.0)
        shared = BenchmarkConfig(generate_detailed_report=False)

        first.start(shared, now=0.0)
        second.start(shared, now=0.0)
        second.update(1.0)

        assert [m.name for m in first.registry] == ["First only"]
        assert [m.name for m in second.registry] == []
        assert second.end(1.0).average_metrics == {}


# =============================================================================
# History
# =============================================================================

class TestCompare:
    """Test result history ordering."""

    def _run(self, controller, name, now):
        controller.start(BenchmarkConfig(benchmark_name=name, generate_detailed_report=False), now=now)
        controller.update(now + 1.0)
        return controller.end(now + 1.0)

    def test_most_recent_first(self, evaluator, stepping_wall_clock):
        controller = BenchmarkController(evaluator, wall_clock=stepping_wall_clock)
        controller.register("Load", lambda: 1.0, 5.0, 10.0)

        self._run(controller, "first", 0.0)
        self._run(controller, "second", 10.0)

        names = [r.benchmark_name for r in controller.compare()]
        assert names == ["second", "first"]
        assert [r.benchmark_name for r in controller.history] == ["first", "second"]

    def test_compare_is_idempotent(self, evaluator, stepping_wall_clock):
        controller = BenchmarkController(evaluator, wall_clock=stepping_wall_clock)
        self._run(controller, "only", 0.0)

        assert controller.compare() == controller.compare()
        assert len(controller.compare()) == 1

    def test_results_cannot_be_edited(self, evaluator, stepping_wall_clock):
        controller = BenchmarkController(evaluator, wall_clock=stepping_wall_clock)
        controller.register("A", lambda: 1.0, 5.0, 10.0)
        self._run(controller, "only", 0.0)

        with pytest.raises(TypeError):
            controller.compare()[0].average_metrics["A"] = 999.0
        with pytest.raises(TypeError):
            controller.compare()[0].peak_metrics["A"] = 999.0

        assert controller.compare()[0].average_metrics == {"A": 1.0}
        assert controller.history[0].peak_metrics == {"A": 1.0}

    def test_result_copies_caller_mapping(self, fixed_wall_clock):
        averages = {"A": 1.0}
        result = ComparisonResult("Run", fixed_wall_clock(), average_metrics=averages)

        averages["A"] = 2.0

        assert result.average_metrics == {"A": 1.0}


# =============================================================================
# Reports
# =============================================================================

class TestReports:
    """Test report generation at the end of a run."""

    def test_report_written(self, evaluator, fixed_wall_clock, tmp_path):
        controller = BenchmarkController(
            evaluator, reports=ReportGenerator(str(tmp_path)), wall_clock=fixed_wall_clock
        )
        controller.register("Load", _sequence(10.0, 20.0), 15.0, 40.0)
        controller.start(BenchmarkConfig(benchmark_name="Stress"), now=0.0)
        controller.update(1.0)
        controller.update(2.0)
        controller.end(2.0)

        path = tmp_path / "Benchmark_Report_Stress_20260101_120000.txt"
        assert path.exists()
        text = path.read_text(encoding="utf-8")
        assert "Benchmark Report: Stress" in text
        assert "Load: 15.00" in text
        assert "Load: 20.00" in text
        assert "Load exceeded warning threshold" not in text

    def test_report_disabled(self, evaluator, fixed_wall_clock, tmp_path):
        controller = BenchmarkController(
            evaluator, reports=ReportGenerator(str(tmp_path)), wall_clock=fixed_wall_clock
        )
        controller.start(BenchmarkConfig(generate_detailed_report=False), now=0.0)
        controller.end(1.0)

        assert list(tmp_path.iterdir()) == []

    def test_report_failure_keeps_result(self, evaluator, fixed_wall_clock, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        controller = BenchmarkController(
            evaluator, reports=ReportGenerator(str(blocker)), wall_clock=fixed_wall_clock
        )
        controller.start(BenchmarkConfig(), now=0.0)

        result = controller.end(1.0)

        assert controller.compare() == [result]
