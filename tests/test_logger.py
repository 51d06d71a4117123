"""
Unit tests for the CSV time-series logger and benchmark report rendering.

Run:
    pytest tests/test_logger.py -v
"""

import csv
from datetime import datetime

import pytest

from perfmon.benchmark import ComparisonResult
from perfmon.errors import PersistenceError
from perfmon.telemetry import BuiltinChannels, LogRecord, ReportGenerator, TimeSeriesLogger
from perfmon.telemetry.logger import LOG_COLUMNS


def _rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


# =============================================================================
# Time-series logger
# =============================================================================

class TestLogRecord:
    """Test LogRecord conversion."""

    def test_from_channels(self):
        channels = BuiltinChannels.seeded()
        channels.fps.live = 50.0

        record = LogRecord.from_channels(2.0, channels)

        assert record.to_row() == [2.0, 50.0, 60.0, 60.0, 60.0, 1.0, 1.0]
        assert len(record.to_row()) == len(LOG_COLUMNS)


class TestTimeSeriesLogger:
    """Test synchronous and background CSV writing."""

    def test_no_file_until_first_row(self, tmp_path, fixed_wall_clock):
        ts_logger = TimeSeriesLogger(str(tmp_path / "logs"), clock=fixed_wall_clock)
        ts_logger.stop()

        assert ts_logger.log_file is None
        assert not (tmp_path / "logs").exists()

    def test_rows_throttled_to_interval(self, tmp_path, fixed_wall_clock):
        ts_logger = TimeSeriesLogger(str(tmp_path), log_interval=1.0, clock=fixed_wall_clock)
        channels = BuiltinChannels.seeded()

        assert ts_logger.log_sample(0.0, channels) is True
        assert ts_logger.log_sample(0.5, channels) is False
        assert ts_logger.log_sample(1.0, channels) is True
        ts_logger.stop()

        assert ts_logger.log_file == tmp_path / "performance_log_20260101_120000.csv"
        rows = _rows(ts_logger.log_file)
        assert len(rows) == 2
        assert ts_logger.records_written == 2

    def test_rows_have_no_header(self, tmp_path, fixed_wall_clock):
        ts_logger = TimeSeriesLogger(str(tmp_path), clock=fixed_wall_clock)
        ts_logger.log_sample(3.0, BuiltinChannels.seeded())
        ts_logger.stop()

        rows = _rows(ts_logger.log_file)
        assert [float(v) for v in rows[0]] == [3.0, 60.0, 60.0, 60.0, 60.0, 1.0, 1.0]

    def test_write_failure_counted(self, tmp_path, fixed_wall_clock):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        ts_logger = TimeSeriesLogger(str(blocker), clock=fixed_wall_clock)

        assert ts_logger.log_sample(0.0, BuiltinChannels.seeded()) is False
        assert ts_logger.write_errors == 1
        assert ts_logger.records_dropped == 1
        ts_logger.stop()

    def test_async_writes_flushed_on_stop(self, tmp_path, fixed_wall_clock):
        channels = BuiltinChannels.seeded()
        with TimeSeriesLogger(str(tmp_path), async_writes=True, clock=fixed_wall_clock) as ts_logger:
            for i in range(5):
                assert ts_logger.log(LogRecord.from_channels(float(i), channels))

        rows = _rows(ts_logger.log_file)
        assert [float(r[0]) for r in rows] == [0.0, 1.0, 2.0, 3.0, 4.0]
        assert ts_logger.records_written == 5


# =============================================================================
# Reports
# =============================================================================

@pytest.fixture
def result():
    return ComparisonResult(
        benchmark_name="Stress",
        timestamp=datetime(2026, 1, 1, 12, 0, 0),
        average_metrics={"Load": 20.0},
        peak_metrics={"Load": 30.0},
        alerts=("Load exceeded warning threshold",),
        sample_count=3,
        duration_s=3.0,
    )


class TestReportGenerator:
    """Test report text and file naming."""

    def test_render(self, result):
        text = ReportGenerator("unused").render(result)

        assert text == (
            "Benchmark Report: Stress\n"
            "Timestamp: 2026-01-01 12:00:00\n"
            "Samples: 3\n"
            "Duration: 3.00 s\n"
            "\n"
            "Average Metrics:\n"
            "Load: 20.00\n"
            "\n"
            "Peak Metrics:\n"
            "Load: 30.00\n"
            "\n"
            "Performance Alerts:\n"
            "Load exceeded warning threshold\n"
        )

    def test_render_frame_intervals(self, result):
        from dataclasses import replace

        timed = replace(result, mean_frame_interval_ms=16.7, max_frame_interval_ms=33.4)
        lines = ReportGenerator("unused").render(timed).splitlines()

        assert lines[4] == "Frame Interval: mean 16.70 ms, max 33.40 ms"
        assert lines[5:7] == ["", "Average Metrics:"]

    def test_render_without_alerts(self, result):
        from dataclasses import replace

        text = ReportGenerator("unused").render(replace(result, alerts=()))
        assert "Performance Alerts" not in text

    def test_report_path_sanitized(self, result, tmp_path):
        from dataclasses import replace

        path = ReportGenerator(str(tmp_path)).report_path(replace(result, benchmark_name="a/b:c"))
        assert path.name == "Benchmark_Report_a_b_c_20260101_120000.txt"

    def test_generate(self, result, tmp_path):
        path = ReportGenerator(str(tmp_path / "reports")).generate(result)
        assert path.read_text(encoding="utf-8").startswith("Benchmark Report: Stress")

    def test_generate_failure(self, result, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        with pytest.raises(PersistenceError):
            ReportGenerator(str(blocker)).generate(result)

    def test_to_dict(self, result):
        data = result.to_dict()
        assert data["timestamp"] == "2026-01-01T12:00:00"
        assert data["alerts"] == ["Load exceeded warning threshold"]
