"""
Benchmark report writer.

Renders a ComparisonResult as a plain-text report, one file per run.
"""

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, List

from perfmon.errors import PersistenceError

if TYPE_CHECKING:
    from perfmon.benchmark.result import ComparisonResult

logger = logging.getLogger(__name__)


_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')


class ReportGenerator:
    """
    Writes benchmark reports to a directory.

    Usage:
        reports = ReportGenerator("PerformanceLogs")
        path = reports.generate(result)
    """

    def __init__(self, directory: str):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def report_path(self, result: "ComparisonResult") -> Path:
        """File path for a result, keyed by benchmark name and timestamp."""
        name = _UNSAFE_FILENAME_CHARS.sub("_", result.benchmark_name)
        stamp = result.timestamp.strftime("%Y%m%d_%H%M%S")
        return self._directory / f"Benchmark_Report_{name}_{stamp}.txt"

    def render(self, result: "ComparisonResult") -> str:
        """Render the human-readable report text."""
        lines: List[str] = [
            f"Benchmark Report: {result.benchmark_name}",
            f"Timestamp: {result.timestamp:%Y-%m-%d %H:%M:%S}",
            f"Samples: {result.sample_count}",
            f"Duration: {result.duration_s:.2f} s",
        ]
        if result.has_frame_intervals:
            lines.append(
                f"Frame Interval: mean {result.mean_frame_interval_ms:.2f} ms, "
                f"max {result.max_frame_interval_ms:.2f} ms"
            )

        lines.append("")
        lines.append("Average Metrics:")
        for name, value in result.average_metrics.items():
            lines.append(f"{name}: {value:.2f}")

        lines.append("")
        lines.append("Peak Metrics:")
        for name, value in result.peak_metrics.items():
            lines.append(f"{name}: {value:.2f}")

        if result.alerts:
            lines.append("")
            lines.append("Performance Alerts:")
            lines.extend(result.alerts)

        return "\n".join(lines) + "\n"

    def generate(self, result: "ComparisonResult") -> Path:
        """
        Write the report for a result.

        Args:
            result: Completed benchmark result

        Returns:
            Path of the written report

        Raises:
            PersistenceError: If the report cannot be written
        """
        path = self.report_path(result)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.render(result))
        except OSError as e:
            raise PersistenceError(f"Failed to write benchmark report {path}: {e}") from e

        logger.info(f"Benchmark report written: {path}")
        return path
