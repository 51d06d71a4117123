"""
Benchmark Module.

Provides custom metric registration, timed benchmark runs and their
comparison results.
"""

from .registry import CustomMetric, MetricRegistry
from .result import ComparisonResult
from .controller import BenchmarkConfig, BenchmarkController, BenchmarkRun, BenchmarkState

__all__ = [
    "CustomMetric",
    "MetricRegistry",
    "ComparisonResult",
    "BenchmarkConfig",
    "BenchmarkController",
    "BenchmarkRun",
    "BenchmarkState",
]
