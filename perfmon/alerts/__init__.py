"""
Alerting Module.

Provides severity types and the threshold evaluator that is the single
source of alert output.
"""

from .types import Severity, Direction, AlertEvent
from .evaluator import ThresholdEvaluator, classify

__all__ = [
    "Severity",
    "Direction",
    "AlertEvent",
    "ThresholdEvaluator",
    "classify",
]
