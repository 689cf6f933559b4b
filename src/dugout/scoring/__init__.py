"""Performance merging and the fantasy points rules engine."""

from dugout.scoring.normalizer import PERFORMANCE_FIELDS, merge
from dugout.scoring.rules import (
    PerformanceStats,
    PointsRules,
    ScoreBreakdown,
    is_dismissed,
    score,
)

__all__ = [
    "PERFORMANCE_FIELDS",
    "PerformanceStats",
    "PointsRules",
    "ScoreBreakdown",
    "is_dismissed",
    "merge",
    "score",
]
