#Marks drivers as a package.
#Driver snapshots, scoring policy and the performance scorer/ledger.

from .models import (
    AttendanceSnapshot,
    AttendanceStatus,
    DriverSnapshot,
    DriverStatus,
    PerformanceCategory,
    PerformanceMetrics,
    PerformanceStats,
    TripCategory,
    TripOutcome,
    TripOutcomeEvent,
)
from .policy import ScoringPolicy, default_scoring_policy
from .performance import PerformanceLedger, category_for_score, grade_for_score, score_performance

__all__ = [
    "AttendanceSnapshot",
    "AttendanceStatus",
    "DriverSnapshot",
    "DriverStatus",
    "PerformanceCategory",
    "PerformanceMetrics",
    "PerformanceStats",
    "TripCategory",
    "TripOutcome",
    "TripOutcomeEvent",
    "ScoringPolicy",
    "default_scoring_policy",
    "PerformanceLedger",
    "category_for_score",
    "grade_for_score",
    "score_performance",
]
