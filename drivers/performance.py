"""
Purpose: Performance scoring (the "how good is this driver" layer).
What it does:
- score_performance: pure stats -> (score 0-100, GREEN/YELLOW/RED)
- PerformanceLedger: per-driver cumulative counters fed by trip outcomes,
  ratings and complaints. Metrics are recomputed from the counters on every
  event, never patched incrementally.

Score components (weights come from ScoringPolicy):
  rating/5 * rating_weight
  completion_rate * completion_weight
  max(0, complaint_weight - complaints * complaint_weight / complaint_cap)
  (1 - rejection_rate) * rejection_weight
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, Optional, Tuple

from core.errors import InternalInvariantViolation, InvalidInput
from core.locks import KeyedLocks
from core.store import InMemoryVersionedStore, optimistic_update

from .models import (
    PerformanceCategory,
    PerformanceMetrics,
    PerformanceStats,
    TripOutcome,
    TripOutcomeEvent,
)
from .policy import ScoringPolicy, default_scoring_policy

logger = logging.getLogger(__name__)


def validate_stats(stats: PerformanceStats) -> None:
    if min(stats.total_trips, stats.completed_trips, stats.rejected_trips, stats.complaint_count) < 0:
        raise InvalidInput(f"Driver {stats.driver_id}: counters must be >= 0")

    if stats.total_trips < stats.completed_trips + stats.rejected_trips:
        raise InvalidInput(
            f"Driver {stats.driver_id}: total_trips ({stats.total_trips}) < "
            f"completed ({stats.completed_trips}) + rejected ({stats.rejected_trips})"
        )

    if stats.rating is not None and not 0.0 <= stats.rating <= 5.0:
        raise InvalidInput(f"Driver {stats.driver_id}: rating {stats.rating} outside [0, 5]")


def category_for_score(score: int, policy: Optional[ScoringPolicy] = None) -> PerformanceCategory:
    """
    Total, monotonic mapping: a higher score never yields a worse category.
    """
    policy = policy or default_scoring_policy()
    if not 0 <= score <= 100:
        raise InternalInvariantViolation(f"score {score} outside [0, 100]")

    if score >= policy.green_min_score:
        return PerformanceCategory.GREEN
    if score >= policy.yellow_min_score:
        return PerformanceCategory.YELLOW
    return PerformanceCategory.RED


def grade_for_score(score: int) -> str:
    """
    Letter grade used on monthly performance reports.
    """
    if score >= 90:
        return "A"
    if score >= 75:
        return "B"
    if score >= 60:
        return "C"
    if score >= 50:
        return "D"
    return "F"


def _rates(stats: PerformanceStats) -> Tuple[float, float]:
    if stats.total_trips == 0:
        return 0.0, 0.0
    return stats.completed_trips / stats.total_trips, stats.rejected_trips / stats.total_trips


def score_performance(
    stats: PerformanceStats,
    policy: Optional[ScoringPolicy] = None,
) -> Tuple[int, PerformanceCategory]:
    """
    Score a driver's cumulative statistics.

    A driver with zero trips gets the neutral default (policy.neutral_score,
    70 -> YELLOW by default) so new drivers are dispatchable without
    outranking proven GREEN drivers.

    Raises InvalidInput for contradictory counters or an out-of-range rating.
    Bad data is never corrected silently.
    """
    policy = policy or default_scoring_policy()
    validate_stats(stats)

    if stats.total_trips == 0:
        return policy.neutral_score, category_for_score(policy.neutral_score, policy)

    completion_rate, rejection_rate = _rates(stats)
    rating = stats.rating if stats.rating is not None else policy.unrated_rating

    raw = 0.0
    raw += (rating / 5.0) * policy.rating_weight
    raw += completion_rate * policy.completion_weight
    raw += max(0.0, policy.complaint_weight - stats.complaint_count * (policy.complaint_weight / policy.complaint_cap))
    raw += (1.0 - rejection_rate) * policy.rejection_weight

    score = int(round(min(100.0, max(0.0, raw))))
    return score, category_for_score(score, policy)


def build_metrics(stats: PerformanceStats, policy: Optional[ScoringPolicy] = None) -> PerformanceMetrics:
    score, category = score_performance(stats, policy)
    completion_rate, rejection_rate = _rates(stats)
    return PerformanceMetrics(
        driver_id=stats.driver_id,
        total_trips=stats.total_trips,
        completed_trips=stats.completed_trips,
        rejected_trips=stats.rejected_trips,
        complaint_count=stats.complaint_count,
        rating=stats.rating,
        completion_rate=round(completion_rate, 4),
        rejection_rate=round(rejection_rate, 4),
        score=score,
        category=category,
    )


@dataclass(frozen=True)
class _Counters:
    total_trips: int = 0
    completed_trips: int = 0
    rejected_trips: int = 0
    complaint_count: int = 0
    rating_sum: float = 0.0
    rating_count: int = 0
    # (kind, source_event_id) pairs already counted; replays are no-ops.
    # Each kind has its own namespace, so a rating may reuse its trip id.
    # Never pruned; the ledger lives in memory only.
    seen_event_ids: FrozenSet[Tuple[str, str]] = frozenset()

    def to_stats(self, driver_id: str) -> PerformanceStats:
        rating = None
        if self.rating_count:
            rating = round(self.rating_sum / self.rating_count, 2)
        return PerformanceStats(
            driver_id=driver_id,
            total_trips=self.total_trips,
            completed_trips=self.completed_trips,
            rejected_trips=self.rejected_trips,
            complaint_count=self.complaint_count,
            rating=rating,
        )


class PerformanceLedger:
    """
    Owns PerformanceMetrics recomputation.

    Updates are serialized per driver (keyed lock) and written with an
    optimistic compare-and-set, so two events for the same driver at the same
    instant never lose a counter increment.
    """

    def __init__(
        self,
        policy: Optional[ScoringPolicy] = None,
        store: Optional[InMemoryVersionedStore] = None,
        max_update_retries: int = 5,
    ):
        self.policy = policy or default_scoring_policy()
        self.policy.validate()
        self._store = store or InMemoryVersionedStore()
        self._locks = KeyedLocks()
        self._metrics: Dict[str, PerformanceMetrics] = {}
        self.max_update_retries = max_update_retries

    # --- Public API ---

    def get_performance(self, driver_id: str) -> PerformanceMetrics:
        """
        Latest metrics for a driver. Unknown drivers get the zero-trip default.
        """
        with self._locks.hold(driver_id):
            metrics = self._metrics.get(driver_id)
        if metrics is None:
            return build_metrics(PerformanceStats(driver_id=driver_id), self.policy)
        return metrics

    def record_trip_outcome(self, event: TripOutcomeEvent) -> PerformanceMetrics:
        def apply(counters: _Counters) -> _Counters:
            updated = replace(counters, total_trips=counters.total_trips + 1)
            if event.outcome == TripOutcome.COMPLETED:
                updated = replace(updated, completed_trips=updated.completed_trips + 1)
            elif event.outcome == TripOutcome.REJECTED:
                updated = replace(updated, rejected_trips=updated.rejected_trips + 1)
            return updated

        return self._update(event.driver_id, "trip", event.source_event_id, apply)

    def record_complaint(self, driver_id: str, source_event_id: str) -> PerformanceMetrics:
        return self._update(
            driver_id,
            "complaint",
            source_event_id,
            lambda c: replace(c, complaint_count=c.complaint_count + 1),
        )

    def record_rating(self, driver_id: str, source_event_id: str, stars: float) -> PerformanceMetrics:
        if not 0.0 <= stars <= 5.0:
            raise InvalidInput(f"Driver {driver_id}: rating {stars} outside [0, 5]")
        return self._update(
            driver_id,
            "rating",
            source_event_id,
            lambda c: replace(c, rating_sum=c.rating_sum + stars, rating_count=c.rating_count + 1),
        )

    # --- Internals ---

    def _update(self, driver_id: str, kind: str, source_event_id: str, apply) -> PerformanceMetrics:
        if not source_event_id:
            raise InvalidInput("source_event_id is required")

        key = (kind, source_event_id)

        def mutate(current: Optional[_Counters]) -> _Counters:
            counters = current or _Counters()
            if key in counters.seen_event_ids:
                return counters
            updated = apply(counters)
            return replace(updated, seen_event_ids=counters.seen_event_ids | {key})

        with self._locks.hold(driver_id):
            counters = optimistic_update(
                self._store, driver_id, mutate, max_retries=self.max_update_retries
            )
            metrics = build_metrics(counters.to_stats(driver_id), self.policy)
            self._metrics[driver_id] = metrics

        logger.debug("Driver %s performance: score=%d category=%s", driver_id, metrics.score, metrics.category.value)
        return metrics
