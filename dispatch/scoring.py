#Purpose: Ranking model (the "who is best" layer).
#Takes already-eligible drivers + features (distance, category, remaining limit).
#Produces DispatchCandidates in descending composite score.
#Composite:
#proximity_weight * 1/(1+km)       (0 when distance is unknown)
#performance_weight * category multiplier
#daily_limit_weight * (1 if limit remains else 0)
#Tie-break (deterministic): band, smaller distance, fewer active trips,
#earlier check-in, driver_id.

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional

from core.errors import InvalidInput
from drivers.models import DriverSnapshot, PerformanceCategory
from .candidate_filter import build_base_candidates, vehicle_matches
from .models import DispatchCandidate, TripRequest
from .policy import DispatchPolicy, default_dispatch_policy

_NO_DISTANCE = float("inf")


def proximity_term(distance_km: Optional[float]) -> float:
    if distance_km is None:
        return 0.0
    if distance_km < 0:
        raise InvalidInput(f"distance_km must be >= 0, got {distance_km}")
    return 1.0 / (1.0 + distance_km)


def composite_score(
    distance_km: Optional[float],
    category: PerformanceCategory,
    remaining_limit: Optional[float],
    policy: DispatchPolicy,
) -> float:
    exhausted = remaining_limit is not None and remaining_limit <= 0
    score = policy.proximity_weight * proximity_term(distance_km)
    score += policy.performance_weight * policy.category_multipliers[category]
    if not exhausted:
        score += policy.daily_limit_weight
    return round(score, 6)


def _sort_key(candidate: DispatchCandidate):
    return (
        1 if candidate.limit_exhausted else 0,
        -candidate.composite_score,
        candidate.distance_km if candidate.distance_km is not None else _NO_DISTANCE,
        candidate.active_trip_count,
        candidate.checked_in_at or datetime.max,
        candidate.driver_id,
    )


def rank_candidates(
    trip: TripRequest,
    drivers: Iterable[DriverSnapshot],
    *,
    categories: Optional[Mapping[str, PerformanceCategory]] = None,
    remaining_limits: Optional[Mapping[str, float]] = None,
    distances: Optional[Mapping[str, Optional[float]]] = None,
    is_blocked: Callable[[str], bool] = lambda driver_id: False,
    policy: Optional[DispatchPolicy] = None,
) -> List[DispatchCandidate]:
    """
    Rank drivers for one trip. Read-only and deterministic.

    - categories: performance category per driver (missing -> policy.default_category)
    - remaining_limits: remaining daily limit per driver (missing -> full limit)
    - distances: km to pickup per driver; overrides DriverSnapshot.distance_km

    Ineligible drivers never appear in the output.
    """
    policy = policy or default_dispatch_policy()
    categories = categories or {}
    remaining_limits = remaining_limits or {}
    distances = distances or {}

    ranked: List[DispatchCandidate] = []
    for driver in build_base_candidates(trip, drivers, is_blocked):
        distance_km = distances.get(driver.id, driver.distance_km)
        category = categories.get(driver.id, policy.default_category)
        remaining = remaining_limits.get(driver.id)

        if remaining is not None and remaining <= 0 and policy.hard_exclude_exhausted_limit:
            continue

        ranked.append(
            DispatchCandidate(
                driver_id=driver.id,
                vehicle_match=vehicle_matches(driver, trip),
                distance_km=distance_km,
                performance_category=category,
                remaining_daily_limit=remaining,
                checked_in=True,
                attendance_status=driver.attendance.status if driver.attendance else None,
                eligible=True,
                composite_score=composite_score(distance_km, category, remaining, policy),
                active_trip_count=driver.active_trip_count,
                checked_in_at=driver.attendance.checked_in_at if driver.attendance else None,
            )
        )

    ranked.sort(key=_sort_key)
    return ranked
