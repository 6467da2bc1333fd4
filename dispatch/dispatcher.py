"""
Purpose: Orchestrator for one ranking request (the "glue").
What it does:
Filters drivers for a TripRequest, fans distance lookups for the eligible ones
out on a thread pool, gathers each driver's category and remaining daily limit
from the read callables, and hands everything to rank_candidates.

Lookups that time out or raise degrade that driver to "no distance". They
never fail the ranking. Nothing here writes state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional

from core.settings import EngineSettings, get_settings
from drivers.models import DriverSnapshot, PerformanceCategory
from routing.distance import DistanceProvider

from .candidate_filter import build_base_candidates
from .models import DispatchCandidate, TripRequest
from .policy import DispatchPolicy, default_dispatch_policy
from .scoring import rank_candidates

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Ranks drivers for a trip using the engine's read side.
    """

    def __init__(
        self,
        distance_provider: Optional[DistanceProvider] = None,
        policy: Optional[DispatchPolicy] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.distance_provider = distance_provider
        self.policy = policy or default_dispatch_policy()
        self.policy.validate()
        self.settings = settings or get_settings()

    def lookup_distances(self, trip: TripRequest, drivers: List[DriverSnapshot]) -> Dict[str, Optional[float]]:
        """
        km to pickup for every driver that has coordinates but no precomputed distance.
        """
        if self.distance_provider is None or trip.pickup is None:
            return {}

        pending = [d for d in drivers if d.distance_km is None and d.location is not None]
        if not pending:
            return {}

        executor = ThreadPoolExecutor(max_workers=min(self.settings.distance_lookup_workers, len(pending)))
        try:
            futures = {
                executor.submit(self.distance_provider.distance_km, d.location, trip.pickup): d.id
                for d in pending
            }
            done, not_done = wait(futures, timeout=self.settings.distance_lookup_timeout_s)

            distances: Dict[str, Optional[float]] = {}
            for future in not_done:
                driver_id = futures[future]
                logger.warning("Trip %s: distance lookup for driver %s timed out", trip.trip_id, driver_id)
                future.cancel()
                distances[driver_id] = None

            for future in done:
                driver_id = futures[future]
                try:
                    distances[driver_id] = future.result()
                except Exception as e:
                    logger.warning("Trip %s: distance lookup for driver %s failed: %s", trip.trip_id, driver_id, e)
                    distances[driver_id] = None
            return distances
        finally:
            # Do not wait on a hung lookup.
            executor.shutdown(wait=False, cancel_futures=True)

    def rank(
        self,
        trip: TripRequest,
        drivers: Iterable[DriverSnapshot],
        *,
        category_of: Callable[[str], PerformanceCategory],
        remaining_limit_of: Callable[[str], float],
        is_blocked: Callable[[str], bool] = lambda driver_id: False,
    ) -> List[DispatchCandidate]:
        eligible = build_base_candidates(trip, drivers, is_blocked)
        distances = self.lookup_distances(trip, eligible)

        ranked = rank_candidates(
            trip,
            eligible,
            categories={d.id: category_of(d.id) for d in eligible},
            remaining_limits={d.id: remaining_limit_of(d.id) for d in eligible},
            distances=distances,
            is_blocked=is_blocked,
            policy=self.policy,
        )
        logger.info("Trip %s: ranked %d eligible drivers", trip.trip_id, len(ranked))
        return ranked
