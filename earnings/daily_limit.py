"""
Purpose: Owns DailyLimitState (one record per driver per calendar day).
What it does:
- apply_trip_earning(driver_id, day, amount): the single mutating call per
  trip completion. Creates the day's state lazily on the first trip, adds the
  amount, and writes it back.
- get_state / remaining_limit: read side used by dispatch ranking.
- daily_stats: earned, trips, incentive and remaining for one driver-day.

Writes are serialized per (driver_id, day) by a keyed lock and guarded by an
optimistic compare-and-set with bounded retry, so concurrent completions for
the same driver-day never lose an increment. State never carries over days.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from core.errors import InternalInvariantViolation, InvalidInput
from core.locks import KeyedLocks
from core.store import InMemoryVersionedStore, optimistic_update

from .config import EarningsConfigRegistry
from .models import DailyLimitState, DailyStats
from .tiers import compute_daily_incentive

logger = logging.getLogger(__name__)


class DailyLimitLedger:
    def __init__(
        self,
        configs: Optional[EarningsConfigRegistry] = None,
        store: Optional[InMemoryVersionedStore] = None,
        max_update_retries: int = 5,
    ):
        self.configs = configs or EarningsConfigRegistry()
        self._store = store or InMemoryVersionedStore()
        self._locks = KeyedLocks()
        self.max_update_retries = max_update_retries

    def apply_trip_earning(
        self, driver_id: str, day: date, amount: float, source_event_id: Optional[str] = None
    ) -> DailyLimitState:
        """
        Add one trip's earning. With a source_event_id, a replayed trip is not counted twice.
        """
        if amount < 0:
            raise InvalidInput(f"Driver {driver_id}: trip earning must be >= 0, got {amount}")

        key = (driver_id, day)

        def mutate(current: Optional[DailyLimitState]) -> DailyLimitState:
            state = current or self._new_state(driver_id, day)
            if source_event_id is None:
                seen = state.source_event_ids
            elif source_event_id in state.source_event_ids:
                return state
            else:
                seen = state.source_event_ids | {source_event_id}
            return replace(
                state,
                earned_so_far=round(state.earned_so_far + amount, 2),
                trips_count=state.trips_count + 1,
                source_event_ids=seen,
            )

        with self._locks.hold(key):
            state = optimistic_update(self._store, key, mutate, max_retries=self.max_update_retries)

        self._check(state)
        logger.debug(
            "Driver %s %s: earned %.2f of target %.2f", driver_id, day.isoformat(), state.earned_so_far, state.target
        )
        return state

    def get_state(self, driver_id: str, day: date) -> Optional[DailyLimitState]:
        state, _ = self._store.read((driver_id, day))
        return state

    def remaining_limit(self, driver_id: str, day: date) -> float:
        """
        A driver without a record for the day still has the full target remaining.
        """
        state = self.get_state(driver_id, day)
        if state is None:
            return self.configs.resolve(driver_id).daily_target_default
        self._check(state)
        return state.remaining

    def daily_stats(self, driver_id: str, day: date) -> DailyStats:
        state = self.get_state(driver_id, day) or self._new_state(driver_id, day)
        config = self.configs.resolve(driver_id)
        return DailyStats(
            driver_id=driver_id,
            day=day,
            daily_target=state.target,
            earned=state.earned_so_far,
            trips_count=state.trips_count,
            incentive=compute_daily_incentive(state, config),
            remaining_to_achieve=state.remaining,
        )

    def _new_state(self, driver_id: str, day: date) -> DailyLimitState:
        target = self.configs.resolve(driver_id).daily_target_default
        if target < 0:
            raise InvalidInput(f"Driver {driver_id}: daily target must be >= 0")
        return DailyLimitState(driver_id=driver_id, day=day, target=target)

    @staticmethod
    def _check(state: DailyLimitState) -> None:
        if state.earned_so_far < 0 or state.remaining < 0:
            raise InternalInvariantViolation(f"Daily limit state corrupted for driver {state.driver_id}: {state}")
