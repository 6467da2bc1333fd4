"""
Purpose: DriverEngine, the single entry point other subsystems call.
What it does:
Wires the performance ledger, the daily limit ledger, the penalty evaluator
and the dispatcher together:

- record_trip_outcome: performance counters, daily earnings on completion,
  cancellation triggers on cancellation
- record_complaint / record_rating / record_late_report
- get_performance, rank_candidates
- apply_trip_earning, compute_daily_incentive, compute_monthly_settlement,
  settle_month
- evaluate_penalty_event, apply_manual_penalty

The engine consumes snapshots from its collaborators and returns decisions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dispatch.dispatcher import Dispatcher
from dispatch.models import DispatchCandidate, TripRequest
from dispatch.policy import DispatchPolicy
from drivers.models import DriverSnapshot, PerformanceMetrics, TripOutcome, TripOutcomeEvent
from drivers.performance import PerformanceLedger
from drivers.policy import ScoringPolicy
from earnings.config import EarningsConfigRegistry
from earnings.daily_limit import DailyLimitLedger
from earnings.models import DailyLimitState, DailyStats, EarningsConfig, MonthlySettlement
from earnings.tiers import compute_daily_incentive, compute_monthly_settlement, settle_month
from penalties.evaluator import DriverStatusSink, PenaltyEvaluator
from penalties.models import (
    ComplaintEvent,
    DriverEvent,
    EvaluationResult,
    LateReportEvent,
    PenaltyRule,
    TripCancelledEvent,
)
from routing.distance import DistanceProvider

from .errors import ConfigurationError, InvalidInput
from .settings import EngineSettings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TripOutcomeResult:
    metrics: PerformanceMetrics
    daily_state: Optional[DailyLimitState] = None
    penalties: Optional[EvaluationResult] = None


class DriverEngine:
    def __init__(
        self,
        *,
        settings: Optional[EngineSettings] = None,
        scoring_policy: Optional[ScoringPolicy] = None,
        dispatch_policy: Optional[DispatchPolicy] = None,
        configs: Optional[EarningsConfigRegistry] = None,
        rules: Iterable[PenaltyRule] = (),
        status_sink: Optional[DriverStatusSink] = None,
        distance_provider: Optional[DistanceProvider] = None,
    ):
        self.settings = settings or get_settings()
        self.configs = configs or EarningsConfigRegistry()
        self.performance = PerformanceLedger(scoring_policy, max_update_retries=self.settings.max_update_retries)
        self.daily_limits = DailyLimitLedger(self.configs, max_update_retries=self.settings.max_update_retries)
        self.penalties = PenaltyEvaluator(status_sink, block_retry_attempts=self.settings.block_retry_attempts)
        self.dispatcher = Dispatcher(distance_provider, dispatch_policy, self.settings)
        self.rules: Tuple[PenaltyRule, ...] = tuple(rules)

    # --- Rules ---

    def set_rules(self, rules: Iterable[PenaltyRule]) -> None:
        self.rules = tuple(rules)

    def load_rules(self, rows: Iterable[Dict[str, Any]]) -> List[str]:
        """
        Replace the rule set from stored rows. Unparseable rows are skipped and
        logged. Returns the ids (or positions) of the skipped rows.
        """
        rules: List[PenaltyRule] = []
        skipped: List[str] = []
        for index, row in enumerate(rows):
            try:
                rules.append(PenaltyRule.from_dict(row))
            except ConfigurationError as e:
                rule_id = str(row.get("id", f"#{index}"))
                logger.warning("Skipping penalty rule %s: %s", rule_id, e)
                skipped.append(rule_id)
        self.rules = tuple(rules)
        return skipped

    # --- Performance ---

    def get_performance(self, driver_id: str) -> PerformanceMetrics:
        return self.performance.get_performance(driver_id)

    def record_trip_outcome(self, event: TripOutcomeEvent) -> TripOutcomeResult:
        if event.fare_amount < 0:
            raise InvalidInput(f"Driver {event.driver_id}: fare_amount must be >= 0")

        metrics = self.performance.record_trip_outcome(event)

        daily_state = None
        if event.outcome == TripOutcome.COMPLETED:
            daily_state = self.daily_limits.apply_trip_earning(
                event.driver_id, event.timestamp.date(), event.fare_amount, source_event_id=event.source_event_id
            )

        penalties = None
        if event.outcome == TripOutcome.CANCELLED:
            penalties = self.evaluate_penalty_event(
                TripCancelledEvent(
                    driver_id=event.driver_id,
                    source_event_id=event.source_event_id,
                    occurred_at=event.timestamp,
                )
            )

        return TripOutcomeResult(metrics=metrics, daily_state=daily_state, penalties=penalties)

    def record_complaint(
        self, driver_id: str, complaint_id: str, occurred_at: Optional[datetime] = None
    ) -> Tuple[PerformanceMetrics, EvaluationResult]:
        metrics = self.performance.record_complaint(driver_id, complaint_id)
        result = self.evaluate_penalty_event(
            ComplaintEvent(driver_id=driver_id, source_event_id=complaint_id, occurred_at=occurred_at or datetime.now())
        )
        return metrics, result

    def record_rating(self, driver_id: str, source_event_id: str, stars: float) -> PerformanceMetrics:
        return self.performance.record_rating(driver_id, source_event_id, stars)

    def record_late_report(
        self, driver_id: str, source_event_id: str, delay_minutes: float, occurred_at: Optional[datetime] = None
    ) -> EvaluationResult:
        return self.evaluate_penalty_event(
            LateReportEvent(
                driver_id=driver_id,
                source_event_id=source_event_id,
                delay_minutes=delay_minutes,
                occurred_at=occurred_at or datetime.now(),
            )
        )

    # --- Dispatch ---

    def rank_candidates(self, trip: TripRequest, drivers: Iterable[DriverSnapshot]) -> List[DispatchCandidate]:
        return self.dispatcher.rank(
            trip,
            drivers,
            category_of=lambda driver_id: self.performance.get_performance(driver_id).category,
            remaining_limit_of=lambda driver_id: self.daily_limits.remaining_limit(driver_id, trip.day),
            is_blocked=self.penalties.is_blocked,
        )

    # --- Earnings ---

    def apply_trip_earning(self, driver_id: str, day: date, amount: float) -> DailyLimitState:
        return self.daily_limits.apply_trip_earning(driver_id, day, amount)

    def compute_daily_incentive(self, driver_id: str, day: date) -> float:
        state = self.daily_limits.get_state(driver_id, day)
        if state is None:
            return 0.0
        return compute_daily_incentive(state, self.configs.resolve(driver_id))

    def daily_stats(self, driver_id: str, day: date) -> DailyStats:
        return self.daily_limits.daily_stats(driver_id, day)

    def effective_config(self, driver_id: str, franchise_id: Optional[str] = None) -> EarningsConfig:
        return self.configs.resolve(driver_id, franchise_id)

    def compute_monthly_settlement(self, driver_id: str, monthly_earnings: float) -> Tuple[float, float]:
        return compute_monthly_settlement(monthly_earnings, self.configs.resolve(driver_id))

    def settle_month(self, driver_id: str, year: int, month: int, monthly_earnings: float) -> MonthlySettlement:
        """
        Month-end settlement. Penalties recorded against the driver in that
        month are deducted.
        """
        if not 1 <= month <= 12:
            raise InvalidInput(f"Invalid month {month}. Must be between 1 and 12")

        start = datetime(year, month, 1)
        end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        penalties = [
            p.amount for p in self.penalties.penalties_for(driver_id, start=start) if p.occurred_at < end
        ]
        return settle_month(driver_id, year, month, monthly_earnings, self.configs.resolve(driver_id), penalties)

    # --- Penalties ---

    def evaluate_penalty_event(self, event: DriverEvent) -> EvaluationResult:
        return self.penalties.evaluate(event, self.rules)

    def apply_manual_penalty(
        self,
        driver_id: str,
        rule: PenaltyRule,
        actor_id: str,
        *,
        source_event_id: Optional[str] = None,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> EvaluationResult:
        return self.penalties.apply_manual(
            driver_id, rule, actor_id, source_event_id=source_event_id, amount=amount, reason=reason
        )

    def is_blocked(self, driver_id: str) -> bool:
        return self.penalties.is_blocked(driver_id)
