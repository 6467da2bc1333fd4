from datetime import date, datetime

import pytest

from core.engine import DriverEngine
from core.errors import ConfigurationError
from core.settings import EngineSettings
from dispatch.models import TripRequest
from drivers.models import AttendanceSnapshot, AttendanceStatus, DriverSnapshot, TripCategory, TripOutcome, TripOutcomeEvent
from drivers.policy import ScoringPolicy
from penalties.models import CancellationsTrigger, ComplaintsTrigger, PenaltyRule, PenaltyState

DAY = date(2025, 3, 14)


class RecordingSink:
    def __init__(self):
        self.blocked = []

    def block_driver(self, driver_id, reason):
        self.blocked.append(driver_id)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def engine(sink):
    rules = [
        PenaltyRule(
            rule_id="THREE_COMPLAINTS",
            name="Three complaints",
            trigger=ComplaintsTrigger(3),
            amount=100.0,
            is_automatic=True,
            block_driver=True,
            notify_admin=True,
        ),
        PenaltyRule(
            rule_id="TWO_CANCELLATIONS",
            name="Two cancellations",
            trigger=CancellationsTrigger(2),
            amount=25.0,
            is_automatic=True,
        ),
    ]
    return DriverEngine(settings=EngineSettings(), rules=rules, status_sink=sink)


def trip_event(driver_id, trip_id, outcome, fare=0.0, when=datetime(2025, 3, 14, 10, 0)):
    return TripOutcomeEvent(driver_id, outcome, trip_id, fare_amount=fare, timestamp=when)


def driver(driver_id, distance_km):
    attendance = AttendanceSnapshot(driver_id, DAY, checked_in=True, status=AttendanceStatus.PRESENT)
    return DriverSnapshot.new(driver_id, "ACTIVE", ["MANUAL"], attendance=attendance, distance_km=distance_km)


def test_completed_trip_feeds_performance_and_daily_limit(engine):
    engine.record_trip_outcome(trip_event("d1", "t1", TripOutcome.COMPLETED, 1000.0))
    result = engine.record_trip_outcome(trip_event("d1", "t2", TripOutcome.COMPLETED, 600.0))

    assert result.metrics.completed_trips == 2
    assert result.daily_state.earned_so_far == 1600.0
    assert engine.compute_daily_incentive("d1", DAY) == 310.0
    assert engine.compute_daily_incentive("d1", date(2025, 3, 15)) == 0.0


def test_replayed_completion_is_not_paid_twice(engine):
    engine.record_trip_outcome(trip_event("d1", "t1", TripOutcome.COMPLETED, 400.0))
    engine.record_trip_outcome(trip_event("d1", "t1", TripOutcome.COMPLETED, 400.0))

    assert engine.daily_stats("d1", DAY).earned == 400.0
    assert engine.get_performance("d1").total_trips == 1


def test_cancellations_trigger_penalties(engine):
    first = engine.record_trip_outcome(trip_event("d1", "t1", TripOutcome.CANCELLED))
    second = engine.record_trip_outcome(trip_event("d1", "t2", TripOutcome.CANCELLED))

    assert first.penalties.penalty_events == ()
    assert [p.rule_id for p in second.penalties.penalty_events] == ["TWO_CANCELLATIONS"]
    assert second.penalties.state == PenaltyState.WARNED
    assert second.daily_state is None


def test_blocked_driver_is_dropped_from_ranking(engine, sink):
    trip = TripRequest(trip_id="T-1", category=TripCategory.NORMAL, day=DAY)
    drivers = [driver("d1", 1.0), driver("d2", 6.0)]
    assert [c.driver_id for c in engine.rank_candidates(trip, drivers)] == ["d1", "d2"]

    for n in range(3):
        _, result = engine.record_complaint("d1", f"c{n}")

    assert result.blocked is True
    assert sink.blocked == ["d1"]
    assert engine.is_blocked("d1")
    assert [c.driver_id for c in engine.rank_candidates(trip, drivers)] == ["d2"]


def test_settle_month_deducts_that_months_penalties(engine):
    engine.record_late_report("d1", "late-0", 10)  # no late rule configured
    for n in range(3):
        engine.record_complaint("d1", f"c{n}", occurred_at=datetime(2025, 3, 2 + n, 12, 0))
    engine.record_complaint("d1", "c-april", occurred_at=datetime(2025, 4, 1, 9, 0))

    settlement = engine.settle_month("d1", 2025, 3, 26000.0)

    assert settlement.total_penalties == 100.0
    assert settlement.net_earnings == 26000.0 + 3000.0 - 100.0 - 6500.0
    assert engine.compute_monthly_settlement("d1", 26000.0) == (3000.0, 25.0)


def test_manual_penalty_through_the_engine(engine):
    rule = PenaltyRule(rule_id="RUDE", name="Rude behaviour", amount=50.0)

    result = engine.apply_manual_penalty("d1", rule, "manager-1", reason="complaint by phone")

    assert result.state == PenaltyState.WARNED
    assert result.penalty_events[0].amount == 50.0


def test_load_rules_skips_bad_rows(engine):
    skipped = engine.load_rules(
        [
            {"id": "LATE", "name": "Late", "triggerType": "LATE_REPORT", "triggerConfig": {"delayMinutes": 5}, "isAutomatic": True},
            {"id": "BAD", "triggerType": "COMPLAINTS", "triggerConfig": {}},
        ]
    )

    assert skipped == ["BAD"]
    assert [r.rule_id for r in engine.rules] == ["LATE"]
    assert len(engine.record_late_report("d1", "s1", 7).penalty_events) == 1


def test_engine_rejects_invalid_scoring_policy():
    with pytest.raises(ConfigurationError):
        DriverEngine(settings=EngineSettings(), scoring_policy=ScoringPolicy(complaint_cap=0))


def test_engine_builds_with_defaults():
    engine = DriverEngine(settings=EngineSettings())

    ranked = engine.rank_candidates(
        TripRequest(trip_id="T-9", category=TripCategory.NORMAL, day=DAY),
        [
            DriverSnapshot.new(
                "d1",
                "ACTIVE",
                ("MANUAL",),
                distance_km=1.0,
                attendance=AttendanceSnapshot(driver_id="d1", day=DAY, checked_in=True, status=AttendanceStatus.PRESENT),
            )
        ],
    )

    assert [c.driver_id for c in ranked] == ["d1"]
