import random
import threading
from datetime import date, datetime

import pytest

from core.errors import ConfigurationError, InvalidInput
from core.settings import EngineSettings
from dispatch.dispatcher import Dispatcher
from dispatch.models import TripRequest
from dispatch.policy import DispatchPolicy, default_dispatch_policy
from dispatch.scoring import rank_candidates
from drivers.models import AttendanceSnapshot, AttendanceStatus, DriverSnapshot, PerformanceCategory, TripCategory

DAY = date(2025, 3, 14)


@pytest.fixture
def trip():
    return TripRequest(trip_id="T-1", category=TripCategory.NORMAL, day=DAY, pickup=(-17.8248, 31.0530))


def make_driver(driver_id, car_types=("MANUAL",), status="ACTIVE", checked_in_at=None, day=DAY, **kwargs):
    attendance = AttendanceSnapshot(
        driver_id=driver_id,
        day=day,
        checked_in=True,
        status=AttendanceStatus.PRESENT,
        checked_in_at=checked_in_at or datetime(2025, 3, 14, 7, 0),
    )
    kwargs.setdefault("attendance", attendance)
    return DriverSnapshot.new(driver_id, status, car_types, **kwargs)


def ids(candidates):
    return [c.driver_id for c in candidates]


def test_ineligible_drivers_never_appear(trip):
    drivers = [
        make_driver("ok", distance_km=3.0),
        make_driver("inactive", status="INACTIVE"),
        make_driver("banned", banned_globally=True),
        make_driver("blocked"),
        make_driver("premium-only", car_types=("PREMIUM_CARS",)),
        make_driver("no-attendance", attendance=None),
        make_driver("yesterday", day=date(2025, 3, 13)),
        make_driver(
            "absent",
            attendance=AttendanceSnapshot(driver_id="absent", day=DAY, checked_in=False, status=AttendanceStatus.ABSENT),
        ),
    ]

    ranked = rank_candidates(trip, drivers, is_blocked=lambda driver_id: driver_id == "blocked")

    assert ids(ranked) == ["ok"]
    assert ranked[0].eligible and ranked[0].checked_in and ranked[0].vehicle_match


def test_premium_trip_accepts_luxury_cars():
    trip = TripRequest(trip_id="T-2", category=TripCategory.PREMIUM, day=DAY)
    drivers = [make_driver("lux", car_types=("luxury_cars",)), make_driver("manual", car_types=("MANUAL",))]

    assert ids(rank_candidates(trip, drivers)) == ["lux"]


def test_gear_type_requirement():
    trip = TripRequest(trip_id="T-3", category=TripCategory.NORMAL, day=DAY, gear_type="automatic")
    drivers = [make_driver("auto", car_types=("AUTOMATIC",)), make_driver("manual", car_types=("MANUAL",))]

    assert ids(rank_candidates(trip, drivers)) == ["auto"]


def test_closer_driver_ranks_strictly_higher(trip):
    drivers = [make_driver("far", distance_km=5.0), make_driver("near", distance_km=2.0)]

    ranked = rank_candidates(trip, drivers)

    assert ids(ranked) == ["near", "far"]
    assert ranked[0].composite_score > ranked[1].composite_score


def test_missing_distance_is_ranked_not_excluded(trip):
    drivers = [make_driver("unknown"), make_driver("known", distance_km=25.0)]

    ranked = rank_candidates(trip, drivers)

    assert ids(ranked) == ["known", "unknown"]
    assert ranked[1].distance_km is None


def test_better_category_wins_at_equal_distance(trip):
    drivers = [make_driver(name, distance_km=3.0) for name in ("red", "green", "yellow")]
    categories = {
        "red": PerformanceCategory.RED,
        "green": PerformanceCategory.GREEN,
        "yellow": PerformanceCategory.YELLOW,
    }

    assert ids(rank_candidates(trip, drivers, categories=categories)) == ["green", "yellow", "red"]


def test_exhausted_limit_drops_to_lowest_band(trip):
    drivers = [
        make_driver("capped", distance_km=0.1),
        make_driver("far-red", distance_km=40.0),
        make_driver("unknown-distance"),
    ]
    categories = {"capped": PerformanceCategory.GREEN, "far-red": PerformanceCategory.RED}

    ranked = rank_candidates(trip, drivers, categories=categories, remaining_limits={"capped": 0.0, "far-red": 10.0})

    assert ids(ranked)[-1] == "capped"
    assert ranked[-1].limit_exhausted
    assert all(c.composite_score > ranked[-1].composite_score for c in ranked[:-1])


def test_exhausted_limit_can_be_hard_excluded(trip):
    drivers = [make_driver("capped", distance_km=0.1), make_driver("free", distance_km=9.0)]
    policy = DispatchPolicy(hard_exclude_exhausted_limit=True)

    ranked = rank_candidates(trip, drivers, remaining_limits={"capped": -5.0}, policy=policy)

    assert ids(ranked) == ["free"]


def test_tie_breaks_are_deterministic(trip):
    drivers = [
        make_driver("d-busy", distance_km=3.0, active_trip_count=1),
        make_driver("d-late", distance_km=3.0, checked_in_at=datetime(2025, 3, 14, 9, 0)),
        make_driver("d-b", distance_km=3.0),
        make_driver("d-a", distance_km=3.0),
    ]
    expected = ["d-a", "d-b", "d-late", "d-busy"]

    for seed in range(5):
        shuffled = drivers[:]
        random.Random(seed).shuffle(shuffled)
        assert ids(rank_candidates(trip, shuffled)) == expected


def test_negative_distance_is_invalid(trip):
    with pytest.raises(InvalidInput):
        rank_candidates(trip, [make_driver("d1", distance_km=-1.0)])


def test_policy_keeps_exhausted_band_below_everyone():
    with pytest.raises(ConfigurationError):
        DispatchPolicy(proximity_weight=60.0, performance_weight=50.0, daily_limit_weight=100.0).validate()


def test_default_policy_builds_and_ranks(trip):
    policy = default_dispatch_policy()

    assert policy.daily_limit_weight > policy.proximity_weight + policy.performance_weight

    ranked = Dispatcher().rank(
        trip,
        [make_driver("d1", distance_km=2.0)],
        category_of=lambda driver_id: PerformanceCategory.GREEN,
        remaining_limit_of=lambda driver_id: 1250.0,
    )
    assert ids(ranked) == ["d1"]


def test_dispatcher_rejects_invalid_policy():
    partial = DispatchPolicy(category_multipliers={PerformanceCategory.GREEN: 1.0, PerformanceCategory.RED: 0.2})

    with pytest.raises(ConfigurationError):
        Dispatcher(policy=partial)


class SlowProvider:
    def __init__(self, slow_ids, failing_ids=()):
        self.slow_ids = slow_ids
        self.failing_ids = failing_ids
        self.release = threading.Event()

    def distance_km(self, origin, destination):
        if origin in self.slow_ids:
            self.release.wait(5)
            return 0.1
        if origin in self.failing_ids:
            raise RuntimeError("lookup failed")
        return 1.5


def test_slow_or_failing_lookups_degrade_to_no_distance(trip):
    slow = (-17.80, 31.00)
    failing = (-17.81, 31.01)
    provider = SlowProvider(slow_ids={slow}, failing_ids={failing})
    dispatcher = Dispatcher(provider, settings=EngineSettings(distance_lookup_timeout_s=0.2))
    drivers = [
        make_driver("slow", location=slow),
        make_driver("failing", location=failing),
        make_driver("fast", location=(-17.82, 31.05)),
        make_driver("precomputed", distance_km=4.0, location=(-17.83, 31.06)),
    ]

    try:
        ranked = dispatcher.rank(
            trip,
            drivers,
            category_of=lambda driver_id: PerformanceCategory.YELLOW,
            remaining_limit_of=lambda driver_id: 1250.0,
        )
    finally:
        provider.release.set()

    distances = {c.driver_id: c.distance_km for c in ranked}
    assert distances == {"fast": 1.5, "precomputed": 4.0, "slow": None, "failing": None}
    assert ids(ranked) == ["fast", "precomputed", "failing", "slow"]
