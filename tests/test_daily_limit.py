import threading
from datetime import date

import pytest

from core.errors import ConflictError, InvalidInput
from core.store import InMemoryVersionedStore
from earnings.config import EarningsConfigRegistry
from earnings.daily_limit import DailyLimitLedger
from earnings.models import ConfigScope, EarningsConfig

DAY = date(2025, 3, 14)


class AlwaysConflictingStore(InMemoryVersionedStore):
    def compare_and_set(self, key, expected_version, value):
        return False


@pytest.fixture
def ledger():
    return DailyLimitLedger()


def test_state_is_created_lazily(ledger):
    assert ledger.get_state("d1", DAY) is None
    assert ledger.remaining_limit("d1", DAY) == 1250.0

    state = ledger.apply_trip_earning("d1", DAY, 300.0)

    assert state.target == 1250.0
    assert state.earned_so_far == 300.0
    assert state.trips_count == 1
    assert ledger.remaining_limit("d1", DAY) == 950.0


def test_remaining_never_goes_negative(ledger):
    ledger.apply_trip_earning("d1", DAY, 2000.0)

    assert ledger.remaining_limit("d1", DAY) == 0.0


def test_days_never_carry_over(ledger):
    ledger.apply_trip_earning("d1", DAY, 900.0)

    assert ledger.get_state("d1", date(2025, 3, 15)) is None
    assert ledger.remaining_limit("d1", date(2025, 3, 15)) == 1250.0


def test_target_comes_from_the_effective_config():
    configs = EarningsConfigRegistry([EarningsConfig(scope=ConfigScope.DRIVER, scope_id="d1", daily_target_default=800.0)])
    ledger = DailyLimitLedger(configs)

    assert ledger.apply_trip_earning("d1", DAY, 100.0).target == 800.0
    assert ledger.apply_trip_earning("d2", DAY, 100.0).target == 1250.0


def test_negative_amount_is_rejected(ledger):
    with pytest.raises(InvalidInput):
        ledger.apply_trip_earning("d1", DAY, -10.0)


def test_replayed_trip_is_counted_once(ledger):
    ledger.apply_trip_earning("d1", DAY, 200.0, source_event_id="t1")
    state = ledger.apply_trip_earning("d1", DAY, 200.0, source_event_id="t1")

    assert state.earned_so_far == 200.0
    assert state.trips_count == 1


def test_concurrent_completions_never_lose_an_increment(ledger):
    amounts = [[(i * 7 + j) % 13 + 1 for j in range(50)] for i in range(8)]
    start = threading.Barrier(len(amounts))

    def worker(batch):
        start.wait()
        for amount in batch:
            ledger.apply_trip_earning("d1", DAY, float(amount))

    threads = [threading.Thread(target=worker, args=(batch,)) for batch in amounts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    state = ledger.get_state("d1", DAY)
    assert state.earned_so_far == float(sum(sum(batch) for batch in amounts))
    assert state.trips_count == 400


def test_exhausted_retries_surface_a_conflict():
    ledger = DailyLimitLedger(store=AlwaysConflictingStore(), max_update_retries=3)

    with pytest.raises(ConflictError) as excinfo:
        ledger.apply_trip_earning("d1", DAY, 10.0)

    assert excinfo.value.attempts == 3


def test_daily_stats(ledger):
    ledger.apply_trip_earning("d1", DAY, 1000.0)
    ledger.apply_trip_earning("d1", DAY, 600.0)

    stats = ledger.daily_stats("d1", DAY)

    assert stats.earned == 1600.0
    assert stats.trips_count == 2
    assert stats.incentive == 310.0
    assert stats.remaining_to_achieve == 0.0
    assert ledger.daily_stats("d2", DAY).remaining_to_achieve == 1250.0
