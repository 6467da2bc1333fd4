import threading
from datetime import datetime

import pytest

from core.errors import InvalidInput
from dispatch.acceptance import OfferBoard, pick_winner
from dispatch.models import AcceptedOffer


def offer(driver_id, distance_km=None, rating=None, minute=0):
    return AcceptedOffer(
        driver_id=driver_id, distance_km=distance_km, rating=rating, accepted_at=datetime(2025, 3, 14, 8, minute)
    )


def test_closest_driver_wins():
    assert pick_winner([offer("far", 4.0), offer("near", 1.2), offer("unknown")]).driver_id == "near"


def test_rating_then_acceptance_time_break_ties():
    offers = [offer("low", 2.0, 4.1, minute=0), offer("high-late", 2.0, 4.8, minute=5), offer("high-early", 2.0, 4.8, minute=1)]

    assert pick_winner(offers).driver_id == "high-early"


def test_no_offers_no_winner():
    assert pick_winner([]) is None


@pytest.fixture
def board():
    b = OfferBoard()
    b.open_offer("T-1", ["d1", "d2", "d3"])
    return b


def test_first_acceptance_takes_the_trip(board):
    assert board.resolve_acceptance("T-1", "d2") is True
    assert board.resolve_acceptance("T-1", "d1") is False
    assert board.resolve_acceptance("T-1", "d2") is True
    assert board.assigned_driver("T-1") == "d2"
    assert board.revoked_drivers("T-1") == {"d1", "d3"}


def test_driver_without_offer_cannot_accept(board):
    with pytest.raises(InvalidInput):
        board.resolve_acceptance("T-1", "stranger")


def test_collected_acceptances_resolve_to_best_offer(board):
    board.accept("T-1", offer("d1", 3.0))
    board.accept("T-1", offer("d3", 0.8))

    assert board.resolve_winner("T-1").driver_id == "d3"
    assert board.resolve_winner("T-1") is None
    assert board.assigned_driver("T-1") == "d3"


def test_simultaneous_accepts_assign_exactly_one_driver():
    board = OfferBoard()
    drivers = [f"d{i}" for i in range(12)]
    board.open_offer("T-9", drivers)
    outcomes = {}
    start = threading.Barrier(len(drivers))

    def tap_accept(driver_id):
        start.wait()
        outcomes[driver_id] = board.resolve_acceptance("T-9", driver_id)

    threads = [threading.Thread(target=tap_accept, args=(d,)) for d in drivers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [d for d, won in outcomes.items() if won]
    assert winners == [board.assigned_driver("T-9")]
