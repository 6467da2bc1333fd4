"""
Purpose: Resolve who gets a trip once offers have gone out.
What it does:
- pick_winner(offers): among drivers who accepted, the closest wins, then the
  higher rating, then the earliest acceptance, then driver_id.
- OfferBoard: tracks open offers per trip and guarantees that two drivers can
  never both be assigned the same trip.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from core.errors import InvalidInput
from core.locks import KeyedLocks

from .models import AcceptedOffer

logger = logging.getLogger(__name__)


def pick_winner(offers: Iterable[AcceptedOffer]) -> Optional[AcceptedOffer]:
    offers = list(offers)
    if not offers:
        return None
    return min(
        offers,
        key=lambda o: (
            o.distance_km if o.distance_km is not None else float("inf"),
            -(o.rating if o.rating is not None else 0.0),
            o.accepted_at,
            o.driver_id,
        ),
    )


class OfferBoard:
    """
    In-memory view of open trip offers. One lock per trip.
    """

    def __init__(self) -> None:
        self._locks = KeyedLocks()
        self._offered: Dict[str, Set[str]] = {}
        self._acceptances: Dict[str, List[AcceptedOffer]] = {}
        self._assigned: Dict[str, str] = {}

    def open_offer(self, trip_id: str, driver_ids: Iterable[str]) -> None:
        with self._locks.hold(trip_id):
            self._offered.setdefault(trip_id, set()).update(driver_ids)

    def offered_drivers(self, trip_id: str) -> Set[str]:
        with self._locks.hold(trip_id):
            return set(self._offered.get(trip_id, ()))

    def assigned_driver(self, trip_id: str) -> Optional[str]:
        with self._locks.hold(trip_id):
            return self._assigned.get(trip_id)

    def accept(self, trip_id: str, offer: AcceptedOffer) -> None:
        """
        Collect an acceptance for later resolution with resolve_winner.
        """
        with self._locks.hold(trip_id):
            self._check_offered(trip_id, offer.driver_id)
            if trip_id in self._assigned:
                return
            self._acceptances.setdefault(trip_id, []).append(offer)

    def resolve_winner(self, trip_id: str) -> Optional[AcceptedOffer]:
        """
        Assign the trip to the best collected acceptance, if it is still unassigned.
        """
        with self._locks.hold(trip_id):
            if trip_id in self._assigned:
                return None
            winner = pick_winner(self._acceptances.get(trip_id, ()))
            if winner is not None:
                self._assign(trip_id, winner.driver_id)
            return winner

    def resolve_acceptance(self, trip_id: str, driver_id: str) -> bool:
        """
        First come, first served: called when a driver taps "Accept".
        Returns False if someone else already has the trip.
        """
        with self._locks.hold(trip_id):
            self._check_offered(trip_id, driver_id)
            if trip_id in self._assigned:
                return self._assigned[trip_id] == driver_id
            self._assign(trip_id, driver_id)
            return True

    def revoked_drivers(self, trip_id: str) -> Set[str]:
        """
        Drivers whose offer should be withdrawn now that the trip is assigned.
        """
        with self._locks.hold(trip_id):
            winner = self._assigned.get(trip_id)
            if winner is None:
                return set()
            return self._offered.get(trip_id, set()) - {winner}

    def _check_offered(self, trip_id: str, driver_id: str) -> None:
        if driver_id not in self._offered.get(trip_id, ()):
            raise InvalidInput(f"Driver {driver_id} has no open offer for trip {trip_id}")

    def _assign(self, trip_id: str, driver_id: str) -> None:
        self._assigned[trip_id] = driver_id
        logger.info("Trip %s assigned to driver %s at %s", trip_id, driver_id, datetime.now().isoformat())
