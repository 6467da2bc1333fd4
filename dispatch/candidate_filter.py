#Purpose: Hard eligibility filtering (rule gates).
#Builds the base candidate set before scoring.
#A driver is dropped entirely (never ranked) when:
#registry status is not ACTIVE
#vehicle capabilities do not cover the trip category / gear type
#not checked in (PRESENT or PARTIAL) for the trip day
#BLOCKED by the penalty evaluator, or banned globally
#Missing distance is NOT a reason to exclude.

#Output: "rule-qualified drivers" (still not ranked).

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from drivers.models import CATEGORY_CAPABILITIES, DriverSnapshot, DriverStatus
from .models import TripRequest

logger = logging.getLogger(__name__)


def vehicle_matches(driver: DriverSnapshot, trip: TripRequest) -> bool:
    if not driver.car_types & CATEGORY_CAPABILITIES[trip.category]:
        return False
    if trip.gear_type and trip.gear_type.upper() not in driver.car_types:
        return False
    return True


def is_checked_in(driver: DriverSnapshot, trip: TripRequest) -> bool:
    return driver.attendance is not None and driver.attendance.is_working_on(trip.day)


def exclusion_reason(
    driver: DriverSnapshot,
    trip: TripRequest,
    is_blocked: Callable[[str], bool] = lambda driver_id: False,
) -> Optional[str]:
    """
    Returns why the driver cannot take the trip, or None if they are eligible.
    """
    if driver.status != DriverStatus.ACTIVE:
        return f"status {driver.status.value}"
    if driver.banned_globally:
        return "banned"
    if is_blocked(driver.id):
        return "blocked by penalty"
    if not vehicle_matches(driver, trip):
        return "vehicle mismatch"
    if not is_checked_in(driver, trip):
        return "not checked in"
    return None


def build_base_candidates(
    trip: TripRequest,
    drivers: Iterable[DriverSnapshot],
    is_blocked: Callable[[str], bool] = lambda driver_id: False,
) -> List[DriverSnapshot]:
    eligible = []
    for driver in drivers:
        reason = exclusion_reason(driver, trip, is_blocked)
        if reason is not None:
            logger.debug("Trip %s: driver %s excluded (%s)", trip.trip_id, driver.id, reason)
            continue
        eligible.append(driver)
    return eligible
