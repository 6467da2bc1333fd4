"""
Purpose: Core data models for the drivers domain.
What it does:
Defines the snapshots the engine receives from the driver registry, attendance
service and location service, plus the performance types the scorer produces.
No storage, no business rules beyond trivial derived properties.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

LatLon = Tuple[float, float]


class DriverStatus(str, Enum):
    """
    Registry status of a driver. Only ACTIVE drivers can be dispatched.
    """
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BLOCKED = "BLOCKED"
    TERMINATED = "TERMINATED"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    PARTIAL = "PARTIAL"
    ABSENT = "ABSENT"
    ON_LEAVE = "ON_LEAVE"


class PerformanceCategory(str, Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class TripCategory(str, Enum):
    """
    Car category a trip asks for.
    """
    NORMAL = "NORMAL"
    PREMIUM = "PREMIUM"
    LUXURY = "LUXURY"


class TripOutcome(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


# Which driver car-type capabilities satisfy each trip category.
CATEGORY_CAPABILITIES = {
    TripCategory.NORMAL: frozenset({"MANUAL", "AUTOMATIC"}),
    TripCategory.PREMIUM: frozenset({"PREMIUM_CARS", "LUXURY_CARS"}),
    TripCategory.LUXURY: frozenset({"LUXURY_CARS", "PREMIUM_CARS"}),
}

# Attendance states that count as "checked in and working" for dispatch.
WORKING_ATTENDANCE = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.PARTIAL})


@dataclass(frozen=True)
class AttendanceSnapshot:
    """
    What the attendance service knows about a driver for one calendar day.
    """
    driver_id: str
    day: date
    checked_in: bool
    status: AttendanceStatus = AttendanceStatus.ABSENT
    checked_in_at: Optional[datetime] = None

    def is_working_on(self, day: date) -> bool:
        return self.day == day and self.checked_in and self.status in WORKING_ATTENDANCE


@dataclass(frozen=True)
class DriverSnapshot:
    """
    A purely stateless representation of a driver at the moment a trip is ranked.
    """
    id: str
    status: DriverStatus
    car_types: FrozenSet[str] = frozenset()
    franchise_id: Optional[str] = None
    banned_globally: bool = False
    attendance: Optional[AttendanceSnapshot] = None

    # Location: either coordinates or a distance precomputed by the caller.
    location: Optional[LatLon] = None
    distance_km: Optional[float] = None

    active_trip_count: int = 0
    rating: Optional[float] = None

    @classmethod
    def new(
        cls,
        driver_id: str,
        status: str | DriverStatus = DriverStatus.ACTIVE,
        car_types: Iterable[str] = (),
        **kwargs,
    ) -> DriverSnapshot:
        if isinstance(status, str):
            status = DriverStatus(status)
        return cls(
            id=driver_id,
            status=status,
            car_types=frozenset(c.upper() for c in car_types),
            **kwargs,
        )


@dataclass(frozen=True)
class PerformanceStats:
    """
    Cumulative counters the scorer consumes.
    """
    driver_id: str
    total_trips: int = 0
    completed_trips: int = 0
    rejected_trips: int = 0
    complaint_count: int = 0
    rating: Optional[float] = None


@dataclass(frozen=True)
class PerformanceMetrics:
    driver_id: str
    total_trips: int
    completed_trips: int
    rejected_trips: int
    complaint_count: int
    rating: Optional[float]
    completion_rate: float
    rejection_rate: float
    score: int
    category: PerformanceCategory


@dataclass(frozen=True)
class TripOutcomeEvent:
    """
    One row from the trip ledger.
    """
    driver_id: str
    outcome: TripOutcome
    source_event_id: str
    fare_amount: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
