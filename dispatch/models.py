"""
Purpose: Core data models for dispatch ranking.
What it does:
- TripRequest: the pending trip a ranking is computed for
- DispatchCandidate: one ranked driver (ephemeral, never persisted)
- AcceptedOffer: a driver's acceptance of a broadcast trip offer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from drivers.models import AttendanceStatus, LatLon, PerformanceCategory, TripCategory


@dataclass(frozen=True)
class TripRequest:
    trip_id: str
    category: TripCategory
    day: date
    pickup: Optional[LatLon] = None
    # Optional gearbox requirement for NORMAL trips ("MANUAL" / "AUTOMATIC").
    gear_type: Optional[str] = None
    franchise_id: Optional[str] = None


@dataclass(frozen=True)
class DispatchCandidate:
    driver_id: str
    vehicle_match: bool
    distance_km: Optional[float]
    performance_category: PerformanceCategory
    # None when the driver has no daily record yet (full limit remaining).
    remaining_daily_limit: Optional[float]
    checked_in: bool
    attendance_status: Optional[AttendanceStatus]
    eligible: bool
    composite_score: float
    active_trip_count: int = 0
    checked_in_at: Optional[datetime] = None

    @property
    def limit_exhausted(self) -> bool:
        return self.remaining_daily_limit is not None and self.remaining_daily_limit <= 0


@dataclass(frozen=True)
class AcceptedOffer:
    driver_id: str
    distance_km: Optional[float] = None
    rating: Optional[float] = None
    accepted_at: datetime = field(default_factory=datetime.now)
