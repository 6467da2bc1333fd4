"""
Purpose: Distance collaborators used by the dispatch ranker.
What it does:
- DistanceProvider: distance_km(origin, destination) -> km or None
- OSRMDistanceProvider: road distance from OSRM /table
- HaversineDistanceProvider: great-circle distance, no network

A provider returns None when it cannot answer. The ranker then treats the
candidate as "no distance" instead of failing the ranking.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Protocol

import requests

from .osrm_client import LatLon, OSRMClient, OSRMError

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


class DistanceProvider(Protocol):
    def distance_km(self, origin: LatLon, destination: LatLon) -> Optional[float]:
        ...


def haversine_km(origin: LatLon, destination: LatLon) -> float:
    lat1, lon1 = origin
    lat2, lon2 = destination
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class HaversineDistanceProvider:
    def distance_km(self, origin: LatLon, destination: LatLon) -> Optional[float]:
        return round(haversine_km(origin, destination), 3)


class OSRMDistanceProvider:
    """
    Road distance via OSRM. Network and OSRM errors degrade to None.
    """

    def __init__(self, client: Optional[OSRMClient] = None):
        self.client = client or OSRMClient()

    def distance_km(self, origin: LatLon, destination: LatLon) -> Optional[float]:
        try:
            km = self.client.road_distance_km(origin, destination)
        except (requests.RequestException, OSRMError, KeyError, IndexError, ValueError) as e:
            logger.warning("OSRM distance lookup %s -> %s failed: %s", origin, destination, e)
            return None
        return round(km, 3) if km is not None else None
