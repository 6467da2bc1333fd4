#Purpose: The OSRM "adapter/client".
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lon,lat)
#URL construction (/route, /table)
#timeouts and non-Ok responses (raised as OSRMError)
#parsing response JSON into plain dicts / km values
#It should not contain dispatch rules or scoring.

from typing import Dict, List, Optional, Tuple

import requests

from core.settings import get_settings

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


class OSRMError(Exception):
    """Raised when OSRM answers with anything other than code=Ok."""
    pass


class OSRMClient:
    """
    OSRM Adapter / Client

    - Talk to OSRM via HTTP
    - Convert internal (lat, lon) -> OSRM (lon,lat)
    - Return normalized outputs

    base_url and timeout default to BASE_URL / OSRM_TIMEOUT_S from the environment.
    """

    def __init__(self, base_url: Optional[str] = None, profile: str = "driving", timeout: Optional[int] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_s
        self.profile = profile

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Please set BASE_URL in the .env file.")

    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ";".join(f"{lon},{lat}" for lat, lon in coords)

    def _get(self, url: str, params: Dict[str, str]) -> Dict:
        response = requests.get(url, params=params, timeout=self.timeout)
        data = response.json()
        if data.get("code") != "Ok":
            raise OSRMError(f"OSRM error: {data.get('message', data.get('code', 'Unknown error'))}")
        return data

    def compute_route(self, coordinates: List[LatLon]) -> Dict[str, float]:
        """
        Calls /route and returns {"distance": meters, "duration": seconds}.
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"
        data = self._get(url, {"overview": "false"})
        route = data["routes"][0]
        return {
            "distance": route["distance"],
            "duration": route["duration"],
        }

    def compute_table(self, sources: List[LatLon], destinations: List[LatLon]) -> Dict[str, List[List[Optional[float]]]]:
        """
        Calls /table for sources x destinations.

        Returns {"distances": [[meters]], "durations": [[seconds]]} indexed
        [source][destination]. Unreachable pairs are None.
        """
        if not sources or not destinations:
            return {"distances": [], "durations": []}

        coordinates = self.format_coordinates(sources + destinations)
        params = {
            "sources": ";".join(str(i) for i in range(len(sources))),
            "destinations": ";".join(str(i) for i in range(len(sources), len(sources) + len(destinations))),
            "annotations": "duration,distance",
        }
        url = f"{self.base_url}/table/v1/{self.profile}/{coordinates}"
        data = self._get(url, params)
        return {
            "distances": data["distances"],
            "durations": data["durations"],
        }

    def road_distance_km(self, origin: LatLon, destination: LatLon) -> Optional[float]:
        table = self.compute_table([origin], [destination])
        meters = table["distances"][0][0]
        if meters is None:
            return None
        return float(meters) / 1000.0
