#Marks routing as a package.
#Re-exports the OSRM client and the distance providers so other modules
#import from routing without knowing internal file names.
#No business logic.

from .osrm_client import OSRMClient, OSRMError
from .distance import DistanceProvider, HaversineDistanceProvider, OSRMDistanceProvider, haversine_km

__all__ = [
    "OSRMClient",
    "OSRMError",
    "DistanceProvider",
    "HaversineDistanceProvider",
    "OSRMDistanceProvider",
    "haversine_km",
]
