#Marks geo as a package.
#Re-exports the distance and service-area helpers so other modules
#import from geo without knowing internal file names.
#No business logic.

from .distance import EARTH_RADIUS_METERS, haversine_meters, point_in_radius
from .geofence import ServiceArea, can_runner_be_available

__all__ = [
    "EARTH_RADIUS_METERS",
    "haversine_meters",
    "point_in_radius",
    "ServiceArea",
    "can_runner_be_available",
]
