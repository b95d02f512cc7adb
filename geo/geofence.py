#Purpose: Campus service-area geofencing.
#Decides whether a coordinate sits inside the campus the marketplace serves.
#Typical responsibilities:
#point-in-polygon test (ray casting) on a [(lat, lon), ...] ring
#small buffer beyond the polygon edge to absorb GPS drift
#"can this runner go online here?" check used by the availability toggle
#Output: yes/no plus a human readable reason.
#
#Note: this is NOT the 500 m matching radius. Task matching uses
#geo.distance.point_in_radius with no buffer at all.

from dataclasses import dataclass, field #for simple data structures
from typing import List, Optional, Tuple #for type annotations

from .distance import haversine_meters

#internal coordinate type :(lat,lon)
LatLon = Tuple[float, float]


@dataclass(frozen=True)
class AvailabilityCheck:
    """
    Result of asking whether a runner may flip themselves online.
    """
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ServiceArea:
    """
    A closed polygon ring of (lat, lon) vertices plus a buffer in meters.

    Points just outside the ring are still accepted when they are within
    `buffer_meters` of the ring's farthest vertex distance from its centroid.
    """
    name: str
    vertices: List[LatLon] = field(default_factory=list)
    buffer_meters: float = 10.0

    def __post_init__(self):
        ring = list(self.vertices)
        #drop the closing vertex if the ring repeats its first point
        if len(ring) > 1 and ring[0] == ring[-1]:
            ring = ring[:-1]
        if len(ring) < 3:
            raise ValueError(f"Service area {self.name!r} needs at least 3 distinct vertices")
        object.__setattr__(self, "vertices", ring)

    def centroid(self) -> LatLon:
        lat_sum = sum(lat for lat, _ in self.vertices)
        lon_sum = sum(lon for _, lon in self.vertices)
        return (lat_sum / len(self.vertices), lon_sum / len(self.vertices))

    def max_vertex_distance_m(self) -> float:
        center_lat, center_lon = self.centroid()
        return max(haversine_meters(center_lat, center_lon, lat, lon) for lat, lon in self.vertices)

    def contains_polygon(self, point: LatLon) -> bool:
        """
        Ray casting, counting edge crossings of a ray heading east from `point`.
        """
        lat, lon = point
        inside = False
        j = len(self.vertices) - 1
        for i in range(len(self.vertices)):
            lat_i, lon_i = self.vertices[i]
            lat_j, lon_j = self.vertices[j]
            if (lat_i > lat) != (lat_j > lat):
                crossing_lon = (lon_j - lon_i) * (lat - lat_i) / (lat_j - lat_i) + lon_i
                if lon < crossing_lon:
                    inside = not inside
            j = i
        return inside

    def contains(self, point: LatLon) -> bool:
        if self.contains_polygon(point):
            return True

        #outside the ring: accept if within the buffer band around it
        center_lat, center_lon = self.centroid()
        distance_from_center = haversine_meters(point[0], point[1], center_lat, center_lon)
        return distance_from_center <= self.max_vertex_distance_m() + self.buffer_meters


def can_runner_be_available(location: Optional[LatLon], area: ServiceArea) -> AvailabilityCheck:
    """
    Gate for the runner "go online" toggle.
    A runner with no location, or outside the service area, stays offline.
    """
    if location is None:
        return AvailabilityCheck(allowed=False, reason="Location not available")

    if not area.contains(location):
        center_lat, center_lon = area.centroid()
        distance = haversine_meters(location[0], location[1], center_lat, center_lon)
        return AvailabilityCheck(
            allowed=False,
            reason=f"Location is outside {area.name} ({distance:.0f}m from center)",
        )

    return AvailabilityCheck(allowed=True)
