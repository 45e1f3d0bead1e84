"""
GPS Distance Toolkit
====================

Great-circle helpers used by the tracker:

- distance_km: haversine distance between two coordinates
- calculate_bearing / destination_point: initial bearing and the inverse
  (point at a given bearing and distance), used to script approaches
- DistanceTracker: path length travelled, with jitter and glitch filtering

Usage:
    remaining = distance_km(position, destination)

    tracker = DistanceTracker()
    for sample in samples:
        tracker.update(sample.coordinate)
    print(f"Travelled {tracker.total_km:.2f}km")
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from ...domain.models import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points using Haversine formula.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push a slightly outside [0, 1] near identical/antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometers."""
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def distance_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in meters."""
    return distance_km(a, b) * 1000.0


def calculate_bearing(a: Coordinate, b: Coordinate) -> float:
    """
    Calculate initial bearing from a to b.

    Returns:
        Bearing in degrees (0-360, 0=North)
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    x = math.sin(dlon) * math.cos(lat2_rad)
    y = math.cos(lat1_rad) * math.sin(lat2_rad) - math.sin(lat1_rad) * math.cos(
        lat2_rad
    ) * math.cos(dlon)

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def destination_point(origin: Coordinate, bearing_deg: float, distance: float) -> Coordinate:
    """
    Point reached by travelling `distance` km from origin along bearing_deg.

    Longitude is normalised to [-180, 180).
    """
    delta = distance / EARTH_RADIUS_KM
    theta = math.radians(bearing_deg)
    lat1 = math.radians(origin.latitude)
    lon1 = math.radians(origin.longitude)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(delta)
        + math.cos(lat1) * math.sin(delta) * math.cos(theta)
    )
    lon2 = lon1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * math.sin(lat2),
    )

    lon_deg = (math.degrees(lon2) + 540) % 360 - 180
    lat_deg = max(-90.0, min(90.0, math.degrees(lat2)))
    return Coordinate(latitude=lat_deg, longitude=lon_deg)


@dataclass
class DistanceTracker:
    """
    Track total distance travelled from successive positions.

    Filters out GPS jitter by ignoring small movements.
    """

    total_meters: float = 0.0
    last: Optional[Coordinate] = None
    min_movement_meters: float = 5.0  # Ignore GPS jitter below this threshold
    max_jump_meters: float = 1000.0  # Larger single-step jumps are glitches
    points_count: int = 0
    glitches: int = 0
    _distances: list[float] = field(default_factory=list)

    def update(self, position: Coordinate) -> float:
        """
        Update tracker with new position.

        Returns:
            Distance moved in meters (0 if first point or filtered)
        """
        self.points_count += 1

        if self.last is None:
            self.last = position
            return 0.0

        moved = distance_m(self.last, position)

        if moved < self.min_movement_meters:
            return 0.0

        if moved > self.max_jump_meters:
            # Not counted, but later steps are measured from here (gap in the feed)
            self.last = position
            self.glitches += 1
            return 0.0

        self.total_meters += moved
        self._distances.append(moved)
        self.last = position
        return moved

    @property
    def total_km(self) -> float:
        """Total distance in kilometers."""
        return self.total_meters / 1000.0

    def reset(self) -> None:
        """Reset tracker to initial state."""
        self.total_meters = 0.0
        self.last = None
        self.points_count = 0
        self.glitches = 0
        self._distances.clear()

    def to_dict(self) -> dict:
        """Export tracker state as dictionary."""
        return {
            "total_meters": self.total_meters,
            "total_km": self.total_km,
            "points_count": self.points_count,
            "glitches": self.glitches,
            "last_lat": self.last.latitude if self.last else None,
            "last_lon": self.last.longitude if self.last else None,
        }
