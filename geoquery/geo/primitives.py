"""
Geographic primitives for the geoquery spatial query engine.

Provides immutable point and bounding box types, great-circle distance, and the
antimeridian-aware longitude arithmetic the covering and filtering code relies on.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple

import h3

# Mean radius of the sphere h3 measures great-circle distance on
EARTH_RADIUS_METERS = 6371007.180918475
METERS_PER_KILOMETER = 1000.0
METERS_PER_MILE = 1609.344
METERS_PER_DEGREE_LATITUDE = 111320.0


def normalize_longitude(longitude: float) -> float:
    """
    Normalize a longitude into (-180, 180].

    Values already within [-180, 180] are returned unchanged so that a box
    spanning -180..180 keeps its meaning.
    """
    longitude = float(longitude)
    if -180.0 <= longitude <= 180.0:
        return longitude
    wrapped = math.fmod(longitude + 180.0, 360.0)
    if wrapped <= 0.0:
        wrapped += 360.0
    return wrapped - 180.0


def longitude_in_range(longitude: float, west: float, east: float) -> bool:
    """
    Check whether a longitude lies within [west, east].

    A range with west > east wraps the antimeridian. Longitudes -180 and 180
    denote the same meridian.
    """
    if west <= east:
        return any(west <= lng <= east for lng in (longitude, longitude - 360.0, longitude + 360.0))
    return longitude >= west or longitude <= east


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two coordinates in meters."""
    return h3.great_circle_distance((lat1, lng1), (lat2, lng2), unit="m")


@dataclass(frozen=True)
class GeoPoint:
    """Immutable WGS84 coordinate."""

    latitude: float
    longitude: float

    def __post_init__(self):
        latitude = float(self.latitude)
        longitude = float(self.longitude)
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            raise ValueError(f"Coordinates must be finite, got ({latitude}, {longitude})")
        if latitude < -90.0 or latitude > 90.0:
            raise ValueError(f"Latitude must be between -90 and 90 degrees, got {latitude}")
        object.__setattr__(self, "latitude", latitude)
        object.__setattr__(self, "longitude", normalize_longitude(longitude))

    def distance_to_meters(self, other: "GeoPoint") -> float:
        return haversine_meters(
            self.latitude, self.longitude, other.latitude, other.longitude
        )

    def distance_to_kilometers(self, other: "GeoPoint") -> float:
        return self.distance_to_meters(other) / METERS_PER_KILOMETER

    def distance_to_miles(self, other: "GeoPoint") -> float:
        return self.distance_to_meters(other) / METERS_PER_MILE

    def destination(self, distance_meters: float, bearing_degrees: float) -> "GeoPoint":
        """
        Point reached by travelling along a great circle from this point.

        Args:
            distance_meters: Distance to travel
            bearing_degrees: Initial bearing, clockwise from north

        Returns:
            Destination GeoPoint
        """
        angular = distance_meters / EARTH_RADIUS_METERS
        bearing = math.radians(bearing_degrees)
        lat1 = math.radians(self.latitude)
        lng1 = math.radians(self.longitude)

        sin_lat2 = math.sin(lat1) * math.cos(angular) + math.cos(lat1) * math.sin(
            angular
        ) * math.cos(bearing)
        lat2 = math.asin(max(-1.0, min(1.0, sin_lat2)))
        lng2 = lng1 + math.atan2(
            math.sin(bearing) * math.sin(angular) * math.cos(lat1),
            math.cos(angular) - math.sin(lat1) * math.sin(lat2),
        )
        return GeoPoint(math.degrees(lat2), normalize_longitude(math.degrees(lng2)))

    def is_near_pole(self, threshold_latitude: float = 85.0) -> bool:
        return abs(self.latitude) > threshold_latitude

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for serialization."""
        return {"lat": self.latitude, "lng": self.longitude}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoPoint":
        """Create from dictionary."""
        return cls(latitude=data["lat"], longitude=data["lng"])

    def __str__(self) -> str:
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True)
class GeoBoundingBox:
    """
    Latitude/longitude rectangle defined by its southwest and northeast corners.

    A southwest longitude greater than the northeast longitude means the box
    wraps across the antimeridian.
    """

    southwest: GeoPoint
    northeast: GeoPoint

    def __post_init__(self):
        if self.southwest.latitude > self.northeast.latitude:
            raise ValueError(
                "Southwest corner latitude must be less than or equal to northeast corner latitude"
            )

    @property
    def south(self) -> float:
        return self.southwest.latitude

    @property
    def north(self) -> float:
        return self.northeast.latitude

    @property
    def west(self) -> float:
        return self.southwest.longitude

    @property
    def east(self) -> float:
        return self.northeast.longitude

    @property
    def crosses_antimeridian(self) -> bool:
        return self.west > self.east

    @property
    def longitude_span(self) -> float:
        """Width of the box in degrees of longitude, in [0, 360]."""
        if self.crosses_antimeridian:
            return self.east - self.west + 360.0
        return self.east - self.west

    @property
    def center(self) -> GeoPoint:
        """Centroid of the box; for wrapping boxes the centroid lies on the wrapped span."""
        center_lat = (self.south + self.north) / 2.0
        center_lng = normalize_longitude(self.west + self.longitude_span / 2.0)
        return GeoPoint(center_lat, center_lng)

    @property
    def includes_pole(self) -> bool:
        return self.north >= 90.0 or self.south <= -90.0

    def contains(self, point: GeoPoint) -> bool:
        if point.latitude < self.south or point.latitude > self.north:
            return False
        return longitude_in_range(point.longitude, self.west, self.east)

    def split_at_antimeridian(self) -> Tuple["GeoBoundingBox", ...]:
        """Split into at most two boxes, none of which wraps the antimeridian."""
        if not self.crosses_antimeridian:
            return (self,)
        western = GeoBoundingBox(
            GeoPoint(self.south, self.west), GeoPoint(self.north, 180.0)
        )
        eastern = GeoBoundingBox(
            GeoPoint(self.south, -180.0), GeoPoint(self.north, self.east)
        )
        return (western, eastern)

    def may_intersect_cap(self, center: GeoPoint, radius_meters: float) -> bool:
        """
        Conservative test of whether a spherical cap may overlap this box.

        Never returns False for an overlapping cap. The latitude band is widened by
        the cap's angular radius and the longitude band by the cap's exact
        longitude half-width at the cap center's latitude.
        """
        angular = radius_meters / EARTH_RADIUS_METERS
        angular_deg = math.degrees(angular)

        if center.latitude + angular_deg < self.south:
            return False
        if center.latitude - angular_deg > self.north:
            return False

        # Cap touches a pole, so it spans every longitude
        if abs(center.latitude) + angular_deg >= 90.0:
            return True

        half_width = math.degrees(
            math.asin(min(1.0, math.sin(angular) / math.cos(math.radians(center.latitude))))
        )
        if self.longitude_span + 2 * half_width >= 360.0:
            return True

        return longitude_in_range(
            center.longitude,
            normalize_longitude(self.west - half_width),
            normalize_longitude(self.east + half_width),
        )

    @classmethod
    def from_center_and_distance(
        cls, center: GeoPoint, distance_meters: float
    ) -> "GeoBoundingBox":
        """
        Approximate box enclosing all points within a distance of a center.

        Latitudes are clamped at the poles; longitudes wrap across the antimeridian.
        """
        lat_offset = distance_meters / METERS_PER_DEGREE_LATITUDE
        south = max(-90.0, center.latitude - lat_offset)
        north = min(90.0, center.latitude + lat_offset)

        meters_per_degree_lng = METERS_PER_DEGREE_LATITUDE * math.cos(
            math.radians(center.latitude)
        )
        if (
            south <= -90.0
            or north >= 90.0
            or meters_per_degree_lng <= 0
            or distance_meters / meters_per_degree_lng >= 180.0
        ):
            return cls(GeoPoint(south, -180.0), GeoPoint(north, 180.0))

        lng_offset = distance_meters / meters_per_degree_lng
        return cls(
            GeoPoint(south, normalize_longitude(center.longitude - lng_offset)),
            GeoPoint(north, normalize_longitude(center.longitude + lng_offset)),
        )

    @classmethod
    def from_center_and_distance_kilometers(
        cls, center: GeoPoint, distance_kilometers: float
    ) -> "GeoBoundingBox":
        return cls.from_center_and_distance(
            center, distance_kilometers * METERS_PER_KILOMETER
        )

    @classmethod
    def from_center_and_distance_miles(
        cls, center: GeoPoint, distance_miles: float
    ) -> "GeoBoundingBox":
        return cls.from_center_and_distance(center, distance_miles * METERS_PER_MILE)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"sw": self.southwest.to_dict(), "ne": self.northeast.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoBoundingBox":
        """Create from dictionary."""
        return cls(GeoPoint.from_dict(data["sw"]), GeoPoint.from_dict(data["ne"]))

    def __str__(self) -> str:
        return f"SW: {self.southwest}, NE: {self.northeast}"
