"""
Geographic primitives and query regions for the geoquery spatial query engine.
"""

from .primitives import (
    EARTH_RADIUS_METERS,
    METERS_PER_KILOMETER,
    METERS_PER_MILE,
    GeoPoint,
    GeoBoundingBox,
    haversine_meters,
    normalize_longitude,
    longitude_in_range,
)
from .regions import CircleRegion, BoxRegion, Region, region_from_dict

__all__ = [
    "EARTH_RADIUS_METERS",
    "METERS_PER_KILOMETER",
    "METERS_PER_MILE",
    "GeoPoint",
    "GeoBoundingBox",
    "haversine_meters",
    "normalize_longitude",
    "longitude_in_range",
    "CircleRegion",
    "BoxRegion",
    "Region",
    "region_from_dict",
]
