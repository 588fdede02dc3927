"""
Query regions: the circle or box a spatial query is asked about.

Regions carry the exact containment check used to discard the grid covering's
false positives, the conservative cap test used while building a covering, and a
stable dictionary form used by continuation tokens.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Union

from .primitives import GeoBoundingBox, GeoPoint

# Absorbs floating-point noise in the haversine comparison at the circle edge
DISTANCE_EPSILON_METERS = 1e-6


@dataclass(frozen=True)
class CircleRegion:
    """All points within radius_meters of center."""

    center: GeoPoint
    radius_meters: float

    kind = "circle"

    def __post_init__(self):
        radius = float(self.radius_meters)
        if not math.isfinite(radius) or radius < 0:
            raise ValueError(f"Radius must be a non-negative finite number, got {radius}")
        object.__setattr__(self, "radius_meters", radius)

    def distance_to(self, point: GeoPoint) -> float:
        return self.center.distance_to_meters(point)

    def contains(self, point: GeoPoint) -> bool:
        return self.distance_to(point) <= self.radius_meters + DISTANCE_EPSILON_METERS

    def may_intersect_cap(self, cap_center: GeoPoint, cap_radius_meters: float) -> bool:
        return (
            self.center.distance_to_meters(cap_center)
            <= self.radius_meters + cap_radius_meters
        )

    def bounding_box(self) -> GeoBoundingBox:
        return GeoBoundingBox.from_center_and_distance(self.center, self.radius_meters)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "center": self.center.to_dict(),
            "radius_m": self.radius_meters,
        }


@dataclass(frozen=True)
class BoxRegion:
    """All points inside a (possibly antimeridian-wrapping) bounding box."""

    box: GeoBoundingBox

    kind = "box"

    @property
    def center(self) -> GeoPoint:
        return self.box.center

    def distance_to(self, point: GeoPoint) -> float:
        return self.center.distance_to_meters(point)

    def contains(self, point: GeoPoint) -> bool:
        return self.box.contains(point)

    def may_intersect_cap(self, cap_center: GeoPoint, cap_radius_meters: float) -> bool:
        return self.box.may_intersect_cap(cap_center, cap_radius_meters)

    def bounding_box(self) -> GeoBoundingBox:
        return self.box

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "box": self.box.to_dict()}


Region = Union[CircleRegion, BoxRegion]


def region_from_dict(data: Dict[str, Any]) -> Region:
    """Rebuild a region from its dictionary form."""
    region_type = data.get("type")
    if region_type == CircleRegion.kind:
        return CircleRegion(GeoPoint.from_dict(data["center"]), data["radius_m"])
    if region_type == BoxRegion.kind:
        return BoxRegion(GeoBoundingBox.from_dict(data["box"]))
    raise ValueError(f"Unknown region type: {region_type}")
