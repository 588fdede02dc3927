"""
S2 quadtree grid system for the geoquery spatial query engine.

Cells are addressed by their S2 token at a fixed level; geometry comes from the
s2sphere implementation of the S2 cube projection.
"""

import math
from typing import List, Optional

import s2sphere

from ..common import InvalidQueryError, get_logger, log_covering
from ..geo import BoxRegion, CircleRegion, GeoBoundingBox, GeoPoint
from .base import CellCovering, GridType
from .covering import (
    child_precision,
    expand_covering,
    parent_precision,
    region_area_km2,
    validate_precision,
)

logger = get_logger("grid.s2")

# Average S2 edge length at level 0 in kilometers; halves with every level
S2_LEVEL0_EDGE_KM = 4651.0


class S2GridSystem:
    """Quadtree-spherical grid backed by s2sphere."""

    grid_type = GridType.S2
    min_precision = 0
    max_precision = 30

    def __init__(self):
        self.logger = logger

    def _cell_id(self, cell: str) -> s2sphere.CellId:
        try:
            cell_id = s2sphere.CellId.from_token(cell)
        except (TypeError, ValueError, AttributeError):
            raise InvalidQueryError(f"Invalid S2 token: {cell!r}")
        if not cell_id.is_valid():
            raise InvalidQueryError(f"Invalid S2 token: {cell!r}")
        return cell_id

    def is_valid_cell(self, cell: str) -> bool:
        if not isinstance(cell, str) or not cell:
            return False
        try:
            self._cell_id(cell)
        except InvalidQueryError:
            return False
        return True

    def precision_of(self, cell: str) -> int:
        return self._cell_id(cell).level()

    def point_to_cell(self, point: GeoPoint, precision: int) -> str:
        """
        Convert a point to the token of the S2 cell containing it.

        Args:
            point: Location to index
            precision: S2 level (0-30)

        Returns:
            S2 cell token
        """
        validate_precision(self, precision)
        lat_lng = s2sphere.LatLng.from_degrees(point.latitude, point.longitude)
        return s2sphere.CellId.from_lat_lng(lat_lng).parent(precision).to_token()

    def cell_to_point(self, cell: str) -> GeoPoint:
        lat_lng = self._cell_id(cell).to_lat_lng()
        return GeoPoint(lat_lng.lat().degrees, lat_lng.lng().degrees)

    def cell_vertices(self, cell: str) -> List[GeoPoint]:
        s2_cell = s2sphere.Cell(self._cell_id(cell))
        vertices = []
        for k in range(4):
            lat_lng = s2sphere.LatLng.from_point(s2_cell.get_vertex(k))
            vertices.append(GeoPoint(lat_lng.lat().degrees, lat_lng.lng().degrees))
        return vertices

    def cell_bounds(self, cell: str) -> GeoBoundingBox:
        """
        Latitude/longitude bounds of an S2 cell.

        Uses the S2 rectangle bound, which accounts for edges bulging poleward
        and wraps across the antimeridian where needed.
        """
        rect = s2sphere.Cell(self._cell_id(cell)).get_rect_bound()
        south = max(-90.0, rect.lat_lo().degrees)
        north = min(90.0, rect.lat_hi().degrees)
        if rect.lng_lo().degrees <= -180.0 and rect.lng_hi().degrees >= 180.0:
            west, east = -180.0, 180.0
        else:
            west = max(-180.0, min(180.0, rect.lng_lo().degrees))
            east = max(-180.0, min(180.0, rect.lng_hi().degrees))
        return GeoBoundingBox(GeoPoint(south, west), GeoPoint(north, east))

    def neighbors(self, cell: str) -> List[str]:
        """The four cells sharing an edge with an S2 cell."""
        return sorted(n.to_token() for n in self._cell_id(cell).get_edge_neighbors())

    def parent(self, cell: str, precision: Optional[int] = None) -> str:
        cell_id = self._cell_id(cell)
        target = parent_precision(self, cell_id.level(), precision)
        return cell_id.parent(target).to_token()

    def children(self, cell: str, precision: Optional[int] = None) -> List[str]:
        """Tokens of the descendants of an S2 cell, in Hilbert curve order."""
        cell_id = self._cell_id(cell)
        target = child_precision(self, cell_id.level(), precision)
        child = cell_id.child_begin(target)
        end = cell_id.child_end(target)
        tokens = []
        while child != end:
            tokens.append(child.to_token())
            child = child.next()
        return tokens

    def cell_radius_meters(self, cell: str) -> float:
        center = self.cell_to_point(cell)
        return max(center.distance_to_meters(v) for v in self.cell_vertices(cell))

    def average_cell_edge_km(self, precision: int) -> float:
        validate_precision(self, precision)
        return S2_LEVEL0_EDGE_KM / math.pow(2, precision)

    def cover_circle(
        self, center: GeoPoint, radius_meters: float, precision: int, max_cells: int
    ) -> CellCovering:
        """
        Get S2 cells covering every point within a radius of a center.

        Args:
            center: Circle center
            radius_meters: Circle radius in meters
            precision: S2 level
            max_cells: Cell budget

        Returns:
            CellCovering sorted by distance to center
        """
        covering = expand_covering(
            self, CircleRegion(center, radius_meters), precision, max_cells
        )
        self.logger.debug(
            "Computed S2 circle covering",
            extra=log_covering(
                grid_type=self.grid_type.value,
                precision=precision,
                cell_count=len(covering),
                is_complete=covering.is_complete,
                radius_m=radius_meters,
            ),
        )
        return covering

    def cover_box(
        self, box: GeoBoundingBox, precision: int, max_cells: int
    ) -> CellCovering:
        covering = expand_covering(self, BoxRegion(box), precision, max_cells)
        self.logger.debug(
            "Computed S2 box covering",
            extra=log_covering(
                grid_type=self.grid_type.value,
                precision=precision,
                cell_count=len(covering),
                is_complete=covering.is_complete,
            ),
        )
        return covering

    def estimate_cell_count(self, region, precision: int) -> int:
        """Approximate number of level-`precision` cells needed to cover a region."""
        edge_km = self.average_cell_edge_km(precision)
        return max(1, math.ceil(region_area_km2(region) / (edge_km * edge_km)))
