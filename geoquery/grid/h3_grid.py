"""
H3 hexagonal grid system for the geoquery spatial query engine.

Maps geographic coordinates to H3 cells, exposes cell geometry, and computes
cell coverings for circles and bounding boxes at a given resolution.
"""

import math
from typing import List, Optional

import h3

from ..common import InvalidQueryError, get_logger, log_covering
from ..geo import BoxRegion, CircleRegion, GeoBoundingBox, GeoPoint, normalize_longitude
from .base import CellCovering, GridType
from .covering import (
    child_precision,
    expand_covering,
    parent_precision,
    region_area_km2,
    validate_precision,
)

logger = get_logger("grid.h3")


class H3GridSystem:
    """Hexagonal hierarchical grid backed by the h3 library."""

    grid_type = GridType.H3
    min_precision = 0
    max_precision = 15

    def __init__(self):
        self.logger = logger

    def _require_valid(self, cell: str) -> None:
        if not self.is_valid_cell(cell):
            raise InvalidQueryError(f"Invalid H3 cell: {cell!r}")

    def is_valid_cell(self, cell: str) -> bool:
        """
        Validate that a string is a valid H3 cell ID.

        Args:
            cell: String to validate

        Returns:
            True if valid H3 cell ID
        """
        try:
            return isinstance(cell, str) and h3.is_valid_cell(cell)
        except (TypeError, ValueError):
            return False

    def precision_of(self, cell: str) -> int:
        self._require_valid(cell)
        return h3.get_resolution(cell)

    def point_to_cell(self, point: GeoPoint, precision: int) -> str:
        """
        Convert a point to the H3 cell containing it.

        Args:
            point: Location to index
            precision: H3 resolution (0-15)

        Returns:
            H3 cell ID string
        """
        validate_precision(self, precision)
        return h3.latlng_to_cell(point.latitude, point.longitude, precision)

    def cell_to_point(self, cell: str) -> GeoPoint:
        """
        Convert an H3 cell ID to its centroid.

        Args:
            cell: H3 cell ID string

        Returns:
            Centroid as GeoPoint
        """
        self._require_valid(cell)
        lat, lng = h3.cell_to_latlng(cell)
        return GeoPoint(lat, lng)

    def cell_boundary(self, cell: str) -> List[GeoPoint]:
        """
        Get boundary vertices for an H3 cell.

        Args:
            cell: H3 cell ID string

        Returns:
            List of GeoPoints defining the cell boundary
        """
        self._require_valid(cell)
        return [GeoPoint(lat, lng) for lat, lng in h3.cell_to_boundary(cell)]

    def cell_bounds(self, cell: str) -> GeoBoundingBox:
        """
        Latitude/longitude bounds of an H3 cell, derived from its vertices.

        Cells straddling the antimeridian produce a wrapping box; cells holding a
        pole span every longitude.
        """
        vertices = self.cell_boundary(cell)
        lats = [v.latitude for v in vertices]
        lngs = [v.longitude for v in vertices]
        resolution = h3.get_resolution(cell)

        if h3.latlng_to_cell(90.0, 0.0, resolution) == cell:
            return GeoBoundingBox(GeoPoint(min(lats), -180.0), GeoPoint(90.0, 180.0))
        if h3.latlng_to_cell(-90.0, 0.0, resolution) == cell:
            return GeoBoundingBox(GeoPoint(-90.0, -180.0), GeoPoint(max(lats), 180.0))

        if max(lngs) - min(lngs) > 180.0:
            # Vertices on both sides of the antimeridian
            shifted = [lng + 360.0 if lng < 0 else lng for lng in lngs]
            west = normalize_longitude(min(shifted))
            east = normalize_longitude(max(shifted))
            return GeoBoundingBox(GeoPoint(min(lats), west), GeoPoint(max(lats), east))

        return GeoBoundingBox(
            GeoPoint(min(lats), min(lngs)), GeoPoint(max(lats), max(lngs))
        )

    def neighbors(self, cell: str) -> List[str]:
        """Cells adjacent to an H3 cell (five for pentagons, six otherwise)."""
        return sorted(set(h3.grid_disk(cell, 1)) - {cell})

    def parent(self, cell: str, precision: Optional[int] = None) -> str:
        """
        Get the H3 ancestor of a cell.

        Args:
            cell: H3 cell ID string
            precision: Coarser resolution, one level up when omitted

        Returns:
            Parent H3 cell ID
        """
        target = parent_precision(self, self.precision_of(cell), precision)
        return h3.cell_to_parent(cell, target)

    def children(self, cell: str, precision: Optional[int] = None) -> List[str]:
        target = child_precision(self, self.precision_of(cell), precision)
        return sorted(h3.cell_to_children(cell, target))

    def cell_radius_meters(self, cell: str) -> float:
        center = self.cell_to_point(cell)
        return max(center.distance_to_meters(v) for v in self.cell_boundary(cell))

    def average_cell_edge_km(self, precision: int) -> float:
        """Average hexagon edge length in kilometers at a resolution."""
        validate_precision(self, precision)
        return h3.average_hexagon_edge_length(precision, unit="km")

    def average_cell_area_km2(self, precision: int) -> float:
        validate_precision(self, precision)
        return h3.average_hexagon_area(precision, unit="km^2")

    def cover_circle(
        self, center: GeoPoint, radius_meters: float, precision: int, max_cells: int
    ) -> CellCovering:
        """
        Get H3 cells covering every point within a radius of a center.

        Args:
            center: Circle center
            radius_meters: Circle radius in meters
            precision: H3 resolution
            max_cells: Cell budget

        Returns:
            CellCovering sorted by distance to center
        """
        covering = expand_covering(
            self, CircleRegion(center, radius_meters), precision, max_cells
        )
        self.logger.debug(
            "Computed H3 circle covering",
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
        """
        Get H3 cells covering a bounding box.

        Args:
            box: Bounding box, possibly wrapping the antimeridian
            precision: H3 resolution
            max_cells: Cell budget

        Returns:
            CellCovering sorted by distance to the box centroid
        """
        covering = expand_covering(self, BoxRegion(box), precision, max_cells)
        self.logger.debug(
            "Computed H3 box covering",
            extra=log_covering(
                grid_type=self.grid_type.value,
                precision=precision,
                cell_count=len(covering),
                is_complete=covering.is_complete,
            ),
        )
        return covering

    def estimate_cell_count(self, region, precision: int) -> int:
        """
        Estimate how many cells a covering of a region needs.

        Args:
            region: CircleRegion or BoxRegion
            precision: H3 resolution

        Returns:
            Approximate cell count (at least 1)
        """
        cell_area_km2 = self.average_cell_area_km2(precision)
        return max(1, math.ceil(region_area_km2(region) / cell_area_km2))
