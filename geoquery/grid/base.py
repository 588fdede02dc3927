"""
Grid System Protocol

Discrete global grids the spatial query engine can index records by.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from ..geo import GeoBoundingBox, GeoPoint


class GridType(Enum):
    """Supported grid systems."""

    H3 = "h3"
    S2 = "s2"


@dataclass(frozen=True)
class CellCovering:
    """Cells covering a region, as returned by a grid system."""

    cells: Tuple[str, ...]
    is_complete: bool

    def __len__(self) -> int:
        return len(self.cells)


class GridSystem(Protocol):
    """
    Hierarchical tiling of the sphere addressed by string cell ids

    Every covering returned by cover_circle/cover_box is a superset of the cells
    that can contain a point of the region, unless it was truncated by max_cells,
    in which case is_complete is False.
    """

    grid_type: GridType
    min_precision: int
    max_precision: int

    def point_to_cell(self, point: GeoPoint, precision: int) -> str:
        """
        Cell containing a point at the given precision

        Args:
            point: Location to index
            precision: H3 resolution or S2 level

        Returns:
            Cell id string
        """
        ...

    def cell_to_point(self, cell: str) -> GeoPoint:
        """Representative (center) point of a cell"""
        ...

    def cell_bounds(self, cell: str) -> GeoBoundingBox:
        """Latitude/longitude bounds of a cell"""
        ...

    def cover_circle(
        self, center: GeoPoint, radius_meters: float, precision: int, max_cells: int
    ) -> CellCovering:
        """
        Cells covering all points within radius_meters of center

        Args:
            center: Circle center
            radius_meters: Circle radius
            precision: Cell precision
            max_cells: Cell budget; the closest max_cells cells are kept when exceeded

        Returns:
            CellCovering sorted by distance to center
        """
        ...

    def cover_box(
        self, box: GeoBoundingBox, precision: int, max_cells: int
    ) -> CellCovering:
        """Cells covering a bounding box, closest to its centroid first"""
        ...

    def neighbors(self, cell: str) -> List[str]:
        """Cells sharing an edge with a cell"""
        ...

    def cell_radius_meters(self, cell: str) -> float:
        """Distance from a cell's center to its farthest vertex"""
        ...

    def parent(self, cell: str, precision: Optional[int] = None) -> str:
        """Ancestor of a cell at a coarser precision, the next level up by default"""
        ...

    def children(self, cell: str, precision: Optional[int] = None) -> List[str]:
        """Descendants of a cell at a finer precision, the next level down by default"""
        ...
