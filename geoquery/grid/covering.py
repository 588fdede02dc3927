"""
Best-first cell covering shared by every grid system.

The expansion starts at the cell holding the region center and walks the grid's
neighbor graph closest-first. A cell is kept when the spherical cap around its
center, sized to enclose the whole cell, may touch the region; only kept cells are
expanded. Cells touching a connected region form a connected neighbor graph, so
the walk reaches all of them, including across the antimeridian and around poles.
"""

import heapq
import math
from typing import Dict, List, Optional, Tuple

from ..common import InvalidQueryError
from ..geo import CircleRegion, GeoPoint, Region
from .base import CellCovering, GridSystem

# Cell edges are not exact great-circle arcs in every grid
COVERING_SAFETY_MARGIN = 1.05
COVERING_SAFETY_METERS = 1.0


def validate_max_cells(max_cells: int) -> None:
    if max_cells is None or max_cells < 1:
        raise InvalidQueryError(f"max_cells must be at least 1, got {max_cells}")


def validate_precision(grid: GridSystem, precision: int) -> None:
    if not isinstance(precision, int) or not (
        grid.min_precision <= precision <= grid.max_precision
    ):
        raise InvalidQueryError(
            f"{grid.grid_type.value.upper()} precision must be between "
            f"{grid.min_precision} and {grid.max_precision}, got {precision}"
        )


def parent_precision(grid: GridSystem, cell_precision: int, precision: Optional[int]) -> int:
    """Target precision for a parent lookup; one level coarser by default."""
    if precision is None:
        precision = cell_precision - 1
    validate_precision(grid, precision)
    if precision > cell_precision:
        raise InvalidQueryError(
            f"Parent precision {precision} is finer than the cell precision {cell_precision}"
        )
    return precision


def child_precision(grid: GridSystem, cell_precision: int, precision: Optional[int]) -> int:
    """Target precision for a children lookup; one level finer by default."""
    if precision is None:
        precision = cell_precision + 1
    validate_precision(grid, precision)
    if precision < cell_precision:
        raise InvalidQueryError(
            f"Child precision {precision} is coarser than the cell precision {cell_precision}"
        )
    return precision


def expand_covering(
    grid: GridSystem, region: Region, precision: int, max_cells: int
) -> CellCovering:
    """
    Compute the cells of a grid that may intersect a region.

    Args:
        grid: Grid system to cover with
        region: Circle or box region
        precision: Cell precision
        max_cells: Maximum number of cells to return

    Returns:
        CellCovering ordered by distance from the region center; is_complete is
        False when more than max_cells cells intersect the region
    """
    validate_precision(grid, precision)
    validate_max_cells(max_cells)

    center = region.center
    centers: Dict[str, GeoPoint] = {}

    def cell_center(cell: str) -> GeoPoint:
        if cell not in centers:
            centers[cell] = grid.cell_to_point(cell)
        return centers[cell]

    seed = grid.point_to_cell(center, precision)
    frontier: List[Tuple[float, str]] = [(center.distance_to_meters(cell_center(seed)), seed)]
    seen = {seed}
    accepted: List[str] = []
    truncated = False

    while frontier:
        _, cell = heapq.heappop(frontier)
        cap_radius = (
            grid.cell_radius_meters(cell) * COVERING_SAFETY_MARGIN
            + COVERING_SAFETY_METERS
        )
        if not region.may_intersect_cap(cell_center(cell), cap_radius):
            continue

        if len(accepted) >= max_cells:
            truncated = True
            break

        accepted.append(cell)
        for neighbor in grid.neighbors(cell):
            if neighbor in seen:
                continue
            seen.add(neighbor)
            heapq.heappush(
                frontier,
                (center.distance_to_meters(cell_center(neighbor)), neighbor),
            )

    return CellCovering(cells=tuple(accepted), is_complete=not truncated)


def region_area_km2(region: Region) -> float:
    """Approximate area of a region in square kilometers, for cell count estimates."""
    if isinstance(region, CircleRegion):
        radius_km = region.radius_meters / 1000.0
        return math.pi * radius_km * radius_km
    box = region.bounding_box()
    lat_range_km = (box.north - box.south) * 111.0
    avg_lat = (box.north + box.south) / 2.0
    lng_range_km = box.longitude_span * 111.0 * math.cos(math.radians(avg_lat))
    return lat_range_km * lng_range_km
