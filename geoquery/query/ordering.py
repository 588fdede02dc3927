"""
Deterministic cell visiting order.

Proximity queries visit cells nearest the query center first so early pages
hold the closest matches; box queries visit cells in cell id order.
"""

from typing import Iterable, Tuple

from ..geo import CircleRegion, GeoPoint, Region
from ..grid import GridSystem


def proximity_order(
    grid: GridSystem, center: GeoPoint, cells: Iterable[str]
) -> Tuple[str, ...]:
    """Cells by ascending distance from their center to `center`, ties by id."""
    return tuple(
        sorted(
            cells,
            key=lambda cell: (center.distance_to_meters(grid.cell_to_point(cell)), cell),
        )
    )


def cell_id_order(cells: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted(cells))


def order_cells(grid: GridSystem, region: Region, cells: Iterable[str]) -> Tuple[str, ...]:
    """Order a covering's cells for the kind of region it covers."""
    if isinstance(region, CircleRegion):
        return proximity_order(grid, region.center, cells)
    return cell_id_order(cells)
