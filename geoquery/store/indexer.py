"""
Write-side spatial indexing.

Computes the grid cell of a record's location so the record can be stored in
the partition the query engine will read for that cell.
"""

from typing import Any, Dict, Optional, Union

from ..geo import GeoPoint
from ..grid import GridType, get_grid_system, validate_precision


class SpatialIndexer:
    """Assigns records to grid cells at a fixed grid type and precision."""

    def __init__(
        self,
        grid_type: Union[GridType, str],
        precision: int,
        cell_attribute: str = "pk",
        latitude_attribute: str = "lat",
        longitude_attribute: str = "lng",
        partition_prefix: str = "",
    ):
        self.grid = get_grid_system(grid_type)
        validate_precision(self.grid, precision)
        self.grid_type = self.grid.grid_type
        self.precision = precision
        self.cell_attribute = cell_attribute
        self.latitude_attribute = latitude_attribute
        self.longitude_attribute = longitude_attribute
        self.partition_prefix = partition_prefix

    def cell_for(self, point: GeoPoint) -> str:
        """Cell id holding a point at this indexer's precision."""
        return self.grid.point_to_cell(point, self.precision)

    def partition_key_for(self, point: GeoPoint) -> str:
        return f"{self.partition_prefix}{self.cell_for(point)}"

    def to_item(
        self, attributes: Dict[str, Any], point: Optional[GeoPoint] = None
    ) -> Dict[str, Any]:
        """
        Build a store item for a record.

        Args:
            attributes: Record attributes; coordinates are read from them when
                point is not given
            point: Record location

        Returns:
            Copy of the attributes with coordinates and partition key set
        """
        if point is None:
            point = GeoPoint(
                float(attributes[self.latitude_attribute]),
                float(attributes[self.longitude_attribute]),
            )

        item = dict(attributes)
        item[self.latitude_attribute] = point.latitude
        item[self.longitude_attribute] = point.longitude
        item[self.cell_attribute] = self.partition_key_for(point)
        return item
