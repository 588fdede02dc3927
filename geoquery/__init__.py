"""
geoquery: proximity and bounding-box queries over partition/range key-value stores.

This package provides:
- Common utilities (config, logging, exception hierarchy)
- Geographic primitives and query regions
- H3 and S2 grid systems with superset cell coverings
- Storage collaborators (cell store interface, retrying wrapper, in-memory store)
- Scatter/gather and paginated query execution with continuation tokens
"""

# Re-export key components for convenience
from .common import config, logger, get_logger
from .geo import GeoPoint, GeoBoundingBox, CircleRegion, BoxRegion
from .grid import GridType, get_grid_system
from .store import (
    CellQuery,
    SortKeyCondition,
    StorePage,
    AttributeRecordMapper,
    InMemoryCellStore,
    SpatialIndexer,
    partition_key_builder,
)
from .query import (
    CancellationToken,
    SpatialMatch,
    SpatialQueryResponse,
    SpatialQueryEngine,
    spatial_query,
)

__version__ = "1.0.0"

__all__ = [
    # Configuration and logging
    "config",
    "logger",
    "get_logger",
    # Geometry
    "GeoPoint",
    "GeoBoundingBox",
    "CircleRegion",
    "BoxRegion",
    # Grid systems
    "GridType",
    "get_grid_system",
    # Storage
    "CellQuery",
    "SortKeyCondition",
    "StorePage",
    "AttributeRecordMapper",
    "InMemoryCellStore",
    "SpatialIndexer",
    "partition_key_builder",
    # Querying
    "CancellationToken",
    "SpatialMatch",
    "SpatialQueryResponse",
    "SpatialQueryEngine",
    "spatial_query",
]
