"""
Grid systems for the geoquery spatial query engine.

This package provides the grid strategy protocol, the H3 (hexagonal) and S2
(quadtree) implementations, and the shared covering algorithm.
"""

from typing import Dict, Union

from ..common import InvalidQueryError
from .base import CellCovering, GridSystem, GridType
from .covering import (
    COVERING_SAFETY_MARGIN,
    expand_covering,
    validate_max_cells,
    validate_precision,
)
from .h3_grid import H3GridSystem
from .s2_grid import S2GridSystem

_GRID_SYSTEMS: Dict[GridType, GridSystem] = {}


def get_grid_system(grid_type: Union[GridType, str]) -> GridSystem:
    """Get the grid system implementation for a grid type tag."""
    try:
        grid_type = GridType(grid_type)
    except ValueError:
        raise InvalidQueryError(f"Unsupported grid system: {grid_type!r}")

    if grid_type not in _GRID_SYSTEMS:
        if grid_type is GridType.H3:
            _GRID_SYSTEMS[grid_type] = H3GridSystem()
        else:
            _GRID_SYSTEMS[grid_type] = S2GridSystem()
    return _GRID_SYSTEMS[grid_type]


__all__ = [
    "CellCovering",
    "GridSystem",
    "GridType",
    "COVERING_SAFETY_MARGIN",
    "expand_covering",
    "validate_max_cells",
    "validate_precision",
    "H3GridSystem",
    "S2GridSystem",
    "get_grid_system",
]
