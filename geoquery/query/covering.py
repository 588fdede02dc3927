"""
Covering parameters and covering computation for a spatial query.

A covering is fully determined by its parameters, so a continuation token only
needs to carry the parameters to rebuild the exact same ordered cell list.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..common import InvalidQueryError, get_logger, log_covering
from ..geo import CircleRegion, Region, region_from_dict
from ..grid import GridType, get_grid_system, validate_max_cells, validate_precision
from .ordering import order_cells

logger = get_logger("query.covering")


@dataclass(frozen=True)
class CoveringParams:
    """
    Inputs that determine a covering.

    When `cells` is given the covering is exactly those cells, in the given
    order, and `region` (optional) only filters the candidates they return.
    """

    grid_type: GridType
    precision: int
    region: Optional[Region]
    max_cells: int
    cells: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        grid = get_grid_system(self.grid_type)
        object.__setattr__(self, "grid_type", grid.grid_type)
        validate_precision(grid, self.precision)
        validate_max_cells(self.max_cells)

        if self.cells is None:
            if self.region is None:
                raise InvalidQueryError("A region is required when no cells are given")
            return

        if isinstance(self.cells, str):
            raise InvalidQueryError("cells must be a sequence of cell ids, not a string")
        cells = tuple(self.cells)
        if not cells:
            raise InvalidQueryError("cells must not be empty")
        for cell in cells:
            if not grid.is_valid_cell(cell):
                raise InvalidQueryError(
                    f"Invalid {grid.grid_type.value.upper()} cell: {cell!r}"
                )
            if grid.precision_of(cell) != self.precision:
                raise InvalidQueryError(
                    f"Cell {cell} has precision {grid.precision_of(cell)}, "
                    f"expected {self.precision}"
                )
        cells = tuple(dict.fromkeys(cells))
        if len(cells) > self.max_cells:
            raise InvalidQueryError(
                f"{len(cells)} cells exceed the cell budget of {self.max_cells}"
            )
        object.__setattr__(self, "cells", cells)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {
            "grid": self.grid_type.value,
            "precision": self.precision,
            "region": self.region.to_dict() if self.region is not None else None,
            "max_cells": self.max_cells,
        }
        if self.cells is not None:
            data["cells"] = list(self.cells)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoveringParams":
        """Create from dictionary."""
        region = data["region"]
        cells = data.get("cells")
        return cls(
            grid_type=GridType(data["grid"]),
            precision=data["precision"],
            region=region_from_dict(region) if region is not None else None,
            max_cells=data["max_cells"],
            cells=tuple(cells) if cells is not None else None,
        )

    def fingerprint(self) -> str:
        """SHA-256 of the canonical JSON form."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()


@dataclass(frozen=True)
class Covering:
    """Ordered cells covering a query region."""

    params: CoveringParams
    cells: Tuple[str, ...]
    is_complete: bool

    def __len__(self) -> int:
        return len(self.cells)


def compute_covering(params: CoveringParams) -> Covering:
    """
    Compute the ordered covering for a set of parameters.

    Args:
        params: Grid, precision, region and cell budget, or an explicit cell list

    Returns:
        Covering whose cells are in visiting order
    """
    if params.cells is not None:
        return Covering(params=params, cells=params.cells, is_complete=True)

    grid = get_grid_system(params.grid_type)
    region = params.region

    if isinstance(region, CircleRegion):
        cell_covering = grid.cover_circle(
            region.center, region.radius_meters, params.precision, params.max_cells
        )
    else:
        cell_covering = grid.cover_box(region.box, params.precision, params.max_cells)

    cells = order_cells(grid, region, cell_covering.cells)

    if not cell_covering.is_complete:
        logger.warning(
            "Covering truncated by cell budget",
            extra=log_covering(
                grid_type=params.grid_type.value,
                precision=params.precision,
                cell_count=len(cells),
                is_complete=False,
                max_cells=params.max_cells,
                estimated_cells=grid.estimate_cell_count(region, params.precision),
            ),
        )

    return Covering(params=params, cells=cells, is_complete=cell_covering.is_complete)
