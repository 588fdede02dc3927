"""
Spatial query execution for the geoquery engine.

This package provides covering computation, cell ordering, the scatter/gather
and paginated executors, the continuation token codec, and the engine facade.
"""

from .cancellation import CancellationToken
from .covering import Covering, CoveringParams, compute_covering
from .ordering import cell_id_order, order_cells, proximity_order
from .results import SpatialMatch, SpatialQueryResponse
from .filtering import CandidateFilter, sort_matches
from .token import ContinuationToken, decode_token, encode_token
from .scatter_gather import ScatterGatherExecutor
from .paginated import PaginatedExecutor
from .engine import SpatialQueryEngine, spatial_query

__all__ = [
    "CancellationToken",
    "Covering",
    "CoveringParams",
    "compute_covering",
    "cell_id_order",
    "order_cells",
    "proximity_order",
    "SpatialMatch",
    "SpatialQueryResponse",
    "CandidateFilter",
    "sort_matches",
    "ContinuationToken",
    "decode_token",
    "encode_token",
    "ScatterGatherExecutor",
    "PaginatedExecutor",
    "SpatialQueryEngine",
    "spatial_query",
]
