"""
Storage collaborators for the geoquery spatial query engine.
"""

from .base import (
    SORT_KEY_OPERATORS,
    SortKeyCondition,
    CellQuery,
    StorePage,
    CellStore,
    CandidateItem,
    RecordMapper,
    AttributeRecordMapper,
    ConditionBuilder,
    partition_key_builder,
)
from .memory import InMemoryCellStore
from .retry import RetryingCellStore
from .indexer import SpatialIndexer

__all__ = [
    "SORT_KEY_OPERATORS",
    "SortKeyCondition",
    "CellQuery",
    "StorePage",
    "CellStore",
    "CandidateItem",
    "RecordMapper",
    "AttributeRecordMapper",
    "ConditionBuilder",
    "partition_key_builder",
    "InMemoryCellStore",
    "RetryingCellStore",
    "SpatialIndexer",
]
