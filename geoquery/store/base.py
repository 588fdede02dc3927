"""
Storage and record mapping collaborators for the spatial query engine.

The engine never talks to a concrete database. It issues one partition-key query
per grid cell through a CellStore and turns every raw item it gets back into a
CandidateItem through a RecordMapper.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..common import RecordMappingError
from ..geo import GeoPoint

SORT_KEY_OPERATORS = ("eq", "lt", "le", "gt", "ge", "between", "begins_with")


@dataclass(frozen=True)
class SortKeyCondition:
    """Range condition on the sort key of a partition."""

    operator: str
    value: Any
    value2: Any = None

    def __post_init__(self):
        if self.operator not in SORT_KEY_OPERATORS:
            raise ValueError(f"Unsupported sort key operator: {self.operator}")
        if self.operator == "between" and self.value2 is None:
            raise ValueError("between requires an upper bound (value2)")

    def matches(self, sort_key: Any) -> bool:
        """Evaluate the condition against a sort key value."""
        if sort_key is None:
            return False
        op = self.operator
        if op == "eq":
            return sort_key == self.value
        if op == "lt":
            return sort_key < self.value
        if op == "le":
            return sort_key <= self.value
        if op == "gt":
            return sort_key > self.value
        if op == "ge":
            return sort_key >= self.value
        if op == "between":
            return self.value <= sort_key <= self.value2
        return str(sort_key).startswith(str(self.value))


@dataclass(frozen=True)
class CellQuery:
    """
    Store query for the items of one grid cell.

    partition_key selects the cell's partition; sort_key_condition narrows the
    range inside it and filter_expression is evaluated by the store after the
    read, so filtered-out items still count as scanned.
    """

    partition_key: Any
    sort_key_condition: Optional[SortKeyCondition] = None
    filter_expression: Optional[Any] = None


@dataclass
class StorePage:
    """One page of raw items returned by a store."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[Any] = None
    scanned_count: Optional[int] = None

    @property
    def raw_count(self) -> int:
        """Items the store evaluated for this page."""
        if self.scanned_count is not None:
            return self.scanned_count
        return len(self.items)


class CellStore(Protocol):
    """Partition/range key-value store queried one cell at a time."""

    def query(
        self, query: CellQuery, cursor: Optional[Any] = None, limit: Optional[int] = None
    ) -> StorePage:
        """
        Fetch one page of items matching a cell query.

        Args:
            query: Partition key and optional conditions
            cursor: Opaque, JSON-serializable cursor from a previous page
            limit: Requested maximum number of items

        Returns:
            StorePage; next_cursor is None once the partition is drained
        """
        ...


@dataclass(frozen=True)
class CandidateItem:
    """A raw store item mapped to a domain record with its location."""

    record: Any
    location: GeoPoint
    identity: Any


class RecordMapper(Protocol):
    """Maps raw store items to candidate records."""

    def to_candidate(self, raw: Dict[str, Any]) -> CandidateItem:
        ...


class AttributeRecordMapper:
    """Maps flat dictionaries carrying id, latitude and longitude attributes."""

    def __init__(
        self,
        id_attribute: str = "id",
        latitude_attribute: str = "lat",
        longitude_attribute: str = "lng",
        record_factory: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ):
        self.id_attribute = id_attribute
        self.latitude_attribute = latitude_attribute
        self.longitude_attribute = longitude_attribute
        self.record_factory = record_factory

    def to_candidate(self, raw: Dict[str, Any]) -> CandidateItem:
        """
        Build a CandidateItem from a raw item.

        Raises:
            RecordMappingError: If an attribute is missing or the coordinates are invalid
        """
        try:
            identity = raw[self.id_attribute]
            location = GeoPoint(
                float(raw[self.latitude_attribute]),
                float(raw[self.longitude_attribute]),
            )
        except KeyError as e:
            raise RecordMappingError(f"Item is missing attribute {e}") from e
        except (TypeError, ValueError) as e:
            raise RecordMappingError(f"Item has invalid coordinates: {e}") from e

        record = self.record_factory(raw) if self.record_factory else raw
        return CandidateItem(record=record, location=location, identity=identity)


ConditionBuilder = Callable[[str], CellQuery]


def partition_key_builder(prefix: str = "") -> ConditionBuilder:
    """Condition builder querying the partition named by the cell id."""

    def build(cell: str) -> CellQuery:
        return CellQuery(partition_key=f"{prefix}{cell}")

    return build
