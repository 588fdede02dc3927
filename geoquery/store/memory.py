"""
In-memory partition/range store.

Behaves like a partition/range key-value table: items are grouped by partition
key, ordered by sort key, and read in pages with a last-evaluated-key cursor.
Useful for tests, local development, and as the reference CellStore.
"""

import bisect
import threading
from typing import Any, Dict, Iterable, List, Optional

from ..common import get_logger
from .base import CellQuery, StorePage

logger = get_logger("store.memory")


class InMemoryCellStore:
    """Thread-safe in-memory CellStore."""

    def __init__(
        self,
        partition_attribute: str = "pk",
        sort_attribute: str = "sk",
        page_limit: Optional[int] = None,
    ):
        """
        Initialize the store.

        Args:
            partition_attribute: Item attribute holding the partition key
            sort_attribute: Item attribute holding the sort key (unique per partition)
            page_limit: Maximum items evaluated per page regardless of the
                requested limit, emulating a store-side page size cap
        """
        if page_limit is not None and page_limit < 1:
            raise ValueError(f"page_limit must be at least 1, got {page_limit}")

        self.partition_attribute = partition_attribute
        self.sort_attribute = sort_attribute
        self.page_limit = page_limit

        self._partitions: Dict[Any, List[Any]] = {}
        self._items: Dict[Any, Dict[Any, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self.query_count = 0
        self.logger = logger

    def put_item(self, item: Dict[str, Any]) -> None:
        """Insert or replace an item, keyed by its partition and sort keys."""
        try:
            pk = item[self.partition_attribute]
            sk = item[self.sort_attribute]
        except KeyError as e:
            raise ValueError(f"Item is missing key attribute {e}") from e

        with self._lock:
            keys = self._partitions.setdefault(pk, [])
            items = self._items.setdefault(pk, {})
            if sk not in items:
                bisect.insort(keys, sk)
            items[sk] = dict(item)

    def put_items(self, items: Iterable[Dict[str, Any]]) -> int:
        count = 0
        for item in items:
            self.put_item(item)
            count += 1
        return count

    def delete_item(self, partition_key: Any, sort_key: Any) -> bool:
        with self._lock:
            items = self._items.get(partition_key, {})
            if sort_key not in items:
                return False
            del items[sort_key]
            self._partitions[partition_key].remove(sort_key)
            return True

    def __len__(self) -> int:
        with self._lock:
            return sum(len(items) for items in self._items.values())

    def query(
        self, query: CellQuery, cursor: Optional[Any] = None, limit: Optional[int] = None
    ) -> StorePage:
        """
        Read one page of a partition in sort key order.

        The cursor is a dictionary holding the partition and the last evaluated
        sort key. filter_expression, when given, is a predicate over raw items
        applied after the page is read.
        """
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if cursor is not None and cursor.get("pk") != query.partition_key:
            raise ValueError("Cursor does not belong to this partition")

        page_size = limit
        if self.page_limit is not None:
            page_size = (
                self.page_limit if page_size is None else min(page_size, self.page_limit)
            )

        with self._lock:
            self.query_count += 1
            keys = self._partitions.get(query.partition_key, [])
            items = self._items.get(query.partition_key, {})

            start = 0
            if cursor is not None:
                start = bisect.bisect_right(keys, cursor["sk"])

            condition = query.sort_key_condition
            evaluated = []
            next_cursor = None
            for sk in keys[start:]:
                if condition is not None and not condition.matches(sk):
                    continue
                if page_size is not None and len(evaluated) == page_size:
                    next_cursor = {"pk": query.partition_key, "sk": evaluated[-1][0]}
                    break
                evaluated.append((sk, dict(items[sk])))

        page_items = [item for _, item in evaluated]
        if query.filter_expression is not None:
            page_items = [item for item in page_items if query.filter_expression(item)]

        return StorePage(
            items=page_items, next_cursor=next_cursor, scanned_count=len(evaluated)
        )
