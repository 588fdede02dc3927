"""
Test helpers: seeded point generators, store builders and fault-injecting stores.
"""

import random
from typing import Dict, Iterable, List, Tuple

from geoquery.common import TransientStorageError, FatalStorageError
from geoquery.geo import GeoPoint
from geoquery.store import InMemoryCellStore, SpatialIndexer

SAN_FRANCISCO = GeoPoint(37.7749, -122.4194)

# (name, distance_km, bearing_deg) around San Francisco
SF_LANDMARKS = [
    ("center", 0.0, 0.0),
    ("north_1_7km", 1.7, 0.0),
    ("east_3_5km", 3.5, 90.0),
    ("south_2_5km", 2.5, 180.0),
    ("west_13km", 13.0, 270.0),
    ("northeast_10km", 10.0, 45.0),
]


def index_points(
    store: InMemoryCellStore,
    indexer: SpatialIndexer,
    points: Iterable[Tuple[str, GeoPoint]],
) -> List[Dict]:
    """Write named points to a store under their grid cells."""
    items = [
        indexer.to_item({"id": name, "sk": name, "name": name}, point)
        for name, point in points
    ]
    store.put_items(items)
    return items


def random_points_in_circle(
    center: GeoPoint, radius_meters: float, count: int, seed: int = 42
) -> List[GeoPoint]:
    """Seeded, roughly area-uniform points inside a circle."""
    rng = random.Random(seed)
    return [
        center.destination(radius_meters * rng.random() ** 0.5, rng.uniform(0, 360))
        for _ in range(count)
    ]


def build_store(grid_type, precision, points, page_limit=None):
    """In-memory store with named points indexed at a grid precision."""
    store = InMemoryCellStore(page_limit=page_limit)
    indexer = SpatialIndexer(grid_type, precision)
    index_points(store, indexer, points)
    return store


class FlakyStore:
    """Wraps a store and raises transient errors for the first calls on chosen partitions."""

    def __init__(self, store, failures: int, partitions=None):
        self.store = store
        self.failures = failures
        self.partitions = partitions
        self.calls = 0
        self.failed_calls = 0

    def query(self, query, cursor=None, limit=None):
        self.calls += 1
        targeted = self.partitions is None or query.partition_key in self.partitions
        if targeted and self.failed_calls < self.failures:
            self.failed_calls += 1
            raise TransientStorageError("Throttled")
        return self.store.query(query, cursor=cursor, limit=limit)


class BrokenStore:
    """Fails permanently for one partition and serves the rest."""

    def __init__(self, store, broken_partition):
        self.store = store
        self.broken_partition = broken_partition

    def query(self, query, cursor=None, limit=None):
        if query.partition_key == self.broken_partition:
            raise FatalStorageError("Table unavailable")
        return self.store.query(query, cursor=cursor, limit=limit)


class OverflowingStore:
    """Ignores the requested limit and always returns fixed-size pages."""

    def __init__(self, store, page_size):
        self.store = store
        self.page_size = page_size
        self.requested_limits = []

    def query(self, query, cursor=None, limit=None):
        self.requested_limits.append(limit)
        return self.store.query(query, cursor=cursor, limit=self.page_size)


