"""
Spatial query results.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import pandas as pd

from ..geo import GeoPoint


@dataclass(frozen=True)
class SpatialMatch:
    """
    A verified record inside the query region.

    distance_meters is None for cell-list queries run without a region.
    """

    record: Any
    location: GeoPoint
    distance_meters: Optional[float]

    @property
    def distance_kilometers(self) -> Optional[float]:
        if self.distance_meters is None:
            return None
        return self.distance_meters / 1000.0


@dataclass
class SpatialQueryResponse:
    """
    Result of one spatial query call.

    Attributes:
        matches: Verified, deduplicated matches; sorted by distance for
            proximity queries
        continuation_token: Opaque token for the next page, or None when the
            covering is exhausted (always None in scatter/gather mode)
        cells_queried: Cells touched by this call
        items_scanned: Raw candidates the store evaluated during this call
        is_complete: False when the covering was truncated by the cell budget
        duplicates_dropped: Candidates dropped as repeats of an earlier record
        outside_region: Candidates from covering cells that failed the exact region test
    """

    matches: List[SpatialMatch] = field(default_factory=list)
    continuation_token: Optional[str] = None
    cells_queried: int = 0
    items_scanned: int = 0
    is_complete: bool = True
    duplicates_dropped: int = 0
    outside_region: int = 0

    @property
    def items(self) -> List[Any]:
        return [match.record for match in self.matches]

    @property
    def has_more(self) -> bool:
        return self.continuation_token is not None

    def __len__(self) -> int:
        return len(self.matches)

    def __iter__(self):
        return iter(self.items)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Export matches as a DataFrame.

        Records that are dictionaries contribute their attributes as columns;
        latitude, longitude and distance_m are always present.
        """
        rows = []
        for match in self.matches:
            row = dict(match.record) if isinstance(match.record, dict) else {
                "record": match.record
            }
            row["latitude"] = match.location.latitude
            row["longitude"] = match.location.longitude
            row["distance_m"] = match.distance_meters
            rows.append(row)

        if not rows:
            return pd.DataFrame(columns=["latitude", "longitude", "distance_m"])
        return pd.DataFrame(rows)
