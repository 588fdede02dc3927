"""
Candidate verification shared by both executors.

Raw store items are mapped to candidates, deduplicated by record identity and
checked against the exact region geometry to drop the covering's false positives.
"""

from typing import Any, Dict, Iterable, List, Optional, Set

from ..geo import CircleRegion, Region
from ..store import RecordMapper
from .results import SpatialMatch


class CandidateFilter:
    """Dedup and exact region filter over a stream of raw items."""

    def __init__(self, mapper: RecordMapper, region: Optional[Region]):
        self.mapper = mapper
        self.region = region
        self._seen: Set[Any] = set()
        self.duplicates = 0
        self.rejected = 0

    def accept(self, raw: Dict[str, Any]) -> Optional[SpatialMatch]:
        """Return a match for a raw item, or None if it is a duplicate or outside the region."""
        candidate = self.mapper.to_candidate(raw)
        if candidate.identity in self._seen:
            self.duplicates += 1
            return None
        if self.region is not None and not self.region.contains(candidate.location):
            self.rejected += 1
            return None

        self._seen.add(candidate.identity)
        return SpatialMatch(
            record=candidate.record,
            location=candidate.location,
            distance_meters=(
                self.region.distance_to(candidate.location)
                if self.region is not None
                else None
            ),
        )

    def accept_all(self, raw_items: Iterable[Dict[str, Any]]) -> List[SpatialMatch]:
        matches = []
        for raw in raw_items:
            match = self.accept(raw)
            if match is not None:
                matches.append(match)
        return matches


def sort_matches(region: Optional[Region], matches: List[SpatialMatch]) -> List[SpatialMatch]:
    """Circle results by ascending distance to the center; everything else as given."""
    if isinstance(region, CircleRegion):
        return sorted(matches, key=lambda match: match.distance_meters)
    return matches
