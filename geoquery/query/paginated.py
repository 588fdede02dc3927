"""
Paginated execution: cells walked one at a time in covering order, filling
fixed-size pages and handing back a continuation token between calls.
"""

import time
from typing import Optional

from ..common import StorageError, get_logger, log_cell_query
from ..store import ConditionBuilder, RecordMapper, RetryingCellStore
from .cancellation import CancellationToken
from .covering import Covering
from .filtering import CandidateFilter, sort_matches
from .results import SpatialQueryResponse
from .token import ContinuationToken

logger = get_logger("query.paginated")


class PaginatedExecutor:
    """Sequential, resumable cell walk over a covering."""

    def __init__(
        self,
        store: RetryingCellStore,
        mapper: RecordMapper,
        condition_builder: ConditionBuilder,
    ):
        self.store = store
        self.mapper = mapper
        self.condition_builder = condition_builder
        self.logger = logger

    def execute(
        self,
        covering: Covering,
        page_size: int,
        resume_from: Optional[ContinuationToken] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> SpatialQueryResponse:
        """
        Produce the next page of a paginated query.

        Args:
            covering: Ordered covering, rebuilt from the token's parameters when resuming
            page_size: Maximum verified matches in the page
            resume_from: Decoded token from the previous page
            cancellation: Caller's cancellation token

        Returns:
            SpatialQueryResponse whose continuation_token holds a ContinuationToken,
            or None once the covering is exhausted. The engine encodes it.

        Raises:
            FatalStorageError: If a store call fails; no page is produced
            QueryCancelledError: If cancelled; no page is produced
        """
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")

        cancellation = cancellation or CancellationToken()
        store = self.store.with_cancellation(cancellation)
        cells = covering.cells
        params = covering.params
        region = params.region

        cell_index = resume_from.cell_index if resume_from else 0
        cursor = resume_from.store_cursor if resume_from else None
        skip = resume_from.skip if resume_from else 0

        candidate_filter = CandidateFilter(self.mapper, region)
        matches = []
        items_scanned = 0
        cells_queried = 0
        next_token = None

        while cell_index < len(cells):
            cell = cells[cell_index]
            query = self.condition_builder(cell)
            cells_queried += 1

            # Drain the current cell until it is exhausted or the page is full
            while True:
                cancellation.raise_if_cancelled()
                start_time = time.time()
                try:
                    page = store.query(
                        query, cursor=cursor, limit=page_size - len(matches) + skip
                    )
                except StorageError as e:
                    e.cell = cell
                    raise

                items = page.items[skip:]
                items_scanned += max(0, page.raw_count - skip)
                self.logger.debug(
                    f"Read page of cell {cell}",
                    extra=log_cell_query(
                        cell=cell,
                        items_returned=len(items),
                        items_scanned=page.scanned_count,
                        duration_ms=(time.time() - start_time) * 1000,
                        cell_index=cell_index,
                    ),
                )

                consumed = 0
                for raw in items:
                    consumed += 1
                    match = candidate_filter.accept(raw)
                    if match is not None:
                        matches.append(match)
                    if len(matches) == page_size:
                        break

                page_full = len(matches) == page_size
                if page_full and consumed < len(items):
                    # Store returned more than requested; resume inside this page
                    next_token = ContinuationToken(
                        params=params,
                        cell_index=cell_index,
                        store_cursor=cursor,
                        skip=skip + consumed,
                    )
                    break

                skip = 0
                cursor = page.next_cursor
                if cursor is None:
                    break
                if page_full:
                    next_token = ContinuationToken(
                        params=params, cell_index=cell_index, store_cursor=cursor
                    )
                    break

            if next_token is not None:
                break

            cell_index += 1
            cursor = None
            if len(matches) == page_size:
                if cell_index < len(cells):
                    next_token = ContinuationToken(params=params, cell_index=cell_index)
                break

        return SpatialQueryResponse(
            matches=sort_matches(region, matches),
            continuation_token=next_token,
            cells_queried=cells_queried,
            items_scanned=items_scanned,
            is_complete=covering.is_complete,
            duplicates_dropped=candidate_filter.duplicates,
            outside_region=candidate_filter.rejected,
        )
