"""
Scatter/gather execution: every covering cell queried concurrently and fully
drained, then merged into one complete result.
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Tuple

from ..common import StorageError, get_logger, log_cell_query
from ..store import ConditionBuilder, RecordMapper, RetryingCellStore
from .cancellation import CancellationToken
from .covering import Covering
from .filtering import CandidateFilter, sort_matches
from .results import SpatialQueryResponse

logger = get_logger("query.scatter_gather")


class ScatterGatherExecutor:
    """Queries all cells of a covering with bounded concurrency."""

    def __init__(
        self,
        store: RetryingCellStore,
        mapper: RecordMapper,
        condition_builder: ConditionBuilder,
        max_concurrency: int,
        store_page_limit: Optional[int] = None,
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.store = store
        self.mapper = mapper
        self.condition_builder = condition_builder
        self.max_concurrency = max_concurrency
        self.store_page_limit = store_page_limit
        self.logger = logger

    def _drain_cell(
        self, cell: str, store: RetryingCellStore, cancellation: CancellationToken
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Read every store page of one cell."""
        query = self.condition_builder(cell)
        items: List[Dict[str, Any]] = []
        scanned = 0
        cursor = None
        pages = 0

        start_time = time.time()
        try:
            while True:
                cancellation.raise_if_cancelled()
                page = store.query(query, cursor=cursor, limit=self.store_page_limit)
                pages += 1
                items.extend(page.items)
                scanned += page.raw_count
                cursor = page.next_cursor
                if cursor is None:
                    break
        except StorageError as e:
            e.cell = cell
            raise

        self.logger.debug(
            f"Drained cell {cell}",
            extra=log_cell_query(
                cell=cell,
                items_returned=len(items),
                items_scanned=scanned,
                duration_ms=(time.time() - start_time) * 1000,
                pages=pages,
            ),
        )
        return items, scanned

    def _gather(
        self, cells, workers_token: CancellationToken
    ) -> Dict[int, Tuple[List[Dict[str, Any]], int]]:
        """Drain every cell on the worker pool, keyed by covering index."""
        store = self.store.with_cancellation(workers_token)
        results: Dict[int, Tuple[List[Dict[str, Any]], int]] = {}
        with ThreadPoolExecutor(
            max_workers=min(self.max_concurrency, len(cells))
        ) as executor:
            future_to_index = {
                executor.submit(self._drain_cell, cell, store, workers_token): index
                for index, cell in enumerate(cells)
            }

            try:
                for future in as_completed(future_to_index):
                    results[future_to_index[future]] = future.result()
            except BaseException as e:
                workers_token.cancel("aborted after cell failure")
                for future in future_to_index:
                    future.cancel()
                self.logger.error(
                    f"Scatter/gather aborted: {e}",
                    extra={
                        "event": "scatter_gather_aborted",
                        "error_type": type(e).__name__,
                        "cell": getattr(e, "cell", None),
                        "cells_completed": len(results),
                    },
                )
                raise
        return results

    def execute(
        self, covering: Covering, cancellation: Optional[CancellationToken] = None
    ) -> SpatialQueryResponse:
        """
        Run the query over every cell of a covering.

        Args:
            covering: Ordered covering to query
            cancellation: Caller's cancellation token

        Returns:
            SpatialQueryResponse with every verified match and no continuation token

        Raises:
            FatalStorageError: If any cell fails; sibling cells are cancelled first
            QueryCancelledError: If the caller cancels or the deadline passes
        """
        cancellation = cancellation or CancellationToken()
        cancellation.raise_if_cancelled()

        cells = covering.cells
        region = covering.params.region
        if not cells:
            return SpatialQueryResponse(is_complete=covering.is_complete)

        # Cancelled by the caller's token, or on its own when a sibling cell fails
        workers_token = cancellation.child()
        try:
            results = self._gather(cells, workers_token)
        finally:
            workers_token.release()

        candidate_filter = CandidateFilter(self.mapper, region)
        matches = []
        items_scanned = 0
        for index in range(len(cells)):
            items, scanned = results[index]
            items_scanned += scanned
            matches.extend(candidate_filter.accept_all(items))

        return SpatialQueryResponse(
            matches=sort_matches(region, matches),
            continuation_token=None,
            cells_queried=len(cells),
            items_scanned=items_scanned,
            is_complete=covering.is_complete,
            duplicates_dropped=candidate_filter.duplicates,
            outside_region=candidate_filter.rejected,
        )
