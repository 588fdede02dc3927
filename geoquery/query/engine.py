"""
Spatial query engine.

Entry point tying together covering computation, the two executors and the
continuation token codec.
"""

from typing import Optional, Sequence, Union

from ..common import (
    InvalidContinuationTokenError,
    InvalidQueryError,
    TimedLogger,
    config,
    get_logger,
    log_query_summary,
)
from ..geo import BoxRegion, CircleRegion, GeoBoundingBox, GeoPoint, Region
from ..grid import GridType, get_grid_system
from ..store import (
    AttributeRecordMapper,
    CellStore,
    ConditionBuilder,
    RecordMapper,
    RetryingCellStore,
    partition_key_builder,
)
from .cancellation import CancellationToken
from .covering import CoveringParams, compute_covering
from .paginated import PaginatedExecutor
from .results import SpatialQueryResponse
from .scatter_gather import ScatterGatherExecutor
from .token import decode_token, encode_token

logger = get_logger("query.engine")


class SpatialQueryEngine:
    """Runs proximity and bounding-box queries against a CellStore."""

    def __init__(
        self,
        store: CellStore,
        mapper: Optional[RecordMapper] = None,
        max_concurrency: Optional[int] = None,
        store_page_limit: Optional[int] = None,
        max_retries: Optional[int] = None,
        token_secret: Optional[str] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Store holding records partitioned by cell id
            mapper: Raw item mapper, AttributeRecordMapper() by default
            max_concurrency: Scatter/gather parallelism cap
            store_page_limit: Per-call limit used while draining cells in scatter/gather mode
            max_retries: Retry attempts for transient store faults
            token_secret: HMAC secret for continuation tokens
        """
        self.store = (
            store
            if isinstance(store, RetryingCellStore)
            else RetryingCellStore(store, max_retries=max_retries)
        )
        self.mapper = mapper or AttributeRecordMapper()
        self.max_concurrency = max_concurrency or config.query.max_concurrency
        self.store_page_limit = (
            store_page_limit
            if store_page_limit is not None
            else config.query.store_page_limit
        )
        self.token_secret = token_secret
        self.logger = logger

    def _resolve_max_cells(self, max_cells: Optional[int]) -> int:
        if max_cells is None:
            return config.query.default_max_cells
        if max_cells < 1:
            raise InvalidQueryError(f"max_cells must be at least 1, got {max_cells}")
        if max_cells > config.query.absolute_max_cells:
            raise InvalidQueryError(
                f"max_cells {max_cells} exceeds the limit of "
                f"{config.query.absolute_max_cells}"
            )
        return max_cells

    def query(
        self,
        grid_type: Union[GridType, str],
        precision: int,
        region: Region,
        condition_builder: Optional[ConditionBuilder] = None,
        page_size: Optional[int] = None,
        continuation_token: Optional[str] = None,
        max_cells: Optional[int] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> SpatialQueryResponse:
        """
        Run a spatial query.

        Without page_size every covering cell is queried concurrently and the
        complete result is returned. With page_size, one page is returned along
        with a continuation token for the next one.

        Args:
            grid_type: Grid system the records were indexed with
            precision: H3 resolution or S2 level used at index time
            region: CircleRegion or BoxRegion
            condition_builder: Maps a cell id to a CellQuery; partition key = cell id by default
            page_size: Verified matches per page; enables paginated mode
            continuation_token: Token from the previous page
            max_cells: Cell budget for the covering
            cancellation: Cancellation token or deadline

        Returns:
            SpatialQueryResponse

        Raises:
            InvalidQueryError: For out-of-range parameters
            InvalidContinuationTokenError: For malformed or mismatched tokens
            FatalStorageError: When a store call fails permanently
            QueryCancelledError: When cancelled
        """
        if not isinstance(region, (CircleRegion, BoxRegion)):
            raise InvalidQueryError(f"Unsupported region: {region!r}")
        params = CoveringParams(
            grid_type=grid_type,
            precision=precision,
            region=region,
            max_cells=self._resolve_max_cells(max_cells),
        )
        return self._run(
            params, condition_builder, page_size, continuation_token, cancellation
        )

    def query_cells(
        self,
        grid_type: Union[GridType, str],
        cells: Sequence[str],
        region: Optional[Region] = None,
        condition_builder: Optional[ConditionBuilder] = None,
        page_size: Optional[int] = None,
        continuation_token: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> SpatialQueryResponse:
        """
        Query an explicit list of cells instead of a computed covering.

        Cells are visited in the given order, with duplicates dropped, and must
        share one precision. With a region, candidates are checked against it
        and circle results carry distances; without one, every record stored
        under the cells is returned.

        Raises:
            InvalidQueryError: For an empty list, invalid or mixed-precision
                cells, or more cells than the absolute cell limit
        """
        if region is not None and not isinstance(region, (CircleRegion, BoxRegion)):
            raise InvalidQueryError(f"Unsupported region: {region!r}")
        if isinstance(cells, str):
            raise InvalidQueryError("cells must be a sequence of cell ids, not a string")
        cells = tuple(cells)
        if not cells:
            raise InvalidQueryError("cells must not be empty")
        unique_cells = len(set(cells))
        if unique_cells > config.query.absolute_max_cells:
            raise InvalidQueryError(
                f"{unique_cells} cells exceed the limit of "
                f"{config.query.absolute_max_cells}"
            )

        grid = get_grid_system(grid_type)
        if not grid.is_valid_cell(cells[0]):
            raise InvalidQueryError(
                f"Invalid {grid.grid_type.value.upper()} cell: {cells[0]!r}"
            )
        params = CoveringParams(
            grid_type=grid.grid_type,
            precision=grid.precision_of(cells[0]),
            region=region,
            max_cells=unique_cells,
            cells=cells,
        )
        return self._run(
            params, condition_builder, page_size, continuation_token, cancellation
        )

    def _run(
        self,
        params: CoveringParams,
        condition_builder: Optional[ConditionBuilder],
        page_size: Optional[int],
        continuation_token: Optional[str],
        cancellation: Optional[CancellationToken],
    ) -> SpatialQueryResponse:
        if page_size is not None and page_size < 1:
            raise InvalidQueryError(f"page_size must be at least 1, got {page_size}")
        if continuation_token is not None and page_size is None:
            raise InvalidQueryError("continuation_token requires page_size")

        condition_builder = condition_builder or partition_key_builder()
        mode = "scatter_gather" if page_size is None else "paginated"
        region = params.region

        resume_from = None
        if continuation_token is not None:
            resume_from = decode_token(continuation_token, secret=self.token_secret)
            if resume_from.params.fingerprint() != params.fingerprint():
                raise InvalidContinuationTokenError(
                    "Continuation token was issued for different query parameters"
                )

        with TimedLogger(
            self.logger,
            f"spatial_query {mode}",
            grid_type=params.grid_type.value,
            precision=params.precision,
            region_type=region.kind if region is not None else "cells",
        ) as timer:
            covering = compute_covering(params)

            if resume_from is not None and resume_from.cell_index >= len(covering):
                raise InvalidContinuationTokenError(
                    f"Continuation token cell index {resume_from.cell_index} is out of range"
                )

            if page_size is None:
                executor = ScatterGatherExecutor(
                    self.store,
                    self.mapper,
                    condition_builder,
                    max_concurrency=self.max_concurrency,
                    store_page_limit=self.store_page_limit,
                )
                response = executor.execute(covering, cancellation=cancellation)
            else:
                executor = PaginatedExecutor(self.store, self.mapper, condition_builder)
                response = executor.execute(
                    covering,
                    page_size,
                    resume_from=resume_from,
                    cancellation=cancellation,
                )
                if response.continuation_token is not None:
                    response.continuation_token = encode_token(
                        response.continuation_token, secret=self.token_secret
                    )

            self.logger.info(
                "Spatial query complete",
                extra=log_query_summary(
                    mode=mode,
                    cells_queried=response.cells_queried,
                    items_scanned=response.items_scanned,
                    items_returned=len(response.matches),
                    duration_ms=timer.elapsed_ms,
                    is_complete=response.is_complete,
                    has_more=response.has_more,
                    duplicates_dropped=response.duplicates_dropped,
                    outside_region=response.outside_region,
                ),
            )

        return response

    def query_radius(
        self,
        grid_type: Union[GridType, str],
        precision: int,
        center: GeoPoint,
        radius_meters: float,
        **kwargs,
    ) -> SpatialQueryResponse:
        """Proximity query: records within radius_meters of center."""
        return self.query(
            grid_type, precision, CircleRegion(center, radius_meters), **kwargs
        )

    def query_box(
        self,
        grid_type: Union[GridType, str],
        precision: int,
        box: GeoBoundingBox,
        **kwargs,
    ) -> SpatialQueryResponse:
        """Bounding-box query; the box may wrap the antimeridian."""
        return self.query(grid_type, precision, BoxRegion(box), **kwargs)


def spatial_query(
    store: CellStore,
    grid_type: Union[GridType, str],
    precision: int,
    region: Region,
    mapper: Optional[RecordMapper] = None,
    **kwargs,
) -> SpatialQueryResponse:
    """Run a single spatial query with a default-configured engine."""
    return SpatialQueryEngine(store, mapper=mapper).query(
        grid_type, precision, region, **kwargs
    )
