"""
Retry wrapper for CellStore implementations.

Transient store faults (throttling, timeouts) are retried with exponential
backoff; once retries are exhausted the fault is promoted to FatalStorageError.
"""

import logging
from typing import Any, Optional

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..common import (
    FatalStorageError,
    QueryCancelledError,
    StorageError,
    TransientStorageError,
    config,
    get_logger,
    log_cell_query,
)
from .base import CellQuery, CellStore, StorePage

logger = get_logger("store.retry")


class RetryingCellStore:
    """CellStore decorator adding tenacity retries and cancellation checks."""

    def __init__(
        self,
        store: CellStore,
        max_retries: Optional[int] = None,
        backoff_factor: Optional[float] = None,
        backoff_min_seconds: Optional[float] = None,
        backoff_max_seconds: Optional[float] = None,
        cancellation=None,
    ):
        """
        Wrap a store.

        Args:
            store: Underlying CellStore
            max_retries: Retry attempts after the first call
            backoff_factor: Exponential backoff multiplier in seconds
            backoff_min_seconds: Minimum wait between attempts
            backoff_max_seconds: Maximum wait between attempts
            cancellation: CancellationToken checked before each call and during backoff
        """
        self.store = store
        self.max_retries = (
            max_retries if max_retries is not None else config.retry.max_retries
        )
        self.backoff_factor = (
            backoff_factor
            if backoff_factor is not None
            else config.retry.backoff_factor
        )
        self.backoff_min_seconds = (
            backoff_min_seconds
            if backoff_min_seconds is not None
            else config.retry.backoff_min_seconds
        )
        self.backoff_max_seconds = (
            backoff_max_seconds
            if backoff_max_seconds is not None
            else config.retry.backoff_max_seconds
        )
        self.cancellation = cancellation
        self.logger = logger

    def with_cancellation(self, cancellation) -> "RetryingCellStore":
        """Copy of this wrapper bound to another cancellation token."""
        return RetryingCellStore(
            self.store,
            max_retries=self.max_retries,
            backoff_factor=self.backoff_factor,
            backoff_min_seconds=self.backoff_min_seconds,
            backoff_max_seconds=self.backoff_max_seconds,
            cancellation=cancellation,
        )

    def _sleep(self, seconds: float) -> None:
        if self.cancellation.wait(seconds):
            raise QueryCancelledError("Query cancelled during retry backoff")

    def _call(self, query: CellQuery, cursor: Any, limit: Optional[int]) -> StorePage:
        if self.cancellation is not None:
            self.cancellation.raise_if_cancelled()
        return self.store.query(query, cursor=cursor, limit=limit)

    def query(
        self, query: CellQuery, cursor: Optional[Any] = None, limit: Optional[int] = None
    ) -> StorePage:
        retrying_kwargs = {}
        if self.cancellation is not None:
            retrying_kwargs["sleep"] = self._sleep

        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.backoff_factor,
                min=self.backoff_min_seconds,
                max=self.backoff_max_seconds,
            ),
            retry=retry_if_exception_type(TransientStorageError),
            before_sleep=before_sleep_log(self.logger, logging.WARNING),
            reraise=True,
            **retrying_kwargs,
        )

        try:
            return retrying(self._call, query, cursor, limit)
        except TransientStorageError as e:
            self.logger.error(
                f"Store query failed after {self.max_retries + 1} attempts: {e}",
                extra=log_cell_query(
                    cell=str(query.partition_key),
                    items_returned=0,
                    attempts=self.max_retries + 1,
                    error=str(e),
                ),
            )
            raise FatalStorageError(
                f"Retries exhausted for partition {query.partition_key}: {e}",
                cell=e.cell or str(query.partition_key),
            ) from e
        except StorageError as e:
            if e.cell is None:
                e.cell = str(query.partition_key)
            raise
