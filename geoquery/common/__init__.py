"""
Common utilities for the geoquery spatial query engine.

This package provides shared configuration, logging, and the exception
hierarchy used across all components.
"""

from .config import config, AppConfig, load_config
from .logging import (
    logger,
    get_logger,
    setup_logging,
    TimedLogger,
    log_cell_query,
    log_covering,
    log_query_summary,
)
from .exceptions import (
    GeoQueryError,
    InvalidQueryError,
    StorageError,
    TransientStorageError,
    FatalStorageError,
    InvalidContinuationTokenError,
    RecordMappingError,
    QueryCancelledError,
)

__all__ = [
    "config",
    "AppConfig",
    "load_config",
    "logger",
    "get_logger",
    "setup_logging",
    "TimedLogger",
    "log_cell_query",
    "log_covering",
    "log_query_summary",
    "GeoQueryError",
    "InvalidQueryError",
    "StorageError",
    "TransientStorageError",
    "FatalStorageError",
    "InvalidContinuationTokenError",
    "RecordMappingError",
    "QueryCancelledError",
]
