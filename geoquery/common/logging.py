"""
Logging for the geoquery spatial query engine.

Component loggers live under the ``geoquery`` namespace. Records are emitted as
JSON (python-json-logger) when structured logging is enabled and as plain text
otherwise; query code attaches per-cell and per-query fields through ``extra=``
using the ``log_*`` builders below.
"""

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from .config import config
from .exceptions import QueryCancelledError

SERVICE_NAME = "geoquery"
JSON_FIELDS = "%(timestamp)s %(level)s %(name)s %(message)s"


class StructuredFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping each record with service and environment."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record.setdefault("level", record.levelname)
        log_record["service"] = SERVICE_NAME
        log_record["environment"] = config.environment
        if record.threadName != "MainThread":
            # Scatter/gather workers
            log_record["thread"] = record.threadName


def _build_handler(level: str, structured: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        StructuredFormatter(JSON_FIELDS)
        if structured
        else logging.Formatter(config.logging.format_str)
    )
    handler._geoquery_handler = True
    return handler


def setup_logging(
    logger_name: Optional[str] = None,
    level: Optional[str] = None,
    enable_structured: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure a geoquery logger from the logging config section.

    Calling it again for the same logger replaces the handler it installed
    earlier; handlers added by the application are left alone.

    Args:
        logger_name: Logger name, root logger when None
        level: Level override, config.logging.level otherwise
        enable_structured: JSON output override

    Returns:
        The configured logger
    """
    log_level = (level or config.logging.level).upper()
    if enable_structured is None:
        enable_structured = config.logging.enable_structured_logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)
    for handler in [h for h in logger.handlers if getattr(h, "_geoquery_handler", False)]:
        logger.removeHandler(handler)
    logger.addHandler(_build_handler(log_level, enable_structured))
    logger.propagate = False
    return logger


def log_cell_query(
    cell: str,
    items_returned: int,
    items_scanned: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs,
) -> Dict[str, Any]:
    """
    Create a structured log entry for a single store query against one cell.

    Args:
        cell: Cell identifier used as partition key
        items_returned: Number of raw items the store returned
        items_scanned: Number of items the store evaluated, when reported
        duration_ms: Store call duration in milliseconds
        **kwargs: Additional context

    Returns:
        Log entry dictionary
    """
    entry = {"event": "cell_query", "cell": cell, "items_returned": items_returned}

    if items_scanned is not None:
        entry["items_scanned"] = items_scanned
    if duration_ms is not None:
        entry["duration_ms"] = duration_ms

    entry.update(kwargs)
    return entry


def log_covering(
    grid_type: str,
    precision: int,
    cell_count: int,
    is_complete: bool,
    **kwargs,
) -> Dict[str, Any]:
    """Create a structured log entry for a computed cell covering."""
    entry = {
        "event": "covering",
        "grid_type": grid_type,
        "precision": precision,
        "cell_count": cell_count,
        "is_complete": is_complete,
    }
    entry.update(kwargs)
    return entry


def log_query_summary(
    mode: str,
    cells_queried: int,
    items_scanned: int,
    items_returned: int,
    duration_ms: Optional[float] = None,
    **kwargs,
) -> Dict[str, Any]:
    """
    Create a structured log entry summarizing one spatial query call.

    Args:
        mode: Execution mode (scatter_gather, paginated)
        cells_queried: Number of cells touched by the call
        items_scanned: Raw candidates returned by the store
        items_returned: Verified, deduplicated items handed to the caller
        duration_ms: Call duration in milliseconds
        **kwargs: Additional context

    Returns:
        Log entry dictionary
    """
    entry = {
        "event": "spatial_query",
        "mode": mode,
        "cells_queried": cells_queried,
        "items_scanned": items_scanned,
        "items_returned": items_returned,
        "hit_rate": items_returned / items_scanned if items_scanned > 0 else 0,
    }

    if duration_ms is not None:
        entry["duration_ms"] = duration_ms

    entry.update(kwargs)
    return entry


class TimedLogger:
    """
    Times a block and logs how it ended.

    Completion is logged at INFO, cancellation at WARNING and any other
    exception at ERROR. Exceptions are never suppressed.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started: Optional[float] = None

    @property
    def elapsed_ms(self) -> float:
        if self._started is None:
            return 0.0
        return (time.perf_counter() - self._started) * 1000

    def __enter__(self) -> "TimedLogger":
        self._started = time.perf_counter()
        self.logger.debug(
            f"{self.operation} started",
            extra={"event": "operation_start", "operation": self.operation, **self.context},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        entry = {
            "operation": self.operation,
            "duration_ms": round(self.elapsed_ms, 3),
            **self.context,
        }
        if exc_type is None:
            self.logger.info(
                f"{self.operation} finished",
                extra={"event": "operation_complete", **entry},
            )
        elif issubclass(exc_type, QueryCancelledError):
            self.logger.warning(
                f"{self.operation} cancelled: {exc_val}",
                extra={"event": "operation_cancelled", **entry},
            )
        else:
            self.logger.error(
                f"{self.operation} failed: {exc_val}",
                extra={
                    "event": "operation_failed",
                    "error_type": exc_type.__name__,
                    "error_message": str(exc_val),
                    **entry,
                },
            )
        return False


logger = setup_logging(SERVICE_NAME)


def get_logger(name: str) -> logging.Logger:
    """Logger for a geoquery component, e.g. get_logger("query.engine")."""
    return setup_logging(f"{SERVICE_NAME}.{name}")
