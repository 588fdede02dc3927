"""
geoquery exceptions

Exception hierarchy for spatial query error handling.
"""


class GeoQueryError(Exception):
    """Base exception for geoquery"""

    pass


class InvalidQueryError(GeoQueryError, ValueError):
    """Query parameters are out of range or inconsistent"""

    pass


class StorageError(GeoQueryError):
    """Base class for faults raised by the storage collaborator"""

    def __init__(self, message: str, cell: str = None):
        super().__init__(message)
        self.cell = cell


class TransientStorageError(StorageError):
    """Throttling or timeout on a store call; safe to retry"""

    pass


class FatalStorageError(StorageError):
    """Store call failed permanently or retries were exhausted"""

    pass


class InvalidContinuationTokenError(GeoQueryError):
    """Continuation token is malformed, tampered with, or belongs to another query"""

    pass


class RecordMappingError(GeoQueryError):
    """A raw store item could not be mapped to a domain record"""

    pass


class QueryCancelledError(GeoQueryError):
    """Query was cancelled or its deadline passed"""

    pass
