"""Cache layer exceptions surfaced to repository callers."""

from typing import Optional


class CacheError(Exception):
    """Base exception for cache layer errors."""

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id


class OfflineUnavailableError(CacheError):
    """Exception raised when connectivity is required and no usable fallback exists.

    Raised for every write attempted while offline (or when the remote write
    times out) and for reads with no cached copy to fall back on.
    """


class NotFoundError(CacheError):
    """Exception raised when an entity exists neither remotely nor in the cache."""


class NotAuthenticatedError(CacheError):
    """Exception raised when a cache fallback needs the current user and none is known."""
