"""Local data caching package for offline functionality."""

from .adapters import EntityAdapter, EventAdapter, GroupAdapter, SerieAdapter
from .database import DatabaseManager, LocalTable
from .exceptions import (
    CacheError,
    NotAuthenticatedError,
    NotFoundError,
    OfflineUnavailableError,
)
from .manager import DEFAULT_REMOTE_TIMEOUT, CachedRepository
from .models import CachedRow, CacheMetadata
from .repositories import CachedEventsRepository, CachedGroupRepository, CachedSeriesRepository

__all__ = [
    "DEFAULT_REMOTE_TIMEOUT",
    "CacheError",
    "CacheMetadata",
    "CachedEventsRepository",
    "CachedGroupRepository",
    "CachedRepository",
    "CachedRow",
    "CachedSeriesRepository",
    "DatabaseManager",
    "EntityAdapter",
    "EventAdapter",
    "GroupAdapter",
    "LocalTable",
    "NotAuthenticatedError",
    "NotFoundError",
    "OfflineUnavailableError",
    "SerieAdapter",
]
