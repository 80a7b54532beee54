"""Database models for cached entity rows."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..utils.helpers import get_timezone_aware_now, parse_iso_datetime


class CachedRow(BaseModel):
    """A cached copy of one remote entity.

    The entity itself is stored as its JSON document so that every entity
    kind shares the same table layout; ``owner_id`` is kept as a column for
    diagnostics.
    """

    id: str
    owner_id: Optional[str] = None
    data: str  # JSON document of the entity
    cached_at: str  # When this was cached (ISO string)

    @property
    def cached_dt(self) -> Optional[datetime]:
        """Get cached datetime as datetime object."""
        return parse_iso_datetime(self.cached_at)


class CacheMetadata(BaseModel):
    """Metadata about the cache state of one entity kind."""

    kind: str = ""

    # Cache statistics
    total_rows: int = 0
    last_update: Optional[str] = None
    last_successful_fetch: Optional[str] = None

    # Error tracking
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    last_error_time: Optional[str] = None

    @property
    def last_update_dt(self) -> Optional[datetime]:
        """Get last update as datetime object."""
        return parse_iso_datetime(self.last_update)

    @property
    def last_successful_fetch_dt(self) -> Optional[datetime]:
        """Get last successful fetch as datetime object."""
        return parse_iso_datetime(self.last_successful_fetch)

    @property
    def has_synced(self) -> bool:
        """Whether a remote read has ever succeeded for this kind."""
        return self.last_successful_fetch is not None

    def time_since_last_update(self) -> Optional[int]:
        """Get minutes since last update."""
        if not self.last_update_dt:
            return None

        delta = get_timezone_aware_now() - self.last_update_dt
        return int(delta.total_seconds() / 60)
