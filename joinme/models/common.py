"""Shared value types for JoinMe entities."""

from enum import Enum

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Category of an event or group."""

    SPORTS = "SPORTS"
    ACTIVITY = "ACTIVITY"
    SOCIAL = "SOCIAL"

    def display_string(self) -> str:
        """Readable form, e.g. 'Sports'."""
        return self.value.capitalize()


class Visibility(str, Enum):
    """Who can see an event or series."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"

    def display_string(self) -> str:
        """Readable form, e.g. 'Public'."""
        return self.value.capitalize()


class ListFilter(str, Enum):
    """Named list views a repository can be asked for."""

    OVERVIEW = "overview"
    HISTORY = "history"
    SEARCH = "search"
    MAP = "map"


# Filters whose result is the complete set of the user's items
FULL_SET_FILTERS = frozenset({ListFilter.OVERVIEW, ListFilter.HISTORY})


class Location(BaseModel):
    """Geographic location of an event."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    name: str
