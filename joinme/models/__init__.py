"""Domain models for events, groups and series."""

from .common import FULL_SET_FILTERS, EventType, ListFilter, Location, Visibility
from .event import Event
from .group import Group, MembershipResult
from .serie import Serie

__all__ = [
    "FULL_SET_FILTERS",
    "Event",
    "EventType",
    "Group",
    "ListFilter",
    "Location",
    "MembershipResult",
    "Serie",
    "Visibility",
]
