"""Event domain model."""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from ..utils.helpers import ensure_timezone_aware, get_timezone_aware_now
from .common import EventType, Location, Visibility


class Event(BaseModel):
    """An event users can join.

    Public events are visible to everyone, private events only to invited
    participants. ``duration`` is expressed in minutes.
    """

    event_id: str
    category: EventType
    title: str
    description: str = ""
    location: Optional[Location] = None

    # Time information
    date: datetime
    duration: int = Field(default=0, ge=0)

    # Participation
    participants: list[str] = Field(default_factory=list)
    max_participants: int = Field(default=0, ge=0)
    visibility: Visibility = Visibility.PUBLIC
    owner_id: str

    # Grouping
    part_of_a_serie: bool = False
    group_id: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _aware_date(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)

    @field_serializer("date")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat()

    @property
    def end_time(self) -> datetime:
        """When the event finishes."""
        return self.date + timedelta(minutes=self.duration)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the event is over."""
        now = now or get_timezone_aware_now()
        return now > self.end_time

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Check if the event is currently happening."""
        now = now or get_timezone_aware_now()
        return self.date <= now < self.end_time

    def is_upcoming(self, now: Optional[datetime] = None) -> bool:
        """Check if the event has not started yet."""
        now = now or get_timezone_aware_now()
        return self.date > now

    def with_owner_as_participant(self) -> "Event":
        """Return a copy whose participants include the owner."""
        if self.owner_id in self.participants:
            return self
        return self.model_copy(update={"participants": [*self.participants, self.owner_id]})
