"""Serie (series of events) domain model."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from ..utils.helpers import ensure_timezone_aware, get_timezone_aware_now
from .common import Visibility
from .event import Event


class Serie(BaseModel):
    """A series of consecutive events sharing title, capacity and visibility.

    ``last_event_end_time`` is maintained by the repository layer so that
    series-level expiry can be computed without loading every event.
    Use :meth:`create` to build a new series.
    """

    serie_id: str
    title: str
    description: str = ""
    date: datetime
    participants: list[str] = Field(default_factory=list)
    max_participants: int = Field(default=0, ge=0)
    visibility: Visibility = Visibility.PUBLIC
    event_ids: list[str] = Field(default_factory=list)
    owner_id: str
    last_event_end_time: Optional[datetime] = None
    group_id: Optional[str] = None

    @classmethod
    def create(cls, **data: Any) -> "Serie":
        """Create a new series whose last event end time starts at its date."""
        data.pop("last_event_end_time", None)
        serie = cls(**data)
        return serie.model_copy(update={"last_event_end_time": serie.date})

    @field_validator("date", "last_event_end_time")
    @classmethod
    def _aware_datetimes(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_timezone_aware(value) if value is not None else None

    @field_serializer("date", "last_event_end_time")
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat() if dt is not None else None

    @property
    def end_time(self) -> datetime:
        return self.last_event_end_time or self.date

    @property
    def total_duration_minutes(self) -> int:
        """Minutes between the series start and the end of its last event."""
        return max(0, int((self.end_time - self.date).total_seconds() // 60))

    @property
    def total_events_count(self) -> int:
        return len(self.event_ids)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Check if now falls between the start and the last event end."""
        now = now or get_timezone_aware_now()
        return self.date <= now < self.end_time

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the last event has finished.

        A series without any scheduled time span has not run yet and is
        never expired.
        """
        now = now or get_timezone_aware_now()
        if self.end_time <= self.date:
            return False
        return self.end_time < now

    def is_upcoming(self, now: Optional[datetime] = None) -> bool:
        now = now or get_timezone_aware_now()
        return self.date > now

    def serie_events(self, events: list[Event]) -> list[Event]:
        """Events belonging to this series, in chronological order."""
        return sorted((e for e in events if e.event_id in self.event_ids), key=lambda e: e.date)

    def with_events(self, events: list[Event]) -> "Serie":
        """Return a copy whose last event end time reflects the given events."""
        own_events = self.serie_events(events)
        if not own_events:
            return self.model_copy(update={"last_event_end_time": self.date})
        last_end = max(event.end_time for event in own_events)
        return self.model_copy(update={"last_event_end_time": last_end})

    def with_owner_as_participant(self) -> "Serie":
        """Return a copy whose participants include the owner."""
        if self.owner_id in self.participants:
            return self
        return self.model_copy(update={"participants": [*self.participants, self.owner_id]})
