"""Group domain model."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .common import EventType


class Group(BaseModel):
    """A group organising events and series for its members.

    The member count is always derived from ``member_ids``.
    """

    group_id: str
    name: str
    category: EventType = EventType.ACTIVITY
    description: str = ""
    owner_id: str
    member_ids: list[str] = Field(default_factory=list)
    event_ids: list[str] = Field(default_factory=list)
    serie_ids: list[str] = Field(default_factory=list)
    photo_url: Optional[str] = None

    @property
    def members_count(self) -> int:
        return len(self.member_ids)


class MembershipResult(str, Enum):
    """Outcome of a join or leave request."""

    OK = "ok"
    ALREADY_MEMBER = "already_member"
    NOT_A_MEMBER = "not_a_member"
    NOT_FOUND = "not_found"
