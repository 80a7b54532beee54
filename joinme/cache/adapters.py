"""Per-entity adapters plugging Event, Group and Serie into the cache engine."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from ..models import Event, Group, ListFilter, Serie, Visibility
from ..utils.helpers import get_timezone_aware_now
from .models import CachedRow

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class EntityAdapter(ABC, Generic[T]):
    """Describes how one entity kind is identified, filtered and stored.

    Subclasses declare the model type, the cache table, which list filters
    make sense for the kind, and the few accessors the filters need.
    """

    kind: str = ""
    entity_type: type[T]
    supported_filters: frozenset[ListFilter] = frozenset(ListFilter)

    @abstractmethod
    def entity_id(self, entity: T) -> str:
        """Stable identifier of the entity within its kind."""

    def owner_id(self, entity: T) -> str:
        return getattr(entity, "owner_id")

    @abstractmethod
    def members(self, entity: T) -> list[str]:
        """User ids taking part in the entity (participants or members)."""

    def has_location(self, entity: T) -> bool:
        return True

    def prepare_for_add(self, entity: T) -> T:
        """Normalise a brand-new entity before it is written remotely."""
        return entity

    # Filtering

    def check_filter(self, list_filter: ListFilter) -> None:
        if list_filter not in self.supported_filters:
            raise ValueError(f"Filter {list_filter.value!r} is not supported for {self.kind}")

    def matches(
        self, list_filter: ListFilter, entity: T, user_id: str, now: datetime
    ) -> bool:
        """Whether an entity belongs to a list view for the given user."""
        is_member = user_id in self.members(entity)

        if list_filter == ListFilter.OVERVIEW:
            return is_member
        if list_filter == ListFilter.HISTORY:
            return is_member and entity.is_expired(now)  # type: ignore[attr-defined]
        if list_filter == ListFilter.SEARCH:
            return (
                entity.visibility == Visibility.PUBLIC  # type: ignore[attr-defined]
                and entity.is_upcoming(now)  # type: ignore[attr-defined]
                and not is_member
                and self.owner_id(entity) != user_id
            )
        if list_filter == ListFilter.MAP:
            return self.has_location(entity) and (
                entity.is_upcoming(now)  # type: ignore[attr-defined]
                or (entity.is_active(now) and is_member)  # type: ignore[attr-defined]
            )
        raise ValueError(f"Unknown filter: {list_filter}")

    def apply_filter(
        self,
        list_filter: ListFilter,
        entities: list[T],
        user_id: str,
        now: Optional[datetime] = None,
    ) -> list[T]:
        """Apply a list view's semantics to a set of entities.

        Args:
            list_filter: View to compute
            entities: Candidate entities
            user_id: Current user
            now: Reference time (defaults to the current time)

        Returns:
            Matching entities; HISTORY is sorted by start time, newest first
        """
        self.check_filter(list_filter)
        now = now or get_timezone_aware_now()
        selected = [e for e in entities if self.matches(list_filter, e, user_id, now)]
        if list_filter == ListFilter.HISTORY:
            selected.sort(key=lambda e: e.date, reverse=True)  # type: ignore[attr-defined]
        return selected

    def shared_by_all(self, entities: list[T], user_ids: list[str]) -> list[T]:
        """Entities every one of the given users takes part in."""
        return [e for e in entities if all(uid in self.members(e) for uid in user_ids)]

    # Conversion

    def parse(self, document: Any) -> Optional[T]:
        """Validate a remote document or model instance.

        Returns:
            The entity, or None if the document is malformed
        """
        if isinstance(document, self.entity_type):
            return document
        try:
            return self.entity_type.model_validate(document)
        except ValidationError as e:
            logger.warning(f"Skipping malformed {self.kind} document: {e.error_count()} errors")
            return None

    def parse_many(self, documents: list[Any]) -> list[T]:
        return [entity for entity in map(self.parse, documents) if entity is not None]

    def to_row(self, entity: T) -> CachedRow:
        return CachedRow(
            id=self.entity_id(entity),
            owner_id=self.owner_id(entity),
            data=entity.model_dump_json(),
            cached_at=get_timezone_aware_now().isoformat(),
        )

    def from_row(self, row: CachedRow) -> Optional[T]:
        """Rebuild an entity from its cached row, or None if the row is malformed."""
        try:
            return self.entity_type.model_validate_json(row.data)
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed cached {self.kind} row {row.id}: {e.error_count()} errors"
            )
            return None

    def from_rows(self, rows: list[CachedRow]) -> list[T]:
        return [entity for entity in map(self.from_row, rows) if entity is not None]


class EventAdapter(EntityAdapter[Event]):
    kind = "events"
    entity_type = Event

    def entity_id(self, entity: Event) -> str:
        return entity.event_id

    def members(self, entity: Event) -> list[str]:
        return entity.participants

    def has_location(self, entity: Event) -> bool:
        return entity.location is not None

    def prepare_for_add(self, entity: Event) -> Event:
        return entity.with_owner_as_participant()


class GroupAdapter(EntityAdapter[Group]):
    kind = "groups"
    entity_type = Group
    supported_filters = frozenset({ListFilter.OVERVIEW})

    def entity_id(self, entity: Group) -> str:
        return entity.group_id

    def members(self, entity: Group) -> list[str]:
        return entity.member_ids


class SerieAdapter(EntityAdapter[Serie]):
    """Series carry no location of their own, so every series is placeable on the map."""

    kind = "series"
    entity_type = Serie

    def entity_id(self, entity: Serie) -> str:
        return entity.serie_id

    def members(self, entity: Serie) -> list[str]:
        return entity.participants

    def prepare_for_add(self, entity: Serie) -> Serie:
        return entity.with_owner_as_participant()
