"""User-selected category and participation filters over repository results."""

from typing import Optional, Protocol, TypeVar

from pydantic import BaseModel, Field

from .models import Event, EventType, Serie


class Categorized(Protocol):
    category: EventType


C = TypeVar("C", bound=Categorized)


class FilterState(BaseModel):
    """Current filter selection.

    Categories default to all selected. Participation toggles default to
    none selected, which applies no participation filtering.
    """

    selected_categories: frozenset[EventType] = Field(
        default_factory=lambda: frozenset(EventType)
    )
    show_mine: bool = False
    show_joined: bool = False
    show_others: bool = False

    @property
    def all_selected(self) -> bool:
        return self.selected_categories == frozenset(EventType)

    @property
    def participation_active(self) -> bool:
        return self.show_mine or self.show_joined or self.show_others


class FilteredView:
    """Pure filtering transform applied after a repository ``get_all``.

    Holds no I/O and is independent of the online/offline state.
    """

    def __init__(self, state: Optional[FilterState] = None) -> None:
        self.state = state or FilterState()

    def reset(self) -> None:
        """Restore the default selection."""
        self.state = FilterState()

    def toggle_all(self) -> None:
        """Select every category, or clear them all if every one was selected."""
        categories = frozenset() if self.state.all_selected else frozenset(EventType)
        self.state = self.state.model_copy(update={"selected_categories": categories})

    def toggle_category(self, category: EventType) -> None:
        """Flip the selection of a single category."""
        self.state = self.state.model_copy(
            update={"selected_categories": self.state.selected_categories ^ {category}}
        )

    def toggle_mine(self) -> None:
        self.state = self.state.model_copy(update={"show_mine": not self.state.show_mine})

    def toggle_joined(self) -> None:
        self.state = self.state.model_copy(update={"show_joined": not self.state.show_joined})

    def toggle_others(self) -> None:
        self.state = self.state.model_copy(update={"show_others": not self.state.show_others})

    def is_selected(self, category: EventType) -> bool:
        return self.state.all_selected or category in self.state.selected_categories

    def _participation_allows(self, item: object, user_id: str) -> bool:
        owner_id = getattr(item, "owner_id", None)
        members = getattr(item, "participants", None)
        if members is None:
            members = getattr(item, "member_ids", [])

        is_mine = owner_id == user_id
        is_joined = user_id in members and not is_mine
        is_other = user_id not in members

        return (
            (self.state.show_mine and is_mine)
            or (self.state.show_joined and is_joined)
            or (self.state.show_others and is_other)
        )

    def apply(self, items: list[C], user_id: Optional[str] = None) -> list[C]:
        """Keep the items whose category is selected.

        Participation toggles are only applied when at least one is on and a
        user id is given.

        Args:
            items: Items exposing a ``category``
            user_id: Current user, for participation filtering

        Returns:
            Filtered items in their original order
        """
        result = [item for item in items if self.is_selected(item.category)]

        if self.state.participation_active and user_id:
            result = [item for item in result if self._participation_allows(item, user_id)]

        return result

    def apply_to_series(
        self, series: list[Serie], events: list[Event], user_id: Optional[str] = None
    ) -> list[Serie]:
        """Keep the series with at least one event surviving :meth:`apply`."""
        visible_event_ids = {event.event_id for event in self.apply(events, user_id)}
        return [
            serie
            for serie in series
            if any(event_id in visible_event_ids for event_id in serie.event_ids)
        ]
