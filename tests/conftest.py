"""Shared fixtures: temporary cache database, in-memory remote stores and sample entities."""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from joinme.cache import (
    CachedEventsRepository,
    CachedGroupRepository,
    CachedSeriesRepository,
    DatabaseManager,
    EventAdapter,
    GroupAdapter,
    SerieAdapter,
)
from joinme.models import Event, EventType, Group, Location, Serie, Visibility
from joinme.sources import MemoryDocumentStore, MemoryGroupStore
from joinme.utils.helpers import get_timezone_aware_now
from joinme.utils.network import StaticConnectivityMonitor

# Remote budget used by repository fixtures; stores with a larger delay time out
TEST_TIMEOUT = 0.1


class UserSession:
    """Mutable current-user provider handed to repositories."""

    def __init__(self, user_id: Optional[str] = "u1") -> None:
        self.user_id = user_id

    def __call__(self) -> Optional[str]:
        return self.user_id


@pytest.fixture
def now() -> datetime:
    return get_timezone_aware_now()


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Temporary SQLite file for one test."""
    return tmp_path / "cache.db"


@pytest.fixture
async def database_manager(temp_db_path: Path) -> AsyncGenerator[DatabaseManager, None]:
    """Initialized cache database."""
    manager = DatabaseManager(temp_db_path)
    await manager.initialize()
    yield manager


@pytest.fixture
def connectivity() -> StaticConnectivityMonitor:
    return StaticConnectivityMonitor(online=True)


@pytest.fixture
def session() -> UserSession:
    return UserSession("u1")


@pytest.fixture
def event_remote() -> MemoryDocumentStore[Event]:
    return MemoryDocumentStore(EventAdapter())


@pytest.fixture
def group_remote() -> MemoryGroupStore:
    return MemoryGroupStore(GroupAdapter())


@pytest.fixture
def serie_remote() -> MemoryDocumentStore[Serie]:
    return MemoryDocumentStore(SerieAdapter())


@pytest.fixture
def events_repository(
    event_remote: MemoryDocumentStore[Event],
    database_manager: DatabaseManager,
    connectivity: StaticConnectivityMonitor,
    session: UserSession,
) -> CachedEventsRepository:
    return CachedEventsRepository(
        event_remote, database_manager.table("events"), connectivity, session, TEST_TIMEOUT
    )


@pytest.fixture
def groups_repository(
    group_remote: MemoryGroupStore,
    database_manager: DatabaseManager,
    connectivity: StaticConnectivityMonitor,
    session: UserSession,
) -> CachedGroupRepository:
    return CachedGroupRepository(
        group_remote, database_manager.table("groups"), connectivity, session, TEST_TIMEOUT
    )


@pytest.fixture
def series_repository(
    serie_remote: MemoryDocumentStore[Serie],
    database_manager: DatabaseManager,
    connectivity: StaticConnectivityMonitor,
    session: UserSession,
) -> CachedSeriesRepository:
    return CachedSeriesRepository(
        serie_remote, database_manager.table("series"), connectivity, session, TEST_TIMEOUT
    )


@pytest.fixture
def make_event(now: datetime) -> Callable[..., Event]:
    """Factory for events starting one day from now unless overridden."""

    def _make(event_id: str, **overrides: Any) -> Event:
        data: dict[str, Any] = {
            "event_id": event_id,
            "category": EventType.SPORTS,
            "title": f"Event {event_id}",
            "location": Location(latitude=46.52, longitude=6.57, name="Lausanne"),
            "date": now + timedelta(days=1),
            "duration": 60,
            "participants": ["u1"],
            "max_participants": 10,
            "visibility": Visibility.PUBLIC,
            "owner_id": "u1",
        }
        data.update(overrides)
        return Event(**data)

    return _make


@pytest.fixture
def make_group() -> Callable[..., Group]:
    def _make(group_id: str, **overrides: Any) -> Group:
        data: dict[str, Any] = {
            "group_id": group_id,
            "name": f"Group {group_id}",
            "owner_id": "u1",
            "member_ids": ["u1"],
        }
        data.update(overrides)
        return Group(**data)

    return _make


@pytest.fixture
def make_serie(now: datetime) -> Callable[..., Serie]:
    """Factory for series starting one day from now and lasting a week."""

    def _make(serie_id: str, **overrides: Any) -> Serie:
        start = overrides.pop("date", now + timedelta(days=1))
        data: dict[str, Any] = {
            "serie_id": serie_id,
            "title": f"Serie {serie_id}",
            "date": start,
            "participants": ["u1"],
            "max_participants": 10,
            "owner_id": "u1",
            "last_event_end_time": start + timedelta(days=7),
        }
        data.update(overrides)
        return Serie(**data)

    return _make
