"""Wiring of settings, stores and connectivity into the three repositories."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .cache import (
    CachedEventsRepository,
    CachedGroupRepository,
    CachedSeriesRepository,
    DatabaseManager,
    EventAdapter,
    GroupAdapter,
    SerieAdapter,
)
from .config import JoinMeSettings
from .sources import HTTPDocumentStore, HTTPGroupStore
from .utils.network import ConnectivityMonitor, SocketConnectivityMonitor

logger = logging.getLogger(__name__)


@dataclass
class JoinMeRepositories:
    """The cached repositories sharing one database and connectivity monitor."""

    events: CachedEventsRepository
    groups: CachedGroupRepository
    series: CachedSeriesRepository
    database: DatabaseManager
    connectivity: ConnectivityMonitor
    remotes: list[Any] = field(default_factory=list)

    async def initialize(self) -> bool:
        """Create the cache schema and start connectivity polling if supported."""
        initialized = await self.database.initialize()
        start = getattr(self.connectivity, "start", None)
        if start is not None:
            await start()
        return initialized

    async def close(self) -> None:
        """Stop connectivity polling and close any remote clients."""
        stop = getattr(self.connectivity, "stop", None)
        if stop is not None:
            await stop()
        for remote in self.remotes:
            close = getattr(remote, "close", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> "JoinMeRepositories":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def create_connectivity_monitor(settings: JoinMeSettings) -> SocketConnectivityMonitor:
    return SocketConnectivityMonitor(
        host=settings.connectivity_host,
        port=settings.connectivity_port,
        timeout=settings.connectivity_timeout,
        poll_interval=settings.connectivity_poll_seconds,
    )


def create_repositories(
    settings: Optional[JoinMeSettings] = None,
    current_user: Callable[[], Optional[str]] = lambda: None,
    connectivity: Optional[ConnectivityMonitor] = None,
    event_remote: Any = None,
    group_remote: Any = None,
    serie_remote: Any = None,
) -> JoinMeRepositories:
    """Build the event, group and series repositories.

    Remote stores not passed in are built as HTTP stores from
    ``remote_base_url``. Without a base URL every remote must be passed in.

    Args:
        settings: Application settings (loaded from the environment if omitted)
        current_user: Returns the signed-in user id, or None
        connectivity: Connectivity monitor (background socket probe if omitted)
        event_remote: Remote store for events
        group_remote: Remote store for groups, with join/leave
        serie_remote: Remote store for series

    Returns:
        The wired repositories

    Raises:
        ValueError: A remote store is missing and no base URL is configured
    """
    settings = settings or JoinMeSettings()
    connectivity = connectivity or create_connectivity_monitor(settings)
    database = DatabaseManager(settings.database_file)
    timeout = settings.remote_timeout_seconds

    if settings.remote_base_url:
        http_options = {
            "base_url": settings.remote_base_url,
            "api_token": settings.remote_api_token,
            "request_timeout": settings.request_timeout,
        }
        event_remote = event_remote or HTTPDocumentStore(EventAdapter(), **http_options)
        group_remote = group_remote or HTTPGroupStore(GroupAdapter(), **http_options)
        serie_remote = serie_remote or HTTPDocumentStore(SerieAdapter(), **http_options)
    else:
        missing = [
            name
            for name, remote in (
                ("event_remote", event_remote),
                ("group_remote", group_remote),
                ("serie_remote", serie_remote),
            )
            if remote is None
        ]
        if missing:
            raise ValueError(
                f"No remote store for {', '.join(missing)}: pass one explicitly "
                "or configure remote_base_url"
            )

    repositories = JoinMeRepositories(
        events=CachedEventsRepository(
            event_remote, database.table("events"), connectivity, current_user, timeout
        ),
        groups=CachedGroupRepository(
            group_remote, database.table("groups"), connectivity, current_user, timeout
        ),
        series=CachedSeriesRepository(
            serie_remote, database.table("series"), connectivity, current_user, timeout
        ),
        database=database,
        connectivity=connectivity,
        remotes=[event_remote, group_remote, serie_remote],
    )

    logger.info(f"Repositories ready (cache: {settings.database_file}, timeout: {timeout}s)")
    return repositories
