"""Cached repositories for events, groups and series."""

import logging
from typing import Callable, Optional

from ..models import Event, Group, MembershipResult, Serie
from ..sources.base import MembershipRemoteStore, RemoteStore
from ..utils.network import ConnectivityMonitor
from .adapters import EventAdapter, GroupAdapter, SerieAdapter
from .manager import DEFAULT_REMOTE_TIMEOUT, CachedRepository, LocalStore

logger = logging.getLogger(__name__)


class CachedEventsRepository(CachedRepository[Event]):
    """Offline-first repository for events."""

    def __init__(
        self,
        remote: RemoteStore[Event],
        local: LocalStore,
        connectivity: ConnectivityMonitor,
        current_user: Callable[[], Optional[str]],
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
    ) -> None:
        super().__init__(remote, local, connectivity, EventAdapter(), current_user, timeout)


class CachedSeriesRepository(CachedRepository[Serie]):
    """Offline-first repository for series."""

    def __init__(
        self,
        remote: RemoteStore[Serie],
        local: LocalStore,
        connectivity: ConnectivityMonitor,
        current_user: Callable[[], Optional[str]],
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
    ) -> None:
        super().__init__(remote, local, connectivity, SerieAdapter(), current_user, timeout)

    async def sync_last_event_end_time(self, serie_id: str, events: list[Event]) -> Serie:
        """Recompute a series' last event end time from its events and save it.

        Args:
            serie_id: Series to update
            events: Events to consider; only those listed in the series count

        Returns:
            The series, written remotely only if the end time changed
        """
        serie = await self.get(serie_id)
        updated = serie.with_events(events)
        if updated.last_event_end_time != serie.last_event_end_time:
            await self.edit(serie_id, updated)
        return updated


class CachedGroupRepository(CachedRepository[Group]):
    """Offline-first repository for groups, including membership changes.

    Only the OVERVIEW list view (groups the current user belongs to) is
    supported; other views raise ``ValueError``.

    After a successful join or leave the cached row is refreshed from the
    remote store. When that refresh fails, ``join`` keeps the old row and
    ``leave`` evicts it.
    """

    remote: MembershipRemoteStore[Group]

    def __init__(
        self,
        remote: MembershipRemoteStore[Group],
        local: LocalStore,
        connectivity: ConnectivityMonitor,
        current_user: Callable[[], Optional[str]],
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
    ) -> None:
        super().__init__(remote, local, connectivity, GroupAdapter(), current_user, timeout)

    async def join(self, group_id: str, user_id: str) -> MembershipResult:
        """Add a user to a group.

        Raises:
            OfflineUnavailableError: Offline, or the remote store timed out
        """
        result = await self._write("join", lambda: self.remote.join(group_id, user_id))

        if result == MembershipResult.OK:
            if not await self._refresh_row(group_id):
                logger.warning(f"Failed to refresh group {group_id} after join, keeping cache")
        elif result == MembershipResult.NOT_FOUND:
            await self._evict(group_id)

        logger.info(f"Join of group {group_id} by {user_id}: {result.value}")
        return result

    async def leave(self, group_id: str, user_id: str) -> MembershipResult:
        """Remove a user from a group.

        Raises:
            OfflineUnavailableError: Offline, or the remote store timed out
        """
        result = await self._write("leave", lambda: self.remote.leave(group_id, user_id))

        if result == MembershipResult.OK:
            if not await self._refresh_row(group_id):
                logger.warning(f"Failed to refresh group {group_id} after leave, evicting it")
                await self._evict(group_id)
        elif result == MembershipResult.NOT_FOUND:
            await self._evict(group_id)

        logger.info(f"Leave of group {group_id} by {user_id}: {result.value}")
        return result
