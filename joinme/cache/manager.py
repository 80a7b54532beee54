"""Cached repository coordinating the remote store and the local cache."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel

from ..models import FULL_SET_FILTERS, ListFilter
from ..sources.base import RemoteStore
from ..sources.exceptions import SourceNotFoundError
from ..utils.helpers import get_timezone_aware_now, with_timeout
from ..utils.network import ConnectivityMonitor
from .adapters import EntityAdapter
from .exceptions import NotAuthenticatedError, NotFoundError, OfflineUnavailableError
from .models import CachedRow, CacheMetadata

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")

# Budget for every remote call issued by the cache layer (3000 ms)
DEFAULT_REMOTE_TIMEOUT = 3.0


class LocalStore(Protocol):
    """Persistent cache table for one entity kind."""

    async def get_all(self) -> list[CachedRow]: ...

    async def get(self, entity_id: str) -> Optional[CachedRow]: ...

    async def upsert(self, row: CachedRow) -> bool: ...

    async def upsert_batch(self, rows: list[CachedRow]) -> bool: ...

    async def delete(self, entity_id: str) -> bool: ...

    async def delete_all(self) -> int: ...

    async def replace_all(self, rows: list[CachedRow]) -> bool: ...

    async def get_metadata(self) -> CacheMetadata: ...

    async def update_metadata(self, **kwargs: Any) -> bool: ...


class CachedRepository(Generic[T]):
    """Offline-first repository for one entity kind.

    Reads go to the remote store when online and fall back to the local
    cache when offline, when the remote fails, or when it does not answer
    within ``timeout`` seconds. Writes require connectivity, go to the remote
    store first and are mirrored into the cache only once they succeeded.

    Cache replacement follows two strategies:

    * full-set replacement for list views that are the complete set of the
      user's items (overview, history), so remote deletions disappear;
    * upsert-only merge for everything else, which never drops unrelated rows.
    """

    def __init__(
        self,
        remote: RemoteStore[T],
        local: LocalStore,
        connectivity: ConnectivityMonitor,
        adapter: EntityAdapter[T],
        current_user: Callable[[], Optional[str]],
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
    ) -> None:
        """Initialize the repository.

        Args:
            remote: Authoritative remote store
            local: Local cache table for this kind
            connectivity: Online/offline status source
            adapter: Entity adapter for this kind
            current_user: Returns the signed-in user id, or None
            timeout: Budget in seconds for every remote call
        """
        self.remote = remote
        self.local = local
        self.connectivity = connectivity
        self.adapter = adapter
        self.current_user = current_user
        self.timeout = timeout

        logger.debug(f"Cached repository initialized for {adapter.kind} (timeout={timeout}s)")

    @property
    def kind(self) -> str:
        return self.adapter.kind

    # Remote helpers

    async def _fetch(self, awaitable: Awaitable[R]) -> R:
        return await with_timeout(awaitable, self.timeout)

    def _require_online(self, operation: str) -> None:
        if not self.connectivity.is_online():
            raise OfflineUnavailableError(
                f"Cannot {operation} {self.kind} while offline: "
                "this operation requires an internet connection"
            )

    async def _write(self, operation: str, call: Callable[[], Awaitable[R]]) -> R:
        """Run a remote write under the offline gate and the timeout.

        Remote errors propagate unchanged; a timeout counts as being offline.
        """
        self._require_online(operation)
        try:
            return await self._fetch(call())
        except asyncio.TimeoutError:
            raise OfflineUnavailableError(
                f"Cannot {operation} {self.kind}: remote store did not answer "
                f"within {self.timeout}s"
            ) from None

    def _require_user(self) -> str:
        user_id = self.current_user()
        if not user_id:
            raise NotAuthenticatedError(f"{self.kind}: no signed-in user for cached lookup")
        return user_id

    # Cache helpers

    async def _cached_entities(self) -> list[T]:
        return self.adapter.from_rows(await self.local.get_all())

    async def _replace_cache(self, entities: list[T]) -> None:
        if not await self.local.replace_all([self.adapter.to_row(e) for e in entities]):
            logger.warning(f"Failed to replace cached {self.kind}; cache may be stale")

    async def _merge_cache(self, entities: list[T]) -> None:
        if entities and not await self.local.upsert_batch(
            [self.adapter.to_row(e) for e in entities]
        ):
            logger.warning(f"Failed to merge {len(entities)} {self.kind} into cache")

    async def _mirror(self, entity: T) -> None:
        if not await self.local.upsert(self.adapter.to_row(entity)):
            logger.warning(
                f"Remote write of {self.kind} {self.adapter.entity_id(entity)} succeeded "
                "but the cache could not be updated"
            )

    async def _evict(self, entity_id: str) -> None:
        if not await self.local.delete(entity_id):
            logger.warning(f"Failed to evict cached {self.kind} {entity_id}")

    async def _refresh_row(self, entity_id: str) -> bool:
        """Re-fetch one entity remotely and store it.

        Returns:
            True if the cached row now matches the remote copy
        """
        try:
            entity = await self._fetch(self.remote.get(entity_id))
        except Exception as e:
            logger.warning(f"Failed to refresh cached {self.kind} {entity_id}: {e!r}")
            return False

        return await self.local.upsert(self.adapter.to_row(entity))

    # Fetch metadata

    async def _record_success(self) -> None:
        now_str = get_timezone_aware_now().isoformat()
        await self.local.update_metadata(
            last_update=now_str,
            last_successful_fetch=now_str,
            consecutive_failures=0,
            last_error=None,
            last_error_time=None,
        )

    async def _record_failure(self, error: BaseException) -> None:
        now_str = get_timezone_aware_now().isoformat()
        metadata = await self.local.get_metadata()
        await self.local.update_metadata(
            last_update=now_str,
            consecutive_failures=metadata.consecutive_failures + 1,
            last_error=f"{type(error).__name__}: {error}",
            last_error_time=now_str,
        )

    async def _fallback(self, operation: str, error: BaseException) -> None:
        logger.warning(
            f"Failed to {operation} {self.kind} from remote, falling back to cache: {error!r}"
        )
        await self._record_failure(error)

    # Public contract

    def new_id(self) -> str:
        """Generate a new identifier (delegated to the remote store)."""
        return self.remote.new_id()

    async def get_all(self, list_filter: ListFilter = ListFilter.OVERVIEW) -> list[T]:
        """Get the items of a list view.

        Args:
            list_filter: View to compute

        Returns:
            Fresh remote items, or cached items filtered client side

        Raises:
            NotAuthenticatedError: Falling back to the cache without a signed-in user
            ValueError: The view is not supported for this kind
        """
        self.adapter.check_filter(list_filter)

        if self.connectivity.is_online():
            try:
                fetched = await self._fetch(self.remote.get_all(list_filter, self.current_user()))
            except Exception as e:
                await self._fallback(f"list ({list_filter.value})", e)
            else:
                entities = self.adapter.parse_many(fetched)
                if list_filter in FULL_SET_FILTERS:
                    await self._replace_cache(entities)
                else:
                    await self._merge_cache(entities)
                await self._record_success()
                logger.debug(f"Fetched {len(entities)} {self.kind} for {list_filter.value}")
                return entities

        user_id = self._require_user()
        cached = await self._cached_entities()
        result = self.adapter.apply_filter(list_filter, cached, user_id)
        logger.debug(
            f"Serving {len(result)} cached {self.kind} for {list_filter.value} "
            f"({len(cached)} cached in total)"
        )
        return result

    async def get(self, entity_id: str) -> T:
        """Get one entity.

        Raises:
            NotFoundError: The remote store reports the entity does not exist
            OfflineUnavailableError: The remote is unreachable and nothing is cached
        """
        if self.connectivity.is_online():
            try:
                entity = await self._fetch(self.remote.get(entity_id))
            except SourceNotFoundError:
                await self._evict(entity_id)
                raise NotFoundError(f"{self.kind} {entity_id} does not exist", entity_id) from None
            except Exception as e:
                await self._fallback(f"get {entity_id} of", e)
            else:
                # Drop the old row first so nothing stale survives the refresh
                await self._evict(entity_id)
                await self._mirror(entity)
                return entity

        row = await self.local.get(entity_id)
        entity = self.adapter.from_row(row) if row is not None else None
        if entity is None:
            raise OfflineUnavailableError(
                f"Cannot fetch {self.kind} {entity_id} while offline "
                "and no cached version is available",
                entity_id,
            )
        return entity

    async def get_by_ids(self, entity_ids: list[str]) -> list[T]:
        """Get several entities by id.

        Requested ids the remote store no longer knows are evicted from the
        cache; the offline path returns whatever is cached, in request order.
        """
        if not entity_ids:
            return []

        if self.connectivity.is_online():
            try:
                fetched = await self._fetch(self.remote.get_by_ids(entity_ids))
            except Exception as e:
                await self._fallback("batch get", e)
            else:
                entities = self.adapter.parse_many(fetched)
                found = {self.adapter.entity_id(e) for e in entities}
                for entity_id in entity_ids:
                    if entity_id not in found:
                        await self._evict(entity_id)
                await self._merge_cache(entities)
                return entities

        entities = []
        for entity_id in entity_ids:
            row = await self.local.get(entity_id)
            entity = self.adapter.from_row(row) if row is not None else None
            if entity is not None:
                entities.append(entity)
        return entities

    async def add(self, entity: T) -> T:
        """Create an entity remotely, then cache it.

        Returns:
            The entity as stored (event and series owners become participants)

        Raises:
            OfflineUnavailableError: Offline, or the remote store timed out
            SourceError: The remote store rejected the write
        """
        entity = self.adapter.prepare_for_add(entity)
        await self._write("add", lambda: self.remote.add(entity))
        await self._mirror(entity)
        logger.info(f"Added {self.kind} {self.adapter.entity_id(entity)}")
        return entity

    async def edit(self, entity_id: str, entity: T) -> None:
        """Replace an entity remotely, then mirror it into the cache."""
        if self.adapter.entity_id(entity) != entity_id:
            raise ValueError(
                f"Cannot edit {self.kind} {entity_id} with a value whose id is "
                f"{self.adapter.entity_id(entity)}"
            )
        await self._write("edit", lambda: self.remote.edit(entity_id, entity))
        await self._mirror(entity)
        logger.info(f"Edited {self.kind} {entity_id}")

    async def delete(self, entity_id: str, user_id: Optional[str] = None) -> None:
        """Delete an entity remotely, then purge its cached row."""
        await self._write("delete", lambda: self.remote.delete(entity_id, user_id))
        await self._evict(entity_id)
        logger.info(f"Deleted {self.kind} {entity_id}")

    async def get_common(self, user_ids: list[str]) -> list[T]:
        """Get the entities every given user takes part in."""
        if not user_ids:
            return []

        if self.connectivity.is_online():
            try:
                fetched = await self._fetch(self.remote.get_common(user_ids))
            except Exception as e:
                await self._fallback("get common", e)
            else:
                entities = self.adapter.shared_by_all(self.adapter.parse_many(fetched), user_ids)
                await self._merge_cache(entities)
                return entities

        # Best effort: only as complete as what has been cached so far
        return self.adapter.shared_by_all(await self._cached_entities(), user_ids)

    async def get_cache_status(self) -> CacheMetadata:
        """Get cache statistics and remote fetch health for this kind."""
        return await self.local.get_metadata()

    async def clear_cache(self) -> int:
        """Drop every cached row of this kind and reset fetch metadata.

        Returns:
            Number of rows removed
        """
        deleted_count = await self.local.delete_all()
        await self.local.update_metadata(
            last_update=None,
            last_successful_fetch=None,
            consecutive_failures=0,
            last_error=None,
            last_error_time=None,
        )
        logger.info(f"Cleared {deleted_count} cached {self.kind}")
        return deleted_count
