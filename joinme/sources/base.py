"""Remote store contracts."""

from typing import Optional, Protocol, TypeVar

from ..models import ListFilter, MembershipResult

T = TypeVar("T")


class RemoteStore(Protocol[T]):
    """Authoritative remote collection for one entity kind.

    Implementations raise :class:`~joinme.sources.exceptions.SourceError`
    subclasses on failure and may be arbitrarily slow.
    """

    collection: str

    def new_id(self) -> str: ...

    async def get_all(self, list_filter: ListFilter, user_id: Optional[str]) -> list[T]: ...

    async def get(self, entity_id: str) -> T: ...

    async def get_by_ids(self, entity_ids: list[str]) -> list[T]: ...

    async def add(self, entity: T) -> None: ...

    async def edit(self, entity_id: str, entity: T) -> None: ...

    async def delete(self, entity_id: str, user_id: Optional[str] = None) -> None: ...

    async def get_common(self, user_ids: list[str]) -> list[T]: ...


class MembershipRemoteStore(RemoteStore[T], Protocol[T]):
    """Remote store whose entities users can join and leave."""

    async def join(self, entity_id: str, user_id: str) -> MembershipResult: ...

    async def leave(self, entity_id: str, user_id: str) -> MembershipResult: ...
