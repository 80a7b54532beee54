"""In-memory remote document store.

Keeps documents in a dict and evaluates list views with the same predicate
table the cache uses for its offline fallback. Used by tests, demos and as a
stand-in backend during local development. Latency and failures can be
injected to simulate an unreliable network.
"""

import asyncio
import logging
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from ..cache.adapters import EntityAdapter
from ..models import Group, ListFilter, MembershipResult
from .exceptions import SourceNotFoundError, SourcePermissionError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class MemoryDocumentStore(Generic[T]):
    """Remote store backed by a dictionary of documents."""

    def __init__(self, adapter: EntityAdapter[T], delay: float = 0.0):
        """Initialize the store.

        Args:
            adapter: Adapter describing the stored entity kind
            delay: Seconds every operation waits before running
        """
        self.adapter = adapter
        self.collection = adapter.kind
        self.delay = delay
        self.fail_with: Optional[Exception] = None
        self.calls: list[str] = []
        self._documents: dict[str, T] = {}
        self._counter = 0

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    def _require(self, entity_id: str) -> T:
        try:
            return self._documents[entity_id]
        except KeyError:
            raise SourceNotFoundError(
                f"{self.collection} document {entity_id} not found", self.collection
            ) from None

    def new_id(self) -> str:
        self._counter += 1
        return f"{self.collection}-{self._counter}"

    async def get_all(self, list_filter: ListFilter, user_id: Optional[str]) -> list[T]:
        await self._enter("get_all")
        if user_id is None:
            raise SourcePermissionError("A signed-in user is required", self.collection)
        documents = [doc.model_copy(deep=True) for doc in self._documents.values()]
        return self.adapter.apply_filter(list_filter, documents, user_id)

    async def get(self, entity_id: str) -> T:
        await self._enter("get")
        return self._require(entity_id).model_copy(deep=True)

    async def get_by_ids(self, entity_ids: list[str]) -> list[T]:
        await self._enter("get_by_ids")
        return [
            self._documents[entity_id].model_copy(deep=True)
            for entity_id in entity_ids
            if entity_id in self._documents
        ]

    async def add(self, entity: T) -> None:
        await self._enter("add")
        self._documents[self.adapter.entity_id(entity)] = entity.model_copy(deep=True)

    async def edit(self, entity_id: str, entity: T) -> None:
        await self._enter("edit")
        self._require(entity_id)
        self._documents[entity_id] = entity.model_copy(deep=True)

    async def delete(self, entity_id: str, user_id: Optional[str] = None) -> None:
        await self._enter("delete")
        document = self._require(entity_id)
        if user_id is not None and self.adapter.owner_id(document) != user_id:
            raise SourcePermissionError(
                f"Only the owner can delete {self.collection} document {entity_id}",
                self.collection,
            )
        del self._documents[entity_id]

    async def get_common(self, user_ids: list[str]) -> list[T]:
        await self._enter("get_common")
        if not user_ids:
            return []
        # Query on the first user, then narrow to documents shared by everyone
        first_user = user_ids[0]
        candidates = [
            doc.model_copy(deep=True)
            for doc in self._documents.values()
            if first_user in self.adapter.members(doc)
        ]
        return self.adapter.shared_by_all(candidates, user_ids)

    def seed(self, *entities: T) -> None:
        """Store documents directly, bypassing latency and failure injection."""
        for entity in entities:
            self._documents[self.adapter.entity_id(entity)] = entity.model_copy(deep=True)

    def remove(self, entity_id: str) -> None:
        """Drop a document directly, as another client would."""
        self._documents.pop(entity_id, None)


class MemoryGroupStore(MemoryDocumentStore[Group]):
    """In-memory group store supporting membership changes."""

    async def join(self, entity_id: str, user_id: str) -> MembershipResult:
        await self._enter("join")
        group = self._documents.get(entity_id)
        if group is None:
            return MembershipResult.NOT_FOUND
        if user_id in group.member_ids:
            return MembershipResult.ALREADY_MEMBER
        self._documents[entity_id] = group.model_copy(
            update={"member_ids": [*group.member_ids, user_id]}
        )
        return MembershipResult.OK

    async def leave(self, entity_id: str, user_id: str) -> MembershipResult:
        await self._enter("leave")
        group = self._documents.get(entity_id)
        if group is None:
            return MembershipResult.NOT_FOUND
        if user_id not in group.member_ids:
            return MembershipResult.NOT_A_MEMBER
        self._documents[entity_id] = group.model_copy(
            update={"member_ids": [uid for uid in group.member_ids if uid != user_id]}
        )
        return MembershipResult.OK
