"""REST document store client built on httpx."""

import logging
import uuid
from typing import Any, Generic, Optional, TypeVar

import httpx
from pydantic import BaseModel

from ..cache.adapters import EntityAdapter
from ..models import Group, ListFilter, MembershipResult
from .exceptions import (
    SourceConnectionError,
    SourceDataError,
    SourceError,
    SourceNotFoundError,
    SourcePermissionError,
    SourceTimeoutError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class HTTPDocumentStore(Generic[T]):
    """Remote store speaking JSON to a document collection over HTTP.

    Endpoints, relative to ``base_url``::

        GET    /{collection}?view=&user=        list view
        GET    /{collection}?ids=a,b            batch get
        GET    /{collection}?members=a,b        documents shared by all users
        GET    /{collection}/{id}
        PUT    /{collection}/{id}               create or replace
        DELETE /{collection}/{id}?user=
        POST   /{collection}/{id}/members/{user}    join
        DELETE /{collection}/{id}/members/{user}    leave
    """

    def __init__(
        self,
        adapter: EntityAdapter[T],
        base_url: str,
        api_token: Optional[str] = None,
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            adapter: Adapter describing the stored entity kind
            base_url: Root URL of the document API
            api_token: Optional bearer token
            request_timeout: Per-request read timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.adapter = adapter
        self.collection = adapter.kind
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.request_timeout = request_timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

        logger.debug(f"HTTP document store initialized for {self.collection}")

    async def __aenter__(self) -> "HTTPDocumentStore[T]":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client exists."""
        if self.client is None or self.client.is_closed:
            headers = {"Accept": "application/json"}
            if self.api_token:
                headers["Authorization"] = f"Bearer {self.api_token}"

            self.client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(connect=5.0, read=self.request_timeout, write=5.0, pool=5.0),
                headers=headers,
                transport=self.transport,
            )
        return self.client

    async def close(self) -> None:
        """Close HTTP client."""
        if self.client and not self.client.is_closed:
            await self.client.aclose()

    async def _request(
        self, method: str, path: str, allow_conflict: bool = False, **kwargs: Any
    ) -> httpx.Response:
        """Send a request and translate transport and status errors.

        Args:
            method: HTTP method
            path: Path relative to the collection root
            allow_conflict: Return 409 responses instead of raising
            **kwargs: Passed to httpx

        Returns:
            The response

        Raises:
            SourceError: Subclass matching the failure
        """
        client = await self._ensure_client()
        url = f"/{self.collection}{path}"
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise SourceTimeoutError(f"{method} {url} timed out", self.collection) from e
        except httpx.HTTPError as e:
            raise SourceConnectionError(f"{method} {url} failed: {e}", self.collection) from e

        if response.status_code == 404:
            raise SourceNotFoundError(f"{url} not found", self.collection)
        if response.status_code in (401, 403):
            raise SourcePermissionError(f"{method} {url} was rejected", self.collection)
        if response.status_code == 409 and allow_conflict:
            return response
        if response.is_error:
            raise SourceError(
                f"{method} {url} returned HTTP {response.status_code}", self.collection
            )
        return response

    def _documents(self, response: httpx.Response) -> list[T]:
        try:
            payload = response.json()
        except ValueError as e:
            raise SourceDataError(f"Invalid JSON from {self.collection}", self.collection) from e

        documents = payload.get("documents") if isinstance(payload, dict) else payload
        if not isinstance(documents, list):
            raise SourceDataError(f"Unexpected payload from {self.collection}", self.collection)
        return self.adapter.parse_many(documents)

    def new_id(self) -> str:
        return uuid.uuid4().hex

    async def get_all(self, list_filter: ListFilter, user_id: Optional[str]) -> list[T]:
        if user_id is None:
            raise SourcePermissionError("A signed-in user is required", self.collection)
        response = await self._request(
            "GET", "", params={"view": list_filter.value, "user": user_id}
        )
        return self._documents(response)

    async def get(self, entity_id: str) -> T:
        response = await self._request("GET", f"/{entity_id}")
        try:
            document = response.json()
        except ValueError as e:
            raise SourceDataError(f"Invalid JSON for {entity_id}", self.collection) from e

        entity = self.adapter.parse(document)
        if entity is None:
            raise SourceDataError(f"Malformed document {entity_id}", self.collection)
        return entity

    async def get_by_ids(self, entity_ids: list[str]) -> list[T]:
        if not entity_ids:
            return []
        response = await self._request("GET", "", params={"ids": ",".join(entity_ids)})
        return self._documents(response)

    async def add(self, entity: T) -> None:
        await self.edit(self.adapter.entity_id(entity), entity)

    async def edit(self, entity_id: str, entity: T) -> None:
        await self._request("PUT", f"/{entity_id}", json=entity.model_dump(mode="json"))

    async def delete(self, entity_id: str, user_id: Optional[str] = None) -> None:
        params = {"user": user_id} if user_id else None
        await self._request("DELETE", f"/{entity_id}", params=params)

    async def get_common(self, user_ids: list[str]) -> list[T]:
        if not user_ids:
            return []
        response = await self._request("GET", "", params={"members": ",".join(user_ids)})
        return self._documents(response)


class HTTPGroupStore(HTTPDocumentStore[Group]):
    """REST group store supporting membership changes."""

    async def _membership(
        self, method: str, entity_id: str, user_id: str, conflict: MembershipResult
    ) -> MembershipResult:
        try:
            response = await self._request(
                method, f"/{entity_id}/members/{user_id}", allow_conflict=True
            )
        except SourceNotFoundError:
            return MembershipResult.NOT_FOUND
        if response.status_code == 409:
            return conflict
        return MembershipResult.OK

    async def join(self, entity_id: str, user_id: str) -> MembershipResult:
        return await self._membership("POST", entity_id, user_id, MembershipResult.ALREADY_MEMBER)

    async def leave(self, entity_id: str, user_id: str) -> MembershipResult:
        return await self._membership("DELETE", entity_id, user_id, MembershipResult.NOT_A_MEMBER)
