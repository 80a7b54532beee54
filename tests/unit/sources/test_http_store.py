"""Unit tests for the httpx-based REST document store."""

import json
from collections.abc import AsyncGenerator
from typing import Any, Callable

import httpx
import pytest

from joinme.cache.adapters import EventAdapter, GroupAdapter
from joinme.models import Event, Group, ListFilter, MembershipResult
from joinme.sources import (
    HTTPDocumentStore,
    HTTPGroupStore,
    SourceConnectionError,
    SourceDataError,
    SourceError,
    SourceNotFoundError,
    SourcePermissionError,
    SourceTimeoutError,
)

BASE_URL = "https://api.joinme.test/v1"


class RecordingHandler:
    """MockTransport handler returning queued responses and recording requests."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[Any] = []

    def queue(self, response: Any) -> None:
        self.responses.append(response)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
async def event_store(
    handler: RecordingHandler,
) -> AsyncGenerator[HTTPDocumentStore[Event], None]:
    async with HTTPDocumentStore(
        EventAdapter(), BASE_URL, api_token="secret", transport=httpx.MockTransport(handler)
    ) as store:
        yield store


@pytest.fixture
async def group_store(handler: RecordingHandler) -> AsyncGenerator[HTTPGroupStore, None]:
    async with HTTPGroupStore(
        GroupAdapter(), BASE_URL, transport=httpx.MockTransport(handler)
    ) as store:
        yield store


class TestHTTPDocumentStoreReads:
    """Test request shapes and payload parsing."""

    @pytest.mark.asyncio
    async def test_get_all_when_ok_then_view_and_user_sent(
        self,
        event_store: HTTPDocumentStore[Event],
        handler: RecordingHandler,
        make_event: Callable[..., Event],
    ) -> None:
        handler.queue(httpx.Response(200, json=[make_event("e1").model_dump(mode="json")]))

        result = await event_store.get_all(ListFilter.SEARCH, "u1")

        assert [e.event_id for e in result] == ["e1"]
        request = handler.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/v1/events"
        assert request.url.params["view"] == "search"
        assert request.url.params["user"] == "u1"
        assert request.headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_get_all_when_wrapped_payload_with_bad_document_then_skipped(
        self,
        event_store: HTTPDocumentStore[Event],
        handler: RecordingHandler,
        make_event: Callable[..., Event],
    ) -> None:
        documents = [make_event("e1").model_dump(mode="json"), {"event_id": "broken"}]
        handler.queue(httpx.Response(200, json={"documents": documents}))

        result = await event_store.get_all(ListFilter.OVERVIEW, "u1")

        assert [e.event_id for e in result] == ["e1"]

    @pytest.mark.asyncio
    async def test_get_all_when_no_user_then_permission_error_without_request(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        with pytest.raises(SourcePermissionError):
            await event_store.get_all(ListFilter.OVERVIEW, None)

        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_get_when_ok_then_entity_parsed(
        self,
        event_store: HTTPDocumentStore[Event],
        handler: RecordingHandler,
        make_event: Callable[..., Event],
    ) -> None:
        event = make_event("e1")
        handler.queue(httpx.Response(200, json=event.model_dump(mode="json")))

        assert await event_store.get("e1") == event
        assert handler.requests[0].url.path == "/v1/events/e1"

    @pytest.mark.asyncio
    async def test_get_when_document_malformed_then_data_error(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        handler.queue(httpx.Response(200, json={"title": "no id"}))

        with pytest.raises(SourceDataError):
            await event_store.get("e1")

    @pytest.mark.asyncio
    async def test_get_all_when_body_not_json_then_data_error(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        handler.queue(httpx.Response(200, content=b"<html>oops</html>"))

        with pytest.raises(SourceDataError):
            await event_store.get_all(ListFilter.OVERVIEW, "u1")

    @pytest.mark.asyncio
    async def test_get_by_ids_when_called_then_ids_joined(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        handler.queue(httpx.Response(200, json=[]))

        assert await event_store.get_by_ids(["e1", "e2"]) == []
        assert handler.requests[0].url.params["ids"] == "e1,e2"

    @pytest.mark.asyncio
    async def test_get_common_when_called_then_members_joined(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        handler.queue(httpx.Response(200, json=[]))

        await event_store.get_common(["a", "b"])

        assert handler.requests[0].url.params["members"] == "a,b"

    @pytest.mark.asyncio
    async def test_get_common_when_no_users_then_no_request(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        assert await event_store.get_common([]) == []
        assert handler.requests == []


class TestHTTPDocumentStoreWrites:
    """Test write requests."""

    @pytest.mark.asyncio
    async def test_add_when_called_then_document_put_under_its_id(
        self,
        event_store: HTTPDocumentStore[Event],
        handler: RecordingHandler,
        make_event: Callable[..., Event],
    ) -> None:
        handler.queue(httpx.Response(204))

        await event_store.add(make_event("e1"))

        request = handler.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/v1/events/e1"
        assert json.loads(request.content)["event_id"] == "e1"

    @pytest.mark.asyncio
    async def test_delete_when_user_given_then_sent_as_param(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        handler.queue(httpx.Response(204))

        await event_store.delete("e1", user_id="u1")

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert request.url.params["user"] == "u1"

    def test_new_id_when_called_then_unique(self) -> None:
        store = HTTPDocumentStore(EventAdapter(), BASE_URL)

        assert store.new_id() != store.new_id()


class TestHTTPErrorMapping:
    """Test translation of transport and status failures."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (404, SourceNotFoundError),
            (401, SourcePermissionError),
            (403, SourcePermissionError),
            (500, SourceError),
            (409, SourceError),
        ],
    )
    async def test_get_when_error_status_then_mapped(
        self,
        status: int,
        expected: type[Exception],
        event_store: HTTPDocumentStore[Event],
        handler: RecordingHandler,
    ) -> None:
        handler.queue(httpx.Response(status))

        with pytest.raises(expected):
            await event_store.get("e1")

    @pytest.mark.asyncio
    async def test_get_when_transport_times_out_then_timeout_error(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        handler.queue(httpx.ReadTimeout("slow"))

        with pytest.raises(SourceTimeoutError):
            await event_store.get("e1")

    @pytest.mark.asyncio
    async def test_get_when_connection_refused_then_connection_error(
        self, event_store: HTTPDocumentStore[Event], handler: RecordingHandler
    ) -> None:
        handler.queue(httpx.ConnectError("refused"))

        with pytest.raises(SourceConnectionError):
            await event_store.get("e1")


class TestHTTPGroupStore:
    """Test membership endpoints."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("operation", "method", "status", "expected"),
        [
            ("join", "POST", 204, MembershipResult.OK),
            ("join", "POST", 409, MembershipResult.ALREADY_MEMBER),
            ("join", "POST", 404, MembershipResult.NOT_FOUND),
            ("leave", "DELETE", 204, MembershipResult.OK),
            ("leave", "DELETE", 409, MembershipResult.NOT_A_MEMBER),
            ("leave", "DELETE", 404, MembershipResult.NOT_FOUND),
        ],
    )
    async def test_membership_when_status_then_result(
        self,
        operation: str,
        method: str,
        status: int,
        expected: MembershipResult,
        group_store: HTTPGroupStore,
        handler: RecordingHandler,
    ) -> None:
        handler.queue(httpx.Response(status))

        result = await getattr(group_store, operation)("g1", "u2")

        assert result == expected
        request = handler.requests[0]
        assert request.method == method
        assert request.url.path == "/v1/groups/g1/members/u2"

    @pytest.mark.asyncio
    async def test_join_when_server_error_then_raises(
        self, group_store: HTTPGroupStore, handler: RecordingHandler
    ) -> None:
        handler.queue(httpx.Response(503))

        with pytest.raises(SourceError):
            await group_store.join("g1", "u2")

    @pytest.mark.asyncio
    async def test_get_all_when_groups_listed_then_parsed(
        self,
        group_store: HTTPGroupStore,
        handler: RecordingHandler,
        make_group: Callable[..., Group],
    ) -> None:
        handler.queue(httpx.Response(200, json=[make_group("g1").model_dump(mode="json")]))

        result = await group_store.get_all(ListFilter.OVERVIEW, "u1")

        assert [g.group_id for g in result] == ["g1"]
        assert "Authorization" not in handler.requests[0].headers
