"""Unit tests for AsyncPocketBase."""

from __future__ import annotations

from typing import Any

import httpx
import pytest
import respx

from pocketbase_client import (
    AsyncPocketBase,
    PocketBaseClientConfig,
    RealtimeConfig,
    create_async_client,
)
from pocketbase_client.errors import NotFoundError
from pocketbase_client.realtime import PollingSseTransport, StreamingSseTransport
from pocketbase_client.types import RecordModel


class TestAsyncPocketBase:
    """Tests for AsyncPocketBase."""

    @pytest.mark.asyncio
    async def test_client_initialization(self) -> None:
        """Test client initialization."""
        client = AsyncPocketBase("http://127.0.0.1:8090")
        assert client.base_url == "http://127.0.0.1:8090"
        assert client.realtime.client_id == ""
        await client.close()

    @pytest.mark.asyncio
    async def test_client_context_manager(self) -> None:
        """Test client as async context manager."""
        async with AsyncPocketBase("http://127.0.0.1:8090") as client:
            assert client is not None

    @pytest.mark.asyncio
    async def test_create_async_client(self) -> None:
        """Test the factory."""
        client = create_async_client("http://127.0.0.1:8090", lang="es-ES")
        assert client.lang == "es-ES"
        await client.close()

    @pytest.mark.asyncio
    async def test_collection_shares_realtime(self) -> None:
        """Test record resources are cached and use the client's realtime service."""
        async with AsyncPocketBase("http://127.0.0.1:8090") as client:
            posts = client.collection("posts")
            assert client.collection("posts") is posts
            assert posts._require_realtime() is client.realtime

    @pytest.mark.parametrize(
        ("kind", "transport_class"),
        [("streaming", StreamingSseTransport), ("polling", PollingSseTransport)],
    )
    @pytest.mark.asyncio
    async def test_realtime_transport_selection(self, kind: str, transport_class: type) -> None:
        """Test the configured strategy is used for the realtime stream."""
        config = PocketBaseClientConfig(
            base_url="http://127.0.0.1:8090",
            realtime=RealtimeConfig(transport=kind),  # type: ignore[arg-type]
        )
        async with AsyncPocketBase(config=config) as client:
            transport = client.realtime._create_transport()
            assert isinstance(transport, transport_class)
            assert transport.url == "http://127.0.0.1:8090/api/realtime"

    @pytest.mark.asyncio
    async def test_close_closes_realtime(
        self, realtime_client: AsyncPocketBase, realtime_server: Any
    ) -> None:
        """Test closing the client ends the realtime session."""
        await realtime_client.realtime.subscribe("posts/*", lambda m: None)

        await realtime_client.close()

        assert realtime_client.realtime.is_connected is False
        assert realtime_client.realtime.subscriptions == {}


class TestAsyncResources:
    """Tests for the async resources."""

    @pytest.mark.asyncio
    async def test_get_list(
        self, async_mocked_client: AsyncPocketBase, mock_api: respx.MockRouter
    ) -> None:
        """Test listing records."""
        mock_api.get("/api/collections/posts/records").mock(
            return_value=httpx.Response(
                200,
                json={"page": 1, "perPage": 30, "totalItems": 1, "totalPages": 1, "items": [{"id": "a"}]},
            )
        )

        result = await async_mocked_client.collection("posts").get_list()

        assert result.total_items == 1
        assert result.items[0].id == "a"

    @pytest.mark.asyncio
    async def test_get_full_list(
        self, async_mocked_client: AsyncPocketBase, mock_api: respx.MockRouter
    ) -> None:
        """Test the async full list walks pages."""
        mock_api.get("/api/collections/posts/records").mock(
            side_effect=[
                httpx.Response(200, json={"items": [{"id": "a"}]}),
                httpx.Response(200, json={"items": []}),
            ]
        )

        items = await async_mocked_client.collection("posts").get_full_list(batch=1)

        assert [item.id for item in items] == ["a"]

    @pytest.mark.asyncio
    async def test_get_one_missing(
        self, async_mocked_client: AsyncPocketBase, mock_api: respx.MockRouter
    ) -> None:
        """Test a 404 from the server."""
        mock_api.get("/api/collections/posts/records/nope").mock(
            return_value=httpx.Response(404, json={"message": "not found"})
        )

        with pytest.raises(NotFoundError) as exc_info:
            await async_mocked_client.collection("posts").get_one("nope")

        assert exc_info.value.response["message"] == "not found"

    @pytest.mark.asyncio
    async def test_auth_with_password(
        self,
        async_mocked_client: AsyncPocketBase,
        mock_api: respx.MockRouter,
        valid_token: str,
    ) -> None:
        """Test async password auth updates the store."""
        mock_api.post("/api/collections/users/auth-with-password").mock(
            return_value=httpx.Response(
                200, json={"token": valid_token, "record": {"id": "u1", "collectionName": "users"}}
            )
        )
        events: list[Any] = []
        async_mocked_client.auth_store.on_change.subscribe(events.append, replay_history=False)

        await async_mocked_client.collection("users").auth_with_password("a@b.c", "secret")

        assert async_mocked_client.auth_store.is_valid() is True
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_delete_own_record(
        self,
        async_mocked_client: AsyncPocketBase,
        mock_api: respx.MockRouter,
        valid_token: str,
    ) -> None:
        """Test deleting the authenticated record clears the store."""
        async_mocked_client.auth_store.save(
            valid_token, RecordModel.model_validate({"id": "u1", "collectionName": "users"})
        )
        mock_api.delete("/api/collections/users/records/u1").mock(return_value=httpx.Response(204))

        await async_mocked_client.collection("users").delete("u1")

        assert async_mocked_client.auth_store.token == ""

    @pytest.mark.asyncio
    async def test_impersonate(
        self,
        async_mocked_client: AsyncPocketBase,
        mock_api: respx.MockRouter,
        valid_token: str,
    ) -> None:
        """Test async impersonation returns a new client."""
        mock_api.post("/api/collections/users/impersonate/u2").mock(
            return_value=httpx.Response(200, json={"token": valid_token, "record": {"id": "u2"}})
        )

        client = await async_mocked_client.collection("users").impersonate("u2")
        try:
            assert client is not async_mocked_client
            assert client.auth_store.record.id == "u2"
            assert async_mocked_client.auth_store.token == ""
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_health_and_files(
        self, async_mocked_client: AsyncPocketBase, mock_api: respx.MockRouter
    ) -> None:
        """Test the async health and file token calls."""
        mock_api.get("/api/health").mock(
            return_value=httpx.Response(200, json={"code": 200, "message": "API is healthy."})
        )
        mock_api.post("/api/files/token").mock(return_value=httpx.Response(200, json={"token": "t"}))

        assert (await async_mocked_client.health.check()).message == "API is healthy."
        assert await async_mocked_client.files.get_token() == "t"

    @pytest.mark.asyncio
    async def test_collections(
        self, async_mocked_client: AsyncPocketBase, mock_api: respx.MockRouter
    ) -> None:
        """Test fetching a collection definition."""
        mock_api.get("/api/collections/posts").mock(
            return_value=httpx.Response(200, json={"id": "pbc_1", "name": "posts", "type": "base"})
        )

        collection = await async_mocked_client.collections.get_one("posts")

        assert collection.id == "pbc_1"
