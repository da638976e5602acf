"""Unit tests for the async HTTP client."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
import respx

from pocketbase_client.auth_store import AuthStore
from pocketbase_client.config import ResolvedConfig
from pocketbase_client.errors import NetworkError, NotFoundError, ValidationError
from pocketbase_client.utils.async_http import AsyncHttpClient, create_async_http_client
from pocketbase_client.utils.http import FilePart

BASE_URL = "http://localhost:8090"


@pytest_asyncio.fixture
async def http_client(resolved_config: ResolvedConfig) -> AsyncGenerator[AsyncHttpClient, None]:
    """Create an async HTTP client for tests."""
    async with create_async_http_client(resolved_config, AuthStore()) as client:
        yield client


class TestAsyncHttpClient:
    """Tests for AsyncHttpClient."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_request(self, http_client: AsyncHttpClient) -> None:
        """Test GET request with query params."""
        route = respx.get(f"{BASE_URL}/api/collections/posts/records").mock(
            return_value=httpx.Response(200, json={"items": []})
        )

        result = await http_client.get("/api/collections/posts/records", query={"page": 1})

        assert result == {"items": []}
        assert route.calls.last.request.url.params["page"] == "1"

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_request(self, http_client: AsyncHttpClient) -> None:
        """Test POST with JSON body."""
        route = respx.post(f"{BASE_URL}/api/x").mock(return_value=httpx.Response(204))

        assert await http_client.post("/api/x", {"clientId": "c1"}) is None
        assert json.loads(route.calls.last.request.content) == {"clientId": "c1"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_auth_header(self, resolved_config: ResolvedConfig, valid_token: str) -> None:
        """Test the stored token is attached."""
        store = AuthStore()
        store.save(valid_token, None)
        route = respx.get(f"{BASE_URL}/api/x").mock(return_value=httpx.Response(200, json={}))

        async with AsyncHttpClient(resolved_config, store) as client:
            await client.get("/api/x")

        assert route.calls.last.request.headers["Authorization"] == valid_token

    @pytest.mark.asyncio
    @respx.mock
    async def test_multipart(self, http_client: AsyncHttpClient) -> None:
        """Test file uploads without a JSON body."""
        route = respx.post(f"{BASE_URL}/api/x").mock(return_value=httpx.Response(200, json={}))

        await http_client.post("/api/x", files=[FilePart("document", b"data", "a.txt")])

        content = route.calls.last.request.content
        assert b'name="document"; filename="a.txt"' in content
        assert b"@jsonPayload" not in content

    @pytest.mark.asyncio
    @respx.mock
    async def test_not_found(self, http_client: AsyncHttpClient) -> None:
        """Test 404 handling."""
        respx.get(f"{BASE_URL}/api/x").mock(
            return_value=httpx.Response(404, json={"message": "not found"})
        )

        with pytest.raises(NotFoundError) as exc_info:
            await http_client.get("/api/x")

        assert exc_info.value.status_code == 404
        assert exc_info.value.response["message"] == "not found"

    @pytest.mark.asyncio
    @respx.mock
    async def test_validation_error_data(self, http_client: AsyncHttpClient) -> None:
        """Test field errors are kept in the response body."""
        body = {"message": "Failed to create record.", "data": {"title": {"code": "validation_required"}}}
        respx.post(f"{BASE_URL}/api/x").mock(return_value=httpx.Response(400, json=body))

        with pytest.raises(ValidationError) as exc_info:
            await http_client.post("/api/x", {})

        assert exc_info.value.response["data"]["title"]["code"] == "validation_required"

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error(self, http_client: AsyncHttpClient) -> None:
        """Test connection failures."""
        respx.get(f"{BASE_URL}/api/x").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(NetworkError):
            await http_client.get("/api/x")
