"""Pytest fixtures and configuration."""

from __future__ import annotations

import asyncio
import base64
import json
import os
import time
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Generator
from typing import Any

import httpx
import pytest
import pytest_asyncio
import respx

from pocketbase_client import AsyncPocketBase, PocketBase, RealtimeConfig
from pocketbase_client.config import PocketBaseClientConfig, ResolvedConfig, resolve_config

TEST_BASE_URL = "http://localhost:8090"


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def make_token(payload: dict[str, Any]) -> str:
    """Build an unsigned JWT-shaped token carrying ``payload``."""

    def encode(data: dict[str, Any]) -> str:
        raw = json.dumps(data).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{encode({'alg': 'HS256', 'typ': 'JWT'})}.{encode(payload)}.signature"


class StreamBody(httpx.AsyncByteStream):
    """Response body that yields pushed chunks and only ends when told to."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self.closed = False

    def push(self, chunk: bytes | str) -> None:
        self._queue.put_nowait(chunk.encode("utf-8") if isinstance(chunk, str) else chunk)

    def end(self) -> None:
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class FakeRealtimeServer:
    """
    In-process PocketBase stand-in for realtime tests.

    Every ``GET /api/realtime`` opens a new :class:`StreamBody` that starts
    with a ``PB_CONNECT`` message (unless ``client_id`` is empty).
    ``POST /api/realtime`` submits are recorded. Other endpoints can be
    registered in ``routes``.
    """

    def __init__(self) -> None:
        self.streams: list[StreamBody] = []
        self.submits: list[dict[str, Any]] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.client_ids = iter(f"client-{n}" for n in range(1, 1000))
        self.send_connect = True
        self.stream_status = 200
        self.submit_status = 204
        self.refuse_connections = False
        self.connect_attempts = 0

    @property
    def stream(self) -> StreamBody:
        return self.streams[-1]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def push(self, event: str, data: Any, id: str = "") -> None:
        payload = data if isinstance(data, str) else json.dumps(data)
        frame = f"event: {event}\ndata: {payload}\n\n"
        if id:
            frame = f"id: {id}\n{frame}"
        self.stream.push(frame)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if path == "/api/realtime" and request.method == "GET":
            self.connect_attempts += 1
            if self.refuse_connections:
                raise httpx.ConnectError("Connection refused", request=request)
            if self.stream_status != 200:
                return httpx.Response(self.stream_status, json={"message": "unavailable"})

            body = StreamBody()
            self.streams.append(body)
            if self.send_connect:
                client_id = next(self.client_ids)
                body.push(
                    f"id:{client_id}\nevent:PB_CONNECT\n"
                    f'data:{{"clientId":"{client_id}"}}\n\n'
                )
            return httpx.Response(
                200,
                headers={"Content-Type": "text/event-stream"},
                stream=body,
            )

        if path == "/api/realtime" and request.method == "POST":
            self.submits.append(json.loads(request.content))
            if self.submit_status != 204:
                return httpx.Response(self.submit_status, json={"message": "Invalid client."})
            return httpx.Response(204)

        route = self.routes.get((request.method, path))
        if route is not None:
            return route(request)
        return httpx.Response(404, json={"code": 404, "message": "Not found."})


@pytest.fixture
def base_url() -> str:
    """Get base URL from environment or use localhost."""
    return os.environ.get("POCKETBASE_URL", TEST_BASE_URL)


@pytest.fixture
def resolved_config() -> ResolvedConfig:
    """Resolved config pointing at the test server."""
    return resolve_config(PocketBaseClientConfig(base_url=TEST_BASE_URL))


@pytest.fixture
def valid_token() -> str:
    """Token that expires in an hour."""
    return make_token({"id": "user_1", "collectionId": "_pb_users_auth_", "exp": time.time() + 3600})


@pytest.fixture
def expired_token() -> str:
    """Token that expired an hour ago."""
    return make_token({"id": "user_1", "collectionId": "_pb_users_auth_", "exp": time.time() - 3600})


@pytest.fixture
def token_factory() -> Callable[[dict[str, Any]], str]:
    """Build tokens with arbitrary claims."""
    return make_token


@pytest.fixture
def mock_api() -> Generator[respx.MockRouter, None, None]:
    """Create a mock API router."""
    with respx.mock(base_url=TEST_BASE_URL) as router:
        yield router


@pytest.fixture
def mocked_client(mock_api: respx.MockRouter) -> Generator[PocketBase, None, None]:
    """Create a PocketBase client with mocked API."""
    with PocketBase(TEST_BASE_URL) as client:
        yield client


@pytest_asyncio.fixture
async def async_mocked_client(
    mock_api: respx.MockRouter,
) -> AsyncGenerator[AsyncPocketBase, None]:
    """Create an AsyncPocketBase client with mocked API."""
    async with AsyncPocketBase(TEST_BASE_URL) as client:
        yield client


@pytest.fixture
def realtime_server() -> FakeRealtimeServer:
    """In-process realtime server."""
    return FakeRealtimeServer()


@pytest.fixture
def fast_realtime_config() -> RealtimeConfig:
    """Realtime config with millisecond reconnect delays."""
    return RealtimeConfig(retry_delays=(1, 2, 5), poll_interval=0.005)


@pytest_asyncio.fixture
async def realtime_client(
    realtime_server: FakeRealtimeServer,
    fast_realtime_config: RealtimeConfig,
) -> AsyncGenerator[AsyncPocketBase, None]:
    """AsyncPocketBase wired to the in-process realtime server."""
    config = PocketBaseClientConfig(base_url=TEST_BASE_URL, realtime=fast_realtime_config)
    async with AsyncPocketBase(config=config, transport=realtime_server.transport) as client:
        yield client


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Poll a condition on the running loop until it holds (or fail)."""

    async def wait(condition: Callable[[], bool], timeout: float = 2.0) -> None:
        deadline = time.monotonic() + timeout
        while not condition():
            if time.monotonic() > deadline:
                pytest.fail("condition not met in time")
            await asyncio.sleep(0.005)

    return wait
