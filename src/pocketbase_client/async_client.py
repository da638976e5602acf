"""
Async PocketBase Client

Main entry point for the async PocketBase SDK, including realtime.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from pocketbase_client.auth_store import AuthStore
from pocketbase_client.client import build_client_config
from pocketbase_client.config import (
    PocketBaseClientConfig,
    ResolvedConfig,
    resolve_config,
    validate_config,
)
from pocketbase_client.realtime.service import RealtimeService
from pocketbase_client.resources.batch import AsyncBatchResource
from pocketbase_client.resources.collections import AsyncCollectionsResource
from pocketbase_client.resources.files import AsyncFilesResource
from pocketbase_client.resources.health import AsyncHealthResource
from pocketbase_client.resources.records import AsyncRecordsResource
from pocketbase_client.utils.async_http import create_async_http_client
from pocketbase_client.utils.filter import build_filter
from pocketbase_client.utils.http import FilePart


class AsyncPocketBase:
    """
    PocketBase client (asynchronous).

    Example:
        >>> from pocketbase_client import AsyncPocketBase
        >>> async with AsyncPocketBase("http://127.0.0.1:8090") as pb:
        ...     await pb.collection("users").auth_with_password("test@example.com", "1234567890")
        ...     unsubscribe = await pb.collection("posts").subscribe(
        ...         "*", lambda e: print(e.action, e.record.id)
        ...     )
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        lang: str | None = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
        debug: bool = False,
        auth_store: AuthStore | None = None,
        config: PocketBaseClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the async client.

        Args:
            base_url: PocketBase server URL, e.g. ``http://127.0.0.1:8090``
            lang: ``Accept-Language`` sent with every request
            timeout: Request timeout in seconds
            headers: Extra headers sent with every request
            debug: Enable debug logging
            auth_store: Auth state holder (in-memory :class:`AuthStore` by default)
            config: Full configuration object (overrides the other params)
            transport: Custom httpx transport, also used by the realtime stream
        """
        self._client_config = build_client_config(
            base_url,
            config,
            lang=lang,
            timeout=timeout,
            headers=dict(headers) if headers else None,
            debug=debug,
            **kwargs,
        )
        self._config = resolve_config(self._client_config)
        validate_config(self._config)

        self._transport = transport
        self._auth_store = auth_store if auth_store is not None else AuthStore()
        self._http = create_async_http_client(self._config, self._auth_store, transport)

        self._realtime = RealtimeService(self._http, self._config.realtime)
        self._collections = AsyncCollectionsResource(self._http)
        self._files = AsyncFilesResource(self._http)
        self._health = AsyncHealthResource(self._http)
        self._record_resources: dict[str, AsyncRecordsResource] = {}

        if self._config.debug_fn:
            self._config.debug_fn(
                "AsyncPocketBase client initialized",
                {
                    "base_url": self._config.base_url,
                    "lang": self._config.lang,
                    "realtime_transport": self._config.realtime.transport,
                },
            )

    # Resource properties

    @property
    def auth_store(self) -> AuthStore:
        """Current auth state."""
        return self._auth_store

    @property
    def realtime(self) -> RealtimeService:
        """Realtime subscriptions."""
        return self._realtime

    @property
    def collections(self) -> AsyncCollectionsResource:
        """Collection definitions (superuser only)."""
        return self._collections

    @property
    def files(self) -> AsyncFilesResource:
        """File URLs and tokens."""
        return self._files

    @property
    def health(self) -> AsyncHealthResource:
        """Health endpoint (public)."""
        return self._health

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def lang(self) -> str:
        return self._config.lang

    def collection(self, name: str) -> AsyncRecordsResource:
        """Records resource for ``name`` (id or name), cached per collection."""
        if name not in self._record_resources:
            self._record_resources[name] = AsyncRecordsResource(
                self._http,
                name,
                realtime=self._realtime,
                client_factory=self._new_client,
            )
        return self._record_resources[name]

    def create_batch(self) -> AsyncBatchResource:
        """New, empty batch builder."""
        return AsyncBatchResource(self._http)

    # Requests

    def build_url(self, path: str, query: Mapping[str, Any] | None = None) -> str:
        """Absolute URL for ``path`` relative to the server."""
        return self._http.build_url(path, query)

    @staticmethod
    def filter(expr: str, params: Mapping[str, Any] | None = None) -> str:
        """Build a filter expression with safely quoted ``{:name}`` placeholders."""
        return build_filter(expr, params)

    async def send(
        self,
        path: str,
        method: str = "GET",
        *,
        headers: Mapping[str, str] | None = None,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        files: Sequence[FilePart] | None = None,
    ) -> Any:
        """Send a request to an arbitrary endpoint and return the decoded body."""
        return await self._http.send(
            path,
            method,
            headers=headers,
            query=query,
            body=body,
            files=files,
        )

    # Configuration access

    def get_config(self) -> ResolvedConfig:
        """Get current configuration (read-only)."""
        return self._config

    def _new_client(self) -> AsyncPocketBase:
        return AsyncPocketBase(config=self._client_config, transport=self._transport)

    # Context manager

    async def close(self) -> None:
        """Close the realtime session and release resources."""
        await self._realtime.close()
        await self._http.close()

    async def __aenter__(self) -> AsyncPocketBase:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def create_async_client(base_url: str | None = None, **kwargs: Any) -> AsyncPocketBase:
    """
    Create a new AsyncPocketBase client.

    Example:
        >>> from pocketbase_client import create_async_client
        >>> pb = create_async_client("http://127.0.0.1:8090")
    """
    return AsyncPocketBase(base_url, **kwargs)
