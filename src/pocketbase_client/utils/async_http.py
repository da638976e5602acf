"""
HTTP request dispatcher (asynchronous).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import httpx

from pocketbase_client.utils.http import BaseHttpClient, FilePart

if TYPE_CHECKING:
    from pocketbase_client.auth_store import AuthStore
    from pocketbase_client.config import ResolvedConfig


class AsyncHttpClient(BaseHttpClient):
    """
    Async dispatcher built on ``httpx.AsyncClient``.

    The underlying client is also used by the streaming realtime transport.
    """

    def __init__(
        self,
        config: ResolvedConfig,
        auth_store: AuthStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, auth_store)
        self._client = httpx.AsyncClient(timeout=config.timeout, transport=transport)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

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
        """
        Perform a single request and return the decoded JSON body.

        Raises:
            ClientException: On a non-2xx response or a transport failure
        """
        url = self.build_url(path, query)
        kwargs = self._build_request_kwargs(self._build_headers(headers), body, files)

        if self._config.debug_fn:
            self._config.debug_fn("HTTP request", {"method": method, "url": url})

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise self._error_from_transport(e, url) from e

        return self._handle_response(response, url)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.send(path, "GET", **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.send(path, "POST", body=body, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.send(path, "PUT", body=body, **kwargs)

    async def patch(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.send(path, "PATCH", body=body, **kwargs)

    async def delete(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.send(path, "DELETE", body=body, **kwargs)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def create_async_http_client(
    config: ResolvedConfig,
    auth_store: AuthStore,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncHttpClient:
    """Create an async dispatcher."""
    return AsyncHttpClient(config, auth_store, transport=transport)
