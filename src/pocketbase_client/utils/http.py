"""
HTTP request dispatcher (synchronous).

Builds URLs, attaches the default and auth headers, performs exactly one
round trip per call and turns failures into :class:`ClientException`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from pocketbase_client.errors import (
    ClientException,
    NetworkError,
    TimeoutError,
    create_error_from_response,
)
from pocketbase_client.utils.url import join_url

if TYPE_CHECKING:
    from pocketbase_client.auth_store import AuthStore
    from pocketbase_client.config import ResolvedConfig

JSON_PAYLOAD_FIELD = "@jsonPayload"


@dataclass(frozen=True)
class FilePart:
    """A file to upload as part of a multipart request."""

    field: str
    content: bytes
    filename: str = "file"
    content_type: str = "application/octet-stream"

    def renamed(self, field: str) -> FilePart:
        return FilePart(field, self.content, self.filename, self.content_type)


class BaseHttpClient:
    """Request building and response handling shared by both dispatchers."""

    def __init__(self, config: ResolvedConfig, auth_store: AuthStore) -> None:
        self._config = config
        self._auth_store = auth_store

    @property
    def config(self) -> ResolvedConfig:
        return self._config

    @property
    def auth_store(self) -> AuthStore:
        return self._auth_store

    def build_url(self, path: str, query: Mapping[str, Any] | None = None) -> str:
        """Absolute URL for ``path`` relative to the configured base URL."""
        return join_url(self._config.base_url, path, query)

    def _build_headers(self, headers: Mapping[str, str] | None = None) -> dict[str, str]:
        """Caller headers first, then defaults for anything they didn't set."""
        result = dict(headers or {})
        present = {key.lower() for key in result}

        defaults = {
            "Accept-Language": self._config.lang,
            "User-Agent": self._config.user_agent,
            **self._config.headers,
        }
        if self._auth_store.is_valid():
            defaults["Authorization"] = self._auth_store.token

        for key, value in defaults.items():
            if key.lower() not in present:
                result[key] = value
                present.add(key.lower())

        return result

    def _build_request_kwargs(
        self,
        headers: dict[str, str],
        body: Any,
        files: Sequence[FilePart] | None,
    ) -> dict[str, Any]:
        if files:
            data: dict[str, str] = {}
            if body is not None:
                data[JSON_PAYLOAD_FIELD] = json.dumps(body, default=str)
            return {
                "headers": headers,
                "data": data,
                "files": [
                    (part.field, (part.filename, part.content, part.content_type))
                    for part in files
                ],
            }

        kwargs: dict[str, Any] = {"headers": headers}
        if body is not None:
            if not any(key.lower() == "content-type" for key in headers):
                headers["Content-Type"] = "application/json"
            kwargs["content"] = json.dumps(body, default=str).encode("utf-8")
        return kwargs

    def _handle_response(self, response: httpx.Response, url: str) -> Any:
        if not response.is_success:
            raise self._error_from_response(response, url)

        if response.status_code == 204 or not response.content:
            return None

        try:
            data = response.json()
        except ValueError:
            if self._config.debug_fn:
                self._config.debug_fn(
                    "Ignoring unparsable response body",
                    {"url": url, "status": response.status_code},
                )
            return None

        if isinstance(data, (dict, list)):
            return data
        return None

    def _error_from_response(self, response: httpx.Response, url: str) -> ClientException:
        text = response.text
        body: dict[str, Any] = {}
        try:
            parsed = response.json()
            if isinstance(parsed, dict):
                body = parsed
            elif text:
                body = {"error": text}
        except ValueError:
            if text:
                body = {"error": text}

        return create_error_from_response(
            response.status_code,
            body,
            url=url,
            original_error=text,
        )

    def _error_from_transport(self, error: httpx.HTTPError, url: str) -> ClientException:
        if isinstance(error, httpx.TimeoutException):
            return TimeoutError(url=url, original_error=error)
        return NetworkError(url=url, original_error=error)


class HttpClient(BaseHttpClient):
    """
    Blocking dispatcher built on ``httpx.Client``.

    Example:
        >>> http = HttpClient(config, AuthStore())
        >>> http.get("/api/health")
    """

    def __init__(
        self,
        config: ResolvedConfig,
        auth_store: AuthStore,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(config, auth_store)
        self._client = httpx.Client(timeout=config.timeout, transport=transport)

    @property
    def client(self) -> httpx.Client:
        return self._client

    def send(
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
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise self._error_from_transport(e, url) from e

        return self._handle_response(response, url)

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.send(path, "GET", **kwargs)

    def post(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return self.send(path, "POST", body=body, **kwargs)

    def put(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return self.send(path, "PUT", body=body, **kwargs)

    def patch(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return self.send(path, "PATCH", body=body, **kwargs)

    def delete(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return self.send(path, "DELETE", body=body, **kwargs)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def create_http_client(
    config: ResolvedConfig,
    auth_store: AuthStore,
    transport: httpx.BaseTransport | None = None,
) -> HttpClient:
    """Create a blocking dispatcher."""
    return HttpClient(config, auth_store, transport=transport)
