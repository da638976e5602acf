"""
PocketBase Client

Main entry point for the synchronous PocketBase SDK.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from pocketbase_client.auth_store import AuthStore
from pocketbase_client.config import (
    PocketBaseClientConfig,
    ResolvedConfig,
    resolve_config,
    validate_config,
)
from pocketbase_client.resources.batch import BatchResource
from pocketbase_client.resources.collections import CollectionsResource
from pocketbase_client.resources.files import FilesResource
from pocketbase_client.resources.health import HealthResource
from pocketbase_client.resources.records import RecordsResource
from pocketbase_client.utils.filter import build_filter
from pocketbase_client.utils.http import FilePart, create_http_client


def build_client_config(
    base_url: str | None,
    config: PocketBaseClientConfig | None,
    **params: Any,
) -> PocketBaseClientConfig:
    """Use ``config`` as is, or build one from keyword parameters."""
    if config is not None:
        return config
    if base_url is None:
        raise ValueError("base_url or config is required")

    params = {key: value for key, value in params.items() if value is not None}
    return PocketBaseClientConfig(base_url=base_url, **params)


class PocketBase:
    """
    PocketBase client (synchronous).

    Example:
        >>> from pocketbase_client import PocketBase
        >>> with PocketBase("http://127.0.0.1:8090") as pb:
        ...     pb.collection("users").auth_with_password("test@example.com", "1234567890")
        ...     posts = pb.collection("posts").get_list(1, 20, filter="published = true")
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
        transport: httpx.BaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: PocketBase server URL, e.g. ``http://127.0.0.1:8090``
            lang: ``Accept-Language`` sent with every request
            timeout: Request timeout in seconds
            headers: Extra headers sent with every request
            debug: Enable debug logging
            auth_store: Auth state holder (in-memory :class:`AuthStore` by default)
            config: Full configuration object (overrides the other params)
            transport: Custom httpx transport (mocking, proxies)
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
        self._http = create_http_client(self._config, self._auth_store, transport)

        self._collections = CollectionsResource(self._http)
        self._files = FilesResource(self._http)
        self._health = HealthResource(self._http)
        self._record_resources: dict[str, RecordsResource] = {}

        if self._config.debug_fn:
            self._config.debug_fn(
                "PocketBase client initialized",
                {"base_url": self._config.base_url, "lang": self._config.lang},
            )

    # Resource properties

    @property
    def auth_store(self) -> AuthStore:
        """Current auth state."""
        return self._auth_store

    @property
    def collections(self) -> CollectionsResource:
        """Collection definitions (superuser only)."""
        return self._collections

    @property
    def files(self) -> FilesResource:
        """File URLs and tokens."""
        return self._files

    @property
    def health(self) -> HealthResource:
        """Health endpoint (public)."""
        return self._health

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def lang(self) -> str:
        return self._config.lang

    def collection(self, name: str) -> RecordsResource:
        """Records resource for ``name`` (id or name), cached per collection."""
        if name not in self._record_resources:
            self._record_resources[name] = RecordsResource(
                self._http,
                name,
                client_factory=self._new_client,
            )
        return self._record_resources[name]

    def create_batch(self) -> BatchResource:
        """New, empty batch builder."""
        return BatchResource(self._http)

    # Requests

    def build_url(self, path: str, query: Mapping[str, Any] | None = None) -> str:
        """Absolute URL for ``path`` relative to the server."""
        return self._http.build_url(path, query)

    @staticmethod
    def filter(expr: str, params: Mapping[str, Any] | None = None) -> str:
        """
        Build a filter expression with safely quoted ``{:name}`` placeholders.

        Example:
            >>> PocketBase.filter("id = {:id} && views > {:views}", {"id": "abc", "views": 5})
            "id = 'abc' && views > 5"
        """
        return build_filter(expr, params)

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
        """Send a request to an arbitrary endpoint and return the decoded body."""
        return self._http.send(
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

    def _new_client(self) -> PocketBase:
        return PocketBase(config=self._client_config, transport=self._transport)

    # Context manager

    def close(self) -> None:
        """Close the client and release resources."""
        self._http.close()

    def __enter__(self) -> PocketBase:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def create_client(base_url: str | None = None, **kwargs: Any) -> PocketBase:
    """
    Create a new PocketBase client.

    Example:
        >>> from pocketbase_client import create_client
        >>> pb = create_client("http://127.0.0.1:8090")
    """
    return PocketBase(base_url, **kwargs)
