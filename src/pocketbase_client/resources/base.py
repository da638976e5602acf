"""
Base resource classes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pocketbase_client.utils.async_http import AsyncHttpClient
    from pocketbase_client.utils.http import HttpClient


class BaseResource:
    """Base class for sync resources."""

    def __init__(self, http: HttpClient) -> None:
        self._http = http


class AsyncBaseResource:
    """Base class for async resources."""

    def __init__(self, http: AsyncHttpClient) -> None:
        self._http = http
