"""
Collections resource.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pocketbase_client.resources.crud import AsyncCrudResource, CrudResource
from pocketbase_client.types.collections import CollectionModel

if TYPE_CHECKING:
    from pocketbase_client.utils.async_http import AsyncHttpClient
    from pocketbase_client.utils.http import HttpClient

COLLECTIONS_PATH = "/api/collections"


class CollectionsResource(CrudResource[CollectionModel]):
    """Collection definitions (sync). Requires superuser auth."""

    def __init__(self, http: HttpClient) -> None:
        super().__init__(http, COLLECTIONS_PATH, CollectionModel)


class AsyncCollectionsResource(AsyncCrudResource[CollectionModel]):
    """Collection definitions (async). Requires superuser auth."""

    def __init__(self, http: AsyncHttpClient) -> None:
        super().__init__(http, COLLECTIONS_PATH, CollectionModel)
