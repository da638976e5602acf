"""
Files resource.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pocketbase_client.resources.base import AsyncBaseResource, BaseResource
from pocketbase_client.resources.crud import build_query
from pocketbase_client.types.records import RecordModel
from pocketbase_client.utils.url import encode_segment

FILES_PATH = "/api/files"
FILE_TOKEN_PATH = "/api/files/token"


class _FileUrlMixin:
    _http: Any

    def get_url(
        self,
        record: RecordModel | None,
        filename: str,
        *,
        thumb: str | None = None,
        token: str | None = None,
        download: bool = False,
        query: Mapping[str, Any] | None = None,
    ) -> str:
        """
        Absolute URL of a file attached to ``record``.

        Returns an empty string when the record has no id or ``filename`` is
        empty.

        Example:
            >>> pb.files.get_url(post, post.get("cover"), thumb="100x100")
            'http://127.0.0.1:8090/api/files/pbc_123/abc/cover.png?thumb=100x100'
        """
        if not filename or record is None or not record.id:
            return ""

        params = build_query(query, thumb=thumb, token=token)
        if download:
            params["download"] = ""

        path = "/".join(
            (
                FILES_PATH,
                encode_segment(record.collection_id or record.collection_name),
                encode_segment(record.id),
                encode_segment(filename),
            )
        )
        return self._http.build_url(path, params)


class FilesResource(_FileUrlMixin, BaseResource):
    """Files resource (sync)."""

    def get_token(
        self,
        body: Any = None,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Request a short-lived token for protected file access."""
        data = self._http.post(FILE_TOKEN_PATH, body, query=query, headers=headers)
        return (data or {}).get("token", "")


class AsyncFilesResource(_FileUrlMixin, AsyncBaseResource):
    """Files resource (async)."""

    async def get_token(
        self,
        body: Any = None,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Request a short-lived token for protected file access."""
        data = await self._http.post(FILE_TOKEN_PATH, body, query=query, headers=headers)
        return (data or {}).get("token", "")
