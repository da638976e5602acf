"""
Batch resource.

Collects record create/update/upsert/delete sub-requests and sends them as a
single transactional ``/api/batch`` call.

Example:
    >>> batch = pb.create_batch()
    >>> batch.collection("posts").create({"title": "a"})
    >>> batch.collection("posts").delete("abc")
    >>> results = batch.send()
    >>> [r.status for r in results]
    [200, 204]
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pocketbase_client.config import BATCH_PATH
from pocketbase_client.resources.base import AsyncBaseResource, BaseResource
from pocketbase_client.resources.crud import build_query
from pocketbase_client.types.batch import BatchResult
from pocketbase_client.utils.url import encode_segment, join_url

if TYPE_CHECKING:
    from pocketbase_client.utils.async_http import AsyncHttpClient
    from pocketbase_client.utils.http import FilePart, HttpClient


@dataclass
class BatchRequest:
    """A queued sub-request. ``url`` is relative to the server root."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    files: list[FilePart] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "body": self.body,
        }


class SubBatch:
    """Queues sub-requests against the records of one collection."""

    def __init__(self, requests: list[BatchRequest], collection: str) -> None:
        self._requests = requests
        self._collection = collection

    def _records_url(self, id: str | None, query: Mapping[str, Any] | None) -> str:
        path = f"/api/collections/{encode_segment(self._collection)}/records"
        if id is not None:
            path += f"/{encode_segment(id)}"
        return join_url("", path, query)

    def _add(
        self,
        method: str,
        url: str,
        body: Mapping[str, Any] | None,
        files: Sequence[FilePart] | None,
        headers: Mapping[str, str] | None,
    ) -> None:
        self._requests.append(
            BatchRequest(
                method=method,
                url=url,
                headers=dict(headers or {}),
                body=dict(body or {}),
                files=list(files or []),
            )
        )

    def create(
        self,
        body: Mapping[str, Any] | None = None,
        *,
        files: Sequence[FilePart] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        url = self._records_url(None, build_query(query, expand=expand, fields=fields))
        self._add("POST", url, body, files, headers)

    def upsert(
        self,
        body: Mapping[str, Any] | None = None,
        *,
        files: Sequence[FilePart] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Queue a create, or an update when ``body`` carries an existing id."""
        url = self._records_url(None, build_query(query, expand=expand, fields=fields))
        self._add("PUT", url, body, files, headers)

    def update(
        self,
        id: str,
        body: Mapping[str, Any] | None = None,
        *,
        files: Sequence[FilePart] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        url = self._records_url(id, build_query(query, expand=expand, fields=fields))
        self._add("PATCH", url, body, files, headers)

    def delete(
        self,
        id: str,
        body: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._add("DELETE", self._records_url(id, query), body, None, headers)


class _BatchMixin:
    _requests: list[BatchRequest]
    _subs: dict[str, SubBatch]

    def collection(self, name: str) -> SubBatch:
        """Sub-request builder for ``name`` (one instance per collection)."""
        if name not in self._subs:
            self._subs[name] = SubBatch(self._requests, name)
        return self._subs[name]

    @property
    def requests(self) -> tuple[BatchRequest, ...]:
        return tuple(self._requests)

    def _build_payload(
        self, body: Mapping[str, Any] | None
    ) -> tuple[dict[str, Any], list[FilePart]]:
        files: list[FilePart] = []
        for index, request in enumerate(self._requests):
            for part in request.files:
                files.append(part.renamed(f"requests.{index}.{part.field}"))

        payload = dict(body or {})
        payload.setdefault("requests", [request.to_dict() for request in self._requests])
        return payload, files

    @staticmethod
    def _parse(data: Any) -> list[BatchResult]:
        return [BatchResult.model_validate(item) for item in data or []]


class BatchResource(_BatchMixin, BaseResource):
    """Batch builder (sync)."""

    def __init__(self, http: HttpClient) -> None:
        super().__init__(http)
        self._requests = []
        self._subs = {}

    def send(
        self,
        body: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[BatchResult]:
        """Send every queued sub-request; results follow the queue order."""
        payload, files = self._build_payload(body)
        data = self._http.post(
            BATCH_PATH,
            payload,
            files=files or None,
            query=query,
            headers=headers,
        )
        return self._parse(data)


class AsyncBatchResource(_BatchMixin, AsyncBaseResource):
    """Batch builder (async)."""

    def __init__(self, http: AsyncHttpClient) -> None:
        super().__init__(http)
        self._requests = []
        self._subs = {}

    async def send(
        self,
        body: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[BatchResult]:
        """Send every queued sub-request; results follow the queue order."""
        payload, files = self._build_payload(body)
        data = await self._http.post(
            BATCH_PATH,
            payload,
            files=files or None,
            query=query,
            headers=headers,
        )
        return self._parse(data)
