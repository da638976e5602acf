"""
Record related types.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import ConfigDict, Field

from pocketbase_client.types.base import ApiModel
from pocketbase_client.utils.extract import extract

T = TypeVar("T")


class RecordModel(ApiModel):
    """
    A single collection record.

    Collection specific fields are kept as extra attributes and can be read
    with :meth:`get`.
    """

    id: str = ""
    collection_id: str = ""
    collection_name: str = ""
    created: str = ""
    updated: str = ""

    model_config = ConfigDict(extra="allow")

    def get(self, path: str, default: Any = None) -> Any:
        """
        Read a field by dot-notation path.

        Example:
            >>> record.get("expand.author.name", "anonymous")
        """
        return extract(self.to_dict(), path, default)

    def to_dict(self) -> dict[str, Any]:
        """Record data using the wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ResultList(ApiModel, Generic[T]):
    """Paginated list response."""

    page: int = 1
    per_page: int = 0
    total_items: int = 0
    total_pages: int = 0
    items: list[T] = Field(default_factory=list)


class RecordAuth(ApiModel):
    """Token and record returned by the auth endpoints."""

    token: str
    record: RecordModel
    meta: dict[str, Any] | None = None


class RecordSubscriptionEvent(ApiModel):
    """Realtime record change notification."""

    action: str
    record: RecordModel
