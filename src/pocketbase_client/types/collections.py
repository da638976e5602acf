"""
Collection types.
"""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from pocketbase_client.types.base import ApiModel


class CollectionModel(ApiModel):
    """Collection definition. Schema and rule fields are kept as extras."""

    id: str = ""
    name: str = ""
    type: str = "base"
    system: bool = False
    fields: list[dict[str, Any]] = Field(default_factory=list)
    created: str = ""
    updated: str = ""

    model_config = ConfigDict(extra="allow")
