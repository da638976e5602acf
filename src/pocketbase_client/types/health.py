"""
Health check types.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pocketbase_client.types.base import ApiModel


class HealthCheck(ApiModel):
    """Health check response."""

    code: int
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
