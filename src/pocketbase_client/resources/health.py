"""
Health resource.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pocketbase_client.resources.base import AsyncBaseResource, BaseResource
from pocketbase_client.types.health import HealthCheck

HEALTH_PATH = "/api/health"


class HealthResource(BaseResource):
    """Health resource (sync)."""

    def check(
        self,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HealthCheck:
        """Get the API health status."""
        data = self._http.get(HEALTH_PATH, query=query, headers=headers)
        return HealthCheck.model_validate(data)


class AsyncHealthResource(AsyncBaseResource):
    """Health resource (async)."""

    async def check(
        self,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HealthCheck:
        """Get the API health status."""
        data = await self._http.get(HEALTH_PATH, query=query, headers=headers)
        return HealthCheck.model_validate(data)
