"""
Batch types.
"""

from __future__ import annotations

from typing import Any

from pocketbase_client.types.base import ApiModel


class BatchResult(ApiModel):
    """Outcome of a single sub-request of a batch."""

    status: int
    # Usually None, a dict or a list of dicts.
    body: Any = None
