"""
Event-stream message type.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


class SseMessage(BaseModel):
    """A single decoded server-sent event."""

    id: str = ""
    event: str = "message"
    data: str = ""
    retry: int = 0

    def json_data(self) -> Any:
        """Decode ``data`` as JSON, returning ``None`` when it isn't valid JSON."""
        if not self.data:
            return None
        try:
            return json.loads(self.data)
        except ValueError:
            return None
