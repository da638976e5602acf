"""
Shared base for response models.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Model that reads camelCase wire names into snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
