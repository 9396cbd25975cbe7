# mira_memory/base_models.py
"""Base model with dict-style access for result and statistics records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class DictCompatModel(BaseModel):
    """Base for models that support dict-style access.

    Allows ``obj["key"]`` and ``"key" in obj`` so callers that treat
    statistics and cycle results as plain mappings keep working.
    """

    def __getitem__(self, key: str) -> Any:
        return getattr(self, key)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            return key in type(self).model_fields
        return False

    def __eq__(self, other: object) -> bool:
        if isinstance(other, dict):
            return self.model_dump() == other
        return super().__eq__(other)
