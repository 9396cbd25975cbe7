# mira_memory/tools/models.py
"""Data models for self-directed tool activation."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from mira_memory.base_models import DictCompatModel


class ToolCategory(str, Enum):
    """Broad capability family of a tool."""

    BROWSER = "browser"
    IOS = "ios"
    DATA = "data"
    UTILITY = "utility"
    EXTERNAL = "external"


class ToolDefinition(BaseModel):
    """A registered capability and the keywords that suggest it is needed."""

    name: str
    description: str
    triggers: list[str] = Field(default_factory=list)
    category: ToolCategory = ToolCategory.UTILITY
    always_active: bool = False
    tool_schema: dict[str, Any] | None = Field(default=None, description="Parameter schema")

    def matches(self, text: str) -> bool:
        """Case-insensitive substring match of any trigger against ``text``."""
        lowered = text.lower()
        return any(trigger.lower() in lowered for trigger in self.triggers)


class ToolState(BaseModel):
    """Per-conversation activation state of one tool."""

    name: str
    owner: str
    last_used: datetime | None = None
    use_count: int = 0  # Activations and uses since first seen
    enabled: bool = False
    turns_since_use: int = 0
    total_uses: int = 0  # Lifetime recorded uses
    metadata: dict[str, Any] = Field(default_factory=dict)


class ToolCooccurrence(BaseModel):
    """How often two tools were used together in one conversation."""

    tool_a: str
    tool_b: str
    owner: str
    count: int = 1

    def other(self, tool_name: str) -> str:
        return self.tool_b if self.tool_a == tool_name else self.tool_a


class ToolStats(DictCompatModel):
    """Tool usage statistics for one conversation."""

    active: int = 0
    total_uses: int = 0
    most_used: list[str] = Field(default_factory=list)
    recently_used: list[str] = Field(default_factory=list)


def ordered_pair(tool_a: str, tool_b: str) -> tuple[str, str]:
    """Normalize an unordered pair of tool names."""
    first, second = sorted((tool_a, tool_b))
    return first, second
