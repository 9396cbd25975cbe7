# mira_memory/working_memory/models.py
"""
Data models for short-term working memory.

A conversation's working memory is a single open Segment of messages.
When the segment goes idle (or is cleared) it is consolidated into
long-term memory and replaced with a fresh one.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from mira_memory.base_models import DictCompatModel
from mira_memory.memory.models import Memory


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def generate_segment_id() -> str:
    return f"seg_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


class WorkingMessage(BaseModel):
    """One conversational turn held in working memory."""

    role: MessageRole
    content: str
    timestamp: datetime
    importance: float = Field(default=0.5, ge=0.0, le=1.0)
    tokens: int = 0  # Estimated token cost
    metadata: dict[str, Any] | None = None


class Segment(BaseModel):
    """A contiguous span of turns consolidated as one unit."""

    id: str = Field(default_factory=generate_segment_id)
    messages: list[WorkingMessage] = Field(default_factory=list)
    start_time: datetime
    end_time: datetime | None = None
    topic: str | None = None
    summary: str | None = None
    consolidated: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.messages

    @property
    def token_count(self) -> int:
        return sum(m.tokens for m in self.messages)

    def user_messages(self) -> list[WorkingMessage]:
        return [m for m in self.messages if m.role == MessageRole.USER]


class WorkingContext(BaseModel):
    """Per-conversation working state. Lives in process memory only."""

    owner: str
    current_segment: Segment
    recent_memories: list[Memory] = Field(default_factory=list)
    last_activity: datetime
    session_start: datetime
    message_count: int = 0  # Cumulative across segments


class WorkingStats(DictCompatModel):
    """Snapshot of one conversation's open segment."""

    message_count: int = 0
    token_count: int = 0
    segment_age_seconds: float = 0.0
    idle_seconds: float = 0.0
    topic: str = "general"


class ActiveSession(DictCompatModel):
    """A conversation with a live working context."""

    owner: str
    message_count: int
    last_activity: datetime
    topic: str
