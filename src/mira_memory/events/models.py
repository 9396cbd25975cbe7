# mira_memory/events/models.py
"""Event, result and configuration models for background maintenance."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from mira_memory.base_models import DictCompatModel


class EventType(str, Enum):
    SEGMENT_COLLAPSE = "segment_collapse"
    MEMORY_DECAY = "memory_decay"
    DREAM_CONSOLIDATE = "dream_consolidate"
    TOOL_EXPIRY = "tool_expiry"
    CUSTOM = "custom"


class MiraEvent(BaseModel):
    """A unit of background work."""

    type: EventType
    timestamp: datetime
    owner: str | None = None
    handler_id: str | None = None  # Addresses a registered custom handler
    data: dict[str, Any] = Field(default_factory=dict)


class EventResult(BaseModel):
    """Outcome of processing one event."""

    success: bool
    event: MiraEvent
    details: str | None = None
    error: str | None = None
    stats: dict[str, int] = Field(default_factory=dict)


class DreamResult(DictCompatModel):
    links_created: int = 0
    patterns_found: int = 0


class SleepCycleResult(DictCompatModel):
    """Results of a forced run of every maintenance operation."""

    segment_collapse: EventResult
    memory_decay: EventResult
    dream_consolidate: EventResult
    tool_expiry: EventResult


class EventProcessorStatus(DictCompatModel):
    is_running: bool
    queue_length: int
    registered_handlers: list[str] = Field(default_factory=list)
    processed: int = 0


class EventProcessorConfig(BaseModel):
    """Configuration for the background scheduler."""

    # Timer intervals (seconds)
    segment_check_interval: float = Field(default=5 * 60, gt=0)
    memory_decay_interval: float = Field(default=24 * 60 * 60, gt=0)
    dream_interval: float = Field(default=6 * 60 * 60, gt=0)
    tool_expiry_interval: float = Field(default=10 * 60, gt=0)
    run_initial_checks: bool = Field(default=True, description="Queue collapse and expiry checks on start")

    # Queue
    queue_maxsize: int = Field(default=1000, description="0 means unbounded")
    history_size: int = Field(default=100)

    # Dream consolidation
    dream_memory_limit: int = Field(default=20, description="Strongest memories compared per conversation")
    dream_min_memories: int = Field(default=2)
    similarity_threshold: float = Field(default=0.5, description="Link pairs scoring strictly above this")
    min_word_length: int = Field(default=4, description="Shorter words are ignored by similarity")
    pattern_tag_threshold: int = Field(default=3)
    pattern_importance: float = Field(default=0.7)
