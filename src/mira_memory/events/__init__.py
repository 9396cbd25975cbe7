# mira_memory/events/__init__.py
"""Background maintenance: segment collapse, decay, dream consolidation, tool expiry."""

from .dream import calculate_similarity, consolidate_owner, pattern_content
from .models import (
    DreamResult,
    EventProcessorConfig,
    EventProcessorStatus,
    EventResult,
    EventType,
    MiraEvent,
    SleepCycleResult,
)
from .processor import EventHandler, EventProcessor

__all__ = [
    "EventProcessor",
    "EventProcessorConfig",
    "EventProcessorStatus",
    "EventHandler",
    "EventType",
    "MiraEvent",
    "EventResult",
    "SleepCycleResult",
    "DreamResult",
    "calculate_similarity",
    "consolidate_owner",
    "pattern_content",
]
