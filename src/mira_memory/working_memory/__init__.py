# mira_memory/working_memory/__init__.py
"""
Short-term, per-conversation working memory.

Segments of turns collapse into long-term summaries after two idle
hours; overflowing important turns are promoted before being dropped.
"""

from .manager import WorkingMemory, WorkingMemoryConfig
from .models import (
    ActiveSession,
    MessageRole,
    Segment,
    WorkingContext,
    WorkingMessage,
    WorkingStats,
)
from .topics import (
    GENERAL_TOPIC,
    TOPIC_PATTERNS,
    build_segment_summary,
    estimate_tokens,
    extract_topic,
    score_relevance,
)

__all__ = [
    "WorkingMemory",
    "WorkingMemoryConfig",
    "MessageRole",
    "WorkingMessage",
    "Segment",
    "WorkingContext",
    "WorkingStats",
    "ActiveSession",
    "GENERAL_TOPIC",
    "TOPIC_PATTERNS",
    "estimate_tokens",
    "extract_topic",
    "score_relevance",
    "build_segment_summary",
]
