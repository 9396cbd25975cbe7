# mira_memory/memory/models.py
"""
Data models for long-term memory.

These models represent:
- Decaying memories (episodic, semantic, procedural)
- Directed links between memories
- Permanent domain documents
- Results of maintenance and statistics queries
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mira_memory.base_models import DictCompatModel


class MemoryType(str, Enum):
    """Kind of memory. Determines decay rate, boost and forget threshold."""

    EPISODIC = "episodic"  # Specific events (decays fastest)
    SEMANTIC = "semantic"  # Facts and knowledge
    PROCEDURAL = "procedural"  # How-to knowledge (decays slowest)


class LinkType(str, Enum):
    """Relationship between two memories."""

    RELATED = "related"
    CAUSED_BY = "caused_by"
    LEADS_TO = "leads_to"
    CONTRADICTS = "contradicts"


# Tags with engine-level meaning
TAG_CONVERSATION_SUMMARY = "conversation_summary"
TAG_WORKING_MEMORY_OVERFLOW = "working_memory_overflow"
TAG_PATTERN = "pattern"
PATTERN_PREFIX = "pattern:"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MemoryMetadata(BaseModel):
    """
    Structured metadata attached to a memory.

    The known fields are the ones the engine itself writes; any other
    key is accepted and round-tripped untouched.
    """

    model_config = ConfigDict(extra="allow")

    source: str | None = None  # e.g. "working_memory_overflow"
    segment_id: str | None = None
    message_count: int | None = None
    duration_minutes: int | None = None
    start_time: datetime | None = None
    timestamp: datetime | None = None
    count: int | None = None  # Tag frequency behind a pattern memory
    extracted_at: datetime | None = None

    def to_json(self) -> dict[str, Any]:
        """Compact JSON-safe form for persistence."""
        return self.model_dump(mode="json", exclude_none=True)


class Memory(BaseModel):
    """
    A single long-term memory.

    ``strength`` as stored is a checkpoint taken at ``checkpoint_at``; the
    live value is always obtained through the decay projection in
    :mod:`mira_memory.memory.decay`. Records returned by the store carry
    the projected value.
    """

    id: str
    owner: str
    content: str
    memory_type: MemoryType = MemoryType.EPISODIC

    strength: float = Field(default=1.0, ge=0.0, le=1.0)
    importance: float = Field(default=0.5, ge=0.0, le=1.0)

    created_at: datetime = Field(default_factory=_utcnow)
    last_accessed: datetime = Field(default_factory=_utcnow)
    checkpoint_at: datetime = Field(default_factory=_utcnow)
    access_count: int = 1

    related_ids: list[str] = Field(default_factory=list)
    metadata: MemoryMetadata = Field(default_factory=MemoryMetadata)
    tags: list[str] = Field(default_factory=list)

    def has_any_tag(self, tags: list[str]) -> bool:
        return any(tag in self.tags for tag in tags)

    def preview(self, length: int = 50) -> str:
        if len(self.content) <= length:
            return self.content
        return self.content[:length] + "..."


class MemoryLink(BaseModel):
    """Directed link from ``source_id`` to ``target_id``."""

    source_id: str
    target_id: str
    link_type: LinkType = LinkType.RELATED
    strength: float = 0.5
    created_at: datetime = Field(default_factory=_utcnow)


class LinkedMemory(BaseModel):
    """A memory reached through a link, with its own projected strength."""

    memory: Memory
    link_strength: float
    link_type: LinkType


class DomainDoc(BaseModel):
    """Permanent reference document. Never decays, never pruned."""

    id: str
    owner: str
    title: str
    content: str
    doc_type: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None


class DecayCycleResult(DictCompatModel):
    """Outcome of a decay sweep."""

    pruned: int = 0
    remaining: int = 0


class MemoryStats(DictCompatModel):
    """Per-owner memory statistics."""

    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    avg_strength: float = 0.0
    oldest_memory: datetime | None = None
    newest_memory: datetime | None = None
