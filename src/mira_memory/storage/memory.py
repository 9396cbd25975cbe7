# mira_memory/storage/memory.py
"""
In-memory storage backend.

Not persistent - everything is lost when the process exits. Used for
tests, development and ephemeral engines. Records are copied on the way
in and out so callers never alias stored state.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel, Field

from mira_memory.memory.models import DomainDoc, LinkType, Memory, MemoryLink, MemoryType
from mira_memory.tools.models import ToolCooccurrence, ToolState, ordered_pair

logger = logging.getLogger(__name__)


class InMemoryBackend(BaseModel):
    """Dict-backed implementation of ``MemoryBackend`` and ``ToolStateBackend``."""

    memories: dict[str, Memory] = Field(default_factory=dict)
    links: dict[tuple[str, str], MemoryLink] = Field(default_factory=dict)
    domain_docs: dict[str, DomainDoc] = Field(default_factory=dict)
    tool_states: dict[tuple[str, str], ToolState] = Field(default_factory=dict)
    cooccurrences: dict[tuple[str, str, str], ToolCooccurrence] = Field(default_factory=dict)

    model_config = {"arbitrary_types_allowed": True}

    # --- Memories ---

    async def add_memory(self, memory: Memory) -> None:
        self.memories[memory.id] = memory.model_copy(deep=True)

    async def fetch_memory(self, memory_id: str) -> Memory | None:
        memory = self.memories.get(memory_id)
        return memory.model_copy(deep=True) if memory else None

    async def query_memories(
        self,
        owner: str | None = None,
        contains: str | None = None,
        memory_types: list[MemoryType] | None = None,
    ) -> list[Memory]:
        needle = contains.casefold() if contains else None
        results = []
        for memory in self.memories.values():
            if owner is not None and memory.owner != owner:
                continue
            if memory_types and memory.memory_type not in memory_types:
                continue
            if needle and needle not in memory.content.casefold():
                continue
            results.append(memory.model_copy(deep=True))
        return results

    async def checkpoint_memory(
        self,
        memory_id: str,
        strength: float,
        checkpoint_at: datetime,
        last_accessed: datetime | None = None,
        access_count: int | None = None,
    ) -> bool:
        memory = self.memories.get(memory_id)
        if memory is None:
            return False
        memory.strength = strength
        memory.checkpoint_at = checkpoint_at
        if last_accessed is not None:
            memory.last_accessed = last_accessed
        if access_count is not None:
            memory.access_count = access_count
        return True

    async def set_importance(self, memory_id: str, importance: float) -> bool:
        memory = self.memories.get(memory_id)
        if memory is None:
            return False
        memory.importance = importance
        return True

    async def delete_memory(self, memory_id: str) -> bool:
        existed = self.memories.pop(memory_id, None) is not None
        for key in [k for k in self.links if memory_id in k]:
            del self.links[key]
        return existed

    # --- Links ---

    async def upsert_link(self, link: MemoryLink) -> None:
        self.links[(link.source_id, link.target_id)] = link.model_copy()

    async def fetch_links(
        self,
        source_id: str,
        link_type: LinkType | None = None,
    ) -> list[MemoryLink]:
        return [
            link.model_copy()
            for (source, _), link in self.links.items()
            if source == source_id and (link_type is None or link.link_type == link_type)
        ]

    # --- Domain docs ---

    async def upsert_domain_doc(self, doc: DomainDoc) -> DomainDoc:
        existing = self.domain_docs.get(doc.id)
        if existing is not None:
            existing.content = doc.content
            existing.updated_at = doc.updated_at
            if doc.doc_type is not None:
                existing.doc_type = doc.doc_type
            return existing.model_copy()
        self.domain_docs[doc.id] = doc.model_copy()
        return doc

    async def list_domain_docs(self, owner: str) -> list[DomainDoc]:
        docs = [doc.model_copy() for doc in self.domain_docs.values() if doc.owner == owner]
        docs.sort(key=lambda d: d.updated_at or d.created_at, reverse=True)
        return docs

    async def delete_domain_doc(self, doc_id: str) -> bool:
        return self.domain_docs.pop(doc_id, None) is not None

    # --- Tool state ---

    async def fetch_tool_state(self, owner: str, tool_name: str) -> ToolState | None:
        state = self.tool_states.get((tool_name, owner))
        return state.model_copy(deep=True) if state else None

    async def save_tool_state(self, state: ToolState) -> None:
        self.tool_states[(state.name, state.owner)] = state.model_copy(deep=True)

    async def list_tool_states(
        self,
        owner: str | None = None,
        enabled: bool | None = None,
    ) -> list[ToolState]:
        return [
            state.model_copy(deep=True)
            for state in self.tool_states.values()
            if (owner is None or state.owner == owner) and (enabled is None or state.enabled == enabled)
        ]

    async def increment_cooccurrence(self, owner: str, tool_a: str, tool_b: str) -> int:
        first, second = ordered_pair(tool_a, tool_b)
        key = (first, second, owner)
        record = self.cooccurrences.get(key)
        if record is None:
            record = ToolCooccurrence(tool_a=first, tool_b=second, owner=owner, count=0)
            self.cooccurrences[key] = record
        record.count += 1
        return record.count

    async def list_cooccurrences(self, owner: str, tool_name: str) -> list[ToolCooccurrence]:
        return [
            record.model_copy()
            for record in self.cooccurrences.values()
            if record.owner == owner and tool_name in (record.tool_a, record.tool_b)
        ]

    def clear(self) -> None:
        """Drop everything."""
        self.memories.clear()
        self.links.clear()
        self.domain_docs.clear()
        self.tool_states.clear()
        self.cooccurrences.clear()
        logger.debug("Cleared in-memory backend")
