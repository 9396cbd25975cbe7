# mira_memory/storage/base.py
"""
Storage protocols.

Backends persist the logical schema only: memories, links, domain docs,
tool state and tool co-occurrence. All decay, ranking and expiry logic
lives in the components above them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from mira_memory.memory.models import DomainDoc, LinkType, Memory, MemoryLink, MemoryType
from mira_memory.tools.models import ToolCooccurrence, ToolState


@runtime_checkable
class MemoryBackend(Protocol):
    """Protocol for long-term memory storage."""

    async def add_memory(self, memory: Memory) -> None:
        """Insert a new memory record."""
        ...

    async def fetch_memory(self, memory_id: str) -> Memory | None:
        """Load a memory exactly as stored (checkpoint strength)."""
        ...

    async def query_memories(
        self,
        owner: str | None = None,
        contains: str | None = None,
        memory_types: list[MemoryType] | None = None,
    ) -> list[Memory]:
        """Memories matching owner, case-insensitive substring and type filters."""
        ...

    async def checkpoint_memory(
        self,
        memory_id: str,
        strength: float,
        checkpoint_at: datetime,
        last_accessed: datetime | None = None,
        access_count: int | None = None,
    ) -> bool:
        """Overwrite the strength checkpoint (and optionally access tracking)."""
        ...

    async def set_importance(self, memory_id: str, importance: float) -> bool: ...

    async def delete_memory(self, memory_id: str) -> bool:
        """Delete a memory and every link touching it."""
        ...

    async def upsert_link(self, link: MemoryLink) -> None: ...

    async def fetch_links(
        self,
        source_id: str,
        link_type: LinkType | None = None,
    ) -> list[MemoryLink]: ...

    async def upsert_domain_doc(self, doc: DomainDoc) -> DomainDoc:
        """Insert, or update content/type/updated_at of an existing doc."""
        ...

    async def list_domain_docs(self, owner: str) -> list[DomainDoc]: ...

    async def delete_domain_doc(self, doc_id: str) -> bool: ...


@runtime_checkable
class ToolStateBackend(Protocol):
    """Protocol for tool activation state storage."""

    async def fetch_tool_state(self, owner: str, tool_name: str) -> ToolState | None: ...

    async def save_tool_state(self, state: ToolState) -> None: ...

    async def list_tool_states(
        self,
        owner: str | None = None,
        enabled: bool | None = None,
    ) -> list[ToolState]: ...

    async def increment_cooccurrence(self, owner: str, tool_a: str, tool_b: str) -> int:
        """Bump the pair counter (pair order is normalized) and return it."""
        ...

    async def list_cooccurrences(self, owner: str, tool_name: str) -> list[ToolCooccurrence]: ...
