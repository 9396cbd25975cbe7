# mira_memory/memory/store.py
"""
MemoryStore - long-term memory with natural decay.

Memories fade unless reinforced through access:
- Every read projects strength forward from its checkpoint
- A read below the type's forget threshold deletes the memory (lazy forgetting)
- A boosting read raises strength and re-checkpoints it
- The periodic decay cycle prunes and re-checkpoints everything else

Domain documents and links live here too; documents never decay.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from mira_memory.clock import Clock, SystemClock

from .decay import (
    DEFAULT_MEMORY_TYPE_CONFIGS,
    MemoryTypeConfig,
    boost_strength,
    calculate_decay,
    type_config,
)
from .models import (
    DecayCycleResult,
    DomainDoc,
    LinkedMemory,
    LinkType,
    Memory,
    MemoryLink,
    MemoryMetadata,
    MemoryStats,
    MemoryType,
)

if TYPE_CHECKING:
    from mira_memory.storage.base import MemoryBackend

logger = logging.getLogger(__name__)


class MemoryStoreConfig(BaseModel):
    """Configuration for the long-term memory store."""

    type_configs: dict[MemoryType, MemoryTypeConfig] = Field(
        default_factory=lambda: dict(DEFAULT_MEMORY_TYPE_CONFIGS)
    )

    # Defaults for queries
    default_importance: float = Field(default=0.5, ge=0.0, le=1.0)
    search_limit: int = Field(default=10)
    search_min_strength: float = Field(default=0.1)
    recent_limit: int = Field(default=5)
    recent_min_strength: float = Field(default=0.2)
    strongest_limit: int = Field(default=10)

    # Ranking is strength x importance ** importance_weight (0 ranks by strength alone)
    importance_weight: float = Field(default=1.0, ge=0.0)

    # Links created for related_ids on creation
    default_link_strength: float = Field(default=0.5)


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def domain_doc_id(owner: str, title: str) -> str:
    """Content address of a domain doc: re-saving the same title updates in place."""
    return hashlib.sha256(f"{owner}:{title}".encode()).hexdigest()[:32]


class MemoryStore:
    """
    Long-term memory for every conversation.

    Usage::

        store = MemoryStore(InMemoryBackend())
        memory = await store.create_memory("u1", "Likes oat milk lattes", memory_type=MemoryType.SEMANTIC)
        hits = await store.search_memories("u1", "latte")
    """

    def __init__(
        self,
        backend: MemoryBackend,
        clock: Clock | None = None,
        config: MemoryStoreConfig | None = None,
    ) -> None:
        self._backend = backend
        self._clock = clock or SystemClock()
        self.config = config or MemoryStoreConfig()

    @property
    def backend(self) -> MemoryBackend:
        return self._backend

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------
    # Decay helpers
    # ------------------------------------------------------------------

    def live_strength(self, memory: Memory) -> float:
        """Project the stored checkpoint to now."""
        return calculate_decay(
            memory.strength,
            memory.checkpoint_at,
            memory.memory_type,
            self._clock.now(),
            self.config.type_configs,
        )

    def forget_threshold(self, memory_type: MemoryType) -> float:
        return type_config(memory_type, self.config.type_configs).forget_threshold

    def rank(self, memory: Memory) -> float:
        """Ranking weight of a projected memory."""
        return memory.strength * memory.importance**self.config.importance_weight

    def _project(self, memories: list[Memory]) -> list[Memory]:
        """Replace checkpoint strength with the live value on each record."""
        for memory in memories:
            memory.strength = self.live_strength(memory)
        return memories

    def _alive(self, memories: list[Memory]) -> list[Memory]:
        """Project, dropping memories already past their forget threshold."""
        return [m for m in self._project(memories) if m.strength >= self.forget_threshold(m.memory_type)]

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_memory(
        self,
        owner: str,
        content: str,
        memory_type: MemoryType = MemoryType.EPISODIC,
        importance: float | None = None,
        tags: list[str] | None = None,
        metadata: MemoryMetadata | dict[str, Any] | None = None,
        related_ids: list[str] | None = None,
    ) -> Memory:
        """
        Create a memory at full strength.

        Args:
            owner: Conversation key the memory belongs to
            content: Free text
            memory_type: Determines decay rate
            importance: Author weight in [0, 1] (clamped); ranking only, not decay
            tags: Labels used for filtering and pattern extraction
            metadata: Structured metadata (dicts are validated)
            related_ids: Existing memories to link to with ``related``

        Returns:
            The stored Memory
        """
        now = self._clock.now()
        if isinstance(metadata, dict):
            metadata = MemoryMetadata.model_validate(metadata)

        memory = Memory(
            id=uuid.uuid4().hex,
            owner=owner,
            content=content,
            memory_type=MemoryType(memory_type),
            strength=1.0,
            importance=_clamp(self.config.default_importance if importance is None else importance),
            created_at=now,
            last_accessed=now,
            checkpoint_at=now,
            access_count=1,
            related_ids=list(related_ids or []),
            metadata=metadata or MemoryMetadata(),
            tags=list(tags or []),
        )
        await self._backend.add_memory(memory)

        for related_id in memory.related_ids:
            await self.link_memories(memory.id, related_id, LinkType.RELATED, self.config.default_link_strength)

        logger.info(f"Created {memory.memory_type.value} memory for {owner}: {memory.preview()}")
        return memory

    async def get_memory(self, memory_id: str, boost: bool = True) -> Memory | None:
        """
        Read a memory, applying decay.

        Returns None if the memory does not exist or has decayed below its
        forget threshold (in which case it is deleted). With ``boost`` the
        access strengthens the memory and the boosted value is returned.
        """
        memory = await self._backend.fetch_memory(memory_id)
        if memory is None:
            return None

        decayed = self.live_strength(memory)
        if decayed < self.forget_threshold(memory.memory_type):
            await self.forget_memory(memory_id)
            return None

        if not boost:
            memory.strength = decayed
            return memory

        now = self._clock.now()
        boosted = boost_strength(decayed, memory.memory_type, self.config.type_configs)
        access_count = memory.access_count + 1
        await self._backend.checkpoint_memory(
            memory_id,
            strength=boosted,
            checkpoint_at=now,
            last_accessed=now,
            access_count=access_count,
        )

        memory.strength = boosted
        memory.checkpoint_at = now
        memory.last_accessed = now
        memory.access_count = access_count
        return memory

    async def search_memories(
        self,
        owner: str,
        query: str,
        limit: int | None = None,
        min_strength: float | None = None,
        memory_types: list[MemoryType] | None = None,
        tags: list[str] | None = None,
    ) -> list[Memory]:
        """
        Substring search ranked by live ``strength x importance``.

        Results below ``min_strength`` are dropped, then the tag filter
        (any-of) is applied, then the list is cut to ``limit``.
        """
        limit = self.config.search_limit if limit is None else limit
        min_strength = self.config.search_min_strength if min_strength is None else min_strength

        candidates = self._alive(
            await self._backend.query_memories(owner=owner, contains=query, memory_types=memory_types)
        )
        candidates.sort(key=self.rank, reverse=True)

        results = [m for m in candidates if m.strength >= min_strength]
        if tags:
            results = [m for m in results if m.has_any_tag(tags)]
        return results[:limit]

    async def get_recent_memories(
        self,
        owner: str,
        limit: int | None = None,
        min_strength: float | None = None,
    ) -> list[Memory]:
        """Most recently accessed memories above ``min_strength``."""
        limit = self.config.recent_limit if limit is None else limit
        min_strength = self.config.recent_min_strength if min_strength is None else min_strength

        memories = self._alive(await self._backend.query_memories(owner=owner))
        memories.sort(key=lambda m: m.last_accessed, reverse=True)
        return [m for m in memories if m.strength >= min_strength][:limit]

    async def get_strongest_memories(self, owner: str, limit: int | None = None) -> list[Memory]:
        """Memories ranked by live ``strength x importance``, forget-threshold filtered."""
        limit = self.config.strongest_limit if limit is None else limit

        memories = self._alive(await self._backend.query_memories(owner=owner))
        memories.sort(key=self.rank, reverse=True)
        return memories[:limit]

    async def forget_memory(self, memory_id: str) -> bool:
        """Hard delete a memory and all links touching it."""
        deleted = await self._backend.delete_memory(memory_id)
        if deleted:
            logger.info(f"Forgot memory: {memory_id}")
        return deleted

    async def update_importance(self, memory_id: str, importance: float) -> bool:
        return await self._backend.set_importance(memory_id, _clamp(importance))

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    async def link_memories(
        self,
        source_id: str,
        target_id: str,
        link_type: LinkType = LinkType.RELATED,
        strength: float = 0.5,
    ) -> MemoryLink:
        """Create or replace the link from ``source_id`` to ``target_id``."""
        link = MemoryLink(
            source_id=source_id,
            target_id=target_id,
            link_type=LinkType(link_type),
            strength=strength,
            created_at=self._clock.now(),
        )
        await self._backend.upsert_link(link)
        return link

    async def get_linked_memories(
        self,
        memory_id: str,
        link_type: LinkType | None = None,
    ) -> list[LinkedMemory]:
        """Targets of outgoing links, each with its own projected strength."""
        linked = []
        for link in await self._backend.fetch_links(memory_id, link_type):
            target = await self._backend.fetch_memory(link.target_id)
            if target is None or not self._alive([target]):
                continue
            linked.append(LinkedMemory(memory=target, link_strength=link.strength, link_type=link.link_type))
        return linked

    # ------------------------------------------------------------------
    # Domain documents (permanent)
    # ------------------------------------------------------------------

    async def set_domain_doc(
        self,
        owner: str,
        title: str,
        content: str,
        doc_type: str | None = None,
    ) -> DomainDoc:
        """Create or update the document titled ``title`` for ``owner``."""
        now = self._clock.now()
        doc = DomainDoc(
            id=domain_doc_id(owner, title),
            owner=owner,
            title=title,
            content=content,
            doc_type=doc_type,
            created_at=now,
            updated_at=now,
        )
        return await self._backend.upsert_domain_doc(doc)

    async def get_domain_docs(self, owner: str) -> list[DomainDoc]:
        return await self._backend.list_domain_docs(owner)

    async def delete_domain_doc(self, doc_id: str) -> bool:
        return await self._backend.delete_domain_doc(doc_id)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def run_decay_cycle(self) -> DecayCycleResult:
        """
        Prune forgotten memories and re-checkpoint the rest.

        Each record is handled independently, so an interrupted cycle can
        simply be run again.
        """
        now = self._clock.now()
        memories = await self._backend.query_memories()

        pruned = 0
        for memory in memories:
            decayed = self.live_strength(memory)
            if decayed < self.forget_threshold(memory.memory_type):
                await self.forget_memory(memory.id)
                pruned += 1
            else:
                await self._backend.checkpoint_memory(memory.id, strength=decayed, checkpoint_at=now)

        result = DecayCycleResult(pruned=pruned, remaining=len(memories) - pruned)
        logger.info(f"Decay cycle: pruned {result.pruned} memories, {result.remaining} remaining")
        return result

    async def get_memory_stats(self, owner: str) -> MemoryStats:
        """Count, per-type breakdown, average live strength and age range."""
        memories = self._project(await self._backend.query_memories(owner=owner))
        if not memories:
            return MemoryStats()

        by_type: dict[str, int] = {}
        for memory in memories:
            by_type[memory.memory_type.value] = by_type.get(memory.memory_type.value, 0) + 1

        return MemoryStats(
            total=len(memories),
            by_type=by_type,
            avg_strength=sum(m.strength for m in memories) / len(memories),
            oldest_memory=min(m.created_at for m in memories),
            newest_memory=max(m.created_at for m in memories),
        )
