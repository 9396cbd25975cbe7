# mira_memory/working_memory/manager.py
"""
Working Memory - the short-term context window of each conversation.

Handles:
- Appending turns to the open segment (with idle-collapse and overflow)
- Building a token-budgeted context from recent and relevant turns
- Consolidating segments into long-term summaries
- Rendering long-term memories for context injection

Design principles:
- Nothing here is persisted; a restart loses only the open segments
- The most recent turns always win; older turns compete on relevance
- Important content is promoted before it can be silently dropped
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from mira_memory.clock import Clock
from mira_memory.config import (
    DEFAULT_MAX_CONTEXT_TOKENS,
    DEFAULT_MAX_WORKING_MESSAGES,
    DEFAULT_SEGMENT_IDLE_MINUTES,
)
from mira_memory.memory.models import (
    TAG_CONVERSATION_SUMMARY,
    TAG_WORKING_MEMORY_OVERFLOW,
    Memory,
    MemoryMetadata,
    MemoryType,
)
from mira_memory.memory.store import MemoryStore
from mira_memory.session_store import SessionStore

from .models import (
    ActiveSession,
    MessageRole,
    Segment,
    WorkingContext,
    WorkingMessage,
    WorkingStats,
)
from .topics import (
    build_segment_summary,
    estimate_tokens,
    extract_topic,
    round_half_up,
    score_relevance,
)

logger = logging.getLogger(__name__)


class WorkingMemoryConfig(BaseModel):
    """Configuration for working memory."""

    max_messages: int = Field(default=DEFAULT_MAX_WORKING_MESSAGES, description="Open segment message cap")
    max_context_tokens: int = Field(default=DEFAULT_MAX_CONTEXT_TOKENS)
    idle_timeout_minutes: float = Field(
        default=DEFAULT_SEGMENT_IDLE_MINUTES,
        description="Idle time after which the open segment is collapsed",
    )

    # Promotion
    default_importance: float = Field(default=0.5)
    high_importance_threshold: float = Field(default=0.7, description="Promote messages strictly above this")
    summary_importance: float = Field(default=0.6)
    summary_max_excerpts: int = Field(default=3)
    summary_excerpt_length: int = Field(default=50)

    # Context selection
    recent_message_count: int = Field(default=10, description="Always-included tail of the segment")
    topic_bonus: float = Field(default=0.2)
    recency_bonus: float = Field(default=0.3)
    recency_window_minutes: float = Field(default=60.0)

    # Memory context injection
    context_recent_memories: int = Field(default=5)
    context_query_memories: int = Field(default=3)
    context_strongest_memories: int = Field(default=3)
    context_max_memories: int = Field(default=8)

    @property
    def idle_timeout(self) -> timedelta:
        return timedelta(minutes=self.idle_timeout_minutes)


class WorkingMemory:
    """
    Per-conversation short-term buffers on top of a MemoryStore.

    Usage::

        working = WorkingMemory(store)
        await working.add_message("u1", MessageRole.USER, "Find me a latte nearby")
        messages = await working.get_context_messages("u1")
        block = await working.get_memory_context("u1", "latte")
    """

    def __init__(
        self,
        memory_store: MemoryStore,
        clock: Clock | None = None,
        config: WorkingMemoryConfig | None = None,
        sessions: SessionStore[WorkingContext] | None = None,
    ) -> None:
        self.memory_store = memory_store
        self._clock = clock or memory_store.clock
        self.config = config or WorkingMemoryConfig()
        self.sessions: SessionStore[WorkingContext] = sessions if sessions is not None else SessionStore()

    # ------------------------------------------------------------------
    # Context lifecycle
    # ------------------------------------------------------------------

    def _new_segment(self) -> Segment:
        return Segment(start_time=self._clock.now())

    async def get_working_context(self, owner: str) -> WorkingContext:
        """Get or create the working context, seeding it with recent memories."""
        context = self.sessions.get(owner)
        if context is not None:
            return context

        now = self._clock.now()
        context = WorkingContext(
            owner=owner,
            current_segment=self._new_segment(),
            recent_memories=await self.memory_store.get_recent_memories(
                owner, limit=self.config.context_recent_memories
            ),
            last_activity=now,
            session_start=now,
        )
        self.sessions.set(owner, context)
        logger.debug(f"Created working context for {owner}")
        return context

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def add_message(
        self,
        owner: str,
        role: MessageRole | str,
        content: str,
        importance: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> WorkingMessage:
        """
        Append a turn to the open segment.

        An idle, non-empty segment is collapsed first. If the segment then
        exceeds ``max_messages`` the oldest turns are evicted, and any
        evicted turn above the high-importance threshold is promoted to an
        episodic memory tagged ``working_memory_overflow``.
        """
        context = await self.get_working_context(owner)
        now = self._clock.now()

        if now - context.last_activity > self.config.idle_timeout and not context.current_segment.is_empty:
            await self.collapse_segment(owner)

        if importance is None:
            importance = self.config.default_importance
        message = WorkingMessage(
            role=MessageRole(role),
            content=content,
            timestamp=now,
            importance=min(1.0, max(0.0, importance)),
            tokens=estimate_tokens(content),
            metadata=metadata,
        )

        segment = context.current_segment
        segment.messages.append(message)
        context.last_activity = now
        context.message_count += 1

        while len(segment.messages) > self.config.max_messages:
            evicted = segment.messages.pop(0)
            if evicted.importance > self.config.high_importance_threshold:
                await self._promote_overflow(owner, evicted)

        return message

    async def _promote_overflow(self, owner: str, message: WorkingMessage) -> Memory:
        try:
            metadata = MemoryMetadata.model_validate(
                {**(message.metadata or {}), "source": TAG_WORKING_MEMORY_OVERFLOW}
            )
        except ValidationError:
            # Caller keys clash with typed fields; keep them nested instead
            logger.debug(f"Message metadata for {owner} does not fit memory metadata, nesting it")
            metadata = MemoryMetadata(source=TAG_WORKING_MEMORY_OVERFLOW, message_metadata=message.metadata)
        memory = await self.memory_store.create_memory(
            owner,
            message.content,
            memory_type=MemoryType.EPISODIC,
            importance=message.importance,
            tags=[TAG_WORKING_MEMORY_OVERFLOW],
            metadata=metadata,
        )
        logger.debug(f"Promoted overflowing message for {owner} to memory {memory.id}")
        return memory

    async def get_context_messages(self, owner: str, max_tokens: int | None = None) -> list[WorkingMessage]:
        """
        Select turns for the next model call within ``max_tokens``.

        The newest turns (up to ``recent_message_count``) are taken first,
        newest to oldest, skipping any that do not fit. Remaining budget
        goes to older turns by relevance. The result is chronological.
        """
        max_tokens = self.config.max_context_tokens if max_tokens is None else max_tokens
        context = await self.get_working_context(owner)
        messages = context.current_segment.messages
        if not messages:
            return []

        now = self._clock.now()
        topic = extract_topic(messages)
        recent_count = min(self.config.recent_message_count, len(messages))
        boundary = len(messages) - recent_count

        selected: set[int] = set()
        total_tokens = 0

        for index in range(len(messages) - 1, boundary - 1, -1):
            if total_tokens + messages[index].tokens <= max_tokens:
                selected.add(index)
                total_tokens += messages[index].tokens

        older = sorted(
            range(boundary),
            key=lambda i: score_relevance(
                messages[i],
                topic,
                now,
                topic_bonus=self.config.topic_bonus,
                recency_bonus=self.config.recency_bonus,
                recency_window_minutes=self.config.recency_window_minutes,
            ),
            reverse=True,
        )
        for index in older:
            if total_tokens + messages[index].tokens <= max_tokens:
                selected.add(index)
                total_tokens += messages[index].tokens

        return [messages[i] for i in sorted(selected)]

    async def mark_important(self, owner: str, message_index: int, importance: float = 0.9) -> bool:
        """Retroactively set the importance of a turn in the open segment."""
        context = await self.get_working_context(owner)
        messages = context.current_segment.messages
        if not 0 <= message_index < len(messages):
            return False
        messages[message_index].importance = min(1.0, max(0.0, importance))
        return True

    # ------------------------------------------------------------------
    # Consolidation
    # ------------------------------------------------------------------

    async def collapse_segment(self, owner: str) -> Memory | None:
        """
        Consolidate the open segment into long-term memory.

        Stores a semantic summary tagged ``[topic, "conversation_summary"]``
        plus an episodic memory for each important user turn, then opens a
        fresh segment. Returns the summary memory, or None when there was
        nothing to consolidate.
        """
        context = await self.get_working_context(owner)
        segment = context.current_segment
        if segment.is_empty or segment.consolidated:
            return None

        now = self._clock.now()
        topic = extract_topic(segment.messages)
        duration = round_half_up((now - segment.start_time).total_seconds() / 60.0)
        summary = build_segment_summary(
            topic,
            segment.messages,
            duration,
            max_excerpts=self.config.summary_max_excerpts,
            excerpt_length=self.config.summary_excerpt_length,
        )

        summary_memory = await self.memory_store.create_memory(
            owner,
            summary,
            memory_type=MemoryType.SEMANTIC,
            importance=self.config.summary_importance,
            tags=[topic, TAG_CONVERSATION_SUMMARY],
            metadata=MemoryMetadata(
                segment_id=segment.id,
                message_count=len(segment.messages),
                duration_minutes=duration,
                start_time=segment.start_time,
            ),
        )

        for message in segment.user_messages():
            if message.importance > self.config.high_importance_threshold:
                await self.memory_store.create_memory(
                    owner,
                    message.content,
                    memory_type=MemoryType.EPISODIC,
                    importance=message.importance,
                    tags=[topic],
                    metadata=MemoryMetadata(timestamp=message.timestamp),
                )

        segment.consolidated = True
        segment.end_time = now
        segment.topic = topic
        segment.summary = summary
        context.current_segment = self._new_segment()

        logger.info(f"Collapsed segment {segment.id}: {len(segment.messages)} messages about {topic}")
        return summary_memory

    async def collapse_idle_segments(self) -> int:
        """Collapse every open segment idle longer than the timeout."""
        now = self._clock.now()
        collapsed = 0
        for owner, context in self.sessions.items():
            if context.current_segment.is_empty:
                continue
            if now - context.last_activity > self.config.idle_timeout:
                if await self.collapse_segment(owner) is not None:
                    collapsed += 1
        return collapsed

    async def collapse_all_segments(self) -> int:
        """Collapse every non-empty open segment regardless of idle time."""
        collapsed = 0
        for owner in self.sessions.keys():
            if await self.collapse_segment(owner) is not None:
                collapsed += 1
        return collapsed

    async def clear_working_memory(self, owner: str) -> None:
        """Collapse any open segment, then drop the context entirely."""
        context = self.sessions.get(owner)
        if context is not None and not context.current_segment.is_empty:
            await self.collapse_segment(owner)
        self.sessions.pop(owner)
        logger.info(f"Cleared working memory for {owner}")

    # ------------------------------------------------------------------
    # Long-term context injection
    # ------------------------------------------------------------------

    async def get_memory_context(self, owner: str, query: str | None = None) -> str:
        """
        Render recent, query-relevant and strongest memories as a block.

        Returns an empty string when the owner has no live memories.
        """
        context = await self.get_working_context(owner)
        store = self.memory_store

        context.recent_memories = await store.get_recent_memories(owner, limit=self.config.context_recent_memories)
        relevant = []
        if query:
            relevant = await store.search_memories(owner, query, limit=self.config.context_query_memories)
        strongest = await store.get_strongest_memories(owner, limit=self.config.context_strongest_memories)

        seen: set[str] = set()
        unique: list[Memory] = []
        for memory in [*context.recent_memories, *relevant, *strongest]:
            if memory.id not in seen:
                seen.add(memory.id)
                unique.append(memory)
        unique = unique[: self.config.context_max_memories]

        if not unique:
            return ""

        now = self._clock.now()
        lines = ["## Relevant Memories\n"]
        for memory in unique:
            age = round_half_up((now - memory.created_at).total_seconds() / 86400.0)
            if age == 0:
                age_str = "today"
            elif age == 1:
                age_str = "yesterday"
            else:
                age_str = f"{age} days ago"
            lines.append(
                f"- [{memory.memory_type.value}] ({age_str}, strength: {memory.strength:.2f}): {memory.content}\n"
            )
        return "".join(lines)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def get_working_stats(self, owner: str) -> WorkingStats:
        context = await self.get_working_context(owner)
        segment = context.current_segment
        now = self._clock.now()
        return WorkingStats(
            message_count=len(segment.messages),
            token_count=segment.token_count,
            segment_age_seconds=(now - segment.start_time).total_seconds(),
            idle_seconds=(now - context.last_activity).total_seconds(),
            topic=extract_topic(segment.messages),
        )

    def get_active_sessions(self) -> list[ActiveSession]:
        """Every conversation with a live working context (admin/debugging)."""
        return [
            ActiveSession(
                owner=owner,
                message_count=len(context.current_segment.messages),
                last_activity=context.last_activity,
                topic=extract_topic(context.current_segment.messages),
            )
            for owner, context in self.sessions.items()
        ]
