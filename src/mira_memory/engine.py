# mira_memory/engine.py
"""
Mira - the caller-facing memory engine.

Ties the four components together for a chat orchestration layer:

- Memory Store: decaying long-term memory
- Working Memory: per-conversation context window
- Tool Registry: self-activating, self-expiring tools
- Event Processor: background sleep cycles

Usage::

    mira = await Mira.from_url("sqlite+aiosqlite:///mira.db")
    await mira.start()

    turn = await mira.process_user_message("u1", "What's the weather tomorrow?")
    prompt_context = await mira.get_formatted_context("u1", "What's the weather tomorrow?")
    await mira.process_assistant_response("u1", "Sunny, 21C", tools_used=["weather"])

    await mira.shutdown()
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from mira_memory.base_models import DictCompatModel
from mira_memory.clock import Clock, SystemClock
from mira_memory.config import DEFAULT_DATABASE_URL
from mira_memory.events.models import EventProcessorConfig, EventProcessorStatus
from mira_memory.events.processor import EventProcessor
from mira_memory.memory.models import Memory, MemoryStats, MemoryType
from mira_memory.memory.store import MemoryStore, MemoryStoreConfig
from mira_memory.storage.memory import InMemoryBackend
from mira_memory.storage.sql import SQLBackend
from mira_memory.tools.models import ToolDefinition, ToolStats
from mira_memory.tools.registry import ToolRegistry, ToolRegistryConfig
from mira_memory.working_memory.manager import WorkingMemory, WorkingMemoryConfig
from mira_memory.working_memory.models import MessageRole, WorkingMessage, WorkingStats

logger = logging.getLogger(__name__)


class MiraContext(BaseModel):
    """Everything assembled for one conversational turn."""

    owner: str
    memories: list[Memory] = Field(default_factory=list)
    working_messages: list[WorkingMessage] = Field(default_factory=list)
    active_tools: list[ToolDefinition] = Field(default_factory=list)
    memory_context: str = ""
    tool_context: str = ""


class TurnResult(BaseModel):
    """Outcome of processing a user turn."""

    context: MiraContext
    activated: list[ToolDefinition] = Field(default_factory=list)
    expired: list[str] = Field(default_factory=list)


class MiraStatus(DictCompatModel):
    event_processor: EventProcessorStatus
    sessions: int
    memory: MemoryStats | None = None
    tools: ToolStats | None = None
    working: WorkingStats | None = None


class Mira:
    """
    Memory, Intelligence, Reasoning, Awareness.

    One instance serves every conversation; state is keyed by ``owner``.
    """

    def __init__(
        self,
        backend: InMemoryBackend | SQLBackend | None = None,
        clock: Clock | None = None,
        memory_config: MemoryStoreConfig | None = None,
        working_config: WorkingMemoryConfig | None = None,
        tool_config: ToolRegistryConfig | None = None,
        event_config: EventProcessorConfig | None = None,
        tools: list[ToolDefinition] | None = None,
    ) -> None:
        self.backend = backend if backend is not None else InMemoryBackend()
        self.clock = clock or SystemClock()

        self.memory = MemoryStore(self.backend, clock=self.clock, config=memory_config)
        self.working = WorkingMemory(self.memory, clock=self.clock, config=working_config)
        self.tools = ToolRegistry(self.backend, clock=self.clock, config=tool_config, definitions=tools)
        self.events = EventProcessor(
            self.memory,
            self.working,
            self.tools,
            clock=self.clock,
            config=event_config,
        )
        self._started = False

    @classmethod
    async def from_url(cls, database_url: str | None = None, echo: bool = False, **kwargs) -> Mira:
        """
        Build an engine on an initialized SQL backend.

        Raises:
            StorageError: If the database URL is invalid or unreachable
        """
        backend = SQLBackend(database_url or DEFAULT_DATABASE_URL, echo=echo)
        await backend.initialize()
        return cls(backend=backend, **kwargs)

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------

    async def get_context(
        self,
        owner: str,
        user_message: str | None = None,
        activate_tools: bool = True,
    ) -> MiraContext:
        """Assemble memories, working messages and tools for a turn."""
        if user_message and activate_tools:
            await self.tools.auto_activate_tools(owner, user_message)

        working_messages = await self.working.get_context_messages(owner)

        recent = await self.memory.get_recent_memories(owner, limit=3)
        strongest = await self.memory.get_strongest_memories(owner, limit=3)
        found = await self.memory.search_memories(owner, user_message, limit=2) if user_message else []

        seen: set[str] = set()
        memories = []
        for memory in [*recent, *strongest, *found]:
            if memory.id not in seen:
                seen.add(memory.id)
                memories.append(memory)

        return MiraContext(
            owner=owner,
            memories=memories,
            working_messages=working_messages,
            active_tools=await self.tools.get_active_tools(owner),
            memory_context=await self.working.get_memory_context(owner, user_message),
            tool_context=await self.tools.format_tools_for_context(owner),
        )

    async def process_user_message(self, owner: str, message: str, importance: float = 0.5) -> TurnResult:
        """
        Record a user turn and build the context for the reply.

        Tools are activated once, before context assembly, so the returned
        ``activated`` list holds exactly the tools newly enabled by this turn.
        The turn counter then advances, expiring idle tools.
        """
        await self.working.add_message(owner, MessageRole.USER, message, importance)
        activated = await self.tools.auto_activate_tools(owner, message)
        context = await self.get_context(owner, message, activate_tools=False)
        expired = await self.tools.advance_turn(owner)
        return TurnResult(context=context, activated=activated, expired=expired)

    async def process_assistant_response(
        self,
        owner: str,
        response: str,
        tools_used: list[str] | None = None,
    ) -> WorkingMessage:
        message = await self.working.add_message(owner, MessageRole.ASSISTANT, response)
        for tool_name in tools_used or []:
            await self.tools.record_tool_use(owner, tool_name)
        return message

    # ------------------------------------------------------------------
    # Explicit memory management
    # ------------------------------------------------------------------

    async def remember(
        self,
        owner: str,
        content: str,
        memory_type: MemoryType = MemoryType.SEMANTIC,
        importance: float = 0.7,
        tags: list[str] | None = None,
    ) -> Memory:
        return await self.memory.create_memory(
            owner,
            content,
            memory_type=memory_type,
            importance=importance,
            tags=tags,
        )

    async def forget(self, owner: str, memory_id: str) -> bool:
        """Delete a memory on explicit request. Only the owner's memories can be forgotten."""
        memory = await self.backend.fetch_memory(memory_id)
        if memory is None or memory.owner != owner:
            return False
        return await self.memory.forget_memory(memory_id)

    async def recall(self, owner: str, query: str, limit: int = 5) -> list[Memory]:
        return await self.memory.search_memories(owner, query, limit=limit)

    async def get_formatted_context(self, owner: str, user_message: str | None = None) -> str:
        """A single prompt-injectable block of memories, tools and conversation size."""
        context = await self.get_context(owner, user_message)

        parts = []
        if context.memory_context:
            parts.append(context.memory_context + "\n\n")
        if context.tool_context:
            parts.append(context.tool_context + "\n\n")
        if context.working_messages:
            parts.append("## Recent Conversation\n")
            parts.append(f"({len(context.working_messages)} messages in current segment)\n\n")
        return "".join(parts)

    async def get_status(self, owner: str | None = None) -> MiraStatus:
        status = MiraStatus(
            event_processor=self.events.get_status(),
            sessions=len(self.working.get_active_sessions()),
        )
        if owner:
            status.memory = await self.memory.get_memory_stats(owner)
            status.tools = await self.tools.get_tool_stats(owner)
            status.working = await self.working.get_working_stats(owner)
        return status

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Start background processing."""
        if self._started:
            return
        logger.info("Starting MIRA")
        await self.events.start()
        self._started = True

    async def shutdown(self) -> None:
        """Collapse open segments, run a final decay cycle and stop the processor."""
        if not self._started:
            return
        logger.info("Shutting down MIRA")

        await self.working.collapse_all_segments()
        await self.memory.run_decay_cycle()
        await self.events.stop()

        self._started = False
        logger.info("MIRA shutdown complete")

    async def close(self) -> None:
        """Shut down and release the storage backend."""
        await self.shutdown()
        if isinstance(self.backend, SQLBackend):
            await self.backend.close()
