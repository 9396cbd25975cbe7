# mira_memory/tools/registry.py
"""
Tool Registry - self-directed tool activation.

Tools activate when a message mentions one of their triggers and expire
after ``ttl`` turns without use, keeping the model's context lean.

Handles:
- Trigger detection and auto-activation
- Per-turn and global TTL expiry
- Usage tracking and co-occurrence based suggestions
- Rendering the active tool set for context injection
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from mira_memory.clock import Clock, SystemClock
from mira_memory.config import DEFAULT_MAX_ACTIVE_TOOLS, DEFAULT_TOOL_TTL
from mira_memory.exceptions import UnknownToolError

from .builtin import BUILTIN_TOOLS
from .models import ToolDefinition, ToolState, ToolStats

if TYPE_CHECKING:
    from mira_memory.storage.base import ToolStateBackend

logger = logging.getLogger(__name__)


class ToolRegistryConfig(BaseModel):
    """Configuration for tool activation."""

    ttl: int = Field(default=DEFAULT_TOOL_TTL, description="Idle turns before an on-demand tool expires")
    max_active_tools: int = Field(default=DEFAULT_MAX_ACTIVE_TOOLS, description="Cap on tools returned as active")
    suggestion_limit: int = Field(default=3)
    stats_limit: int = Field(default=5)


class ToolRegistry:
    """
    Registry of tool definitions plus per-conversation activation state.

    Usage::

        registry = ToolRegistry(InMemoryBackend())
        activated = await registry.auto_activate_tools("u1", "What's the weather?")
        expired = await registry.advance_turn("u1")
    """

    def __init__(
        self,
        backend: ToolStateBackend,
        clock: Clock | None = None,
        config: ToolRegistryConfig | None = None,
        definitions: list[ToolDefinition] | None = None,
    ) -> None:
        self._backend = backend
        self._clock = clock or SystemClock()
        self.config = config or ToolRegistryConfig()
        self._tools: dict[str, ToolDefinition] = {}
        for tool in BUILTIN_TOOLS if definitions is None else definitions:
            self._tools[tool.name] = tool

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def register_tool(self, tool: ToolDefinition) -> None:
        self._tools[tool.name] = tool
        logger.info(f"Registered tool: {tool.name}")

    def unregister_tool(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get_all_tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def get_tool(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def require_tool(self, name: str) -> ToolDefinition:
        """Like ``get_tool`` but raises ``UnknownToolError`` for unknown names."""
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def is_always_active(self, name: str) -> bool:
        tool = self._tools.get(name)
        return tool is not None and tool.always_active

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    async def get_tool_state(self, owner: str, name: str) -> ToolState | None:
        return await self._backend.fetch_tool_state(owner, name)

    async def get_active_tools(self, owner: str) -> list[ToolDefinition]:
        """Always-active tools, then enabled tools by use count, capped."""
        active = [tool for tool in self._tools.values() if tool.always_active]

        states = await self._backend.list_tool_states(owner=owner, enabled=True)
        states.sort(key=lambda s: s.use_count, reverse=True)
        for state in states:
            tool = self._tools.get(state.name)
            if tool is not None and not tool.always_active:
                active.append(tool)

        return active[: self.config.max_active_tools]

    async def activate_tool(self, owner: str, name: str) -> bool:
        """Enable a tool and reset its idle counter. False for unknown tools."""
        if name not in self._tools:
            return False

        now = self._clock.now()
        state = await self._backend.fetch_tool_state(owner, name)
        if state is None:
            state = ToolState(name=name, owner=owner, last_used=now, use_count=1, enabled=True)
        else:
            state.enabled = True
            state.last_used = now
            state.use_count += 1
            state.turns_since_use = 0
        await self._backend.save_tool_state(state)

        logger.info(f"Activated {name} for {owner}")
        return True

    async def deactivate_tool(self, owner: str, name: str) -> bool:
        """Disable a tool. Always-active tools cannot be disabled."""
        if self.is_always_active(name):
            return False

        state = await self._backend.fetch_tool_state(owner, name)
        if state is None or not state.enabled:
            return False
        state.enabled = False
        await self._backend.save_tool_state(state)

        logger.info(f"Deactivated {name} for {owner}")
        return True

    async def record_tool_use(self, owner: str, name: str) -> ToolState:
        """
        Count a use of ``name`` and link it with every other active tool.

        A first use creates the state enabled; later uses only refresh
        counters and never re-enable an expired tool.
        """
        now = self._clock.now()
        state = await self._backend.fetch_tool_state(owner, name)
        if state is None:
            state = ToolState(name=name, owner=owner, last_used=now, use_count=1, enabled=True, total_uses=1)
        else:
            state.last_used = now
            state.use_count += 1
            state.turns_since_use = 0
            state.total_uses += 1
        await self._backend.save_tool_state(state)

        for tool in await self.get_active_tools(owner):
            if tool.name != name:
                await self._backend.increment_cooccurrence(owner, name, tool.name)

        return state

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def advance_turn(self, owner: str) -> list[str]:
        """
        Age every enabled tool by one turn and expire those past the TTL.

        Must be called exactly once per conversational turn. Returns the
        names of tools deactivated by this call.
        """
        expired: list[str] = []
        for state in await self._backend.list_tool_states(owner=owner, enabled=True):
            state.turns_since_use += 1
            if state.turns_since_use > self.config.ttl and not self.is_always_active(state.name):
                state.enabled = False
                expired.append(state.name)
            await self._backend.save_tool_state(state)

        if expired:
            logger.info(f"Expired tools for {owner}: {', '.join(expired)}")
        return expired

    async def deactivate_expired_tools(self) -> int:
        """Expire tools past the TTL across every conversation."""
        count = 0
        for state in await self._backend.list_tool_states(enabled=True):
            if state.turns_since_use > self.config.ttl and not self.is_always_active(state.name):
                state.enabled = False
                await self._backend.save_tool_state(state)
                count += 1
                logger.debug(f"Expired {state.name} for {state.owner}")
        return count

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect_needed_tools(self, text: str) -> list[ToolDefinition]:
        """On-demand tools with a trigger appearing in ``text``."""
        return [tool for tool in self._tools.values() if not tool.always_active and tool.matches(text)]

    async def auto_activate_tools(self, owner: str, text: str) -> list[ToolDefinition]:
        """Activate every detected tool; return only the newly enabled ones."""
        activated = []
        for tool in self.detect_needed_tools(text):
            state = await self._backend.fetch_tool_state(owner, tool.name)
            was_active = state is not None and state.enabled
            await self.activate_tool(owner, tool.name)
            if not was_active:
                activated.append(tool)
        return activated

    async def get_suggested_tools(self, owner: str, current_tool: str) -> list[str]:
        """Tools most often used alongside ``current_tool``."""
        records = await self._backend.list_cooccurrences(owner, current_tool)
        records.sort(key=lambda r: r.count, reverse=True)
        return [r.other(current_tool) for r in records[: self.config.suggestion_limit]]

    # ------------------------------------------------------------------
    # Statistics and formatting
    # ------------------------------------------------------------------

    async def get_tool_stats(self, owner: str) -> ToolStats:
        states = await self._backend.list_tool_states(owner=owner)
        limit = self.config.stats_limit

        most_used = sorted(states, key=lambda s: s.total_uses, reverse=True)
        recently_used = sorted(
            (s for s in states if s.last_used is not None),
            key=lambda s: s.last_used,
            reverse=True,
        )
        return ToolStats(
            active=sum(1 for s in states if s.enabled),
            total_uses=sum(s.total_uses for s in states),
            most_used=[s.name for s in most_used[:limit]],
            recently_used=[s.name for s in recently_used[:limit]],
        )

    async def format_tools_for_context(self, owner: str) -> str:
        """Render the active tools as a ``## Available Tools`` block."""
        tools = await self.get_active_tools(owner)
        if not tools:
            return ""
        lines = ["## Available Tools\n"]
        lines.extend(f"- **{tool.name}**: {tool.description}\n" for tool in tools)
        return "".join(lines)
