# tests/test_engine.py
"""
Tests for the Mira engine facade.

Covers:
- Turn processing (tool activation, expiry, working messages)
- Explicit remember / forget / recall
- Formatted context assembly
- Status reporting and lifecycle
"""

import logging

import pytest

from mira_memory import Mira, ManualClock, MemoryType
from mira_memory.events.models import EventProcessorConfig
from mira_memory.memory.models import TAG_CONVERSATION_SUMMARY
from mira_memory.storage.memory import InMemoryBackend
from mira_memory.tools.models import ToolDefinition
from mira_memory.working_memory.models import MessageRole


def names(tools):
    return [tool.name for tool in tools]


# ===========================================================================
# TestTurns
# ===========================================================================


class TestTurns:
    async def test_user_message_activates_tools(self, mira):
        turn = await mira.process_user_message("u1", "What's the weather tomorrow?")

        assert names(turn.activated) == ["weather"]
        assert turn.expired == []
        assert names(turn.context.active_tools) == ["mino_browser", "weather"]
        assert [m.content for m in turn.context.working_messages] == ["What's the weather tomorrow?"]
        assert "**weather**" in turn.context.tool_context

    async def test_already_active_tool_not_reported(self, mira):
        await mira.process_user_message("u1", "Will it rain?")
        turn = await mira.process_user_message("u1", "How much rain exactly?")
        assert turn.activated == []

    async def test_tool_expires_after_idle_turns(self, mira):
        await mira.process_user_message("u1", "Will it rain?")
        expired = [(await mira.process_user_message("u1", "ok")).expired for _ in range(5)]
        assert expired == [[], [], [], [], ["weather"]]

    async def test_assistant_response_records_tool_use(self, mira):
        await mira.process_user_message("u1", "Give me directions home")
        message = await mira.process_assistant_response("u1", "Head north on Valencia", tools_used=["maps"])

        assert message.role == MessageRole.ASSISTANT
        state = await mira.tools.get_tool_state("u1", "maps")
        assert state.total_uses == 1
        assert state.turns_since_use == 0

    async def test_context_memories_deduplicated(self, mira):
        await mira.remember("u1", "Favourite drink is a cortado")
        context = await mira.get_context("u1", "cortado")
        assert len(context.memories) == 1
        assert "cortado" in context.memory_context

    async def test_get_context_without_activation(self, mira):
        context = await mira.get_context("u1", "forecast for Sunday", activate_tools=False)
        assert names(context.active_tools) == ["mino_browser"]


# ===========================================================================
# TestExplicitMemory
# ===========================================================================


class TestExplicitMemory:
    async def test_remember_defaults(self, mira):
        memory = await mira.remember("u1", "Allergic to peanuts", tags=["health"])
        assert memory.memory_type == MemoryType.SEMANTIC
        assert memory.importance == 0.7
        assert memory.tags == ["health"]

    async def test_recall(self, mira):
        await mira.remember("u1", "Partner is called Sam")
        await mira.remember("u1", "Works at the hospital", memory_type=MemoryType.EPISODIC)
        await mira.remember("u2", "Partner is called Alex")

        recalled = await mira.recall("u1", "partner")
        assert [m.content for m in recalled] == ["Partner is called Sam"]

    async def test_recall_limit(self, mira):
        for i in range(8):
            await mira.remember("u1", f"note {i}")
        assert len(await mira.recall("u1", "note")) == 5
        assert len(await mira.recall("u1", "note", limit=2)) == 2

    async def test_forget_checks_owner(self, mira):
        memory = await mira.remember("u1", "Secret plan")

        assert not await mira.forget("u2", memory.id)
        assert await mira.memory.get_memory(memory.id, boost=False) is not None

        assert await mira.forget("u1", memory.id)
        assert await mira.recall("u1", "Secret") == []
        assert not await mira.forget("u1", memory.id)


# ===========================================================================
# TestFormattedContext
# ===========================================================================


class TestFormattedContext:
    async def test_all_sections(self, mira):
        await mira.remember("u1", "Lives in the Mission")
        await mira.process_user_message("u1", "Is it going to rain?")

        block = await mira.get_formatted_context("u1", "rain")
        memories_at = block.index("## Relevant Memories")
        tools_at = block.index("## Available Tools")
        conversation_at = block.index("## Recent Conversation")
        assert memories_at < tools_at < conversation_at
        assert "(1 messages in current segment)" in block

    async def test_empty_without_tools(self, clock):
        mira = Mira(backend=InMemoryBackend(), clock=clock, tools=[])
        assert await mira.get_formatted_context("u1") == ""

    async def test_custom_tools(self, clock):
        tool = ToolDefinition(name="stocks", description="Stock quotes", triggers=["ticker"])
        mira = Mira(clock=clock, tools=[tool])

        turn = await mira.process_user_message("u1", "What's the ticker for Apple?")
        assert names(turn.activated) == ["stocks"]


# ===========================================================================
# TestStatusAndLifecycle
# ===========================================================================


class TestStatusAndLifecycle:
    async def test_status_without_owner(self, mira):
        status = await mira.get_status()
        assert status.sessions == 0
        assert status.memory is None
        assert not status.event_processor.is_running

    async def test_status_for_owner(self, mira):
        await mira.process_user_message("u1", "Find a latte")
        await mira.process_assistant_response("u1", "Philz is open", tools_used=["mino_browser"])
        await mira.remember("u1", "Prefers oat milk")

        status = await mira.get_status("u1")
        assert status.sessions == 1
        assert status.memory.total == 1
        assert status.tools.total_uses == 1
        assert status.working.message_count == 2
        assert status["working"].topic == "coffee"

    async def test_start_and_shutdown(self, mira):
        await mira.start()
        assert mira.started
        assert mira.events.is_running
        await mira.start()

        await mira.process_user_message("u1", "Book dinner for two")
        await mira.shutdown()

        assert not mira.started
        assert not mira.events.is_running
        summaries = await mira.memory.search_memories("u1", "Conversation", tags=[TAG_CONVERSATION_SUMMARY])
        assert len(summaries) == 1
        await mira.shutdown()

    async def test_shutdown_prunes_forgotten(self, backend):
        clock = ManualClock()
        mira = Mira(backend=backend, clock=clock)
        await mira.start()
        await mira.memory.create_memory("u1", "fleeting")
        clock.advance(days=30)
        await mira.shutdown()
        assert backend.memories == {}

    async def test_sql_engine_round_trip(self):
        mira = await Mira.from_url(
            "sqlite+aiosqlite:///:memory:",
            clock=ManualClock(),
            event_config=EventProcessorConfig(run_initial_checks=False),
        )
        await mira.start()
        try:
            await mira.process_user_message("u1", "Remind me about the dentist")
            await mira.remember("u1", "Dentist is Dr. Lee")
            assert [m.content for m in await mira.recall("u1", "Dr. Lee")] == ["Dentist is Dr. Lee"]
        finally:
            await mira.close()
        assert not mira.started

    @pytest.mark.parametrize("owner", ["u1", "whatsapp:+15551234567"])
    async def test_owner_keys_are_opaque(self, mira, owner):
        await mira.process_user_message(owner, "hello")
        assert [s.owner for s in mira.working.get_active_sessions()] == [owner]

    def test_library_installs_no_log_handlers(self):
        assert logging.getLogger("mira_memory").handlers == []
