# tests/test_event_processor.py
"""
Tests for the background EventProcessor and dream consolidation.

Covers:
- Word-overlap similarity and pattern extraction
- FIFO processing, custom handlers and failure isolation
- Bounded queue and bounded history
- Start/stop lifecycle, interval timers and forced sleep cycles
"""

import asyncio

import pytest

from mira_memory.events.dream import calculate_similarity, consolidate_owner, pattern_content
from mira_memory.events.models import EventProcessorConfig, EventResult, EventType, MiraEvent
from mira_memory.events.processor import EventProcessor
from mira_memory.memory.models import TAG_PATTERN, MemoryType
from mira_memory.tools.models import ToolState
from mira_memory.working_memory.models import MessageRole


def make_processor(store, working, registry, clock, **overrides):
    config = EventProcessorConfig(**{"run_initial_checks": False, **overrides})
    return EventProcessor(store, working, registry, clock=clock, config=config)


# ===========================================================================
# TestSimilarity
# ===========================================================================


class TestSimilarity:
    def test_identical(self):
        assert calculate_similarity("Ordered latte from Philz", "ordered LATTE from philz") == 1.0

    def test_short_words_ignored(self):
        assert calculate_similarity("a an the of", "a an the of") == 0.0
        assert calculate_similarity("the cat sat", "the cat sat down") == 0.0

    def test_jaccard(self):
        assert calculate_similarity("coffee philz mission", "coffee philz mission today") == pytest.approx(0.75)

    def test_custom_min_length(self):
        assert calculate_similarity("cat dog", "cat cow", min_word_length=3) == pytest.approx(1 / 3)


# ===========================================================================
# TestDreamConsolidation
# ===========================================================================


class TestDreamConsolidation:
    async def test_too_few_memories(self, store):
        await store.create_memory("u1", "Ordered oat latte from Philz", tags=["coffee"])
        result = await consolidate_owner(store, "u1")
        assert result == {"links_created": 0, "patterns_found": 0}

    async def test_links_and_patterns(self, store):
        first = await store.create_memory("u1", "Ordered oat latte from Philz", tags=["coffee"])
        second = await store.create_memory("u1", "Ordered oat latte from Philz today", tags=["coffee"])
        await store.create_memory("u1", "Tried a new espresso blend", tags=["coffee"])

        result = await consolidate_owner(store, "u1")
        assert result.links_created == 1
        assert result.patterns_found == 1

        linked = await store.get_linked_memories(first.id) + await store.get_linked_memories(second.id)
        assert len(linked) == 1
        assert linked[0].link_strength == pytest.approx(0.8)

        [pattern] = await store.search_memories("u1", "pattern:coffee")
        assert pattern.content == pattern_content("coffee")
        assert pattern.memory_type == MemoryType.SEMANTIC
        assert pattern.importance == 0.7
        assert pattern.tags == [TAG_PATTERN, "coffee"]
        assert pattern.metadata.count == 3

    async def test_threshold_is_strict(self, store):
        await store.create_memory("u1", "coffee philz downtown")
        await store.create_memory("u1", "coffee philz uptown")
        result = await consolidate_owner(store, "u1")
        assert result.links_created == 0

    async def test_pattern_not_duplicated(self, store):
        for i in range(3):
            await store.create_memory("u1", f"weather note {i}", tags=["weather"])

        assert (await consolidate_owner(store, "u1")).patterns_found == 1
        assert (await consolidate_owner(store, "u1")).patterns_found == 0
        assert len(await store.search_memories("u1", "pattern:")) == 1

    async def test_pattern_for_prefix_tag_still_extracted(self, store):
        for i in range(3):
            await store.create_memory("u1", f"leg day {i}", tags=["workout"])
        assert (await consolidate_owner(store, "u1")).patterns_found == 1

        for i in range(3):
            await store.create_memory("u1", f"standup {i}", tags=["work"])
        assert (await consolidate_owner(store, "u1")).patterns_found == 1

        patterns = await store.search_memories("u1", "pattern:", tags=[TAG_PATTERN])
        assert sorted(p.tags[1] for p in patterns) == ["work", "workout"]

    async def test_below_tag_threshold(self, store):
        await store.create_memory("u1", "first", tags=["travel"])
        await store.create_memory("u1", "second", tags=["travel"])
        assert (await consolidate_owner(store, "u1")).patterns_found == 0


# ===========================================================================
# TestProcessing
# ===========================================================================


class TestProcessing:
    async def test_fifo_order(self, processor):
        seen = []

        async def record(event):
            seen.append(event.data["n"])
            return EventResult(success=True, event=event)

        processor.register_event_handler("record", record)
        for n in range(5):
            assert processor.trigger_event(EventType.CUSTOM, data={"n": n}, handler_id="record")

        await processor.drain()
        assert seen == [0, 1, 2, 3, 4]
        assert processor.get_status().queue_length == 0

    async def test_handler_id_in_data(self, processor):
        async def pong(event):
            return EventResult(success=True, event=event, details="pong")

        processor.register_event_handler("ping", pong)
        processor.trigger_event("custom", data={"handler_id": "ping"})
        await processor.drain()
        assert processor.history[-1].details == "pong"

    async def test_missing_handler(self, processor, clock):
        result = await processor.process_event(MiraEvent(type=EventType.CUSTOM, timestamp=clock.now()))
        assert not result.success
        assert result.error == "No handler for custom event"

    async def test_unregister_handler(self, processor):
        async def noop(event):
            return EventResult(success=True, event=event)

        processor.register_event_handler("noop", noop)
        assert processor.get_status().registered_handlers == ["noop"]
        assert processor.unregister_event_handler("noop")
        assert not processor.unregister_event_handler("noop")

    async def test_failure_does_not_stop_processing(self, processor):
        async def boom(event):
            raise RuntimeError("boom")

        processor.register_event_handler("boom", boom)
        processor.trigger_event(EventType.CUSTOM, handler_id="boom")
        processor.trigger_event(EventType.MEMORY_DECAY)
        await processor.drain()

        failed, decayed = processor.history
        assert not failed.success
        assert failed.error == "boom"
        assert decayed.success
        assert processor.get_status().processed == 2

    async def test_queue_full(self, store, working, registry, clock):
        processor = make_processor(store, working, registry, clock, queue_maxsize=1)
        assert processor.trigger_event(EventType.MEMORY_DECAY)
        assert not processor.trigger_event(EventType.MEMORY_DECAY)
        assert processor.get_status().queue_length == 1

    async def test_history_bounded(self, store, working, registry, clock):
        processor = make_processor(store, working, registry, clock, history_size=2)
        for _ in range(3):
            processor.trigger_event(EventType.TOOL_EXPIRY)
        await processor.drain()
        assert len(processor.history) == 2
        assert processor.get_status().processed == 3


# ===========================================================================
# TestBuiltinHandlers
# ===========================================================================


class TestBuiltinHandlers:
    async def test_segment_collapse(self, processor, working, clock):
        await working.add_message("u1", MessageRole.USER, "latte?")
        clock.advance(hours=3)

        result = await processor.process_event(MiraEvent(type=EventType.SEGMENT_COLLAPSE, timestamp=clock.now()))
        assert result.stats == {"collapsed": 1}
        assert result.details == "Collapsed 1 idle segments"

    async def test_memory_decay(self, processor, store, clock):
        await store.create_memory("u1", "old")
        clock.advance(days=30)
        await store.create_memory("u1", "new")

        result = await processor.process_event(MiraEvent(type=EventType.MEMORY_DECAY, timestamp=clock.now()))
        assert result.stats == {"pruned": 1, "remaining": 1}

    async def test_dream_covers_active_sessions(self, processor, working, store):
        for i in range(3):
            await store.create_memory("u1", f"dinner idea {i}", tags=["food"])
            await store.create_memory("u2", f"dinner idea {i}", tags=["food"])
        await working.add_message("u1", MessageRole.USER, "hi")

        result = await processor.process_event(MiraEvent(type=EventType.DREAM_CONSOLIDATE, timestamp=store.clock.now()))
        assert result.stats["patterns_found"] == 1
        assert await store.search_memories("u2", "pattern:") == []

    async def test_tool_expiry(self, processor, backend, clock):
        await backend.save_tool_state(ToolState(name="maps", owner="u1", enabled=True, turns_since_use=8))
        result = await processor.process_event(MiraEvent(type=EventType.TOOL_EXPIRY, timestamp=clock.now()))
        assert result.stats == {"expired": 1}


# ===========================================================================
# TestLifecycle
# ===========================================================================


class TestLifecycle:
    async def test_start_stop(self, processor):
        await processor.start()
        assert processor.is_running
        assert processor.get_status().is_running

        await processor.start()
        await processor.stop()
        assert not processor.is_running
        await processor.stop()

    async def test_initial_checks_processed_by_consumer(self, store, working, registry, clock):
        processor = make_processor(store, working, registry, clock, run_initial_checks=True)
        await processor.start()
        try:
            await processor.drain()
            assert [r.event.type for r in processor.history] == [EventType.SEGMENT_COLLAPSE, EventType.TOOL_EXPIRY]
        finally:
            await processor.stop()

    async def test_timer_queues_events(self, store, working, registry, clock):
        processor = make_processor(store, working, registry, clock, segment_check_interval=0.01)
        await processor.start()
        try:
            await asyncio.sleep(0.1)
            await processor.drain()
        finally:
            await processor.stop()
        assert any(r.event.type == EventType.SEGMENT_COLLAPSE for r in processor.history)

    async def test_events_queued_after_stop_drain_inline(self, processor):
        await processor.start()
        await processor.stop()
        processor.trigger_event(EventType.MEMORY_DECAY)
        assert processor.get_status().queue_length == 1
        assert processor.history == []
        await processor.drain()
        assert processor.history[-1].event.type == EventType.MEMORY_DECAY

    async def test_force_sleep_cycle(self, processor, working, store, clock):
        await working.add_message("u1", MessageRole.USER, "book a flight")
        clock.advance(hours=3)

        result = await processor.force_sleep_cycle()
        assert result.segment_collapse.stats == {"collapsed": 1}
        assert result.memory_decay.stats == {"pruned": 0, "remaining": 1}
        assert result.dream_consolidate.success
        assert result.tool_expiry.stats == {"expired": 0}
        assert [r.event.type for r in processor.history] == [
            EventType.SEGMENT_COLLAPSE,
            EventType.MEMORY_DECAY,
            EventType.DREAM_CONSOLIDATE,
            EventType.TOOL_EXPIRY,
        ]
