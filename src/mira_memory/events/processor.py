# mira_memory/events/processor.py
"""
Event Processor - background "sleep cycles" for the memory engine.

A bounded FIFO queue is drained by a single consumer task, so at most one
event is ever being processed. Four timer tasks feed it:

- segment_collapse: collapse idle working-memory segments (every 5 min)
- memory_decay: prune and re-checkpoint long-term memory (every 24 h)
- dream_consolidate: link similar memories, extract patterns (every 6 h)
- tool_expiry: expire unused tools across conversations (every 10 min)

Custom events are routed to handlers registered under a ``handler_id``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

from mira_memory.clock import Clock
from mira_memory.memory.store import MemoryStore
from mira_memory.tools.registry import ToolRegistry
from mira_memory.working_memory.manager import WorkingMemory

from .dream import consolidate_owner
from .models import (
    EventProcessorConfig,
    EventProcessorStatus,
    EventResult,
    EventType,
    MiraEvent,
    SleepCycleResult,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[MiraEvent], Awaitable[EventResult]]


class EventProcessor:
    """
    Single-consumer scheduler for maintenance work.

    Usage::

        processor = EventProcessor(store, working, registry)
        await processor.start()
        processor.trigger_event(EventType.MEMORY_DECAY)
        await processor.drain()
        await processor.stop()
    """

    def __init__(
        self,
        memory_store: MemoryStore,
        working_memory: WorkingMemory,
        tool_registry: ToolRegistry,
        clock: Clock | None = None,
        config: EventProcessorConfig | None = None,
    ) -> None:
        self.memory_store = memory_store
        self.working_memory = working_memory
        self.tool_registry = tool_registry
        self._clock = clock or memory_store.clock
        self.config = config or EventProcessorConfig()

        self._queue: asyncio.Queue[MiraEvent] = asyncio.Queue(maxsize=self.config.queue_maxsize)
        self._handlers: dict[str, EventHandler] = {}
        self._history: deque[EventResult] = deque(maxlen=self.config.history_size)
        self._processed = 0

        self._running = False
        self._consumer_task: asyncio.Task[None] | None = None
        self._timer_tasks: list[asyncio.Task[None]] = []
        self._drain_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def history(self) -> list[EventResult]:
        """Most recent results, oldest first."""
        return list(self._history)

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def queue_event(self, event: MiraEvent) -> bool:
        """
        Enqueue an event. Returns False (and drops it) if the queue is full.

        Events queued while the processor is stopped are held until
        :meth:`start` or :meth:`drain` runs them.
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping {event.type.value} event")
            return False
        return True

    def trigger_event(
        self,
        event_type: EventType | str,
        owner: str | None = None,
        data: dict[str, Any] | None = None,
        handler_id: str | None = None,
    ) -> bool:
        """Queue an immediate event of ``event_type``. See :meth:`queue_event`."""
        return self.queue_event(
            MiraEvent(
                type=EventType(event_type),
                timestamp=self._clock.now(),
                owner=owner,
                handler_id=handler_id,
                data=data or {},
            )
        )

    async def drain(self) -> None:
        """
        Wait until every queued event has been processed.

        While running this waits on the consumer; otherwise the queue is
        processed inline, in order.
        """
        if self._running:
            await self._queue.join()
            return

        async with self._drain_lock:
            while not self._queue.empty():
                event = self._queue.get_nowait()
                try:
                    await self.process_event(event)
                finally:
                    self._queue.task_done()

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                async with self._drain_lock:
                    await self.process_event(event)
            finally:
                self._queue.task_done()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def process_event(self, event: MiraEvent) -> EventResult:
        """Run the handler for one event. Handler errors become failed results."""
        try:
            result = await self._dispatch(event)
        except Exception as e:
            logger.exception(f"Error processing {event.type.value} event")
            result = EventResult(success=False, event=event, error=str(e))

        if result.details:
            logger.info(f"{event.type.value}: {result.details}")
        elif result.error:
            logger.warning(f"{event.type.value} failed: {result.error}")

        self._processed += 1
        self._history.append(result)
        return result

    async def _dispatch(self, event: MiraEvent) -> EventResult:
        if event.type == EventType.SEGMENT_COLLAPSE:
            return await self._handle_segment_collapse(event)
        if event.type == EventType.MEMORY_DECAY:
            return await self._handle_memory_decay(event)
        if event.type == EventType.DREAM_CONSOLIDATE:
            return await self._handle_dream_consolidate(event)
        if event.type == EventType.TOOL_EXPIRY:
            return await self._handle_tool_expiry(event)
        return await self._handle_custom(event)

    async def _handle_segment_collapse(self, event: MiraEvent) -> EventResult:
        collapsed = await self.working_memory.collapse_idle_segments()
        return EventResult(
            success=True,
            event=event,
            details=f"Collapsed {collapsed} idle segments",
            stats={"collapsed": collapsed},
        )

    async def _handle_memory_decay(self, event: MiraEvent) -> EventResult:
        result = await self.memory_store.run_decay_cycle()
        return EventResult(
            success=True,
            event=event,
            details=f"Pruned {result.pruned} memories, {result.remaining} remaining",
            stats={"pruned": result.pruned, "remaining": result.remaining},
        )

    async def _handle_dream_consolidate(self, event: MiraEvent) -> EventResult:
        links = 0
        patterns = 0
        for session in self.working_memory.get_active_sessions():
            result = await consolidate_owner(self.memory_store, session.owner, self.config)
            links += result.links_created
            patterns += result.patterns_found
        return EventResult(
            success=True,
            event=event,
            details=f"Dream consolidation: {links} links created, {patterns} patterns found",
            stats={"links_created": links, "patterns_found": patterns},
        )

    async def _handle_tool_expiry(self, event: MiraEvent) -> EventResult:
        expired = await self.tool_registry.deactivate_expired_tools()
        return EventResult(
            success=True,
            event=event,
            details=f"Deactivated {expired} expired tools",
            stats={"expired": expired},
        )

    async def _handle_custom(self, event: MiraEvent) -> EventResult:
        handler_id = event.handler_id or event.data.get("handler_id")
        handler = self._handlers.get(handler_id) if handler_id else None
        if handler is None:
            logger.warning(f"No handler registered for custom event: {handler_id}")
            return EventResult(success=False, event=event, error="No handler for custom event")
        return await handler(event)

    # ------------------------------------------------------------------
    # Custom handlers
    # ------------------------------------------------------------------

    def register_event_handler(self, handler_id: str, handler: EventHandler) -> None:
        self._handlers[handler_id] = handler
        logger.debug(f"Registered event handler: {handler_id}")

    def unregister_event_handler(self, handler_id: str) -> bool:
        return self._handlers.pop(handler_id, None) is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the consumer and the four interval timers."""
        if self._running:
            logger.warning("Event processor already running")
            return

        logger.info("Starting event processor")
        self._running = True
        self._consumer_task = asyncio.create_task(self._consume(), name="mira-event-consumer")

        schedule = [
            (EventType.SEGMENT_COLLAPSE, self.config.segment_check_interval),
            (EventType.MEMORY_DECAY, self.config.memory_decay_interval),
            (EventType.DREAM_CONSOLIDATE, self.config.dream_interval),
            (EventType.TOOL_EXPIRY, self.config.tool_expiry_interval),
        ]
        for event_type, interval in schedule:
            task = asyncio.create_task(self._timer(event_type, interval), name=f"mira-timer-{event_type.value}")
            self._timer_tasks.append(task)

        if self.config.run_initial_checks:
            self.trigger_event(EventType.SEGMENT_COLLAPSE)
            self.trigger_event(EventType.TOOL_EXPIRY)

    async def _timer(self, event_type: EventType, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.trigger_event(event_type)

    async def stop(self) -> None:
        """Cancel timers and the consumer. Queued events stay queued."""
        if not self._running:
            return

        logger.info("Stopping event processor")
        self._running = False

        tasks = [*self._timer_tasks]
        if self._consumer_task is not None:
            tasks.append(self._consumer_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._timer_tasks.clear()
        self._consumer_task = None

    async def force_sleep_cycle(self) -> SleepCycleResult:
        """Run every maintenance operation now, in order, outside the queue."""
        logger.info("Forcing sleep cycle")
        now = self._clock.now()

        results = {}
        for event_type in (
            EventType.SEGMENT_COLLAPSE,
            EventType.MEMORY_DECAY,
            EventType.DREAM_CONSOLIDATE,
            EventType.TOOL_EXPIRY,
        ):
            results[event_type.value] = await self.process_event(MiraEvent(type=event_type, timestamp=now))

        return SleepCycleResult(**results)

    def get_status(self) -> EventProcessorStatus:
        return EventProcessorStatus(
            is_running=self._running,
            queue_length=self._queue.qsize(),
            registered_handlers=list(self._handlers),
            processed=self._processed,
        )
