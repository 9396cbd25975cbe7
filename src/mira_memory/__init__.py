# mira_memory/__init__.py
"""
MIRA memory engine.

A self-directed memory and tool-activation engine for conversational
assistants:

- Long-term memory that decays unless reinforced
- Per-conversation working memory that consolidates idle segments
- Tools that activate on keyword triggers and expire when unused
- Background sleep cycles for decay, consolidation and expiry

Quick start::

    from mira_memory import Mira

    mira = Mira()
    turn = await mira.process_user_message("u1", "Any good coffee near the office?")
    print(await mira.get_formatted_context("u1"))
"""

from mira_memory.clock import Clock, ManualClock, SystemClock
from mira_memory.engine import Mira, MiraContext, MiraStatus, TurnResult
from mira_memory.events import (
    EventProcessor,
    EventProcessorConfig,
    EventResult,
    EventType,
    MiraEvent,
    SleepCycleResult,
)
from mira_memory.exceptions import MiraError, StorageError, UnknownToolError
from mira_memory.memory import (
    DomainDoc,
    LinkType,
    Memory,
    MemoryLink,
    MemoryMetadata,
    MemoryStore,
    MemoryStoreConfig,
    MemoryType,
    boost_strength,
    calculate_decay,
)
from mira_memory.session_store import SessionStore
from mira_memory.storage import InMemoryBackend, MemoryBackend, SQLBackend, ToolStateBackend
from mira_memory.tools import ToolCategory, ToolDefinition, ToolRegistry, ToolRegistryConfig, ToolState
from mira_memory.working_memory import (
    MessageRole,
    Segment,
    WorkingMemory,
    WorkingMemoryConfig,
    WorkingMessage,
)

__version__ = "0.1.0"

__all__ = [
    # Engine
    "Mira",
    "MiraContext",
    "MiraStatus",
    "TurnResult",
    # Memory
    "MemoryStore",
    "MemoryStoreConfig",
    "Memory",
    "MemoryType",
    "MemoryMetadata",
    "MemoryLink",
    "LinkType",
    "DomainDoc",
    "calculate_decay",
    "boost_strength",
    # Working memory
    "WorkingMemory",
    "WorkingMemoryConfig",
    "WorkingMessage",
    "MessageRole",
    "Segment",
    # Tools
    "ToolRegistry",
    "ToolRegistryConfig",
    "ToolDefinition",
    "ToolState",
    "ToolCategory",
    # Events
    "EventProcessor",
    "EventProcessorConfig",
    "EventType",
    "MiraEvent",
    "EventResult",
    "SleepCycleResult",
    # Infrastructure
    "Clock",
    "SystemClock",
    "ManualClock",
    "SessionStore",
    "MemoryBackend",
    "ToolStateBackend",
    "InMemoryBackend",
    "SQLBackend",
    # Errors
    "MiraError",
    "StorageError",
    "UnknownToolError",
]
