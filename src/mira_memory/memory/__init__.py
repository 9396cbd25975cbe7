# mira_memory/memory/__init__.py
"""
Long-term memory with biologically-inspired decay.

Usage::

    from mira_memory.memory import MemoryStore, MemoryType
    from mira_memory.storage import InMemoryBackend

    store = MemoryStore(InMemoryBackend())
    await store.create_memory("u1", "Prefers window seats", memory_type=MemoryType.SEMANTIC)
"""

from .decay import (
    DEFAULT_MEMORY_TYPE_CONFIGS,
    MemoryTypeConfig,
    boost_strength,
    calculate_decay,
    should_forget,
    type_config,
)
from .models import (
    PATTERN_PREFIX,
    TAG_CONVERSATION_SUMMARY,
    TAG_PATTERN,
    TAG_WORKING_MEMORY_OVERFLOW,
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
from .store import MemoryStore, MemoryStoreConfig, domain_doc_id

__all__ = [
    # Models
    "Memory",
    "MemoryType",
    "MemoryMetadata",
    "MemoryLink",
    "LinkType",
    "LinkedMemory",
    "DomainDoc",
    "DecayCycleResult",
    "MemoryStats",
    # Tags
    "TAG_CONVERSATION_SUMMARY",
    "TAG_WORKING_MEMORY_OVERFLOW",
    "TAG_PATTERN",
    "PATTERN_PREFIX",
    # Decay
    "MemoryTypeConfig",
    "DEFAULT_MEMORY_TYPE_CONFIGS",
    "calculate_decay",
    "boost_strength",
    "should_forget",
    "type_config",
    # Store
    "MemoryStore",
    "MemoryStoreConfig",
    "domain_doc_id",
]
