# mira_memory/tools/__init__.py
"""
Self-directed tool activation.

Usage::

    from mira_memory.tools import ToolRegistry
    from mira_memory.storage import InMemoryBackend

    registry = ToolRegistry(InMemoryBackend())
    newly_active = await registry.auto_activate_tools("u1", "remind me about the meeting")
"""

from .builtin import BUILTIN_TOOLS
from .models import (
    ToolCategory,
    ToolCooccurrence,
    ToolDefinition,
    ToolState,
    ToolStats,
    ordered_pair,
)
from .registry import ToolRegistry, ToolRegistryConfig

__all__ = [
    "ToolRegistry",
    "ToolRegistryConfig",
    "BUILTIN_TOOLS",
    "ToolCategory",
    "ToolDefinition",
    "ToolState",
    "ToolCooccurrence",
    "ToolStats",
    "ordered_pair",
]
