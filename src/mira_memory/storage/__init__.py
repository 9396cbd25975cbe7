# mira_memory/storage/__init__.py
"""
Storage backends for the memory engine.

- InMemoryBackend: process-local dictionaries (tests, ephemeral use)
- SQLBackend: SQLAlchemy async ORM over any async URL (SQLite by default)
"""

from .base import MemoryBackend, ToolStateBackend
from .memory import InMemoryBackend
from .sql import SQLBackend

__all__ = [
    "MemoryBackend",
    "ToolStateBackend",
    "InMemoryBackend",
    "SQLBackend",
]
