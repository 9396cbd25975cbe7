# tests/conftest.py
"""
Shared pytest fixtures for mira_memory tests.

Every fixture builds fresh, isolated components on a ManualClock so
tests can move time forward instead of sleeping.
"""

import logging

import pytest

from mira_memory.clock import ManualClock
from mira_memory.engine import Mira
from mira_memory.events.models import EventProcessorConfig
from mira_memory.events.processor import EventProcessor
from mira_memory.memory.store import MemoryStore
from mira_memory.storage.memory import InMemoryBackend
from mira_memory.storage.sql import SQLBackend
from mira_memory.tools.registry import ToolRegistry
from mira_memory.working_memory.manager import WorkingMemory

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logging.getLogger("mira_memory").setLevel(logging.DEBUG)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend, clock):
    return MemoryStore(backend, clock=clock)


@pytest.fixture
def working(store, clock):
    return WorkingMemory(store, clock=clock)


@pytest.fixture
def registry(backend, clock):
    return ToolRegistry(backend, clock=clock)


@pytest.fixture
def processor(store, working, registry, clock):
    return EventProcessor(store, working, registry, clock=clock, config=EventProcessorConfig(run_initial_checks=False))


@pytest.fixture
def mira(backend, clock):
    return Mira(backend=backend, clock=clock)


@pytest.fixture
async def sql_backend():
    backend = SQLBackend("sqlite+aiosqlite:///:memory:")
    await backend.initialize()
    yield backend
    await backend.close()
