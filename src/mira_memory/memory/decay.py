# mira_memory/memory/decay.py
"""
Decay model for long-term memory.

    live = checkpoint * 0.5 ** (days_since_checkpoint / half_life)

Episodic memories fade fastest and are pruned most eagerly; procedural
memories persist longest. Each access boosts strength by an amount that
is inversely related to the half-life, capped at ``max_strength``.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from mira_memory.clock import days_between

from .models import MemoryType


class MemoryTypeConfig(BaseModel):
    """Decay parameters for one memory type."""

    half_life_days: float = Field(..., gt=0.0, description="Days until strength halves")
    boost_on_access: float = Field(..., ge=0.0, description="Strength added on each access")
    forget_threshold: float = Field(..., ge=0.0, le=1.0, description="Below this, memory is pruned")
    max_strength: float = Field(default=1.0, gt=0.0, le=1.0)


DEFAULT_MEMORY_TYPE_CONFIGS: dict[MemoryType, MemoryTypeConfig] = {
    MemoryType.EPISODIC: MemoryTypeConfig(
        half_life_days=7,
        boost_on_access=0.3,
        forget_threshold=0.1,
        max_strength=1.0,
    ),
    MemoryType.SEMANTIC: MemoryTypeConfig(
        half_life_days=30,
        boost_on_access=0.2,
        forget_threshold=0.05,
        max_strength=1.0,
    ),
    MemoryType.PROCEDURAL: MemoryTypeConfig(
        half_life_days=90,
        boost_on_access=0.1,
        forget_threshold=0.05,
        max_strength=1.0,
    ),
}


def type_config(
    memory_type: MemoryType | str,
    configs: dict[MemoryType, MemoryTypeConfig] | None = None,
) -> MemoryTypeConfig:
    """Look up the parameters for a type, falling back to episodic."""
    table = configs or DEFAULT_MEMORY_TYPE_CONFIGS
    try:
        return table[MemoryType(memory_type)]
    except (ValueError, KeyError):
        return table[MemoryType.EPISODIC]


def calculate_decay(
    last_strength: float,
    checkpoint_at: datetime,
    memory_type: MemoryType | str,
    now: datetime,
    configs: dict[MemoryType, MemoryTypeConfig] | None = None,
) -> float:
    """Project a stored strength checkpoint forward to ``now``."""
    cfg = type_config(memory_type, configs)
    days = days_between(checkpoint_at, now)
    decayed = last_strength * 0.5 ** (days / cfg.half_life_days)
    return max(0.0, decayed)


def boost_strength(
    current_strength: float,
    memory_type: MemoryType | str,
    configs: dict[MemoryType, MemoryTypeConfig] | None = None,
) -> float:
    """Strength after one access, never above ``max_strength``."""
    cfg = type_config(memory_type, configs)
    return min(cfg.max_strength, current_strength + cfg.boost_on_access)


def should_forget(
    live_strength: float,
    memory_type: MemoryType | str,
    configs: dict[MemoryType, MemoryTypeConfig] | None = None,
) -> bool:
    return live_strength < type_config(memory_type, configs).forget_threshold
