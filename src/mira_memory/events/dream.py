# mira_memory/events/dream.py
"""
Dream consolidation - offline linking and pattern extraction.

For each conversation the strongest memories are compared pairwise;
similar pairs are linked and frequently recurring tags become
``pattern:<tag>`` semantic memories.
"""

from __future__ import annotations

import logging
from collections import Counter

from mira_memory.memory.models import PATTERN_PREFIX, TAG_PATTERN, LinkType, MemoryMetadata, MemoryType
from mira_memory.memory.store import MemoryStore

from .models import DreamResult, EventProcessorConfig

logger = logging.getLogger(__name__)


def calculate_similarity(text_a: str, text_b: str, min_word_length: int = 4) -> float:
    """Jaccard similarity over lower-cased words of at least ``min_word_length``."""
    words_a = {w for w in text_a.lower().split() if len(w) >= min_word_length}
    words_b = {w for w in text_b.lower().split() if len(w) >= min_word_length}
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def pattern_content(tag: str) -> str:
    return f"{PATTERN_PREFIX}{tag} - User frequently discusses topics related to {tag}"


async def consolidate_owner(
    store: MemoryStore,
    owner: str,
    config: EventProcessorConfig | None = None,
) -> DreamResult:
    """Link similar memories and extract tag patterns for one conversation."""
    config = config or EventProcessorConfig()
    result = DreamResult()

    stats = await store.get_memory_stats(owner)
    if stats.total < config.dream_min_memories:
        return result

    memories = await store.get_strongest_memories(owner, limit=config.dream_memory_limit)

    for i, first in enumerate(memories):
        for second in memories[i + 1 :]:
            similarity = calculate_similarity(first.content, second.content, config.min_word_length)
            if similarity > config.similarity_threshold:
                await store.link_memories(first.id, second.id, LinkType.RELATED, similarity)
                result.links_created += 1

    # Pattern memories carry the tag themselves, so they are left out of the count
    tag_counts = Counter(tag for memory in memories for tag in memory.tags if tag != TAG_PATTERN)

    patterns = await store.search_memories(
        owner, PATTERN_PREFIX, limit=stats.total, min_strength=0.0, tags=[TAG_PATTERN]
    )
    known_tags = {tag for pattern in patterns for tag in pattern.tags if tag != TAG_PATTERN}

    for tag, count in tag_counts.items():
        if count < config.pattern_tag_threshold or tag in known_tags:
            continue
        await store.create_memory(
            owner,
            pattern_content(tag),
            memory_type=MemoryType.SEMANTIC,
            importance=config.pattern_importance,
            tags=[TAG_PATTERN, tag],
            metadata=MemoryMetadata(count=count, extracted_at=store.clock.now()),
        )
        known_tags.add(tag)
        result.patterns_found += 1

    if result.links_created or result.patterns_found:
        logger.debug(
            f"Dream consolidation for {owner}: {result.links_created} links, {result.patterns_found} patterns"
        )
    return result
