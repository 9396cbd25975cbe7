# mira_memory/working_memory/topics.py
"""
Heuristics over working-memory messages: topic inference, token
estimation, relevance scoring and segment summaries.

All functions here are pure; time is passed in.
"""

from __future__ import annotations

import math
import re
from datetime import datetime

from mira_memory.clock import ensure_utc

from .models import MessageRole, WorkingMessage

GENERAL_TOPIC = "general"

# Checked in order; the first pattern that matches wins
TOPIC_PATTERNS: dict[str, re.Pattern[str]] = {
    "coffee": re.compile(r"coffee|philz|starbucks|cafe|latte|espresso"),
    "food": re.compile(r"food|restaurant|eat|dinner|lunch|breakfast|menu"),
    "weather": re.compile(r"weather|temperature|rain|sunny|forecast"),
    "shopping": re.compile(r"price|buy|shop|order|deal|sale"),
    "travel": re.compile(r"travel|flight|hotel|trip|vacation|book"),
    "work": re.compile(r"meeting|schedule|calendar|work|office|email"),
    "alerts": re.compile(r"alert|notify|remind|monitor|check"),
}


def estimate_tokens(text: str) -> int:
    """Rough token estimate: ~4 characters per token."""
    return math.ceil(len(text) / 4)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def extract_topic(messages: list[WorkingMessage]) -> str:
    """Infer a topic from the user messages in ``messages``."""
    user_texts = [m.content for m in messages if m.role == MessageRole.USER]
    if not user_texts:
        return GENERAL_TOPIC

    combined = " ".join(user_texts).lower()
    for topic, pattern in TOPIC_PATTERNS.items():
        if pattern.search(combined):
            return topic
    return GENERAL_TOPIC


def score_relevance(
    message: WorkingMessage,
    current_topic: str,
    now: datetime,
    topic_bonus: float = 0.2,
    recency_bonus: float = 0.3,
    recency_window_minutes: float = 60.0,
) -> float:
    """
    Relevance of an older message to the current conversation.

    importance + topic bonus (if the message alone infers the current
    topic) + a recency bonus decaying linearly to zero over the window.
    Capped at 1.0.
    """
    score = message.importance

    if extract_topic([message]) == current_topic:
        score += topic_bonus

    age_minutes = (ensure_utc(now) - ensure_utc(message.timestamp)).total_seconds() / 60.0
    recency = 1.0 - age_minutes / recency_window_minutes
    score += max(0.0, recency) * recency_bonus

    return min(1.0, score)


def build_segment_summary(
    topic: str,
    messages: list[WorkingMessage],
    duration_minutes: int,
    max_excerpts: int = 3,
    excerpt_length: int = 50,
) -> str:
    """One-sentence summary of a segment for long-term storage."""
    user_messages = [m for m in messages if m.role == MessageRole.USER]
    excerpts = "; ".join(m.content[:excerpt_length] for m in user_messages[:max_excerpts])
    return (
        f"Conversation about {topic}: {len(messages)} messages over {duration_minutes} minutes. "
        f"User asked about: {excerpts}"
    )
