# tests/test_base_models.py
"""Tests for dict-style access on result and statistics records."""

from datetime import UTC, datetime

import pytest

from mira_memory.events.models import DreamResult
from mira_memory.memory.models import DecayCycleResult, MemoryStats
from mira_memory.tools.models import ToolStats


class TestGetItem:
    def test_reads_field(self):
        result = DecayCycleResult(pruned=3, remaining=7)
        assert result["pruned"] == 3
        assert result["remaining"] == 7

    def test_missing_key_raises(self):
        with pytest.raises(AttributeError):
            DecayCycleResult()["deleted"]

    def test_nested_value(self):
        stats = MemoryStats(total=2, by_type={"episodic": 2})
        assert stats["by_type"]["episodic"] == 2


class TestContains:
    def test_declared_fields(self):
        stats = ToolStats()
        assert "most_used" in stats
        assert "recently_used" in stats

    def test_unknown_and_non_string_keys(self):
        stats = ToolStats()
        assert "favourite" not in stats
        assert 0 not in stats


class TestEquality:
    def test_equals_matching_dict(self):
        assert DreamResult(links_created=2) == {"links_created": 2, "patterns_found": 0}

    def test_differs_from_other_dict(self):
        assert DreamResult(links_created=2) != {"links_created": 1, "patterns_found": 0}

    def test_dates_compare_as_datetimes(self):
        when = datetime(2024, 1, 1, tzinfo=UTC)
        stats = MemoryStats(total=1, by_type={"semantic": 1}, avg_strength=1.0, oldest_memory=when, newest_memory=when)
        assert stats == {
            "total": 1,
            "by_type": {"semantic": 1},
            "avg_strength": 1.0,
            "oldest_memory": when,
            "newest_memory": when,
        }

    def test_same_model(self):
        assert DecayCycleResult(pruned=1) == DecayCycleResult(pruned=1)
        assert DecayCycleResult(pruned=1) != DecayCycleResult(pruned=2)

    def test_unrelated_type(self):
        assert DecayCycleResult() != "pruned"
