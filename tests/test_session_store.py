# tests/test_session_store.py
"""Tests for the keyed per-conversation SessionStore."""

from mira_memory.session_store import SessionStore


class TestSessionStore:
    def test_get_or_create_calls_factory_once(self):
        store = SessionStore()
        calls = []

        def factory():
            calls.append(1)
            return {"turns": 0}

        first = store.get_or_create("u1", factory)
        second = store.get_or_create("u1", factory)
        assert first is second
        assert len(calls) == 1

    def test_set_get_pop(self):
        store = SessionStore()
        store.set("u1", "ctx")
        assert store.get("u1") == "ctx"
        assert "u1" in store
        assert store.pop("u1") == "ctx"
        assert store.pop("u1") is None
        assert store.get("u1") is None

    def test_iteration_is_a_snapshot(self):
        store = SessionStore()
        store.set("a", 1)
        store.set("b", 2)
        for key in store:
            store.pop(key)
        assert len(store) == 0

    def test_items_and_clear(self):
        store = SessionStore()
        store.set("a", 1)
        assert store.items() == [("a", 1)]
        assert store.keys() == ["a"]
        store.clear()
        assert store.items() == []

    def test_instances_are_independent(self):
        first, second = SessionStore(), SessionStore()
        first.set("u1", 1)
        assert second.get("u1") is None
