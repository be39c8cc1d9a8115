"""Tests for persisted visitor/session state."""

import re
from datetime import datetime, timedelta, timezone

from piwik_tracker.state import (
    MemoryStateStore,
    TrackerState,
    YamlStateStore,
    begin_visit,
    current_visitor,
)


class TestVisitor:
    def test_minted_once(self):
        state = TrackerState()
        visitor = current_visitor(state)

        assert re.fullmatch(r"[0-9a-f]{16}", visitor.id)
        assert state.visitor_id == visitor.id
        assert current_visitor(state) == visitor

    def test_regenerated_after_clear(self):
        state = TrackerState()
        first = current_visitor(state)

        cleared = TrackerState()
        assert current_visitor(cleared).id != first.id


class TestSession:
    def test_begin_visit_advances_counters(self):
        state = TrackerState()
        t1 = datetime(2024, 5, 1, tzinfo=timezone.utc)
        t2 = t1 + timedelta(hours=3)

        first = begin_visit(state, now=t1)
        second = begin_visit(state, now=t2)

        assert first.total_visits == 1
        assert first.previous_visit is None
        assert second.total_visits == 2
        assert second.previous_visit == t1
        assert second.current_visit == t2

    def test_sessions_are_snapshots(self):
        state = TrackerState()
        first = begin_visit(state)
        begin_visit(state)

        assert first.total_visits == 1


class TestStores:
    def test_memory_store_copies(self):
        store = MemoryStateStore()
        state = store.load()
        state.total_visits = 5

        assert store.load().total_visits == 0
        store.save(state)
        assert store.load().total_visits == 5

    def test_yaml_missing_file_is_fresh(self, tmp_path):
        store = YamlStateStore(tmp_path / "nope" / "state.yaml")
        assert store.load() == TrackerState()

    def test_yaml_save_and_reload(self, tmp_path):
        path = tmp_path / "state" / "tracker.yaml"
        state = TrackerState(opt_out=True, total_visits=3)
        current_visitor(state)
        begin_visit(state)
        begin_visit(state)

        YamlStateStore(path).save(state)
        loaded = YamlStateStore(path).load()

        assert loaded == state
        assert loaded.total_visits == 5
        assert loaded.previous_visit is not None
