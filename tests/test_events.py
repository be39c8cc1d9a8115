"""Tests for event types."""

import dataclasses
from datetime import datetime, timezone

import pytest

from piwik_tracker.events import CustomDimension, Event, Session


class TestEvent:
    def test_create_stamps_id_and_time(self, make_event):
        before = datetime.now(timezone.utc)
        event = make_event("players", "john")
        after = datetime.now(timezone.utc)

        assert event.uuid
        assert before <= event.date <= after
        assert event.action_name == ("players", "john")
        assert event.is_view

    def test_ids_are_unique(self, make_event):
        assert make_event().uuid != make_event().uuid

    def test_is_immutable(self, make_event):
        event = make_event()
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.url = "http://elsewhere"

    def test_dimensions_are_a_snapshot(self, make_event):
        dims = [CustomDimension(1, "a")]
        event = make_event(dimensions=dims)
        dims.append(CustomDimension(2, "b"))

        assert event.dimensions == (CustomDimension(1, "a"),)

    def test_category_event_is_not_a_view(self, make_event):
        event = make_event(event_category="player", event_action="play")
        assert not event.is_view

    def test_dict_round_trip(self, make_event):
        event = make_event(
            "a", "b",
            referer="http://ref",
            event_category="c",
            event_action="d",
            event_name="e",
            event_value=1.5,
            dimensions=(CustomDimension(3, "ios"),),
        )
        assert Event.from_dict(event.to_dict()) == event

    def test_to_dict_without_previous_visit(self, make_event, session):
        first = Session(previous_visit=None, current_visit=session.current_visit, total_visits=1)
        d = make_event(session=first).to_dict()

        assert d["session"]["previous_visit"] is None
        assert Event.from_dict(d).session.previous_visit is None
