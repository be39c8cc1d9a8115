"""Shared fixtures and test doubles for tracker tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Sequence

import pytest

from piwik_tracker.dispatchers.base import Dispatcher
from piwik_tracker.errors import DispatchError, QueueError
from piwik_tracker.events import Event, Session, Visitor
from piwik_tracker.queues.memory import MemoryQueue
from piwik_tracker.state import MemoryStateStore


# =============================================================================
# Dispatcher doubles
# =============================================================================

class ScriptedDispatcher(Dispatcher):
    """
    Dispatcher whose outcome per call is scripted.

    `outcomes` is consumed one entry per send (True = success, False =
    failure); once exhausted, `default` applies.
    """

    def __init__(self, outcomes: Sequence[bool] = (), default: bool = True):
        self.outcomes = list(outcomes)
        self.default = default
        self.batches: list[list[Event]] = []

    async def send(self, events):
        self.batches.append(list(events))
        ok = self.outcomes.pop(0) if self.outcomes else self.default
        if not ok:
            raise DispatchError("collector unreachable")

    @property
    def batch_sizes(self) -> list[int]:
        return [len(b) for b in self.batches]


class GatedDispatcher(Dispatcher):
    """Dispatcher that blocks inside send until released."""

    def __init__(self):
        self.calls = 0
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def send(self, events):
        self.calls += 1
        self.entered.set()
        await self.release.wait()


# =============================================================================
# Queue doubles
# =============================================================================

class BrokenQueue(MemoryQueue):
    """Memory queue whose reads fail."""

    async def first(self, limit):
        raise QueueError("disk on fire")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def visitor() -> Visitor:
    return Visitor(id="0123456789abcdef", first_visit=datetime(2024, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def session() -> Session:
    return Session(
        previous_visit=datetime(2024, 1, 2, tzinfo=timezone.utc),
        current_visit=datetime(2024, 1, 3, tzinfo=timezone.utc),
        total_visits=2,
    )


@pytest.fixture
def make_event(visitor, session):
    """Factory for plain view events."""
    def factory(*segments: str, **kwargs) -> Event:
        segments = segments or ("home",)
        defaults = dict(
            site_id="1",
            visitor=visitor,
            session=session,
            language="en-US",
            is_new_session=False,
            url="http://example.com/" + "/".join(segments),
            action_name=tuple(segments),
        )
        defaults.update(kwargs)
        return Event.create(**defaults)

    return factory


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def queue() -> MemoryQueue:
    return MemoryQueue()


@pytest.fixture
def dispatcher() -> ScriptedDispatcher:
    return ScriptedDispatcher()
