"""Volatile in-memory queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..events import Event
from .base import EventQueue


@dataclass
class MemoryQueue(EventQueue):
    """
    List-backed FIFO queue.

    Everything not yet dispatched is lost when the process exits.
    """
    _events: list[Event] = field(default_factory=list, init=False)

    async def enqueue(self, event: Event) -> None:
        self._events.append(event)

    async def first(self, limit: int) -> list[Event]:
        return self._events[:max(limit, 0)]

    async def remove(self, events: Sequence[Event]) -> None:
        uuids = {event.uuid for event in events}
        self._events = [e for e in self._events if e.uuid not in uuids]

    async def count(self) -> int:
        return len(self._events)
