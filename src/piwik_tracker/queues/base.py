"""Base queue interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..events import Event


class EventQueue(ABC):
    """
    Abstract base class for event queues.

    Queues hold pending events in enqueue order until the dispatch engine
    has delivered them. A queue never drops events on its own.
    """

    @abstractmethod
    async def enqueue(self, event: Event) -> None:
        ...

    @abstractmethod
    async def first(self, limit: int) -> list[Event]:
        """
        Peek at the oldest `limit` events without removing them.

        Order is always enqueue order.
        """
        ...

    @abstractmethod
    async def remove(self, events: Sequence[Event]) -> None:
        """
        Remove exactly the given events.

        Events that are no longer queued are ignored.
        """
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    async def start(self) -> None:
        """Initialize the queue (called on tracker start)."""
        pass

    async def stop(self) -> None:
        """Release resources (called on tracker stop)."""
        pass
