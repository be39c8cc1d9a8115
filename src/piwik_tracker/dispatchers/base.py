"""Base dispatcher interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..events import Event


class Dispatcher(ABC):
    """
    Abstract base class for dispatchers.

    A send is atomic from the engine's point of view: either the whole
    batch was delivered (normal return) or none of it was (`DispatchError`).
    """

    @abstractmethod
    async def send(self, events: Sequence[Event]) -> None:
        """
        Send a batch of events to the collector.

        Raises:
            DispatchError: If the batch was not delivered
        """
        ...

    async def start(self) -> None:
        """Initialize the dispatcher (called on tracker start)."""
        pass

    async def stop(self) -> None:
        """Clean up the dispatcher (called on tracker stop)."""
        pass

    async def health_check(self) -> bool:
        """Check if the dispatcher is healthy."""
        return True
