"""
Piwik Tracker - batching analytics client for Piwik servers.

Usage:
    from piwik_tracker import Tracker

    tracker = Tracker.for_url("1", "https://piwik.example.com/piwik.php")
    async with tracker:
        await tracker.track_view(["menu", "settings"])
        await tracker.track_event("player", "play", name="intro")
        await tracker.dispatch()
"""

from .config import TrackerConfig
from .dimensions import CustomDimensionRegistry
from .dispatchers import ConsoleDispatcher, Dispatcher, HttpDispatcher
from .engine import DispatchEngine, DispatchState
from .errors import DispatchError, QueueError, TrackerError
from .events import CustomDimension, Event, Session, Visitor
from .queues import EventQueue, MemoryQueue, SqliteQueue
from .state import MemoryStateStore, StateStore, TrackerState, YamlStateStore
from .tracker import (
    Tracker,
    configure_shared_instance,
    create_tracker,
    shared_tracker,
)

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "Tracker",
    "DispatchEngine",
    "DispatchState",
    "CustomDimensionRegistry",
    "TrackerConfig",
    # Shared instance
    "configure_shared_instance",
    "shared_tracker",
    "create_tracker",
    # Events
    "Event",
    "Visitor",
    "Session",
    "CustomDimension",
    # Queues
    "EventQueue",
    "MemoryQueue",
    "SqliteQueue",
    # Dispatchers
    "Dispatcher",
    "HttpDispatcher",
    "ConsoleDispatcher",
    # State
    "TrackerState",
    "StateStore",
    "MemoryStateStore",
    "YamlStateStore",
    # Exceptions
    "TrackerError",
    "DispatchError",
    "QueueError",
]
