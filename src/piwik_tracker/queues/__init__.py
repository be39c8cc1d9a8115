"""Event queues - pending storage between tracking and dispatch."""

from .base import EventQueue
from .memory import MemoryQueue
from .sqlite import SqliteQueue

__all__ = [
    "EventQueue",
    "MemoryQueue",
    "SqliteQueue",
]
