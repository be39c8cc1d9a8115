"""Dispatchers - transmit batches of events to the collector."""

from .base import Dispatcher
from .console import ConsoleDispatcher
from .http import HttpDispatcher

__all__ = [
    "Dispatcher",
    "ConsoleDispatcher",
    "HttpDispatcher",
]
