"""Tracker exceptions."""


class TrackerError(Exception):
    """Base exception for tracker errors."""
    pass


class DispatchError(TrackerError):
    """A dispatcher failed to deliver a batch."""
    def __init__(self, reason: str, retryable: bool = True):
        super().__init__(reason)
        self.reason = reason
        self.retryable = retryable


class QueueError(TrackerError):
    """A queue failed to read or write its storage."""
    pass
