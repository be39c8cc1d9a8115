"""Batching dispatch engine - drains the queue through the dispatcher."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from .dispatchers.base import Dispatcher
from .errors import DispatchError
from .queues.base import EventQueue


logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"


@dataclass
class DispatchEngine:
    """
    Single-flight batching state machine.

    One `dispatch()` cycle peeks the oldest `batch_size` events, sends them,
    and removes them only after the dispatcher acknowledged the batch. It
    keeps going until the queue is empty or a step fails; failed batches
    stay queued for the next timer-driven cycle.

    All state transitions happen on one event loop. The IDLE check and the
    switch to DISPATCHING have no await between them, so concurrent callers
    on the loop can never start a second send.
    """
    queue: EventQueue
    dispatcher: Dispatcher

    batch_size: int = 20
    # Seconds between timer-driven dispatches (<= 0 disables the timer)
    interval_seconds: float = 30.0

    # Internal state
    _state: DispatchState = field(default=DispatchState.IDLE, init=False)
    _timer: asyncio.TimerHandle | None = field(default=None, init=False)
    _running: bool = field(default=False, init=False)
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        self._stats = {
            "cycles": 0,
            "batches_sent": 0,
            "events_sent": 0,
            "failed_batches": 0,
            "queue_errors": 0,
        }

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def is_dispatching(self) -> bool:
        return self._state is DispatchState.DISPATCHING

    async def dispatch(self) -> None:
        """
        Run one dispatch cycle.

        No-op if a cycle is already running. Never raises for delivery or
        storage failures; those are logged and leave the events queued.
        """
        if self._state is DispatchState.DISPATCHING:
            logger.debug("Tracker is already dispatching.")
            return
        self._state = DispatchState.DISPATCHING

        # Every exit, cancellation included, must return to IDLE
        try:
            try:
                pending = await self.queue.count()
            except Exception as e:
                logger.warning(f"Failed reading queue size: {e}")
                self._stats["queue_errors"] += 1
                return

            if pending == 0:
                logger.info("No need to dispatch. Dispatch queue is empty.")
                return

            logger.info(f"Start dispatching {pending} events")
            self._stats["cycles"] += 1
            await self._drain()
        finally:
            self._finish()

    async def _drain(self) -> None:
        """Send batches until the queue is empty or something fails."""
        while True:
            try:
                events = await self.queue.first(self.batch_size)
            except Exception as e:
                logger.warning(f"Failed reading events from queue: {e}")
                self._stats["queue_errors"] += 1
                return

            if not events:
                logger.info("Finished dispatching events")
                return

            try:
                await self.dispatcher.send(events)
            except DispatchError as e:
                kind = "retryable" if e.retryable else "non-retryable"
                logger.warning(f"Failed dispatching events with {kind} error: {e.reason}")
                self._stats["failed_batches"] += 1
                return
            except Exception as e:
                logger.warning(f"Failed dispatching events with error: {e}")
                self._stats["failed_batches"] += 1
                return

            try:
                await self.queue.remove(events)
            except Exception as e:
                # Delivered but still queued: the batch will be sent again
                logger.warning(f"Failed removing dispatched events from queue: {e}")
                self._stats["queue_errors"] += 1
                return

            self._stats["batches_sent"] += 1
            self._stats["events_sent"] += len(events)
            logger.info(f"Dispatched batch of {len(events)} events.")

    def _finish(self) -> None:
        self._state = DispatchState.IDLE
        self.arm_timer()

    # -- timer --

    def arm_timer(self) -> None:
        """
        (Re)start the single-shot dispatch timer.

        Any pending timer is cancelled first. Only armed between `start()`
        and `stop()`.
        """
        if not self._running or self.interval_seconds <= 0:
            return
        self.cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.interval_seconds, self._on_timer)

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.create_task(self.dispatch())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def start(self) -> None:
        """Arm the dispatch timer (needs a running event loop)."""
        self._running = True
        self.arm_timer()
        logger.info(f"Dispatch engine started (interval={self.interval_seconds}s, batch_size={self.batch_size})")

    async def stop(self) -> None:
        """Cancel the timer and wait for timer-started cycles to finish."""
        self._running = False
        self.cancel_timer()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info(f"Dispatch engine stopped. Stats: {self._stats}")

    @property
    def stats(self) -> dict:
        return {
            **self._stats,
            "state": self._state.value,
            "timer_armed": self.timer_armed,
        }
