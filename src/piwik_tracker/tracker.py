"""Tracker - builds events, applies the opt-out gate and drives dispatch."""

from __future__ import annotations

import locale
import logging
from dataclasses import dataclass, field
from typing import Sequence

from .config import TrackerConfig
from .dimensions import CustomDimensionRegistry
from .dispatchers.base import Dispatcher
from .dispatchers.console import ConsoleDispatcher
from .dispatchers.http import HttpDispatcher
from .engine import DispatchEngine
from .events import DEFAULT_URL, Event, Session, Visitor
from .queues.base import EventQueue
from .queues.memory import MemoryQueue
from .queues.sqlite import SqliteQueue
from .state import (
    MemoryStateStore,
    StateStore,
    TrackerState,
    YamlStateStore,
    begin_visit,
    current_session,
    current_visitor,
)


logger = logging.getLogger(__name__)


def http_accept_language() -> str:
    """Accept-Language value derived from the process locale."""
    try:
        lang, _ = locale.getlocale()
    except ValueError:
        lang = None
    if not lang or lang in ("C", "POSIX"):
        return "en-US"
    tag = lang.replace("_", "-")
    primary = tag.split("-")[0]
    if primary == tag:
        return tag
    return f"{tag}, {primary};q=0.9"


@dataclass
class Tracker:
    """
    Collects views and events and sends them to a Piwik server in batches.

    Usage:
        tracker = Tracker.for_url("1", "https://piwik.example.com/piwik.php")
        async with tracker:
            await tracker.track_view(["players", "john-appleseed"])
            await tracker.track_event("player", "slide", name="volume", value=35.1)

    The tracker exclusively owns its queue and dispatcher. All calls must
    come from the event loop the tracker was started on.
    """
    site_id: str
    queue: EventQueue
    dispatcher: Dispatcher
    state_store: StateStore = field(default_factory=MemoryStateStore)
    language: str = field(default_factory=http_accept_language)

    dispatch_interval_seconds: float = 30.0
    batch_size: int = 20

    # Identity snapshots, replaced (never mutated) on change
    visitor: Visitor = field(init=False)
    session: Session = field(init=False)

    dimensions: CustomDimensionRegistry = field(default_factory=CustomDimensionRegistry, init=False)
    next_event_starts_new_session: bool = field(default=True, init=False)
    engine: DispatchEngine = field(init=False, repr=False)

    # Internal state
    _state: TrackerState = field(init=False, repr=False)
    _stats: dict = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._state = self.state_store.load()
        self.visitor = current_visitor(self._state)
        self.session = current_session(self._state)
        self.engine = DispatchEngine(
            queue=self.queue,
            dispatcher=self.dispatcher,
            batch_size=self.batch_size,
            interval_seconds=self.dispatch_interval_seconds,
        )
        self._stats = {"queued": 0, "discarded": 0, "enqueue_errors": 0}
        self.start_new_session()

    @classmethod
    def for_url(cls, site_id: str, base_url: str, **kwargs) -> Tracker:
        """
        Tracker with a volatile memory queue and the HTTP dispatcher.

        Events not yet transmitted are lost when the process exits.
        """
        return cls(
            site_id=site_id,
            queue=MemoryQueue(),
            dispatcher=HttpDispatcher(base_url=base_url),
            **kwargs,
        )

    # -- lifecycle --

    async def start(self) -> None:
        """Start queue and dispatcher and arm the dispatch timer."""
        await self.queue.start()
        await self.dispatcher.start()
        self.engine.start()
        logger.info(f"Tracker started for site {self.site_id}")

    async def stop(self, flush: bool = True) -> None:
        """
        Stop the timer, optionally run a final dispatch, release resources.

        Events that could not be delivered stay in the queue.
        """
        await self.engine.stop()
        if flush:
            await self.engine.dispatch()
        await self.dispatcher.stop()
        await self.queue.stop()
        self._save_state()
        logger.info(f"Tracker stopped. Stats: {self.stats}")

    async def __aenter__(self) -> Tracker:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    # -- opt-out --

    @property
    def is_opted_out(self) -> bool:
        """
        Whether the user opted out of tracking. Persisted.

        Only gates new events; already queued events are still dispatched.
        """
        return self._state.opt_out

    @is_opted_out.setter
    def is_opted_out(self, value: bool) -> None:
        self._state.opt_out = bool(value)
        self._save_state()
        logger.info(f"Tracking opt-out set to {self._state.opt_out}")

    # -- sessions --

    def start_new_session(self) -> None:
        """
        Start a new session.

        Called automatically on construction. Call it again when the
        application comes back to the foreground to count a new visit.
        """
        self.session = begin_visit(self._state)
        self.next_event_starts_new_session = True
        self._save_state()
        logger.debug(f"Started session #{self.session.total_visits}")

    # -- tracking --

    async def track_view(self, view: Sequence[str], url: str | None = None) -> None:
        """
        Track a hierarchical screen view, e.g. ["settings", "register"].

        Without `url`, the placeholder host followed by the segments is used.
        """
        await self._queue_event(self.view_event(view, url))

    async def track_event(
        self,
        category: str,
        action: str,
        name: str | None = None,
        value: float | None = None,
    ) -> None:
        """Track a category/action event."""
        await self._queue_event(self.category_event(category, action, name, value))

    def view_event(self, view: Sequence[str], url: str | None = None) -> Event:
        segments = tuple(view)
        return self._event(
            url=url or f"{DEFAULT_URL}/{'/'.join(segments)}",
            action_name=segments,
        )

    def category_event(
        self,
        category: str,
        action: str,
        name: str | None = None,
        value: float | None = None,
    ) -> Event:
        return self._event(
            url=DEFAULT_URL,
            action_name=(),
            event_category=category,
            event_action=action,
            event_name=name,
            event_value=float(value) if value is not None else None,
        )

    def _event(self, **kwargs) -> Event:
        return Event.create(
            site_id=self.site_id,
            visitor=self.visitor,
            session=self.session,
            language=self.language,
            is_new_session=self.next_event_starts_new_session,
            dimensions=self.dimensions.snapshot(),
            **kwargs,
        )

    async def _queue_event(self, event: Event) -> None:
        if self.is_opted_out:
            logger.debug(f"Opted out, discarding event {event.uuid}")
            self._stats["discarded"] += 1
            return

        try:
            await self.queue.enqueue(event)
        except Exception as e:
            logger.warning(f"Failed queueing event {event.uuid}: {e}")
            self._stats["enqueue_errors"] += 1
            return

        logger.debug(f"Queued event: {event.uuid}")
        self._stats["queued"] += 1
        self.next_event_starts_new_session = False

    # -- custom dimensions --

    def set_dimension(self, value: str, index: int) -> None:
        """Set a custom dimension sent with every event created from now on."""
        self.dimensions.set(value, index)

    def remove_dimension(self, index: int) -> None:
        """Remove a custom dimension set with `set_dimension`."""
        self.dimensions.remove(index)

    # -- dispatching --

    async def dispatch(self) -> None:
        """
        Manually run a dispatch cycle, e.g. when the application goes to
        the background. No-op if a dispatch is already running.
        """
        await self.engine.dispatch()

    @property
    def is_dispatching(self) -> bool:
        return self.engine.is_dispatching

    @property
    def stats(self) -> dict:
        return {
            **self._stats,
            **self.engine.stats,
            "opted_out": self.is_opted_out,
            "total_visits": self.session.total_visits,
        }

    def _save_state(self) -> None:
        self.state_store.save(self._state)


def create_queue(config: TrackerConfig) -> EventQueue:
    queue_type = config.queue.type
    if queue_type == "memory":
        return MemoryQueue()
    if queue_type == "sqlite":
        return SqliteQueue(path=config.queue.path)
    raise ValueError(f"Unknown queue type: {queue_type}")


def create_dispatcher(config: TrackerConfig) -> Dispatcher:
    dispatcher = config.dispatcher
    if dispatcher.type == "http":
        if not dispatcher.base_url:
            raise ValueError("dispatcher.base_url is required for the http dispatcher")
        return HttpDispatcher(
            base_url=dispatcher.base_url,
            timeout_seconds=dispatcher.timeout_seconds,
            user_agent=dispatcher.user_agent,
        )
    if dispatcher.type == "console":
        return ConsoleDispatcher(stream=dispatcher.stream, format=dispatcher.format)
    raise ValueError(f"Unknown dispatcher type: {dispatcher.type}")


def create_tracker(config: TrackerConfig) -> Tracker:
    """Create a tracker wired as the configuration describes."""
    if not config.site_id:
        raise ValueError("site_id is required")

    state_store: StateStore = (
        YamlStateStore(config.state_path) if config.state_path else MemoryStateStore()
    )
    kwargs = {}
    if config.language:
        kwargs["language"] = config.language

    return Tracker(
        site_id=config.site_id,
        queue=create_queue(config),
        dispatcher=create_dispatcher(config),
        state_store=state_store,
        dispatch_interval_seconds=config.dispatch.interval_seconds,
        batch_size=config.dispatch.batch_size,
        **kwargs,
    )


# Module-level shared tracker
_shared_tracker: Tracker | None = None


def shared_tracker() -> Tracker | None:
    """The shared tracker, or None if `configure_shared_instance` was not called."""
    return _shared_tracker


def configure_shared_instance(
    site_id: str,
    base_url: str | None = None,
    queue: EventQueue | None = None,
    dispatcher: Dispatcher | None = None,
    **kwargs,
) -> Tracker:
    """
    Configure the shared tracker.

    With only `base_url`, a memory queue and the HTTP dispatcher are used.
    """
    global _shared_tracker
    if dispatcher is None:
        if base_url is None:
            raise ValueError("Either base_url or dispatcher is required")
        dispatcher = HttpDispatcher(base_url=base_url)

    _shared_tracker = Tracker(
        site_id=site_id,
        queue=queue or MemoryQueue(),
        dispatcher=dispatcher,
        **kwargs,
    )
    return _shared_tracker
