"""Console dispatcher for development/debugging."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Sequence

from ..events import Event
from .base import Dispatcher


@dataclass
class ConsoleDispatcher(Dispatcher):
    """
    Dispatcher that writes events to stdout/stderr instead of a collector.

    Always succeeds.
    """
    stream: str = "stdout"  # stdout | stderr
    format: str = "json"  # json | compact
    prefix: str = "[PIWIK] "

    async def send(self, events: Sequence[Event]) -> None:
        out = sys.stdout if self.stream == "stdout" else sys.stderr

        for event in events:
            print(f"{self.prefix}{self._format_event(event)}", file=out)

    def _format_event(self, event: Event) -> str:
        if self.format == "compact":
            if event.is_view:
                what = "view " + "/".join(event.action_name)
            else:
                what = f"event {event.event_category}/{event.event_action}"
            return (
                f"{event.date.isoformat()} "
                f"{event.visitor.id} "
                f"{what} "
                f"{'new-session' if event.is_new_session else ''}"
            ).rstrip()
        return json.dumps(event.to_dict(), default=str)
