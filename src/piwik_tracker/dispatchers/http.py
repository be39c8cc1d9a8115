"""HTTP dispatcher for the Piwik bulk tracking API."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import timezone
from typing import Any, Sequence
from urllib.parse import urlencode

import httpx

from ..errors import DispatchError
from ..events import Event
from .base import Dispatcher


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "piwik-tracker-python/0.1.0"


def event_query_items(event: Event) -> list[tuple[str, str]]:
    """
    Tracking API parameters for a single event, in a stable order.

    See https://developer.piwik.org/api-reference/tracking-api
    """
    items: list[tuple[str, str]] = [
        ("idsite", event.site_id),
        ("rec", "1"),
        ("apiv", "1"),
        # Visitor
        ("_id", event.visitor.id),
        ("_idts", str(int(event.visitor.first_visit.timestamp()))),
        # Session
        ("_idvc", str(event.session.total_visits)),
    ]
    if event.session.previous_visit is not None:
        items.append(("_viewts", str(int(event.session.previous_visit.timestamp()))))
    if event.is_new_session:
        items.append(("new_visit", "1"))

    items.append(("url", event.url))
    if event.action_name:
        items.append(("action_name", "/".join(event.action_name)))
    items.append(("lang", event.language))
    if event.referer:
        items.append(("urlref", event.referer))

    # Time of the event, UTC for cdt and the visitor's local time for h/m/s
    items.append(("cdt", event.date.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")))
    local = event.date.astimezone()
    items.extend([("h", str(local.hour)), ("m", str(local.minute)), ("s", str(local.second))])

    if event.event_category is not None:
        items.append(("e_c", event.event_category))
    if event.event_action is not None:
        items.append(("e_a", event.event_action))
    if event.event_name is not None:
        items.append(("e_n", event.event_name))
    if event.event_value is not None:
        items.append(("e_v", repr(event.event_value)))

    for dimension in event.dimensions:
        items.append((f"dimension{dimension.index}", dimension.value))

    # Cache buster
    items.append(("rand", str(random.randint(0, 2**31))))
    return items


def bulk_request_body(events: Sequence[Event]) -> dict[str, Any]:
    """JSON body for a bulk tracking request."""
    return {
        "requests": ["?" + urlencode(event_query_items(e)) for e in events],
    }


@dataclass
class HttpDispatcher(Dispatcher):
    """
    Dispatcher posting batches to a Piwik server.

    Config:
        base_url: Tracking endpoint, ending in `piwik.php`
        timeout_seconds: Request timeout
        user_agent: User-Agent header sent with every request
        transport: Optional httpx transport (tests use `httpx.MockTransport`)
    """
    base_url: str
    timeout_seconds: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    transport: httpx.AsyncBaseTransport | None = None

    # Internal state
    _client: httpx.AsyncClient | None = field(default=None, init=False)

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers={"User-Agent": self.user_agent},
                transport=self.transport,
            )
            logger.info(f"HTTP dispatcher started for {self.base_url}")

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("HTTP dispatcher stopped")

    async def send(self, events: Sequence[Event]) -> None:
        if self._client is None:
            await self.start()

        try:
            response = await self._client.post(self.base_url, json=bulk_request_body(events))
        except httpx.HTTPError as e:
            raise DispatchError(f"Request to {self.base_url} failed: {e}", retryable=True) from e

        if response.is_success:
            logger.debug(f"Collector accepted {len(events)} events ({response.status_code})")
            return

        retryable = response.status_code >= 500 or response.status_code == 429
        raise DispatchError(
            f"Collector responded {response.status_code}: {response.text[:200]}",
            retryable=retryable,
        )

    async def health_check(self) -> bool:
        return self._client is not None
