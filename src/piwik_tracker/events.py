"""Tracked event types."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


# Placeholder host used when a view is tracked without an explicit URL
DEFAULT_URL = "http://example.com"


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True, slots=True)
class CustomDimension:
    """A (index, value) pair sent with every event created while it is set."""
    index: int
    value: str


@dataclass(frozen=True, slots=True)
class Visitor:
    """
    Durable per-installation identity.

    Minted once and persisted; only regenerated when the stored state is cleared.
    """
    id: str
    first_visit: datetime


@dataclass(frozen=True, slots=True)
class Session:
    """Snapshot of the visit counters at the time the session was started."""
    previous_visit: datetime | None
    current_visit: datetime
    total_visits: int


@dataclass(frozen=True, slots=True)
class Event:
    """
    A single tracked occurrence (screen view or category/action event).

    All context is baked in when the event is created. Later changes to the
    tracker's visitor, session or dimensions never reach an existing event.
    """
    # Identification
    site_id: str
    uuid: str

    # Who
    visitor: Visitor
    session: Session

    # When
    date: datetime

    # What
    url: str
    action_name: tuple[str, ...]
    language: str
    is_new_session: bool
    referer: str | None = None

    # Category/action events
    event_category: str | None = None
    event_action: str | None = None
    event_name: str | None = None
    event_value: float | None = None

    dimensions: tuple[CustomDimension, ...] = ()

    @classmethod
    def create(
        cls,
        site_id: str,
        visitor: Visitor,
        session: Session,
        language: str,
        is_new_session: bool,
        dimensions: tuple[CustomDimension, ...] = (),
        **kwargs,
    ) -> Event:
        """Factory stamping a fresh id and the current time."""
        return cls(
            site_id=site_id,
            uuid=str(uuid.uuid4()),
            visitor=visitor,
            session=session,
            date=datetime.now(timezone.utc),
            language=language,
            is_new_session=is_new_session,
            dimensions=tuple(dimensions),
            **kwargs,
        )

    @property
    def is_view(self) -> bool:
        return self.event_category is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return {
            "site_id": self.site_id,
            "uuid": self.uuid,
            "visitor": {
                "id": self.visitor.id,
                "first_visit": self.visitor.first_visit.isoformat(),
            },
            "session": {
                "previous_visit": (
                    self.session.previous_visit.isoformat()
                    if self.session.previous_visit else None
                ),
                "current_visit": self.session.current_visit.isoformat(),
                "total_visits": self.session.total_visits,
            },
            "date": self.date.isoformat(),
            "url": self.url,
            "action_name": list(self.action_name),
            "language": self.language,
            "is_new_session": self.is_new_session,
            "referer": self.referer,
            "event_category": self.event_category,
            "event_action": self.event_action,
            "event_name": self.event_name,
            "event_value": self.event_value,
            "dimensions": [
                {"index": d.index, "value": d.value} for d in self.dimensions
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Rebuild an event from `to_dict` output."""
        visitor = data["visitor"]
        session = data["session"]
        return cls(
            site_id=data["site_id"],
            uuid=data["uuid"],
            visitor=Visitor(
                id=visitor["id"],
                first_visit=datetime.fromisoformat(visitor["first_visit"]),
            ),
            session=Session(
                previous_visit=_parse_datetime(session.get("previous_visit")),
                current_visit=datetime.fromisoformat(session["current_visit"]),
                total_visits=session["total_visits"],
            ),
            date=datetime.fromisoformat(data["date"]),
            url=data["url"],
            action_name=tuple(data.get("action_name", [])),
            language=data["language"],
            is_new_session=data["is_new_session"],
            referer=data.get("referer"),
            event_category=data.get("event_category"),
            event_action=data.get("event_action"),
            event_name=data.get("event_name"),
            event_value=data.get("event_value"),
            dimensions=tuple(
                CustomDimension(index=d["index"], value=d["value"])
                for d in data.get("dimensions", [])
            ),
        )
