"""Persisted visitor/session/opt-out state."""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .events import Session, Visitor


logger = logging.getLogger(__name__)


@dataclass
class TrackerState:
    """
    Everything the tracker keeps across process restarts.

    Written only by the single tracker instance that loaded it, so there is
    no locking: the last save wins.
    """
    opt_out: bool = False

    # Visitor
    visitor_id: str | None = None
    first_visit: datetime | None = None

    # Visits
    previous_visit: datetime | None = None
    current_visit: datetime | None = None
    total_visits: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "opt_out": self.opt_out,
            "visitor_id": self.visitor_id,
            "first_visit": _iso(self.first_visit),
            "previous_visit": _iso(self.previous_visit),
            "current_visit": _iso(self.current_visit),
            "total_visits": self.total_visits,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackerState:
        return cls(
            opt_out=bool(data.get("opt_out", False)),
            visitor_id=data.get("visitor_id"),
            first_visit=_from_iso(data.get("first_visit")),
            previous_visit=_from_iso(data.get("previous_visit")),
            current_visit=_from_iso(data.get("current_visit")),
            total_visits=int(data.get("total_visits", 0)),
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_iso(value: Any) -> datetime | None:
    if value is None:
        return None
    # PyYAML may already hand back a datetime for unquoted timestamps
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class StateStore(ABC):
    """Load/save lifecycle for `TrackerState`."""

    @abstractmethod
    def load(self) -> TrackerState:
        ...

    @abstractmethod
    def save(self, state: TrackerState) -> None:
        ...


@dataclass
class MemoryStateStore(StateStore):
    """Volatile store; state is lost with the process."""
    state: TrackerState = field(default_factory=TrackerState)

    def load(self) -> TrackerState:
        return replace(self.state)

    def save(self, state: TrackerState) -> None:
        self.state = replace(state)


@dataclass
class YamlStateStore(StateStore):
    """Store persisting the state to a YAML file."""
    path: str | Path

    def load(self) -> TrackerState:
        path = Path(self.path)
        if not path.exists():
            logger.info(f"State file not found, starting fresh: {path}")
            return TrackerState()

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return TrackerState.from_dict(data or {})

    def save(self, state: TrackerState) -> None:
        path = Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(state.to_dict(), f, default_flow_style=False, sort_keys=False)


def new_visitor_id() -> str:
    """16 hex characters, the visitor id format the collector expects."""
    return secrets.token_hex(8)


def current_visitor(state: TrackerState) -> Visitor:
    """
    Visitor for the given state, minting one if none is stored yet.

    Mutates `state` when minting; the caller is responsible for saving.
    """
    if state.visitor_id is None or state.first_visit is None:
        state.visitor_id = new_visitor_id()
        state.first_visit = datetime.now(timezone.utc)
        logger.info(f"Created new visitor {state.visitor_id}")
    return Visitor(id=state.visitor_id, first_visit=state.first_visit)


def begin_visit(state: TrackerState, now: datetime | None = None) -> Session:
    """Advance the visit counters and return the new session snapshot."""
    state.previous_visit = state.current_visit
    state.current_visit = now or datetime.now(timezone.utc)
    state.total_visits += 1
    return current_session(state)


def current_session(state: TrackerState) -> Session:
    return Session(
        previous_visit=state.previous_visit,
        current_visit=state.current_visit or datetime.now(timezone.utc),
        total_visits=state.total_visits,
    )
