"""Configuration for the tracker."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from .dispatchers.http import DEFAULT_USER_AGENT
from .queues.sqlite import DEFAULT_DB_PATH


@dataclass
class DispatchConfig:
    """Dispatch engine configuration."""
    # Seconds between timer-driven dispatches (<= 0 = manual dispatch only)
    interval_seconds: float = 30.0
    batch_size: int = 20


@dataclass
class QueueConfig:
    """Pending event storage."""
    type: str = "memory"  # memory | sqlite
    path: str = DEFAULT_DB_PATH


@dataclass
class DispatcherConfig:
    """Transmission to the collector."""
    type: str = "http"  # http | console

    # Tracking endpoint, ending in piwik.php
    base_url: str | None = field(
        default_factory=lambda: os.environ.get("PIWIK_BASE_URL")
    )
    timeout_seconds: float = field(
        default_factory=lambda: float(os.environ.get("PIWIK_TIMEOUT", "30"))
    )
    user_agent: str = DEFAULT_USER_AGENT

    # Console dispatcher only
    stream: str = "stdout"
    format: str = "json"


@dataclass
class TrackerConfig:
    """Main configuration container."""
    site_id: str | None = field(
        default_factory=lambda: os.environ.get("PIWIK_SITE_ID")
    )

    # Where visitor/session/opt-out state is persisted (None = in memory)
    state_path: str | None = field(
        default_factory=lambda: os.environ.get("PIWIK_STATE_PATH")
    )

    # Accept-Language sent with events (None = derive from process locale)
    language: str | None = None

    log_level: str = "WARNING"

    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    dispatcher: DispatcherConfig = field(default_factory=DispatcherConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackerConfig:
        """Create config from dictionary."""
        top = {
            key: data[key]
            for key in ("site_id", "state_path", "language", "log_level")
            if key in data
        }
        if top.get("site_id") is not None:
            top["site_id"] = str(top["site_id"])
        return cls(
            **top,
            dispatch=DispatchConfig(**data.get("dispatch", {})),
            queue=QueueConfig(**data.get("queue", {})),
            dispatcher=DispatcherConfig(**data.get("dispatcher", {})),
        )

    @classmethod
    def from_yaml(cls, path: str) -> TrackerConfig:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> TrackerConfig:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str) -> TrackerConfig:
        """Load config, picking the format from the file extension."""
        if path.endswith(".json"):
            return cls.from_json(path)
        return cls.from_yaml(path)
