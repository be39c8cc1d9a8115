"""Durable SQLite-backed queue."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Sequence

from ..errors import QueueError
from ..events import Event
from .base import EventQueue


logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "piwik_queue.db"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS queued_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid TEXT NOT NULL UNIQUE,
    payload TEXT NOT NULL,
    enqueued_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteQueue(EventQueue):
    """
    FIFO queue persisted in a SQLite file.

    Events survive process restarts. The autoincrement id records enqueue
    order. Each operation opens its own connection and runs in a worker
    thread so the event loop is never blocked on disk I/O.
    """

    def __init__(self, path: str | Path = DEFAULT_DB_PATH):
        self.path = Path(path)

    async def start(self) -> None:
        await self._run(lambda conn: None)
        logger.info(f"SQLite queue ready at {self.path}")

    async def enqueue(self, event: Event) -> None:
        payload = json.dumps(event.to_dict())

        def op(conn: sqlite3.Connection) -> None:
            conn.execute(
                "INSERT OR IGNORE INTO queued_events (uuid, payload) VALUES (?, ?)",
                (event.uuid, payload),
            )

        await self._run(op)

    async def first(self, limit: int) -> list[Event]:
        def op(conn: sqlite3.Connection) -> list[str]:
            rows = conn.execute(
                "SELECT payload FROM queued_events ORDER BY id LIMIT ?",
                (max(limit, 0),),
            ).fetchall()
            return [row[0] for row in rows]

        payloads = await self._run(op)
        try:
            return [Event.from_dict(json.loads(p)) for p in payloads]
        except (ValueError, KeyError) as e:
            raise QueueError(f"Corrupt queued event in {self.path}: {e}") from e

    async def remove(self, events: Sequence[Event]) -> None:
        uuids = [(event.uuid,) for event in events]
        if not uuids:
            return

        def op(conn: sqlite3.Connection) -> None:
            conn.executemany("DELETE FROM queued_events WHERE uuid = ?", uuids)

        await self._run(op)

    async def count(self) -> int:
        def op(conn: sqlite3.Connection) -> int:
            return conn.execute("SELECT COUNT(*) FROM queued_events").fetchone()[0]

        return await self._run(op)

    async def _run(self, op):
        try:
            return await asyncio.to_thread(self._execute, op)
        except sqlite3.Error as e:
            raise QueueError(f"SQLite queue error ({self.path}): {e}") from e

    def _execute(self, op):
        with self._connect() as conn:
            result = op(conn)
            conn.commit()
            return result

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        try:
            conn.executescript(SCHEMA_SQL)
            yield conn
        finally:
            conn.close()
