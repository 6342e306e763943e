"""Time-boxed local cache of the last fetched event list."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

import aiosqlite

log = logging.getLogger(__name__)

CACHE_KEY = "fetelendr_events"


class EventCache:
    """Stores the raw events payload with its fetch timestamp.

    The cache is advisory: any failure reading or writing it is logged and
    treated as a miss.
    """

    def __init__(self, path: Path | str, ttl: float, clock=time.time) -> None:
        self.path = Path(path)
        self.ttl = ttl
        self._clock = clock

    async def _connect(self) -> aiosqlite.Connection:
        db = await aiosqlite.connect(self.path)
        try:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS cache (
                    key       TEXT PRIMARY KEY,
                    data      TEXT NOT NULL,
                    timestamp REAL NOT NULL
                )
                """
            )
        except aiosqlite.Error:
            await db.close()
            raise
        return db

    async def get(self, key: str = CACHE_KEY) -> list[dict] | None:
        """Return the cached payload if it is still fresh."""
        try:
            db = await self._connect()
            try:
                cursor = await db.execute(
                    "SELECT data, timestamp FROM cache WHERE key = ?", (key,)
                )
                row = await cursor.fetchone()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            log.warning("Failed to read events cache: %s", exc)
            return None

        if row is None:
            return None
        data, timestamp = row
        if self._clock() - timestamp >= self.ttl:
            return None
        try:
            return json.loads(data)
        except ValueError:
            log.warning("Discarding unreadable events cache entry")
            return None

    async def set(self, data: list[dict], key: str = CACHE_KEY) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            db = await self._connect()
            try:
                await db.execute(
                    """
                    INSERT INTO cache (key, data, timestamp) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        data = excluded.data,
                        timestamp = excluded.timestamp
                    """,
                    (key, json.dumps(data), self._clock()),
                )
                await db.commit()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            log.warning("Failed to cache events data: %s", exc)
