# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3; expiry is an indexed column so purges stay cheap.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from llmpipe.cache.base_cache_store import BaseCacheStore
from llmpipe.cache.models import CacheEntry

logger = logging.getLogger(__name__)

# expires_at is a unix timestamp; NULL means no expiry.
_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    result_type TEXT,
    created_at TEXT NOT NULL,
    expires_at REAL
);
CREATE INDEX IF NOT EXISTS idx_expires_at ON cache_entries(expires_at);
"""

_LIVE = "(expires_at IS NULL OR expires_at > ?)"


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            path = Path(self._db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self._db_path = str(path)
            self._conn = sqlite3.connect(self._db_path)
            self._conn.execute("PRAGMA journal_mode=WAL")
        else:
            self._conn = sqlite3.connect(self._db_path)
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CacheEntry | None:
        row = self._conn.execute(
            f"SELECT data FROM cache_entries WHERE key = ? AND {_LIVE}",
            (key, _now_ts()),
        ).fetchone()
        if row is None:
            return None
        return self._load(key, row[0])

    async def put(self, key: str, entry: CacheEntry) -> None:
        expires_at = entry.expires_at.timestamp() if entry.ttl_seconds > 0 else None
        self._conn.execute(
            """INSERT OR REPLACE INTO cache_entries
               (key, data, result_type, created_at, expires_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                key,
                entry.model_dump_json(),
                entry.result_type,
                entry.created_at.isoformat(),
                expires_at,
            ),
        )
        self._conn.commit()

    async def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        self._conn.commit()

    async def list_entries(self) -> list[CacheEntry]:
        cursor = self._conn.execute(
            f"SELECT key, data FROM cache_entries WHERE {_LIVE} ORDER BY created_at",
            (_now_ts(),),
        )
        entries: list[CacheEntry] = []
        for key, data in cursor.fetchall():
            entry = self._load(key, data)
            if entry is not None:
                entries.append(entry)
        return entries

    async def purge_expired(self) -> int:
        cursor = self._conn.execute(
            "DELETE FROM cache_entries WHERE expires_at IS NOT NULL AND expires_at <= ?",
            (_now_ts(),),
        )
        self._conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @staticmethod
    def _load(key: str, data: str) -> CacheEntry | None:
        try:
            return CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None


def _now_ts() -> float:
    return datetime.now(timezone.utc).timestamp()
