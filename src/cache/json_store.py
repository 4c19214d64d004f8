# src/cache/json_store.py — v2
"""JSON file-based cache store (CACHE_BACKEND=json).

Stores cache entries as individual JSON files under CACHE_ROOT.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from llmpipe.cache.base_cache_store import BaseCacheStore
from llmpipe.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key; expired files are removed."""
        path = self._entry_path(key)
        entry = self._read(path)
        if entry is None:
            return None
        if entry.is_expired():
            path.unlink(missing_ok=True)
            return None
        return entry

    async def put(self, key: str, entry: CacheEntry) -> None:
        path = self._entry_path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(entry.model_dump_json(), encoding="utf-8")
        tmp.replace(path)

    async def delete(self, key: str) -> None:
        self._entry_path(key).unlink(missing_ok=True)

    async def list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for path in sorted(self._root.glob("*.json")):
            entry = self._read(path)
            if entry is not None and not entry.is_expired():
                entries.append(entry)
        return entries

    async def purge_expired(self) -> int:
        removed = 0
        for path in self._root.glob("*.json"):
            entry = self._read(path)
            if entry is not None and entry.is_expired():
                path.unlink(missing_ok=True)
                removed += 1
        return removed

    def _read(self, path: Path) -> CacheEntry | None:
        if not path.exists():
            return None
        try:
            return CacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Unreadable cache file %s: %s", path.name, e)
            return None

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
