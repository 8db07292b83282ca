"""Reconciliation cache — short-TTL in-memory store of secondary-source snapshots.

Used for: the secondary ("raw") inventory rows that validation classifies
against, and the outbound rows behind the outbound listing (5-minute TTL).
Keeps each call from refetching the whole sheet.

A read past ``expires_at`` is a miss and evicts the entry. Two callers that
miss at the same time may both refetch; the later ``set`` wins.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from ..config import settings

log = logging.getLogger("stockledger.cache")

DEFAULT_TTL_SECONDS = 300
SECONDARY_INVENTORY_KEY = "secondary-inventory"
OUTBOUND_ROWS_KEY = "outbound-rows"


@dataclass
class CacheEntry:
    data: Any
    inserted_at: float
    expires_at: float


class ReconciliationCache:
    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return cached data, or None on miss. Expired entries are evicted."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                log.debug("Cache MISS: %s (not found)", key)
                return None
            if now > entry.expires_at:
                del self._entries[key]
                log.debug("Cache MISS: %s (expired, age %.1fs)", key, now - entry.inserted_at)
                return None
        log.debug("Cache HIT: %s (age %.1fs)", key, now - entry.inserted_at)
        return entry.data

    def set(self, key: str, data: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(data=data, inserted_at=now, expires_at=now + ttl)
        log.info("Cached %s items under %s for %ss", _size(data), key, ttl)

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() <= entry.expires_at

    def clear(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
        log.info("Cache cleared: %s", key or "all entries")

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for k in expired:
                del self._entries[k]
        if expired:
            log.info("Cache cleanup: removed %d expired entries", len(expired))
        return len(expired)

    def stats(self) -> list[dict]:
        now = self._clock()
        with self._lock:
            return [
                {
                    "key": key,
                    "item_count": _size(entry.data),
                    "age_seconds": round(now - entry.inserted_at, 1),
                    "ttl_seconds": round(entry.expires_at - now, 1),
                }
                for key, entry in self._entries.items()
            ]


def _size(data: Any) -> int:
    try:
        return len(data)
    except TypeError:
        return 1


reconciliation_cache = ReconciliationCache(default_ttl=settings.reconciliation_cache_ttl_seconds)
