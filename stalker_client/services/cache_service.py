"""
Content cache

Time-bounded memoization of the full channel list and the genre list.
Both entries are scoped to the authenticated device, so re-authentication
clears them.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


class CacheKind(str, enum.Enum):
    CHANNELS = "channels"
    GENRES = "genres"


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """Cached collection and the moment it was captured."""
    items: list[Any]
    captured_at: float

    def is_valid(self, now: float, ttl: float) -> bool:
        return now - self.captured_at < ttl


class ContentCache:
    """
    Two independently keyed TTL caches.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKind, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, kind: CacheKind) -> list[Any] | None:
        """Return cached items, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(kind)
            if entry is None:
                return None
            if not entry.is_valid(self._clock(), self.ttl_seconds):
                logger.debug("Cache entry '%s' expired", kind.value)
                return None
            return list(entry.items)

    def put(self, kind: CacheKind, items: list[Any]) -> None:
        """Store items with a fresh capture time, replacing any prior entry."""
        with self._lock:
            self._entries[kind] = CacheEntry(items=list(items), captured_at=self._clock())
        logger.debug("Cached %s %s", len(items), kind.value)

    def captured_at(self, kind: CacheKind) -> float | None:
        with self._lock:
            entry = self._entries.get(kind)
            return entry.captured_at if entry else None

    def invalidate(self, kind: CacheKind) -> None:
        with self._lock:
            self._entries.pop(kind, None)

    def clear(self) -> None:
        """Evict every entry unconditionally."""
        with self._lock:
            self._entries.clear()
        logger.info("Clearing all cached data")
