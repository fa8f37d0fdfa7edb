"""Short-lived, single-process cache for rendered listing data."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

LISTING_PATH = "/"


@dataclass
class _CacheEntry:
    value: Any
    expires_at: datetime


class ListingCache:
    """Hold listing view data per path until it expires or is invalidated.

    Only writes made through this process call :meth:`invalidate`, so the
    cache is disabled by default (``ttl`` of zero). Readers take a
    :meth:`generation` before querying and hand it back to :meth:`put`; an
    invalidation in between bumps the generation and the stale rows are
    dropped instead of stored.
    """

    def __init__(self, *, ttl: timedelta = timedelta(0)) -> None:
        self._ttl = ttl
        self._entries: Dict[str, _CacheEntry] = {}
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > timedelta(0)

    def generation(self, path: str) -> int:
        with self._lock:
            return self._generations.get(path, 0)

    def get(self, path: str) -> Optional[Any]:
        if not self.enabled:
            return None
        now = self._now()
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                return None
            if entry.expires_at <= now:
                self._entries.pop(path, None)
                return None
            return entry.value

    def put(self, path: str, value: Any, *, generation: Optional[int] = None) -> bool:
        """Store ``value`` unless ``path`` was invalidated after ``generation`` was read."""

        if not self.enabled:
            return False
        entry = _CacheEntry(value=value, expires_at=self._now() + self._ttl)
        with self._lock:
            if generation is not None and generation != self._generations.get(path, 0):
                return False
            self._entries[path] = entry
        return True

    def invalidate(self, path: str) -> None:
        with self._lock:
            self._entries.pop(path, None)
            self._generations[path] = self._generations.get(path, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            for path in self._generations:
                self._generations[path] += 1

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["LISTING_PATH", "ListingCache"]
