from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    stored_at: float
    payload: Any


class TTLCache:
    """Best-effort in-process memo with a fixed expiry.

    Entries survive only as long as the warm serverless instance does. A miss
    or an expired entry just means the caller does the upstream work again.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 32,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = max(0.0, ttl_seconds)
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: Hashable) -> Any | None:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return entry.payload

    def put(self, key: Hashable, payload: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest_key = min(self._entries, key=lambda k: self._entries[k].stored_at)
                del self._entries[oldest_key]
            self._entries[key] = CacheEntry(stored_at=self._clock(), payload=payload)
        logger.debug("Cached first page for key=%s", key)
