"""
Result Cache
============

In-memory, time-bounded map from cache key to the last known classification
result. Entries expire lazily: an entry older than the TTL is evicted the
first time it is read. A maximum entry count bounds memory under
high-cardinality workloads by evicting the least recently used entry.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

import structlog

from .models import ClassificationResult

log = structlog.get_logger(__name__)


@dataclass
class CacheEntry:
    result: ClassificationResult
    created_at: float
    hit_count: int = 1


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    total_hits: int
    average_hits: float

    def as_dict(self) -> dict:
        return {
            "totalEntries": self.total_entries,
            "totalHits": self.total_hits,
            "averageHits": self.average_hits,
        }


class ResultCache:
    """
    Thread-safe TTL cache of classification results.

    A single coarse lock guards the map; every operation is a handful of
    dictionary operations, negligible next to the network call it replaces.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(0, max_entries)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> ClassificationResult | None:
        """Return the cached result for ``key``, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self.ttl_seconds:
                del self._entries[key]
                log.debug("Cache entry expired", cache_key=key)
                return None
            entry.hit_count += 1
            self._entries.move_to_end(key)
            return entry.result

    def put(self, key: str, result: ClassificationResult) -> None:
        """Insert or replace the entry for ``key``."""
        with self._lock:
            self._entries[key] = CacheEntry(result=result, created_at=self._clock())
            self._entries.move_to_end(key)
            while self.max_entries and len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                log.debug("Cache entry evicted", cache_key=evicted)

    def hit_count(self, key: str) -> int | None:
        """Return the hit count of ``key`` without touching the entry."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.hit_count if entry else None

    def stats(self) -> CacheStats:
        """
        Aggregate over stored entries.

        Expired entries that have not been read yet are still counted.
        """
        with self._lock:
            total_entries = len(self._entries)
            total_hits = sum(entry.hit_count for entry in self._entries.values())
        average = total_hits / total_entries if total_entries else 0.0
        return CacheStats(
            total_entries=total_entries,
            total_hits=total_hits,
            average_hits=average,
        )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
