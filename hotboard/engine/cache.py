"""Bounded, TTL based store of per-source result sets."""

from __future__ import annotations

import time
from threading import Lock
from typing import TYPE_CHECKING, Callable, Iterable

import structlog

from ..sources import Source
from .items import CacheEntry, CacheStat, TrendItem

if TYPE_CHECKING:
    from ..scheduler import APSchedulerAdapter

SWEEP_JOB_ID = "cache::sweep"


class SourceCache:
    """Map each source to its last fetched result set.

    Entries are immutable and replaced whole on every ``put``, so a reader
    holding an entry never sees it change. The lock only protects the
    mapping itself, which makes the cache safe to share between the event
    loop and the background sweep thread.
    """

    def __init__(
        self,
        ttl: float = 60.0,
        max_entries: int = 50,
        *,
        clock: Callable[[], float] = time.time,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl = float(ttl)
        self.max_entries = int(max_entries)
        self._clock = clock
        self._entries: dict[Source, CacheEntry] = {}
        self._lock = Lock()
        self._scheduler: APSchedulerAdapter | None = None
        self._owns_scheduler = False
        self.logger = logger or structlog.get_logger("hotboard.cache")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, scheduler: APSchedulerAdapter | None = None, interval: float = 300.0) -> None:
        """Register the periodic sweep on ``scheduler`` (or a private one)."""

        if self._scheduler is not None:
            return
        if scheduler is None:
            from ..scheduler import APSchedulerAdapter

            scheduler = APSchedulerAdapter()
            self._owns_scheduler = True
        scheduler.schedule_interval(SWEEP_JOB_ID, self.sweep, interval)
        scheduler.start()
        self._scheduler = scheduler

    def shutdown(self) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        scheduler.remove(SWEEP_JOB_ID)
        if self._owns_scheduler:
            scheduler.shutdown()
            self._owns_scheduler = False

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    # ------------------------------------------------------------------
    # Mapping operations
    # ------------------------------------------------------------------
    def get(self, source: Source) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(source)

    def get_fresh(self, source: Source) -> CacheEntry | None:
        entry = self.get(source)
        if entry is not None and self.is_fresh(entry):
            return entry
        return None

    def put(self, source: Source, items: Iterable[TrendItem]) -> CacheEntry:
        entry = CacheEntry(items=tuple(items), cached_at=self._clock())
        with self._lock:
            self._entries[source] = entry
        return entry

    def is_fresh(self, entry: CacheEntry, ttl: float | None = None) -> bool:
        window = self.ttl if ttl is None else ttl
        return self._clock() - entry.cached_at < window

    def sweep_expired(self, ttl: float | None = None) -> int:
        with self._lock:
            expired = [
                source
                for source, entry in self._entries.items()
                if not self.is_fresh(entry, ttl)
            ]
            for source in expired:
                del self._entries[source]
        if expired:
            self.logger.debug("cache_swept", removed=len(expired))
        return len(expired)

    def enforce_max_size(self, max_entries: int | None = None) -> int:
        bound = self.max_entries if max_entries is None else max_entries
        with self._lock:
            overflow = len(self._entries) - bound
            if overflow <= 0:
                return 0
            oldest = sorted(self._entries, key=lambda source: self._entries[source].cached_at)
            for source in oldest[:overflow]:
                del self._entries[source]
        self.logger.debug("cache_evicted", evicted=overflow, bound=bound)
        return overflow

    def sweep(self) -> None:
        self.sweep_expired()
        self.enforce_max_size()

    def stats(self) -> dict[Source, CacheStat]:
        now = self._clock()
        with self._lock:
            snapshot = list(self._entries.items())
        return {
            source: CacheStat(count=len(entry.items), age_ms=int((now - entry.cached_at) * 1000))
            for source, entry in snapshot
        }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        self.logger.info("cache_cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, source: object) -> bool:
        with self._lock:
            return source in self._entries


__all__ = ["SWEEP_JOB_ID", "SourceCache"]
