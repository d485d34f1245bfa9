"""Batch orchestration and the engine facade consumed by the CLI and callers."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable, Sequence

import httpx
import structlog

from .config import EngineConfig
from .engine import (
    CacheStat,
    FetchStatus,
    FilterCriteria,
    SourceCache,
    SourceFetcher,
    TrendItem,
    filter_items,
    group_by_source,
)
from .logging_conf import configure_logging
from .scheduler import APSchedulerAdapter
from .sources import SOURCE_CATEGORIES, Source

BatchCallback = Callable[[int, int], None]


def partition(sources: Sequence[Any], size: int) -> list[list[Any]]:
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [list(sources[index : index + size]) for index in range(0, len(sources), size)]


class FetchOrchestrator:
    """Drive the fetcher over many sources, one paced batch at a time.

    Sources inside a batch run concurrently; the next batch starts only
    after the whole batch finished and the pacing delay elapsed. Output is
    concatenated in request order whatever order fetches completed in.
    """

    def __init__(
        self,
        fetcher: SourceFetcher,
        *,
        batch_size: int = 2,
        batch_delay: float = 0.8,
        deadline: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if batch_delay < 0:
            raise ValueError("batch_delay must be >= 0")
        self.fetcher = fetcher
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.deadline = deadline
        self._sleep = sleep
        self._monotonic = monotonic
        self.logger = logger or structlog.get_logger("hotboard.orchestrator")

    async def fetch_many(
        self,
        sources: Iterable[Source | str],
        force_refresh: bool = False,
        on_batch: BatchCallback | None = None,
    ) -> list[TrendItem]:
        unique: list[Source | str] = []
        for source in sources:
            if source not in unique:
                unique.append(source)
        batches = partition(unique, self.batch_size)
        self.fetcher.cache.sweep()

        started = self._monotonic()
        combined: list[TrendItem] = []
        for index, batch in enumerate(batches):
            if index:
                await self._sleep(self.batch_delay)
                if self.deadline is not None and self._monotonic() - started >= self.deadline:
                    skipped = sum(len(rest) for rest in batches[index:])
                    self.logger.warning(
                        "deadline_exceeded", deadline=self.deadline, skipped_sources=skipped
                    )
                    break
            results = await asyncio.gather(
                *(self.fetcher.fetch(source, force_refresh) for source in batch)
            )
            for items in results:
                combined.extend(items)
            self.logger.debug(
                "batch_complete",
                batch=index + 1,
                batches=len(batches),
                sources=[str(source) for source in batch],
            )
            if on_batch is not None:
                on_batch(index + 1, len(batches))
        return combined

    async def fetch_all(
        self, force_refresh: bool = False, on_batch: BatchCallback | None = None
    ) -> list[TrendItem]:
        return await self.fetch_many(list(Source), force_refresh, on_batch)


class HotboardEngine:
    """In-process entry point wiring cache, fetcher and orchestrator together."""

    def __init__(
        self,
        cache: SourceCache,
        fetcher: SourceFetcher,
        orchestrator: FetchOrchestrator,
        *,
        scheduler: APSchedulerAdapter | None = None,
        sweep_interval: float = 300.0,
    ) -> None:
        self.cache = cache
        self.fetcher = fetcher
        self.orchestrator = orchestrator
        self.scheduler = scheduler
        self.sweep_interval = sweep_interval
        self.logger = configure_logging().bind(component="engine")

    @classmethod
    def from_config(
        cls,
        config: EngineConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        scheduler: APSchedulerAdapter | None = None,
    ) -> "HotboardEngine":
        config = config or EngineConfig()
        cache = SourceCache(config.cache.ttl_seconds, config.cache.max_entries)
        fetcher = SourceFetcher.from_config(cache, config.fetch, client=client)
        orchestrator = FetchOrchestrator(
            fetcher,
            batch_size=config.orchestrator.batch_size,
            batch_delay=config.orchestrator.batch_delay_seconds,
            deadline=config.orchestrator.overall_deadline_seconds,
        )
        return cls(
            cache,
            fetcher,
            orchestrator,
            scheduler=scheduler,
            sweep_interval=config.cache.sweep_interval_seconds,
        )

    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start the background cache sweep."""

        self.cache.start(self.scheduler, interval=self.sweep_interval)

    async def aclose(self) -> None:
        self.cache.shutdown()
        await self.fetcher.aclose()

    async def __aenter__(self) -> "HotboardEngine":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    async def fetch_one(self, source: Source | str, force_refresh: bool = False) -> list[TrendItem]:
        return await self.fetcher.fetch(source, force_refresh)

    async def fetch_many(
        self,
        sources: Iterable[Source | str],
        force_refresh: bool = False,
        on_batch: BatchCallback | None = None,
    ) -> list[TrendItem]:
        return await self.orchestrator.fetch_many(sources, force_refresh, on_batch)

    async def fetch_all(
        self, force_refresh: bool = False, on_batch: BatchCallback | None = None
    ) -> list[TrendItem]:
        return await self.orchestrator.fetch_all(force_refresh, on_batch)

    def filter(
        self, items: Iterable[TrendItem], criteria: FilterCriteria | None = None, **kwargs: Any
    ) -> list[TrendItem]:
        return filter_items(items, criteria, **kwargs)

    def group_by_source(self, items: Iterable[TrendItem]) -> dict[Source, list[TrendItem]]:
        return group_by_source(items)

    def list_known_sources(self) -> list[Source]:
        return list(Source)

    def sources_by_category(self) -> dict[str, list[Source]]:
        return {category: list(members) for category, members in SOURCE_CATEGORIES.items()}

    def cache_stats(self) -> dict[Source, CacheStat]:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()

    def source_status(self) -> dict[Source, FetchStatus]:
        return self.fetcher.statuses()


__all__ = ["BatchCallback", "FetchOrchestrator", "HotboardEngine", "partition"]
