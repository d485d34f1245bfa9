"""Single-source HTTP fetching with caching and 429 backoff."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

import httpx
import structlog

from ..config import FetchConfig
from ..logging_conf import source_logger
from ..sources import SOURCE_QUERY_MAP, Source, parse_source
from .cache import SourceCache
from .items import TrendItem
from .parser import build_items, extract_entries
from .retry import RateLimitRetry

HTTP_TOO_MANY_REQUESTS = 429


class FetchStatus(str, Enum):
    """Why a source produced the items (or lack of items) it did."""

    OK = "ok"
    CACHED = "cached"
    EMPTY = "empty"
    UNKNOWN_SOURCE = "unknown_source"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    MALFORMED = "malformed"

    @property
    def failed(self) -> bool:
        return self not in (FetchStatus.OK, FetchStatus.CACHED, FetchStatus.EMPTY)


@dataclass(slots=True)
class FetchOutcome:
    """Items for one source together with how they were obtained."""

    source: Source | str
    status: FetchStatus
    items: list[TrendItem] = field(default_factory=list)
    attempts: int = 0
    detail: str | None = None


class SourceFetcher:
    """Fetch one source at a time; every failure degrades to an empty list."""

    def __init__(
        self,
        cache: SourceCache,
        *,
        base_url: str,
        timeout: float = 15.0,
        retry: RateLimitRetry | None = None,
        client: httpx.AsyncClient | None = None,
        user_agent: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        query_map: dict[Source, str] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.cache = cache
        self.base_url = base_url
        self.timeout = timeout
        self.retry = retry or RateLimitRetry()
        self.user_agent = user_agent
        self.query_map = SOURCE_QUERY_MAP if query_map is None else query_map
        self.logger = logger or structlog.get_logger("hotboard.fetcher")
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._clock = clock
        self._statuses: dict[Source, FetchStatus] = {}

    @classmethod
    def from_config(cls, cache: SourceCache, config: FetchConfig, **kwargs) -> "SourceFetcher":
        retry = RateLimitRetry(
            max_retries=config.max_retries,
            base=config.backoff_base_seconds,
            jitter=config.backoff_jitter_seconds,
        )
        return cls(
            cache,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            retry=retry,
            user_agent=config.user_agent,
            **kwargs,
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def last_status(self, source: Source | str) -> FetchStatus | None:
        resolved = parse_source(source)
        if resolved is None:
            return FetchStatus.UNKNOWN_SOURCE
        return self._statuses.get(resolved)

    def statuses(self) -> dict[Source, FetchStatus]:
        return dict(self._statuses)

    # ------------------------------------------------------------------
    async def fetch(self, source: Source | str, force_refresh: bool = False) -> list[TrendItem]:
        outcome = await self.fetch_outcome(source, force_refresh)
        return outcome.items

    async def fetch_outcome(self, source: Source | str, force_refresh: bool = False) -> FetchOutcome:
        try:
            outcome = await self._fetch(source, force_refresh)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.exception("fetch_unexpected_error", source=str(source), error=str(exc))
            outcome = FetchOutcome(parse_source(source) or source, FetchStatus.NETWORK_ERROR, detail=str(exc))
        # only catalogue sources are recorded
        if isinstance(outcome.source, Source):
            self._statuses[outcome.source] = outcome.status
        return outcome

    async def _fetch(self, source: Source | str, force_refresh: bool) -> FetchOutcome:
        resolved = parse_source(source)
        query_id = self.query_map.get(resolved) if resolved is not None else None
        if resolved is None or query_id is None:
            self.logger.warning("no_query_mapping", source=str(source))
            return FetchOutcome(resolved or source, FetchStatus.UNKNOWN_SOURCE)

        log = source_logger(resolved.value)
        if not force_refresh:
            entry = self.cache.get_fresh(resolved)
            if entry is not None:
                log.debug("cache_hit", count=len(entry.items))
                return FetchOutcome(resolved, FetchStatus.CACHED, list(entry.items))

        try:
            response, attempts = await self._request_with_retry(resolved, query_id, log)
        except httpx.TimeoutException as exc:
            log.error("fetch_timeout", timeout=self.timeout, error=str(exc))
            return FetchOutcome(resolved, FetchStatus.TIMEOUT, detail=str(exc))
        except httpx.HTTPError as exc:
            log.error("fetch_failed", error=str(exc))
            return FetchOutcome(resolved, FetchStatus.NETWORK_ERROR, detail=str(exc))

        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            log.error("rate_limit_exhausted", attempts=attempts)
            return FetchOutcome(
                resolved, FetchStatus.RATE_LIMITED, attempts=attempts, detail="429 Too Many Requests"
            )
        if not response.is_success:
            log.error("unexpected_status", status=response.status_code, reason=response.reason_phrase)
            return FetchOutcome(
                resolved,
                FetchStatus.HTTP_ERROR,
                attempts=attempts,
                detail=f"{response.status_code} {response.reason_phrase}",
            )

        try:
            payload = response.json()
        except ValueError:
            log.debug("invalid_json_body")
            return FetchOutcome(resolved, FetchStatus.MALFORMED, attempts=attempts)
        parsed = extract_entries(payload)
        if not parsed.recognised:
            log.debug("unexpected_envelope")
            return FetchOutcome(resolved, FetchStatus.MALFORMED, attempts=attempts)

        items = build_items(resolved, parsed.entries, fetched_at=int(self._clock() * 1000))
        self.cache.put(resolved, items)
        log.info("fetch_complete", count=len(items), envelope=parsed.envelope.value, attempts=attempts)
        status = FetchStatus.OK if items else FetchStatus.EMPTY
        return FetchOutcome(resolved, status, items, attempts=attempts)

    async def _request_with_retry(
        self, source: Source, query_id: str, log: structlog.BoundLogger
    ) -> tuple[httpx.Response, int]:
        """Issue the request, sleeping and retrying while the upstream answers 429."""

        client = self._ensure_client()
        # max_retries >= 0, so the loop body always runs at least once
        for retry_index in range(self.retry.max_retries + 1):
            response = await client.get(self.base_url, params={"type": query_id}, timeout=self.timeout)
            if response.status_code != HTTP_TOO_MANY_REQUESTS or not self.retry.should_retry(retry_index):
                break
            delay = self.retry.delay_for(retry_index)
            log.warning("rate_limited", retry=retry_index + 1, delay_ms=int(delay * 1000))
            await self._sleep(delay)
        return response, retry_index + 1

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"User-Agent": self.user_agent} if self.user_agent else None
            self._client = httpx.AsyncClient(
                follow_redirects=True, timeout=self.timeout, headers=headers
            )
            self._owns_client = True
        return self._client


__all__ = ["FetchOutcome", "FetchStatus", "HTTP_TOO_MANY_REQUESTS", "SourceFetcher"]
