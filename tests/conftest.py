"""Shared fixtures: isolated home directory, fake clocks and mocked upstream."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from hotboard.config import ConfigLocator, ConfigRepository, EngineConfig
from hotboard.engine import RateLimitRetry, SourceCache, SourceFetcher


class FakeClock:
    """Manually advanced replacement for ``time.time``/``time.monotonic``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async ``sleep`` stand-in that records delays instead of waiting."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.delays: list[float] = []
        self.clock = clock

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.clock is not None:
            self.clock.advance(delay)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOTBOARD_HOME", str(home))
    for variable in (
        "HOTBOARD_CACHE_TTL",
        "HOTBOARD_CACHE_MAX_ENTRIES",
        "HOTBOARD_BASE_URL",
        "HOTBOARD_TIMEOUT",
        "HOTBOARD_MAX_RETRIES",
        "HOTBOARD_BATCH_SIZE",
        "HOTBOARD_BATCH_DELAY",
    ):
        monkeypatch.delenv(variable, raising=False)
    return home


@pytest.fixture
def temp_config_repository(isolated_home: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator())


@pytest.fixture
def engine_config() -> Callable[..., EngineConfig]:
    def factory(**overrides: Any) -> EngineConfig:
        payload: dict[str, Any] = {
            "orchestrator": {"batch_size": 2, "batch_delay_seconds": 0.8},
        }
        payload.update(overrides)
        return EngineConfig.model_validate(payload)

    return factory


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def make_fetcher(clock: FakeClock, recording_sleep: RecordingSleep):
    """Build a ``SourceFetcher`` whose HTTP traffic goes to ``handler``."""

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        *,
        cache: SourceCache | None = None,
        retry: RateLimitRetry | None = None,
    ) -> SourceFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return SourceFetcher(
            cache or SourceCache(ttl=60.0, max_entries=50, clock=clock),
            base_url="https://hotboard.test/api",
            client=client,
            retry=retry or RateLimitRetry(rng=lambda low, high: high),
            sleep=recording_sleep,
            clock=clock,
        )

    return factory
