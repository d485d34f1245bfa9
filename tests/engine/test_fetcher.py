from __future__ import annotations

import asyncio

import httpx
import pytest
from structlog.testing import capture_logs

from hotboard import logging_conf
from hotboard.engine import FetchStatus, RateLimitRetry, SourceCache
from hotboard.sources import Source

WEIBO_PAYLOAD = {"data": {"list": [{"title": "X", "hot": "8.3万"}, {"title": "Y", "hot": 120000}]}}


class CountingHandler:
    """Replay canned responses in order; the last one repeats forever."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        template = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(template, Exception):
            raise template
        return httpx.Response(
            template.status_code, content=template.content, headers=template.headers
        )


def test_weibo_end_to_end(make_fetcher) -> None:
    handler = CountingHandler(httpx.Response(200, json=WEIBO_PAYLOAD))
    fetcher = make_fetcher(handler)

    items = asyncio.run(fetcher.fetch("Weibo", True))

    assert [(item.rank, item.title, item.score) for item in items] == [
        (1, "X", 83_000),
        (2, "Y", 120_000),
    ]
    assert all(item.source is Source.WEIBO for item in items)
    assert items[0].url == "#"
    assert items[0].category == "热点"
    assert items[0].id == "Weibo-1700000000000-0"
    request = handler.requests[0]
    assert request.url.host == "hotboard.test"
    assert request.url.params["type"] == "weibo"
    assert fetcher.last_status(Source.WEIBO) is FetchStatus.OK


def test_fresh_cache_short_circuits_network(make_fetcher, clock) -> None:
    handler = CountingHandler(httpx.Response(200, json=WEIBO_PAYLOAD))
    cache = SourceCache(ttl=60, clock=clock)
    fetcher = make_fetcher(handler, cache=cache)

    async def scenario():
        first = await fetcher.fetch(Source.WEIBO)
        second = await fetcher.fetch(Source.WEIBO)
        status_after_hit = fetcher.last_status(Source.WEIBO)
        forced = await fetcher.fetch(Source.WEIBO, force_refresh=True)
        clock.advance(60)
        expired = await fetcher.fetch(Source.WEIBO)
        return first, second, status_after_hit, forced, expired

    first, second, status_after_hit, forced, expired = asyncio.run(scenario())

    assert second == first
    assert status_after_hit is FetchStatus.CACHED
    assert len(forced) == 2
    assert len(expired) == 2
    assert len(handler.requests) == 3


def test_rate_limit_retries_exactly_three_times(make_fetcher, recording_sleep) -> None:
    handler = CountingHandler(httpx.Response(429))
    fetcher = make_fetcher(handler)

    outcome = asyncio.run(fetcher.fetch_outcome(Source.ZHIHU))

    assert outcome.items == []
    assert outcome.status is FetchStatus.RATE_LIMITED
    assert outcome.attempts == 4
    assert len(handler.requests) == 4
    # jitter pinned to its upper bound by the fixture
    assert recording_sleep.delays == [2.0, 3.5, 5.0]
    assert sum(recording_sleep.delays) <= 1.5 + 3.0 + 4.5 + 3 * 0.5


def test_zero_retry_budget_sends_a_single_request(make_fetcher, recording_sleep) -> None:
    handler = CountingHandler(httpx.Response(429))
    fetcher = make_fetcher(handler, retry=RateLimitRetry(max_retries=0))

    outcome = asyncio.run(fetcher.fetch_outcome(Source.ZHIHU))

    assert outcome.status is FetchStatus.RATE_LIMITED
    assert outcome.attempts == 1
    assert len(handler.requests) == 1
    assert recording_sleep.delays == []


def test_rate_limit_recovers_on_later_attempt(make_fetcher, recording_sleep) -> None:
    handler = CountingHandler(
        httpx.Response(429),
        httpx.Response(200, json={"list": [{"title": "ok", "score": 1}]}),
    )
    fetcher = make_fetcher(handler)

    outcome = asyncio.run(fetcher.fetch_outcome(Source.BILIBILI))

    assert outcome.status is FetchStatus.OK
    assert outcome.attempts == 2
    assert [item.title for item in outcome.items] == ["ok"]
    assert recording_sleep.delays == [2.0]


def test_server_error_is_not_retried(make_fetcher, recording_sleep) -> None:
    handler = CountingHandler(httpx.Response(500))
    fetcher = make_fetcher(handler)

    outcome = asyncio.run(fetcher.fetch_outcome(Source.BAIDU))

    assert outcome.items == []
    assert outcome.status is FetchStatus.HTTP_ERROR
    assert len(handler.requests) == 1
    assert recording_sleep.delays == []
    assert Source.BAIDU not in fetcher.cache


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (httpx.ReadTimeout("read timed out"), FetchStatus.TIMEOUT),
        (httpx.ConnectError("connection refused"), FetchStatus.NETWORK_ERROR),
    ],
)
def test_transport_failures_degrade_to_empty(make_fetcher, error, status) -> None:
    fetcher = make_fetcher(CountingHandler(error))

    items = asyncio.run(fetcher.fetch(Source.DOUYIN))

    assert items == []
    assert fetcher.last_status(Source.DOUYIN) is status


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(200, json={"code": 200, "result": []}),
    ],
)
def test_malformed_bodies_are_treated_as_no_data(make_fetcher, response) -> None:
    fetcher = make_fetcher(CountingHandler(response))

    items = asyncio.run(fetcher.fetch(Source.TIEBA))

    assert items == []
    assert fetcher.last_status(Source.TIEBA) is FetchStatus.MALFORMED
    assert Source.TIEBA not in fetcher.cache


def test_empty_list_is_cached_as_valid_result(make_fetcher) -> None:
    handler = CountingHandler(httpx.Response(200, json={"data": []}))
    fetcher = make_fetcher(handler)

    async def scenario():
        await fetcher.fetch(Source.HUPU)
        return await fetcher.fetch(Source.HUPU)

    assert asyncio.run(scenario()) == []
    assert len(handler.requests) == 1
    assert Source.HUPU in fetcher.cache


def test_unknown_source_skips_network(make_fetcher) -> None:
    handler = CountingHandler(httpx.Response(200, json=WEIBO_PAYLOAD))
    fetcher = make_fetcher(handler)

    items = asyncio.run(fetcher.fetch("Myspace"))

    assert items == []
    assert handler.requests == []
    assert fetcher.last_status("Myspace") is FetchStatus.UNKNOWN_SOURCE


def test_missing_query_mapping_counts_as_unknown(make_fetcher) -> None:
    handler = CountingHandler(httpx.Response(200, json=WEIBO_PAYLOAD))
    fetcher = make_fetcher(handler)
    fetcher.query_map = {}

    outcome = asyncio.run(fetcher.fetch_outcome(Source.WEIBO))

    assert outcome.status is FetchStatus.UNKNOWN_SOURCE
    assert handler.requests == []


def test_unexpected_exception_is_contained(make_fetcher, monkeypatch) -> None:
    fetcher = make_fetcher(CountingHandler(httpx.Response(200, json=WEIBO_PAYLOAD)))

    def explode(*_args, **_kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(fetcher.cache, "put", explode)

    outcome = asyncio.run(fetcher.fetch_outcome(Source.WEIBO))

    assert outcome.items == []
    assert outcome.status is FetchStatus.NETWORK_ERROR
    assert outcome.status.failed


def test_unknown_names_are_not_recorded(make_fetcher) -> None:
    fetcher = make_fetcher(CountingHandler(httpx.Response(200, json=WEIBO_PAYLOAD)))

    async def scenario():
        for index in range(20):
            await fetcher.fetch(f"nowhere-{index}")
        await fetcher.fetch("weibo")

    asyncio.run(scenario())

    assert fetcher.statuses() == {Source.WEIBO: FetchStatus.OK}
    assert fetcher.last_status("nowhere-3") is FetchStatus.UNKNOWN_SOURCE
    assert fetcher.last_status(Source.ZHIHU) is None


def test_fetch_events_are_bound_to_the_source(make_fetcher) -> None:
    fetcher = make_fetcher(CountingHandler(httpx.Response(200, json=WEIBO_PAYLOAD)))
    logging_conf.configure_logging()

    with capture_logs() as events:
        asyncio.run(fetcher.fetch(Source.WEIBO))

    completed = [event for event in events if event["event"] == "fetch_complete"]
    assert len(completed) == 1
    assert completed[0]["source"] == "Weibo"
    assert completed[0]["count"] == 2
