from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from structlog.testing import capture_logs
from typer.testing import CliRunner

from hotboard import logging_conf
from hotboard.app import RefreshTicker, app
from hotboard.engine import FetchStatus, TrendItem
from hotboard.sources import Source

runner = CliRunner()


def trend(source: Source, rank: int, title: str, score: int) -> TrendItem:
    return TrendItem(
        id=f"{source.value}-0-{rank - 1}",
        rank=rank,
        title=title,
        score=score,
        source=source,
        url=f"https://example.com/{source.value}/{rank}",
    )


class StubEngine:
    def __init__(self, items: list[TrendItem], statuses: dict | None = None) -> None:
        self.items = items
        self.statuses = statuses or {}
        self.calls: list[tuple[list[Source], bool]] = []
        self.started = False
        self.closed = False

    async def fetch_many(self, sources, force_refresh=False, on_batch=None):  # noqa: ANN001
        requested = list(sources)
        self.calls.append((requested, force_refresh))
        if on_batch is not None:
            on_batch(1, 1)
        return [item for item in self.items if item.source in requested]

    def source_status(self) -> dict:
        return dict(self.statuses)

    def start(self) -> None:
        self.started = True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def stub_engine(monkeypatch: pytest.MonkeyPatch) -> StubEngine:
    engine = StubEngine(
        [
            trend(Source.WEIBO, 1, "Python 发布新版本", 83_000),
            trend(Source.WEIBO, 2, "明日天气", 5_000),
            trend(Source.ZHIHU, 1, "如何学习 python", 120_000),
            trend(Source.BAIDU, 1, "世界杯", 2_000_000),
        ],
        statuses={Source.DOUYIN: FetchStatus.TIMEOUT},
    )
    monkeypatch.setattr("hotboard.app._build_engine", lambda config, scheduler=None: engine)
    return engine


def test_fetch_parses_mixed_source_arguments(stub_engine: StubEngine) -> None:
    result = runner.invoke(app, ["fetch", "weibo,zhihu", "Baidu", "myspace", "--json"])
    assert result.exit_code == 0, result.output

    assert stub_engine.calls == [([Source.WEIBO, Source.ZHIHU, Source.BAIDU], False)]
    assert stub_engine.closed
    payload = json.loads(result.stdout)
    assert [entry["title"] for entry in payload] == [
        "Python 发布新版本",
        "明日天气",
        "如何学习 python",
        "世界杯",
    ]
    assert payload[0]["source"] == "Weibo"


def test_fetch_filters_and_ranks(stub_engine: StubEngine) -> None:
    result = runner.invoke(
        app,
        ["fetch", "Weibo,Zhihu,Baidu", "--keyword", "PYTHON", "--min-score", "90000", "--json"],
    )
    assert result.exit_code == 0, result.output
    assert [entry["title"] for entry in json.loads(result.stdout)] == ["如何学习 python"]

    result = runner.invoke(app, ["fetch", "Weibo,Zhihu,Baidu", "--top", "2", "--json", "--force"])
    assert [entry["score"] for entry in json.loads(result.stdout)] == [2_000_000, 120_000]
    assert stub_engine.calls[-1][1] is True


def test_fetch_grouped_json(stub_engine: StubEngine) -> None:
    result = runner.invoke(app, ["fetch", "Weibo", "Zhihu", "--group", "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert list(payload) == ["Weibo", "Zhihu"]
    assert len(payload["Weibo"]) == 2


def test_fetch_defaults_to_every_source(stub_engine: StubEngine) -> None:
    result = runner.invoke(app, ["fetch", "--json"])
    assert result.exit_code == 0, result.output
    assert stub_engine.calls[0][0] == list(Source)


def test_fetch_rejects_only_unknown_sources(stub_engine: StubEngine) -> None:
    result = runner.invoke(app, ["fetch", "myspace,friendster"])
    assert result.exit_code == 1
    assert stub_engine.calls == []


def test_fetch_table_reports_failed_sources(stub_engine: StubEngine) -> None:
    result = runner.invoke(app, ["fetch", "Weibo", "--group"])
    assert result.exit_code == 0, result.output
    assert "微博" in result.stdout
    assert "8.3万" in result.stdout
    assert "Douyin(timeout)" in result.stdout


def test_report_summarises_items(stub_engine: StubEngine) -> None:
    result = runner.invoke(app, ["report", "Weibo,Zhihu,Baidu", "--top", "2"])
    assert result.exit_code == 0, result.output
    output = result.stdout
    assert "热榜汇总" in output
    assert "200.0万" in output
    assert "世界杯" in output
    assert "明日天气" not in output.split("各信息源条目数")[0]


def test_sources_command_lists_catalogue() -> None:
    result = runner.invoke(app, ["sources"])
    assert result.exit_code == 0, result.output
    assert "共 44 个" in result.stdout

    result = runner.invoke(app, ["sources", "--category", "游戏"])
    assert result.exit_code == 0, result.output
    assert "原神" in result.stdout
    assert "微博" not in result.stdout

    result = runner.invoke(app, ["sources", "--category", "体育"])
    assert result.exit_code == 1


def test_config_commands(isolated_home: Path) -> None:
    result = runner.invoke(app, ["config", "path"])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip().endswith("hotboard.yaml")
    assert Path(result.stdout.strip()).exists()

    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0, result.output
    assert "batch_size: 2" in result.stdout
    assert "ttl_seconds: 60.0" in result.stdout


def test_invalid_config_exits_with_error(isolated_home: Path) -> None:
    data_dir = isolated_home / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "hotboard.yaml").write_text("cache:\n  ttl_seconds: -1\n", encoding="utf-8")

    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 1
    assert "配置文件无效" in result.stdout


def test_log_show_tails_engine_log(isolated_home: Path) -> None:
    logs_dir = isolated_home / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    (logs_dir / "hotboard.log").write_text("first\nsecond\nthird\n", encoding="utf-8")

    result = runner.invoke(app, ["log", "show", "--lines", "2"])
    assert result.exit_code == 0, result.output
    assert "second\nthird" in result.stdout
    assert "first" not in result.stdout


def test_watch_stops_after_max_runs(stub_engine: StubEngine) -> None:
    result = runner.invoke(app, ["watch", "Weibo", "--max-runs", "1", "--interval", "60"])
    assert result.exit_code == 0, result.output
    assert stub_engine.started
    assert stub_engine.closed
    assert stub_engine.calls == [([Source.WEIBO], True)]
    assert "第 1 次刷新" in result.stdout


def test_refresh_ticker_skips_tick_while_refresh_runs() -> None:
    async def scenario():
        loop = asyncio.get_running_loop()
        release = asyncio.Event()
        calls: list[int] = []

        async def refresh() -> None:
            calls.append(len(calls) + 1)
            await release.wait()

        ticker = RefreshTicker(refresh, loop)
        # scheduler jobs call in from a worker thread
        await asyncio.to_thread(ticker)
        first = ticker.pending
        await asyncio.to_thread(ticker)
        assert ticker.pending is first

        release.set()
        await asyncio.wrap_future(first)
        await asyncio.to_thread(ticker)
        await asyncio.wrap_future(ticker.pending)
        return calls

    assert asyncio.run(scenario()) == [1, 2]


def test_refresh_ticker_logs_failed_refresh() -> None:
    logging_conf.configure_logging()

    async def refresh() -> None:
        raise RuntimeError("upstream exploded")

    async def scenario():
        ticker = RefreshTicker(refresh, asyncio.get_running_loop())
        await asyncio.to_thread(ticker)
        with pytest.raises(RuntimeError):
            await asyncio.wrap_future(ticker.pending)

    with capture_logs() as events:
        asyncio.run(scenario())

    failures = [event for event in events if event["event"] == "refresh_failed"]
    assert len(failures) == 1
    assert failures[0]["error"] == "upstream exploded"
