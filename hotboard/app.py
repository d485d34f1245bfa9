"""Typer CLI entrypoint for Hotboard."""

from __future__ import annotations

import asyncio
import json
import sys
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional, Sequence

import structlog
import typer
import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, EngineConfig, RefreshSchedule, ScheduleType
from .engine import FetchStatus, TrendItem, filter_items, group_by_source, rank_by_score, summarize
from .logging_conf import available_logs, configure_logging, default_log_dir, tail_log
from .orchestrator import HotboardEngine
from .scheduler import APSchedulerAdapter
from .sources import SOURCE_CATEGORIES, SOURCE_LABELS, SOURCE_QUERY_MAP, Source, category_of, parse_source_list
from .ui import BatchProgress

WATCH_JOB_ID = "watch::refresh"

app = typer.Typer(
    help="Hotboard 热榜聚合命令行工具",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="配置查看命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="日志查看命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: EngineConfig
    verbose: bool = False


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    try:
        config = repository.load_config()
    except (ValidationError, ValueError) as exc:
        console.print(f"配置文件无效：{exc}", style="red")
        raise typer.Exit(code=1) from exc
    configure_logging(verbose=verbose or config.log_verbose)
    return AppState(repository=repository, config=config, verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _build_engine(config: EngineConfig, scheduler: APSchedulerAdapter | None = None) -> HotboardEngine:
    return HotboardEngine.from_config(config, scheduler=scheduler)


def _resolve_sources(state: AppState, names: Sequence[str] | None) -> list[Source]:
    """Accept space and/or comma separated names; unknown names are dropped."""

    if not names:
        return list(state.config.default_sources) or list(Source)
    resolved = parse_source_list(names)
    if not resolved:
        console.print("未识别任何信息源，使用 `hotboard sources` 查看可用名称。", style="red")
        raise typer.Exit(code=1)
    return resolved


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


async def _collect(
    engine: HotboardEngine,
    sources: Sequence[Source],
    force: bool,
    progress: BatchProgress | None = None,
) -> tuple[list[TrendItem], dict]:
    try:
        items = await engine.fetch_many(sources, force_refresh=force, on_batch=progress)
        return items, engine.source_status()
    finally:
        await engine.aclose()


def _fetch_items(state: AppState, sources: Sequence[Source], force: bool, quiet: bool = False):
    engine = _build_engine(state.config)
    with BatchProgress(enabled=_progress_default_enabled() and not quiet) as progress:
        return asyncio.run(_collect(engine, sources, force, progress))


def _format_score(score: int) -> str:
    if score >= 100_000_000:
        return f"{score / 100_000_000:.1f}亿"
    if score >= 10_000:
        return f"{score / 10_000:.1f}万"
    return str(score)


def _render_items_table(items: Sequence[TrendItem], title: str) -> Table:
    table = Table(title=f"{title} · 共 {len(items)} 条", box=box.SIMPLE_HEAD)
    table.add_column("#", style="dim", justify="right")
    table.add_column("标题", style="cyan", overflow="fold")
    table.add_column("热度", style="green", justify="right")
    table.add_column("来源", style="magenta", no_wrap=True)
    table.add_column("链接", style="dim", overflow="fold")
    for item in items:
        table.add_row(
            str(item.rank),
            item.title,
            _format_score(item.score),
            SOURCE_LABELS.get(item.source, item.source.value),
            item.url,
        )
    return table


def _print_failures(statuses: dict) -> None:
    failed = [
        f"{source}({status.value})"
        for source, status in statuses.items()
        if isinstance(status, FetchStatus) and status.failed
    ]
    if failed:
        console.print("以下信息源获取失败：" + ", ".join(failed), style="yellow")


app.add_typer(config_app, name="config", help="查看当前生效的配置")
app.add_typer(log_app, name="log", help="查看日志文件")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="开启调试日志", is_flag=True)
) -> None:
    ctx.obj = build_state(verbose)


@app.command("fetch", help="抓取一个或多个信息源的热榜。")
def fetch(
    ctx: typer.Context,
    sources: Optional[list[str]] = typer.Argument(None, help="信息源名称，支持空格或逗号分隔。"),
    min_score: Optional[int] = typer.Option(None, "--min-score", min=0, help="最低热度。"),
    keyword: Optional[str] = typer.Option(None, "--keyword", help="标题关键词（不区分大小写）。"),
    force: bool = typer.Option(False, "--force", help="忽略缓存强制刷新。", is_flag=True),
    group: bool = typer.Option(False, "--group", help="按信息源分组展示。", is_flag=True),
    top: Optional[int] = typer.Option(None, "--top", min=1, help="只显示热度最高的 N 条。"),
    as_json: bool = typer.Option(False, "--json", help="以 JSON 输出。", is_flag=True),
) -> None:
    state = _get_state(ctx)
    selected = _resolve_sources(state, sources)
    items, statuses = _fetch_items(state, selected, force, quiet=as_json)
    items = filter_items(items, min_score=min_score, keyword=keyword)
    if top is not None:
        items = rank_by_score(items, top)

    if as_json:
        if group:
            payload: object = {
                source.value: [item.to_dict() for item in members]
                for source, members in group_by_source(items).items()
            }
        else:
            payload = [item.to_dict() for item in items]
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    if not items:
        console.print("没有符合条件的热榜条目。", style="yellow")
    elif group:
        for source, members in group_by_source(items).items():
            console.print(_render_items_table(members, SOURCE_LABELS.get(source, source.value)))
    else:
        console.print(_render_items_table(items, "热榜"))
    _print_failures(statuses)


@app.command("sources", help="列出支持的信息源。")
def sources_command(
    category: Optional[str] = typer.Option(None, "--category", help="只显示指定分类。"),
) -> None:
    if category is not None and category not in SOURCE_CATEGORIES:
        console.print(
            f"未知分类：{category}。可选：" + ", ".join(SOURCE_CATEGORIES), style="red"
        )
        raise typer.Exit(code=1)
    members: Iterable[Source] = SOURCE_CATEGORIES[category] if category else list(Source)
    members = list(members)
    table = Table(title=f"信息源总览 · 共 {len(members)} 个", box=box.SIMPLE_HEAD)
    table.add_column("名称", style="cyan", no_wrap=True)
    table.add_column("显示名", style="green")
    table.add_column("分类", style="magenta")
    table.add_column("接口类型", style="dim")
    for source in members:
        table.add_row(
            source.value,
            SOURCE_LABELS.get(source, source.value),
            category_of(source) or "-",
            SOURCE_QUERY_MAP.get(source, "-"),
        )
    console.print(table)


@app.command("report", help="生成热榜汇总报告。")
def report(
    ctx: typer.Context,
    sources: Optional[list[str]] = typer.Argument(None, help="信息源名称，支持空格或逗号分隔。"),
    top: int = typer.Option(5, "--top", min=1, help="热度排行条数。"),
    force: bool = typer.Option(False, "--force", help="忽略缓存强制刷新。", is_flag=True),
) -> None:
    state = _get_state(ctx)
    selected = _resolve_sources(state, sources)
    items, statuses = _fetch_items(state, selected, force)
    summary = summarize(items, top_n=top)

    overview = Table(title="热榜汇总", box=box.MINIMAL_DOUBLE_HEAD, show_header=False)
    overview.add_column("指标", style="cyan")
    overview.add_column("数值", style="green", justify="right")
    overview.add_row("生成时间", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
    overview.add_row("信息源", str(len(summary.per_source)))
    overview.add_row("条目总数", str(summary.total_items))
    overview.add_row("最高热度", _format_score(summary.top_score))
    console.print(overview)

    if summary.top_items:
        console.print(_render_items_table(summary.top_items, f"热度 TOP {top}"))
    if summary.per_source:
        breakdown = Table(title="各信息源条目数", box=box.SIMPLE_HEAD)
        breakdown.add_column("信息源", style="magenta")
        breakdown.add_column("条目", style="green", justify="right")
        for source, count in summary.per_source.items():
            breakdown.add_row(SOURCE_LABELS.get(source, source.value), str(count))
        console.print(breakdown)
    _print_failures(statuses)


class RefreshTicker:
    """Hand scheduler ticks to the event loop, one refresh at a time."""

    def __init__(
        self,
        refresh: Callable[[], Awaitable[None]],
        loop: asyncio.AbstractEventLoop,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self._refresh = refresh
        self._loop = loop
        self.logger = logger or configure_logging().bind(component="watch")
        self.pending: Future | None = None

    def __call__(self) -> None:
        if self.pending is not None and not self.pending.done():
            self.logger.warning("refresh_skipped", reason="previous refresh still running")
            return
        self.pending = asyncio.run_coroutine_threadsafe(self._refresh(), self._loop)
        self.pending.add_done_callback(self._report_failure)

    def _report_failure(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.logger.error("refresh_failed", error=str(error), exc_info=error)


async def _watch(
    engine: HotboardEngine,
    scheduler: APSchedulerAdapter,
    schedule: RefreshSchedule,
    sources: Sequence[Source],
    max_runs: int | None,
) -> int:
    loop = asyncio.get_running_loop()
    finished = asyncio.Event()
    runs = 0

    async def refresh() -> None:
        nonlocal runs
        items = await engine.fetch_many(sources, force_refresh=True)
        runs += 1
        stamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"{stamp} 第 {runs} 次刷新：{len(items)} 条", style="green")
        _print_failures(engine.source_status())
        if max_runs is not None and runs >= max_runs:
            finished.set()

    engine.start()
    scheduled = False
    try:
        await refresh()
        if max_runs is not None and runs >= max_runs:
            return runs
        scheduler.schedule(WATCH_JOB_ID, RefreshTicker(refresh, loop), schedule)
        scheduled = True
        scheduler.start()
        await finished.wait()
    finally:
        if scheduled:
            scheduler.remove(WATCH_JOB_ID)
        await engine.aclose()
        scheduler.shutdown()
    return runs


@app.command("watch", help="按计划周期性刷新热榜，Ctrl+C 退出。")
def watch(
    ctx: typer.Context,
    sources: Optional[list[str]] = typer.Argument(None, help="信息源名称，支持空格或逗号分隔。"),
    interval: Optional[float] = typer.Option(None, "--interval", min=1, help="刷新间隔（秒），覆盖配置。"),
    max_runs: Optional[int] = typer.Option(None, "--max-runs", min=1, help="刷新 N 次后退出。"),
) -> None:
    state = _get_state(ctx)
    selected = _resolve_sources(state, sources)
    schedule = state.config.refresh_schedule
    if interval is not None:
        schedule = RefreshSchedule(type=ScheduleType.INTERVAL, value=interval)
    scheduler = APSchedulerAdapter()
    engine = _build_engine(state.config, scheduler=scheduler)
    console.print(
        f"开始监控 {len(selected)} 个信息源（{schedule.type.value}: {schedule.value}）", style="cyan"
    )
    try:
        asyncio.run(_watch(engine, scheduler, schedule, selected, max_runs))
    except KeyboardInterrupt:
        console.print("已停止监控。", style="dim")


@config_app.command("show", help="以 YAML 显示当前生效的配置。")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    typer.echo(
        yaml.safe_dump(state.config.model_dump(mode="json"), allow_unicode=True, sort_keys=False)
    )


@config_app.command("path", help="显示配置文件路径。")
def config_path(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    typer.echo(str(state.repository.locator.config_path()))


@log_app.command("list", help="列出可用的日志文件。")
def log_list() -> None:
    logs = list(available_logs())
    if not logs:
        console.print("暂未生成任何日志。", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("文件名", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="查看日志的最近内容。")
def log_show(
    lines: int = typer.Option(100, "--lines", min=1, help="显示最近 N 行内容。"),
    errors: bool = typer.Option(False, "--errors", help="查看错误日志。", is_flag=True),
) -> None:
    path = default_log_dir() / ("error.log" if errors else "hotboard.log")
    content = tail_log(path, lines)
    if not content:
        console.print("暂无日志信息，请稍后再试。", style="dim")
        return
    console.print(f"{path.name} · 最近 {len(content)} 行", style="cyan")
    typer.echo("".join(content), nl=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
