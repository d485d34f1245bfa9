"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


@dataclass
class BatchProgressState:
    batches_done: int = 0
    batches_total: int = 0


class BatchProgress:
    """
    批次进度条

    作为 ``on_batch(done, total)`` 回调传给编排器；
    非交互终端自动降级为静默模式，只记录计数。
    """

    def __init__(self, label: str = "热榜抓取", enabled: bool = True, console: Console | None = None) -> None:
        self.label = label
        self.enabled = enabled
        self.state = BatchProgressState()
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None

    def __enter__(self) -> "BatchProgress":
        if not self.enabled:
            return self
        console = self._console or Console()
        if not console.is_terminal:
            self.enabled = False
            return self
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            transient=True,
            console=console,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            # 同一控制台已存在活动进度条
            self._progress = None
            self.enabled = False
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc, tb)
            self._progress = None

    def __call__(self, done: int, total: int) -> None:
        self.state.batches_done = done
        self.state.batches_total = total
        if self._progress is None:
            return
        if self._task_id is None:
            self._task_id = self._progress.add_task(self.label, total=total)
        self._progress.update(self._task_id, completed=done, total=total)


__all__ = ["BatchProgress", "BatchProgressState"]
