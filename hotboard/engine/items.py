"""Value objects shared by the fetcher, cache and filters."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from ..sources import Source

DEFAULT_TITLE = "未知标题"
DEFAULT_CATEGORY = "热点"
NO_LINK = "#"


@dataclass(frozen=True, slots=True)
class TrendItem:
    """One trending entry from one source at one point in time."""

    id: str
    rank: int
    title: str
    score: int
    source: Source
    url: str = NO_LINK
    category: str | None = DEFAULT_CATEGORY
    fetched_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["source"] = self.source.value
        return payload


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Whole result set for one source, stamped with its write time (epoch seconds)."""

    items: tuple[TrendItem, ...]
    cached_at: float


@dataclass(frozen=True, slots=True)
class CacheStat:
    count: int
    age_ms: int


@dataclass(slots=True)
class ReportSummary:
    """Aggregate numbers over a filtered item set."""

    total_items: int
    top_score: int
    top_items: list[TrendItem] = field(default_factory=list)
    per_source: dict[Source, int] = field(default_factory=dict)


__all__ = [
    "CacheEntry",
    "CacheStat",
    "DEFAULT_CATEGORY",
    "DEFAULT_TITLE",
    "NO_LINK",
    "ReportSummary",
    "TrendItem",
]
