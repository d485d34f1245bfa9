"""Pure post-processing over a unified item list."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from pydantic import BaseModel, Field, field_validator

from ..sources import Source, parse_source
from .items import ReportSummary, TrendItem


class FilterCriteria(BaseModel):
    """Optional, independently applied constraints (logical AND)."""

    sources: list[Source] | None = None
    min_score: int | None = Field(default=None, ge=0)
    keyword: str | None = None

    @field_validator("sources", mode="before")
    @classmethod
    def _coerce_sources(cls, value: Any) -> list[Source] | None:
        if value is None:
            return None
        if isinstance(value, (str, Source)):
            value = [value]
        resolved = [parse_source(name) for name in value]
        return [source for source in resolved if source is not None]

    @field_validator("keyword")
    @classmethod
    def _strip_keyword(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


def filter_items(
    items: Iterable[TrendItem], criteria: FilterCriteria | None = None, **kwargs: Any
) -> list[TrendItem]:
    """Return the items satisfying every supplied criterion, order preserved.

    Criteria may be given as a ``FilterCriteria`` or as keyword arguments
    (``sources``, ``min_score``, ``keyword``). An empty ``sources`` list
    imposes no constraint.
    """

    if criteria is None:
        criteria = FilterCriteria(**kwargs)
    elif kwargs:
        criteria = criteria.model_copy(update=FilterCriteria(**kwargs).model_dump(exclude_unset=True))

    allowed = set(criteria.sources) if criteria.sources else None
    needle = criteria.keyword.casefold() if criteria.keyword else None
    result: list[TrendItem] = []
    for item in items:
        if allowed is not None and item.source not in allowed:
            continue
        if criteria.min_score is not None and item.score < criteria.min_score:
            continue
        if needle is not None and needle not in item.title.casefold():
            continue
        result.append(item)
    return result


def group_by_source(items: Iterable[TrendItem]) -> dict[Source, list[TrendItem]]:
    groups: dict[Source, list[TrendItem]] = {}
    for item in items:
        groups.setdefault(item.source, []).append(item)
    return groups


def rank_by_score(items: Iterable[TrendItem], limit: int | None = None) -> list[TrendItem]:
    ranked = sorted(items, key=lambda item: item.score, reverse=True)
    return ranked if limit is None else ranked[: max(0, limit)]


def summarize(items: Sequence[TrendItem], top_n: int = 5) -> ReportSummary:
    """Headline numbers for a report: totals, best score, top N and per-source counts."""

    per_source = {source: len(group) for source, group in group_by_source(items).items()}
    return ReportSummary(
        total_items=len(items),
        top_score=max((item.score for item in items), default=0),
        top_items=rank_by_score(items, top_n),
        per_source=per_source,
    )


__all__ = ["FilterCriteria", "filter_items", "group_by_source", "rank_by_score", "summarize"]
