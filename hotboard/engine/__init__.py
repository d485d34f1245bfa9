"""Engine components: normalise → fetch → cache → filter."""

from .cache import SourceCache
from .fetcher import FetchOutcome, FetchStatus, SourceFetcher
from .filters import FilterCriteria, filter_items, group_by_source, rank_by_score, summarize
from .items import CacheEntry, CacheStat, ReportSummary, TrendItem
from .parser import Envelope, build_items, extract_entries
from .retry import RateLimitRetry
from .score import normalize_score

__all__ = [
    "CacheEntry",
    "CacheStat",
    "Envelope",
    "FetchOutcome",
    "FetchStatus",
    "FilterCriteria",
    "RateLimitRetry",
    "ReportSummary",
    "SourceCache",
    "SourceFetcher",
    "TrendItem",
    "build_items",
    "extract_entries",
    "filter_items",
    "group_by_source",
    "normalize_score",
    "rank_by_score",
    "summarize",
]
