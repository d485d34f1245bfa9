"""Hotboard: aggregate trending lists from many Chinese platforms."""

from .engine import FetchStatus, FilterCriteria, TrendItem, normalize_score
from .orchestrator import FetchOrchestrator, HotboardEngine
from .sources import Source, parse_source

__version__ = "0.1.0"

__all__ = [
    "FetchOrchestrator",
    "FetchStatus",
    "FilterCriteria",
    "HotboardEngine",
    "Source",
    "TrendItem",
    "__version__",
    "normalize_score",
    "parse_source",
]
