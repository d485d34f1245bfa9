"""Normalise upstream heat values ("1.2万", "3千万", 5000 ...) into integers."""

from __future__ import annotations

import math
import re
from typing import Any

# Checked in order, first match wins.
_UNIT_MARKERS: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile("亿"), 100_000_000),
    (re.compile("千万"), 10_000_000),
    (re.compile("kw", re.IGNORECASE), 10_000_000),
    (re.compile("万|w", re.IGNORECASE), 10_000),
)
_NON_NUMERIC = re.compile(r"[^\d.]")
_LEADING_NUMBER = re.compile(r"\d*\.?\d*")


def normalize_score(raw: Any) -> int:
    """Return the canonical non-negative integer score for ``raw``.

    Numbers are floored; strings are scanned for a Chinese/latin unit marker,
    stripped down to digits and dots, parsed and multiplied. Anything that
    cannot be parsed degrades to ``0`` instead of raising.
    """

    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(0, raw)
    if isinstance(raw, float):
        return _floor_non_negative(raw)
    if not isinstance(raw, str):
        return 0

    text = raw.strip()
    if not text:
        return 0
    multiplier = 1
    for pattern, unit in _UNIT_MARKERS:
        if pattern.search(text):
            multiplier = unit
            text = pattern.sub("", text)
            break

    # "1.2.3" reads as 1.2; only the leading number counts
    numeric = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", text)).group()
    try:
        value = float(numeric)
    except ValueError:
        return 0
    return _floor_non_negative(value * multiplier)


def _floor_non_negative(value: float) -> int:
    if math.isnan(value) or math.isinf(value):
        return 0
    return max(0, math.floor(value))


__all__ = ["normalize_score"]
