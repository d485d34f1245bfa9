"""Turn upstream hot-board payloads into ``TrendItem`` lists."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

from ..sources import Source
from .items import DEFAULT_CATEGORY, DEFAULT_TITLE, NO_LINK, TrendItem
from .score import normalize_score

# Different platforms name the same concept differently; first present wins.
SCORE_FIELDS: tuple[str, ...] = ("hot_value", "hot", "heat", "score", "value")
LINK_FIELDS: tuple[str, ...] = ("url", "link", "mobileUrl")


class Envelope(str, Enum):
    """Known response shapes, in the order they are tried."""

    NESTED_LIST = "data.list"
    FLAT_LIST = "list"
    FLAT_DATA = "data"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class ParsedPayload:
    envelope: Envelope
    entries: list[Any] = field(default_factory=list)

    @property
    def recognised(self) -> bool:
        return self.envelope is not Envelope.UNKNOWN


def _nested_list(payload: dict) -> list | None:
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("list"), list):
        return data["list"]
    return None


def _flat_list(payload: dict) -> list | None:
    value = payload.get("list")
    return value if isinstance(value, list) else None


def _flat_data(payload: dict) -> list | None:
    value = payload.get("data")
    return value if isinstance(value, list) else None


_ENVELOPE_READERS: tuple[tuple[Envelope, Callable[[dict], list | None]], ...] = (
    (Envelope.NESTED_LIST, _nested_list),
    (Envelope.FLAT_LIST, _flat_list),
    (Envelope.FLAT_DATA, _flat_data),
)


def extract_entries(payload: Any) -> ParsedPayload:
    """Try each known envelope in order; anything else is "no data"."""

    if not isinstance(payload, dict):
        return ParsedPayload(Envelope.UNKNOWN)
    for envelope, reader in _ENVELOPE_READERS:
        entries = reader(payload)
        if entries is not None:
            return ParsedPayload(envelope, list(entries))
    return ParsedPayload(Envelope.UNKNOWN)


def _is_present(value: Any) -> bool:
    """Upstream leaves gaps as null, blank strings, false or zero."""

    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)):
        return value != 0
    return True


def _first_present(entry: dict, fields: Sequence[str]) -> Any:
    for name in fields:
        value = entry.get(name)
        if _is_present(value):
            return value
    return None


def _text(value: Any) -> str | None:
    if not _is_present(value):
        return None
    text = str(value).strip()
    return text or None


def build_items(source: Source, entries: Sequence[Any], fetched_at: int) -> list[TrendItem]:
    """Map raw list entries to items ranked 1..N in list order.

    Entries that are not JSON objects are dropped before ranking so ranks
    stay dense.
    """

    items: list[TrendItem] = []
    rows = [entry for entry in entries if isinstance(entry, dict)]
    for index, entry in enumerate(rows):
        items.append(
            TrendItem(
                id=f"{source.value}-{fetched_at}-{index}",
                rank=index + 1,
                title=_text(entry.get("title")) or DEFAULT_TITLE,
                score=normalize_score(_first_present(entry, SCORE_FIELDS)),
                source=source,
                url=_text(_first_present(entry, LINK_FIELDS)) or NO_LINK,
                category=_text(entry.get("category")) or DEFAULT_CATEGORY,
                fetched_at=fetched_at,
            )
        )
    return items


__all__ = [
    "Envelope",
    "LINK_FIELDS",
    "ParsedPayload",
    "SCORE_FIELDS",
    "build_items",
    "extract_entries",
]
