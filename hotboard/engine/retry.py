"""Backoff schedule applied when an upstream answers HTTP 429."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Iterator


@dataclass(slots=True)
class RateLimitRetry:
    """Linear-growth backoff with uniform jitter.

    Retry ``n`` (0-based) waits ``(n + 1) * base + uniform(0, jitter)``
    seconds; at most ``max_retries`` retries follow the first request.
    """

    max_retries: int = 3
    base: float = 1.5
    jitter: float = 0.5
    rng: Callable[[float, float], float] = field(default=random.uniform, repr=False)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base < 0 or self.jitter < 0:
            raise ValueError("backoff base and jitter must be non-negative")

    def should_retry(self, retry_index: int) -> bool:
        return retry_index < self.max_retries

    def delay_for(self, retry_index: int) -> float:
        jitter = self.rng(0.0, self.jitter) if self.jitter else 0.0
        return (retry_index + 1) * self.base + jitter

    def schedule(self) -> Iterator[float]:
        """Yield every delay of a fully exhausted retry budget."""

        for retry_index in range(self.max_retries):
            yield self.delay_for(retry_index)

    def max_total_delay(self) -> float:
        return sum((index + 1) * self.base + self.jitter for index in range(self.max_retries))


__all__ = ["RateLimitRetry"]
