"""Pydantic models describing engine configuration."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..sources import Source, parse_source

DEFAULT_BASE_URL = "https://uapis.cn/api/v1/misc/hotboard"


class ScheduleType(str, Enum):
    """Trigger modes for scheduled refreshes."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class RefreshSchedule(BaseModel):
    """When the ``watch`` loop should force a refresh."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default=300,
        description="Cron expression, interval seconds/kwargs or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "RefreshSchedule":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL:
            if isinstance(self.value, bool) or not isinstance(self.value, (int, float, dict)):
                raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
            if isinstance(self.value, (int, float)) and self.value <= 0:
                raise ValueError("Interval seconds must be > 0")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class CacheConfig(BaseModel):
    """Freshness window and size bound of the per-source cache."""

    ttl_seconds: float = Field(default=60.0, gt=0)
    max_entries: int = Field(default=50, ge=1)
    sweep_interval_seconds: float = Field(default=300.0, gt=0)


class FetchConfig(BaseModel):
    """Upstream endpoint, timeout and 429 retry budget."""

    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = Field(default=15.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    backoff_base_seconds: float = Field(default=1.5, ge=0)
    backoff_jitter_seconds: float = Field(default=0.5, ge=0)
    user_agent: str | None = None

    @field_validator("base_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return value


class OrchestratorConfig(BaseModel):
    """Batching knobs balancing refresh latency against upstream rate limits."""

    batch_size: int = Field(default=2, ge=1)
    batch_delay_seconds: float = Field(default=0.8, ge=0)
    overall_deadline_seconds: float | None = None

    @field_validator("overall_deadline_seconds")
    @classmethod
    def _check_deadline(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("overall_deadline_seconds must be > 0 when set")
        return value


class EngineConfig(BaseModel):
    """Top level configuration file model."""

    cache: CacheConfig = Field(default_factory=CacheConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    refresh_schedule: RefreshSchedule = Field(default_factory=RefreshSchedule)
    default_sources: list[Source] = Field(default_factory=list)
    log_verbose: bool = False

    @field_validator("default_sources", mode="before")
    @classmethod
    def _coerce_sources(cls, value: Any) -> list[Source]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            value = value.split(",")
        resolved: list[Source] = []
        for name in value:
            source = parse_source(name)
            if source is None:
                raise ValueError(f"Unknown source: {name}")
            if source not in resolved:
                resolved.append(source)
        return resolved


__all__ = [
    "CacheConfig",
    "DEFAULT_BASE_URL",
    "EngineConfig",
    "FetchConfig",
    "OrchestratorConfig",
    "RefreshSchedule",
    "ScheduleType",
]
