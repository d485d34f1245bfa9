"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides
from .models import (
    CacheConfig,
    EngineConfig,
    FetchConfig,
    OrchestratorConfig,
    RefreshSchedule,
    ScheduleType,
)

__all__ = [
    "CacheConfig",
    "ConfigLocator",
    "ConfigRepository",
    "EngineConfig",
    "FetchConfig",
    "OrchestratorConfig",
    "RefreshSchedule",
    "ScheduleType",
    "apply_env_overrides",
]
