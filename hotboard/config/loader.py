"""Configuration loading helpers for Hotboard."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import EngineConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "hotboard.yaml"
HOME_ENV = "HOTBOARD_HOME"

# env var -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "HOTBOARD_CACHE_TTL": ("cache", "ttl_seconds"),
    "HOTBOARD_CACHE_MAX_ENTRIES": ("cache", "max_entries"),
    "HOTBOARD_BASE_URL": ("fetch", "base_url"),
    "HOTBOARD_TIMEOUT": ("fetch", "timeout_seconds"),
    "HOTBOARD_MAX_RETRIES": ("fetch", "max_retries"),
    "HOTBOARD_BATCH_SIZE": ("orchestrator", "batch_size"),
    "HOTBOARD_BATCH_DELAY": ("orchestrator", "batch_delay_seconds"),
}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def apply_env_overrides(payload: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Overlay ``HOTBOARD_*`` variables onto a raw config mapping."""

    env = os.environ if environ is None else environ
    merged: dict[str, Any] = {key: value for key, value in payload.items()}
    for variable, (section, field) in ENV_OVERRIDES.items():
        raw = env.get(variable)
        if raw is None or raw.strip() == "":
            continue
        block = dict(merged.get(section) or {})
        block[field] = raw.strip()
        merged[section] = block
    return merged


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        for suffix in CONFIG_EXTENSIONS:
            candidate = self.data_dir / f"hotboard{suffix}"
            if candidate.exists():
                return candidate
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: EngineConfig | None = None

    def load_config(self, *, use_env: bool = True) -> EngineConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            payload = _read_file(path)
        else:
            payload = EngineConfig().model_dump(mode="json")
            _write_file(path, payload)
        if use_env:
            payload = apply_env_overrides(payload)
        config = EngineConfig.model_validate(payload)
        self._cache = config
        return config

    def save_config(self, config: EngineConfig) -> Path:
        path = self.locator.config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = config
        return path

    def reload(self) -> EngineConfig:
        self._cache = None
        return self.load_config()


__all__ = [
    "CONFIG_EXTENSIONS",
    "ConfigLocator",
    "ConfigRepository",
    "ENV_OVERRIDES",
    "apply_env_overrides",
]
