"""Configuration for traced runs."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .sandbox.limits import CEILING_MILLIS, EVENT_LIMIT, TIMEOUT_MILLIS

__all__ = ["ConfigError", "TracerConfig", "load_config"]

LOGGER = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "log.txt"

_LEGACY_KEYS = {
    "timeoutMs": "timeout_ms",
    "eventLimit": "event_limit",
    "ceilingMs": "ceiling_ms",
    "logFile": "log_file",
    "validateEvents": "validate_events",
    "memoryLimitMb": "memory_limit_mb",
    "fetchTimeoutS": "fetch_timeout_s",
}


class ConfigError(ValueError):
    """Raised when configuration values are missing or malformed."""


@dataclass(frozen=True, slots=True)
class TracerConfig:
    """Limits and switches for one traced run."""

    timeout_ms: int = TIMEOUT_MILLIS
    event_limit: int = EVENT_LIMIT
    ceiling_ms: int = CEILING_MILLIS
    log_file: str | None = DEFAULT_LOG_FILE
    instrument: bool = True
    validate_events: bool = False
    memory_limit_mb: int | None = None
    fetch_timeout_s: float = 10.0

    def __post_init__(self) -> None:
        for name in ("timeout_ms", "event_limit", "ceiling_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        if self.memory_limit_mb is not None and (
            isinstance(self.memory_limit_mb, bool)
            or not isinstance(self.memory_limit_mb, int)
            or self.memory_limit_mb <= 0
        ):
            raise ConfigError("memory_limit_mb must be a positive integer when set")
        if isinstance(self.fetch_timeout_s, bool) or not isinstance(self.fetch_timeout_s, (int, float)):
            raise ConfigError("fetch_timeout_s must be a number")
        if self.fetch_timeout_s <= 0:
            raise ConfigError("fetch_timeout_s must be positive")
        if self.log_file is not None and not isinstance(self.log_file, str):
            raise ConfigError("log_file must be a string or null")
        for name in ("instrument", "validate_events"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be a boolean")
        if self.ceiling_ms < self.timeout_ms:
            LOGGER.warning(
                "ceiling_ms (%s) is below timeout_ms (%s); runaway loops will be killed by the ceiling",
                self.ceiling_ms,
                self.timeout_ms,
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "TracerConfig":
        """Build a config from parsed YAML/JSON, accepting camelCase keys."""

        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError(f"Expected mapping for tracer config, got {type(data).__name__}")
        known = {field.name for field in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _LEGACY_KEYS.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown tracer config key '{key}'")
            values[name] = value
        return cls(**values)

    def merged(self, **overrides: Any) -> "TracerConfig":
        """Copy with every non-None override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self


def load_config(path: str | Path) -> TracerConfig:
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read config {config_path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    return TracerConfig.from_mapping(data)
