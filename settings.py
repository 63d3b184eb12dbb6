from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_STREAM_INTERVAL_ENV = "SENSOR_STREAM_INTERVAL_SECONDS"
_FLUCTUATION_INTERVAL_ENV = "SENSOR_FLUCTUATION_INTERVAL_SECONDS"
_FLUCTUATION_ENABLED_ENV = "SENSOR_FLUCTUATION_ENABLED"
_SEED_ENV = "SENSOR_SEED_ON_STARTUP"
_ALERT_HISTORY_ENV = "SENSOR_ALERT_HISTORY"
_SLOW_SUBSCRIBER_ENV = "SUBSCRIBER_SLOW_MS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    stream_interval: float
    fluctuation_interval: float
    fluctuation_enabled: bool
    seed_on_startup: bool
    alert_history: int
    slow_subscriber_ms: float
    log_level: str


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        stream_interval=_read_positive_float(_STREAM_INTERVAL_ENV, 2.0),
        fluctuation_interval=_read_positive_float(_FLUCTUATION_INTERVAL_ENV, 10.0),
        fluctuation_enabled=_read_bool(_FLUCTUATION_ENABLED_ENV, True),
        seed_on_startup=_read_bool(_SEED_ENV, True),
        alert_history=_read_positive_int(_ALERT_HISTORY_ENV, 100),
        slow_subscriber_ms=_read_positive_float(_SLOW_SUBSCRIBER_ENV, 250.0),
        log_level=_read_log_level("INFO"),
    )
