from __future__ import annotations

from typing import Iterable

from datastore.sensor_store import build_default_store
from services.sensors import build_default_service
from services.streaming import build_default_gateway
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


_CACHES = (
    get_settings,
    build_default_store,
    build_default_service,
    build_default_gateway,
)


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("SENSOR_STREAM_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("SENSOR_FLUCTUATION_INTERVAL_SECONDS", "3")
    monkeypatch.setenv("SENSOR_FLUCTUATION_ENABLED", "off")
    monkeypatch.setenv("SENSOR_SEED_ON_STARTUP", "no")
    monkeypatch.setenv("SENSOR_ALERT_HISTORY", "7")
    monkeypatch.setenv("SUBSCRIBER_SLOW_MS", "40")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    _clear_caches(_CACHES)

    try:
        settings = get_settings()
        service = build_default_service()
        gateway = build_default_gateway()

        assert settings.fluctuation_enabled is False
        assert settings.seed_on_startup is False
        assert settings.log_level == "DEBUG"
        assert service.simulator.interval == 3.0
        assert service.store.slow_subscriber_ms == 40.0
        assert gateway.interval == 0.5
        assert gateway.store is service.store
    finally:
        _clear_caches(_CACHES)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SENSOR_STREAM_INTERVAL_SECONDS", "fast")
    monkeypatch.setenv("SENSOR_FLUCTUATION_INTERVAL_SECONDS", "-1")
    monkeypatch.setenv("SENSOR_FLUCTUATION_ENABLED", "maybe")
    monkeypatch.setenv("SENSOR_ALERT_HISTORY", "0")
    monkeypatch.setenv("LOG_LEVEL", "   ")
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.stream_interval == 2.0
        assert settings.fluctuation_interval == 10.0
        assert settings.fluctuation_enabled is True
        assert settings.alert_history == 100
        assert settings.log_level == "INFO"
    finally:
        get_settings.cache_clear()
