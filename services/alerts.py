"""Threshold alerts raised on ingested and mutated readings."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Deque, List, Optional

from models.records import SensorReading, utc_now

logger = logging.getLogger(__name__)

TEMPERATURE_LOW = 15.0
TEMPERATURE_HIGH = 35.0
HUMIDITY_LOW = 30.0
HUMIDITY_HIGH = 90.0
CO2_HIGH = 1500.0


@dataclass(frozen=True)
class AlertEvent:
    sensor_id: str
    metric: str
    value: float
    direction: str
    message: str
    raised_at: datetime


def evaluate_thresholds(reading: SensorReading) -> List[AlertEvent]:
    """Return one event per metric outside its allowed band."""
    raised_at = utc_now()
    events: List[AlertEvent] = []

    def _raise(metric: str, value: float, direction: str, message: str) -> None:
        events.append(
            AlertEvent(
                sensor_id=reading.sensor_id,
                metric=metric,
                value=value,
                direction=direction,
                message=message,
                raised_at=raised_at,
            )
        )

    sensor_id = reading.sensor_id
    if reading.temperature is not None:
        if reading.temperature < TEMPERATURE_LOW:
            _raise(
                "temperature",
                reading.temperature,
                "low",
                f"Critical low temperature: {reading.temperature}°C on sensor {sensor_id}",
            )
        elif reading.temperature > TEMPERATURE_HIGH:
            _raise(
                "temperature",
                reading.temperature,
                "high",
                f"Critical high temperature: {reading.temperature}°C on sensor {sensor_id}",
            )

    if reading.humidity is not None:
        if reading.humidity < HUMIDITY_LOW:
            _raise(
                "humidity",
                reading.humidity,
                "low",
                f"Low humidity warning: {reading.humidity}% on sensor {sensor_id}",
            )
        elif reading.humidity > HUMIDITY_HIGH:
            _raise(
                "humidity",
                reading.humidity,
                "high",
                f"High humidity warning: {reading.humidity}% on sensor {sensor_id}",
            )

    if reading.co2 is not None and reading.co2 > CO2_HIGH:
        _raise(
            "co2",
            reading.co2,
            "high",
            f"High CO2 levels: {reading.co2} ppm on sensor {sensor_id}",
        )

    return events


class AlertLog:
    """Bounded, thread-safe history of recent alert events."""

    def __init__(self, max_events: int = 100) -> None:
        self._events: Deque[AlertEvent] = deque(maxlen=max_events)
        self._lock = Lock()

    def check(self, reading: SensorReading) -> List[AlertEvent]:
        events = evaluate_thresholds(reading)
        if not events:
            return events
        with self._lock:
            self._events.extend(events)
        for event in events:
            logger.warning(
                event.message,
                extra={
                    "sensor_id": event.sensor_id,
                    "metric": event.metric,
                    "value": event.value,
                },
            )
        return events

    def recent(self, limit: Optional[int] = None) -> List[AlertEvent]:
        """Return stored events, newest first."""
        with self._lock:
            events = list(reversed(self._events))
        if limit is not None:
            return events[:limit]
        return events

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
