"""In-memory registry of latest sensor readings with subscriber fan-out."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from threading import Lock
from typing import Callable, Dict, List, Optional, Protocol, Tuple, Union
from uuid import uuid4

from models.errors import InvalidReadingError, SensorNotFoundError
from models.records import SensorReading, utc_now
from settings import get_settings

logger = logging.getLogger(__name__)

RECENT_DATA_MINUTES = 10.0


class Subscriber(Protocol):
    def notify(self, reading: SensorReading) -> None:
        ...


class CallbackSubscriber:
    """Adapts a plain callable to the ``Subscriber`` interface."""

    def __init__(self, callback: Callable[[SensorReading], None]) -> None:
        self._callback = callback

    def notify(self, reading: SensorReading) -> None:
        self._callback(reading)


@dataclass(frozen=True)
class Subscription:
    handle: str
    subscriber: Subscriber
    sensor_id: Optional[str]
    created_at: datetime


@dataclass
class SubscriptionStats:
    total_subscribers: int = 0
    sensor_specific_subscriptions: Dict[str, int] = field(default_factory=dict)
    global_subscriptions: int = 0


@dataclass
class StoreStats:
    total_sensors: int = 0
    sensors_with_recent_data: int = 0
    oldest_data_age_minutes: float = 0.0
    newest_data_age_minutes: float = 0.0


class SensorDataStore:
    """Latest reading per sensor plus global and per-sensor subscribers.

    Mutations are serialized by a single lock. Subscribers are notified after
    the lock is released, in the writer's thread, scoped ones first.
    """

    def __init__(self, slow_subscriber_ms: Optional[float] = None) -> None:
        self._readings: Dict[str, SensorReading] = {}
        self._scoped: Dict[str, Dict[str, Subscription]] = {}
        self._global: Dict[str, Subscription] = {}
        self._lock = Lock()
        self.slow_subscriber_ms = slow_subscriber_ms

    def set(self, sensor_id: str, reading: SensorReading) -> bool:
        """Upsert ``reading`` and notify subscribers. Returns True for a new sensor."""
        if reading.sensor_id != sensor_id:
            raise InvalidReadingError(
                f"Reading for {reading.sensor_id!r} cannot be stored under {sensor_id!r}."
            )
        with self._lock:
            created = sensor_id not in self._readings
            self._readings[sensor_id] = reading
            targets = self._targets_for(sensor_id)
        self._dispatch(reading, targets)
        return created

    def update(
        self,
        sensor_id: str,
        mutate: Callable[[SensorReading], SensorReading],
    ) -> SensorReading:
        """Atomically replace a reading with ``mutate(current)`` and notify."""
        with self._lock:
            current = self._readings.get(sensor_id)
            if current is None:
                raise SensorNotFoundError(sensor_id)
            updated = mutate(current)
            if updated.sensor_id != sensor_id:
                raise InvalidReadingError("sensor_id cannot change on update.")
            self._readings[sensor_id] = updated
            targets = self._targets_for(sensor_id)
        self._dispatch(updated, targets)
        return updated

    def upsert(
        self,
        sensor_id: str,
        merge: Callable[[Optional[SensorReading]], SensorReading],
    ) -> Tuple[SensorReading, bool]:
        """Store ``merge(current_or_none)`` atomically. Also reports whether the sensor is new."""
        with self._lock:
            current = self._readings.get(sensor_id)
            reading = merge(current)
            if reading.sensor_id != sensor_id:
                raise InvalidReadingError(
                    f"Reading for {reading.sensor_id!r} cannot be stored under {sensor_id!r}."
                )
            self._readings[sensor_id] = reading
            targets = self._targets_for(sensor_id)
        self._dispatch(reading, targets)
        return reading, current is None

    def get(self, sensor_id: str) -> Optional[SensorReading]:
        with self._lock:
            return self._readings.get(sensor_id)

    def has(self, sensor_id: str) -> bool:
        with self._lock:
            return sensor_id in self._readings

    def delete(self, sensor_id: str) -> bool:
        with self._lock:
            existed = self._readings.pop(sensor_id, None) is not None
            self._scoped.pop(sensor_id, None)
        return existed

    def list_readings(self) -> List[SensorReading]:
        """Snapshot of all readings at call time."""
        with self._lock:
            return list(self._readings.values())

    def sensor_ids(self) -> List[str]:
        with self._lock:
            return list(self._readings.keys())

    def clear(self) -> None:
        with self._lock:
            self._readings.clear()
            self._scoped.clear()
            self._global.clear()

    def subscribe(
        self,
        subscriber: Union[Subscriber, Callable[[SensorReading], None]],
        sensor_id: Optional[str] = None,
    ) -> str:
        if not hasattr(subscriber, "notify"):
            subscriber = CallbackSubscriber(subscriber)  # type: ignore[arg-type]
        handle = f"sub_{uuid4().hex}"
        subscription = Subscription(
            handle=handle,
            subscriber=subscriber,  # type: ignore[arg-type]
            sensor_id=sensor_id,
            created_at=utc_now(),
        )
        with self._lock:
            if sensor_id is None:
                self._global[handle] = subscription
            else:
                self._scoped.setdefault(sensor_id, {})[handle] = subscription
        return handle

    def unsubscribe(self, handle: str, sensor_id: Optional[str] = None) -> bool:
        """Remove a subscription.

        With ``sensor_id`` only that sensor's subscribers are searched; without
        it the global set and then every sensor's set are searched, so callers
        that lost track of their scope can still detach.
        """
        with self._lock:
            if sensor_id is not None:
                return self._remove_scoped(sensor_id, handle)
            if self._global.pop(handle, None) is not None:
                return True
            for scoped_id in list(self._scoped):
                if self._remove_scoped(scoped_id, handle):
                    return True
        return False

    def stats(self) -> SubscriptionStats:
        with self._lock:
            per_sensor = {
                sensor_id: len(subscriptions)
                for sensor_id, subscriptions in self._scoped.items()
            }
            global_count = len(self._global)
        return SubscriptionStats(
            total_subscribers=sum(per_sensor.values()) + global_count,
            sensor_specific_subscriptions=per_sensor,
            global_subscriptions=global_count,
        )

    def store_stats(self, now: Optional[datetime] = None) -> StoreStats:
        readings = self.list_readings()
        if not readings:
            return StoreStats()
        reference = now or utc_now()
        ages = [
            (reference - reading.timestamp).total_seconds() / 60.0 for reading in readings
        ]
        return StoreStats(
            total_sensors=len(readings),
            sensors_with_recent_data=sum(1 for age in ages if age <= RECENT_DATA_MINUTES),
            oldest_data_age_minutes=max(ages),
            newest_data_age_minutes=min(ages),
        )

    def _remove_scoped(self, sensor_id: str, handle: str) -> bool:
        subscriptions = self._scoped.get(sensor_id)
        if not subscriptions or subscriptions.pop(handle, None) is None:
            return False
        if not subscriptions:
            del self._scoped[sensor_id]
        return True

    def _targets_for(self, sensor_id: str) -> List[Subscription]:
        scoped = list(self._scoped.get(sensor_id, {}).values())
        return scoped + list(self._global.values())

    def _dispatch(self, reading: SensorReading, targets: List[Subscription]) -> None:
        for subscription in targets:
            start = time.perf_counter()
            try:
                subscription.subscriber.notify(reading)
            except Exception:
                logger.exception(
                    "Subscriber callback failed",
                    extra={
                        "subscriber_id": subscription.handle,
                        "sensor_id": reading.sensor_id,
                    },
                )
                continue
            elapsed_ms = (time.perf_counter() - start) * 1000
            if self.slow_subscriber_ms is not None and elapsed_ms > self.slow_subscriber_ms:
                logger.warning(
                    "Slow subscriber callback",
                    extra={
                        "subscriber_id": subscription.handle,
                        "sensor_id": reading.sensor_id,
                        "elapsed_ms": round(elapsed_ms, 1),
                    },
                )


@lru_cache
def build_default_store() -> SensorDataStore:
    settings = get_settings()
    return SensorDataStore(slow_subscriber_ms=settings.slow_subscriber_ms)
