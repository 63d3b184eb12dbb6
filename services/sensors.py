"""Boundary operations for reading and manipulating sensor state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Iterable, List, Mapping, Optional

from datastore.sensor_store import SensorDataStore, build_default_store
from models.errors import InvalidReadingError, SensorNotFoundError, UnsupportedMetricError
from models.records import METRIC_FIELDS, SensorReading, round_metric, utc_now
from services.alerts import AlertLog
from services.presets import DEFAULT_VALUES, MOCK_SENSORS, PRESET_VALUES, Preset
from services.simulator import FluctuationSimulator
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class IngestOutcome:
    reading: SensorReading
    new_sensor: bool


@dataclass
class SensorSnapshot:
    sensors: List[SensorReading]
    count: int
    generated_at: datetime


@dataclass
class PresetOutcome:
    condition: Preset
    updated: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)


class SensorService:
    """Coordinates the store, alert checks, presets and the simulator."""

    def __init__(
        self,
        store: SensorDataStore,
        alerts: AlertLog,
        simulator: FluctuationSimulator,
    ) -> None:
        self.store = store
        self.alerts = alerts
        self.simulator = simulator

    def ingest(self, reading: SensorReading) -> IngestOutcome:
        """Store an externally produced reading with the producer's timestamp.

        A timestamp older than the stored one is replaced by the stored one,
        so a sensor's timestamp never moves backwards.
        """

        def _merge(current: Optional[SensorReading]) -> SensorReading:
            if current is None or reading.timestamp >= current.timestamp:
                return reading
            logger.warning(
                "Stale reading timestamp replaced",
                extra={"sensor_id": reading.sensor_id, "reason": reading.timestamp.isoformat()},
            )
            return reading.model_copy(update={"timestamp": current.timestamp})

        reading, created = self.store.upsert(reading.sensor_id, _merge)
        if created:
            logger.info("Sensor connected", extra={"sensor_id": reading.sensor_id})
        self.alerts.check(reading)
        return IngestOutcome(reading=reading, new_sensor=created)

    def find(self, sensor_id: str) -> Optional[SensorReading]:
        return self.store.get(sensor_id)

    def get_reading(self, sensor_id: str) -> SensorReading:
        reading = self.store.get(sensor_id)
        if reading is None:
            raise SensorNotFoundError(sensor_id)
        return reading

    def snapshot(self) -> SensorSnapshot:
        sensors = sorted(self.store.list_readings(), key=lambda reading: reading.sensor_id)
        return SensorSnapshot(sensors=sensors, count=len(sensors), generated_at=utc_now())

    def set_values(self, sensor_id: str, values: Mapping[str, Optional[float]]) -> SensorReading:
        """Overwrite the given metrics and stamp a new timestamp."""
        updates = {key: value for key, value in values.items() if value is not None}
        if not updates:
            raise InvalidReadingError("At least one metric value is required.")
        unknown = sorted(set(updates) - set(METRIC_FIELDS))
        if unknown:
            raise InvalidReadingError(f"Unknown metrics: {', '.join(unknown)}")

        reading = self.store.update(sensor_id, lambda current: current.with_values(updates))
        logger.info(
            "Sensor values set",
            extra={"sensor_id": sensor_id, "metric": ",".join(sorted(updates))},
        )
        self.alerts.check(reading)
        return reading

    def adjust_values(self, sensor_id: str, changes: Mapping[str, Optional[float]]) -> SensorReading:
        """Add deltas to reported metrics.

        The whole call is rejected if any targeted metric is not reported by
        the sensor, so either every requested change lands or none does.
        """
        deltas = {key: value for key, value in changes.items() if value is not None}
        if not deltas:
            raise InvalidReadingError("At least one metric change is required.")
        unknown = sorted(set(deltas) - set(METRIC_FIELDS))
        if unknown:
            raise InvalidReadingError(f"Unknown metrics: {', '.join(unknown)}")

        def _apply(current: SensorReading) -> SensorReading:
            absent = [metric for metric in deltas if getattr(current, metric) is None]
            if absent:
                raise UnsupportedMetricError(sensor_id, sorted(absent))
            adjusted = {
                metric: round_metric(metric, getattr(current, metric) + delta)
                for metric, delta in deltas.items()
            }
            return current.with_values(adjusted)

        reading = self.store.update(sensor_id, _apply)
        logger.info(
            "Sensor values adjusted",
            extra={"sensor_id": sensor_id, "metric": ",".join(sorted(deltas))},
        )
        self.alerts.check(reading)
        return reading

    def apply_preset(
        self,
        condition: Preset,
        sensor_ids: Optional[Iterable[str]] = None,
    ) -> PresetOutcome:
        values = PRESET_VALUES[condition]
        targets = list(sensor_ids) if sensor_ids is not None else self.store.sensor_ids()
        outcome = PresetOutcome(condition=condition)
        for sensor_id in targets:
            try:
                reading = self.store.update(sensor_id, lambda current: current.with_values(values))
            except SensorNotFoundError:
                outcome.missing.append(sensor_id)
                continue
            outcome.updated.append(sensor_id)
            self.alerts.check(reading)
        logger.info(
            "Preset applied",
            extra={"condition": condition.value, "sensor_count": len(outcome.updated)},
        )
        return outcome

    def reset(self, sensor_id: str) -> SensorReading:
        reading = self.store.update(sensor_id, lambda current: current.with_values(DEFAULT_VALUES))
        logger.info("Sensor reset to defaults", extra={"sensor_id": sensor_id})
        self.alerts.check(reading)
        return reading

    def delete(self, sensor_id: str) -> None:
        if not self.store.delete(sensor_id):
            raise SensorNotFoundError(sensor_id)
        logger.info("Sensor removed", extra={"sensor_id": sensor_id})

    def initialize_sensors(self) -> List[SensorReading]:
        """Seed the registry with the demo sensors, overwriting existing ones."""
        now = utc_now()
        readings = []
        for payload in MOCK_SENSORS:
            reading = SensorReading.model_validate({**payload, "timestamp": now})
            self.store.set(reading.sensor_id, reading)
            readings.append(reading)
        logger.info("Mock sensors initialized", extra={"sensor_count": len(readings)})
        return readings

    def fluctuate(self) -> List[SensorReading]:
        return self.simulator.fluctuate_all()

    def shutdown(self) -> None:
        """Stop background work during application shutdown."""
        self.simulator.stop()


@lru_cache
def build_default_service() -> SensorService:
    """Factory that wires the service around the process-wide store."""
    settings = get_settings()
    store = build_default_store()
    alerts = AlertLog(max_events=settings.alert_history)
    return SensorService(
        store=store,
        alerts=alerts,
        simulator=FluctuationSimulator(
            store,
            interval=settings.fluctuation_interval,
            alerts=alerts,
        ),
    )
