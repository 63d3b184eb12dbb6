"""Domain errors raised by the sensor store and service layer."""

from __future__ import annotations


class SensorStoreError(Exception):
    """Base class for recoverable sensor store errors."""


class InvalidReadingError(SensorStoreError, ValueError):
    """Input could not be turned into a valid reading or update."""


class SensorNotFoundError(SensorStoreError, KeyError):
    """The requested sensor has no reading in the registry."""

    def __init__(self, sensor_id: str) -> None:
        super().__init__(f"Sensor {sensor_id!r} not found.")
        self.sensor_id = sensor_id

    def __str__(self) -> str:
        return str(self.args[0])


class UnsupportedMetricError(SensorStoreError, ValueError):
    """A relative adjustment targeted a metric the sensor does not report."""

    def __init__(self, sensor_id: str, metrics: list[str]) -> None:
        joined = ", ".join(metrics)
        super().__init__(f"Sensor {sensor_id!r} does not report: {joined}.")
        self.sensor_id = sensor_id
        self.metrics = metrics
