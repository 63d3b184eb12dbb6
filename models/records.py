"""Domain models shared across services."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from models.errors import InvalidReadingError

METRIC_FIELDS = ("temperature", "humidity", "co2", "pressure")

# Decimal places kept after arithmetic on each metric.
METRIC_PRECISION: Dict[str, int] = {
    "temperature": 1,
    "humidity": 1,
    "co2": 0,
    "pressure": 2,
}

METRIC_UNITS: Dict[str, str] = {
    "temperature": "°C",
    "humidity": "%",
    "co2": "ppm",
    "pressure": "hPa",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def round_metric(metric: str, value: float) -> float:
    return float(round(value, METRIC_PRECISION[metric]))


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


class SensorReading(BaseModel):
    """Latest snapshot reported by one sensor.

    A metric left as ``None`` means the sensor does not report it at all,
    which is different from a reading of zero.
    """

    model_config = ConfigDict(frozen=True)

    sensor_id: str = Field(..., min_length=1)
    timestamp: datetime
    temperature: Optional[float] = Field(default=None, allow_inf_nan=False)
    humidity: Optional[float] = Field(default=None, allow_inf_nan=False)
    co2: Optional[float] = Field(default=None, allow_inf_nan=False)
    pressure: Optional[float] = Field(default=None, allow_inf_nan=False)

    @field_validator("sensor_id")
    @classmethod
    def _strip_sensor_id(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("sensor_id must not be blank")
        return stripped

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> datetime:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        if isinstance(value, str):
            return parse_timestamp(value)
        raise ValueError("timestamp must be an ISO-8601 string")

    def metrics(self) -> Dict[str, float]:
        """Return only the metrics this sensor reports."""
        values = {}
        for metric in METRIC_FIELDS:
            value = getattr(self, metric)
            if value is not None:
                values[metric] = value
        return values

    def with_values(
        self,
        values: Mapping[str, float],
        timestamp: Optional[datetime] = None,
    ) -> SensorReading:
        unknown = sorted(set(values) - set(METRIC_FIELDS))
        if unknown:
            raise InvalidReadingError(f"Unknown metrics: {', '.join(unknown)}")
        merged: Dict[str, Any] = self.model_dump()
        merged.update({key: float(value) for key, value in values.items()})
        merged["timestamp"] = timestamp or utc_now()
        try:
            return type(self).model_validate(merged)
        except ValidationError as exc:
            raise InvalidReadingError(describe_validation_error(exc)) from exc


def describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse_reading(payload: Mapping[str, Any]) -> SensorReading:
    """Validate an untrusted payload into a ``SensorReading``."""
    if not isinstance(payload, Mapping):
        raise InvalidReadingError("Reading payload must be a JSON object.")
    try:
        return SensorReading.model_validate(dict(payload))
    except ValidationError as exc:
        raise InvalidReadingError(describe_validation_error(exc)) from exc
