"""Plant-care assessment of current readings against optimal ranges."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from models.records import METRIC_UNITS, SensorReading

OPTIMAL_RANGES: Dict[str, Tuple[float, float]] = {
    "temperature": (18.0, 28.0),
    "humidity": (40.0, 80.0),
    "co2": (300.0, 1200.0),
}

_ADVICE = {
    ("temperature", "low"): "Too cold - may stress plants",
    ("temperature", "high"): "Too hot - may cause heat stress",
    ("temperature", "ok"): "Within optimal range",
    ("humidity", "low"): "Too dry - may cause leaf stress",
    ("humidity", "high"): "Too humid - risk of fungal issues",
    ("humidity", "ok"): "Good level",
    ("co2", "low"): "Low - may limit photosynthesis",
    ("co2", "high"): "Very high - may stress plants",
    ("co2", "ok"): "Good for photosynthesis",
}


@dataclass
class MetricAssessment:
    metric: str
    value: float
    unit: str
    status: str
    advice: str


@dataclass
class SensorAssessment:
    sensor_id: str
    metrics: List[MetricAssessment] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return all(item.status == "ok" for item in self.metrics)


def classify(metric: str, value: float) -> str:
    low, high = OPTIMAL_RANGES[metric]
    if value < low:
        return "low"
    if value > high:
        return "high"
    return "ok"


def assess_reading(reading: SensorReading) -> SensorAssessment:
    assessment = SensorAssessment(sensor_id=reading.sensor_id)
    for metric, value in reading.metrics().items():
        if metric not in OPTIMAL_RANGES:
            continue
        status = classify(metric, value)
        assessment.metrics.append(
            MetricAssessment(
                metric=metric,
                value=value,
                unit=METRIC_UNITS[metric],
                status=status,
                advice=_ADVICE[(metric, status)],
            )
        )
    return assessment


def analyze(readings: Iterable[SensorReading]) -> List[SensorAssessment]:
    return [assess_reading(reading) for reading in sorted(readings, key=lambda r: r.sensor_id)]
