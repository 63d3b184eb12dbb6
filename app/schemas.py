"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.records import SensorReading
from services.presets import Preset


class MetricValues(BaseModel):
    """Absolute values to write; omitted metrics are left untouched."""

    temperature: Optional[float] = Field(default=None, allow_inf_nan=False, description="Celsius")
    humidity: Optional[float] = Field(default=None, allow_inf_nan=False, description="Percent")
    co2: Optional[float] = Field(default=None, allow_inf_nan=False, description="ppm")
    pressure: Optional[float] = Field(default=None, allow_inf_nan=False, description="hPa")


class MetricChanges(BaseModel):
    """Relative deltas; positive or negative."""

    temperature_change: Optional[float] = Field(default=None, allow_inf_nan=False)
    humidity_change: Optional[float] = Field(default=None, allow_inf_nan=False)
    co2_change: Optional[float] = Field(default=None, allow_inf_nan=False)
    pressure_change: Optional[float] = Field(default=None, allow_inf_nan=False)

    def as_deltas(self) -> Dict[str, Optional[float]]:
        return {
            "temperature": self.temperature_change,
            "humidity": self.humidity_change,
            "co2": self.co2_change,
            "pressure": self.pressure_change,
        }


class PresetRequest(BaseModel):
    sensor_ids: Optional[List[str]] = Field(
        default=None, description="Sensors to affect; all sensors when omitted."
    )


class IngestResponse(BaseModel):
    sensor_id: str
    new_sensor: bool


class SensorListResponse(BaseModel):
    sensors: List[SensorReading]
    count: int = Field(..., ge=0)
    timestamp: datetime


class FluctuationResponse(BaseModel):
    success: bool = True
    message: str
    sensors: List[SensorReading]
    timestamp: datetime


class PresetResponse(BaseModel):
    condition: Preset
    updated: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)


class AlertResponse(BaseModel):
    sensor_id: str
    metric: str
    value: float
    direction: str
    message: str
    raised_at: datetime


class MetricAssessmentResponse(BaseModel):
    metric: str
    value: float
    unit: str
    status: str
    advice: str


class SensorAssessmentResponse(BaseModel):
    sensor_id: str
    healthy: bool
    metrics: List[MetricAssessmentResponse] = Field(default_factory=list)


class SubscriptionStatsResponse(BaseModel):
    total_subscribers: int
    sensor_specific_subscriptions: Dict[str, int] = Field(default_factory=dict)
    global_subscriptions: int


class StoreStatsResponse(BaseModel):
    total_sensors: int
    sensors_with_recent_data: int
    oldest_data_age_minutes: float
    newest_data_age_minutes: float


class StatsResponse(BaseModel):
    subscriptions: SubscriptionStatsResponse
    store: StoreStatsResponse
    active_streams: int
    simulator_running: bool
