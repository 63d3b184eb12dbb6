"""HTTP route definitions for the service."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import (
    AlertResponse,
    FluctuationResponse,
    IngestResponse,
    MetricChanges,
    MetricValues,
    PresetRequest,
    PresetResponse,
    SensorAssessmentResponse,
    SensorListResponse,
    StatsResponse,
    StoreStatsResponse,
    SubscriptionStatsResponse,
)
from models.errors import InvalidReadingError, SensorNotFoundError, UnsupportedMetricError
from models.records import SensorReading, parse_reading, utc_now
from services.analysis import analyze
from services.presets import Preset
from services.sensors import SensorService, build_default_service
from services.streaming import StreamingGateway, build_default_gateway

router = APIRouter()


def get_service() -> SensorService:
    return build_default_service()


def get_gateway() -> StreamingGateway:
    return build_default_gateway()


def _not_found(exc: SensorNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _bad_request(exc: InvalidReadingError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post(
    "/sensors/ingest",
    response_model=IngestResponse,
    summary="Accept a reading pushed by a sensor.",
)
async def ingest_reading(
    payload: Dict[str, Any] = Body(..., description="Sensor reading."),
    service: SensorService = Depends(get_service),
) -> IngestResponse:
    try:
        reading = parse_reading(payload)
    except InvalidReadingError as exc:
        raise _bad_request(exc) from exc
    outcome = service.ingest(reading)
    return IngestResponse(sensor_id=reading.sensor_id, new_sensor=outcome.new_sensor)


@router.post(
    "/sensors/init",
    response_model=SensorListResponse,
    response_model_exclude_none=True,
    summary="Seed the registry with the demo sensors.",
)
async def initialize_sensors(
    service: SensorService = Depends(get_service),
) -> SensorListResponse:
    readings = service.initialize_sensors()
    return SensorListResponse(sensors=readings, count=len(readings), timestamp=utc_now())


@router.post(
    "/sensors/fluctuate",
    response_model=FluctuationResponse,
    response_model_exclude_none=True,
    summary="Apply one round of random drift to every sensor.",
)
async def fluctuate_sensors(
    service: SensorService = Depends(get_service),
) -> FluctuationResponse:
    readings = service.fluctuate()
    return FluctuationResponse(
        message="Sensor fluctuations applied",
        sensors=readings,
        timestamp=utc_now(),
    )


@router.get(
    "/sensors",
    response_model=SensorListResponse,
    response_model_exclude_none=True,
    summary="List the latest reading of every sensor.",
)
async def list_sensors(
    service: SensorService = Depends(get_service),
) -> SensorListResponse:
    snapshot = service.snapshot()
    return SensorListResponse(
        sensors=snapshot.sensors,
        count=snapshot.count,
        timestamp=snapshot.generated_at,
    )


@router.get(
    "/sensors/{sensor_id}",
    response_model=SensorReading,
    response_model_exclude_none=True,
    summary="Fetch the latest reading of one sensor.",
)
async def get_sensor(
    sensor_id: str,
    service: SensorService = Depends(get_service),
) -> SensorReading:
    try:
        return service.get_reading(sensor_id)
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc


@router.delete(
    "/sensors/{sensor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a sensor and its scoped subscriptions.",
)
async def delete_sensor(
    sensor_id: str,
    service: SensorService = Depends(get_service),
) -> None:
    try:
        service.delete(sensor_id)
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc


@router.post(
    "/sensors/{sensor_id}/values",
    response_model=SensorReading,
    response_model_exclude_none=True,
    summary="Overwrite selected metrics with absolute values.",
)
async def set_sensor_values(
    sensor_id: str,
    values: MetricValues,
    service: SensorService = Depends(get_service),
) -> SensorReading:
    try:
        return service.set_values(sensor_id, values.model_dump())
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc
    except InvalidReadingError as exc:
        raise _bad_request(exc) from exc


@router.post(
    "/sensors/{sensor_id}/adjust",
    response_model=SensorReading,
    response_model_exclude_none=True,
    summary="Shift selected metrics by relative amounts.",
)
async def adjust_sensor_values(
    sensor_id: str,
    changes: MetricChanges,
    service: SensorService = Depends(get_service),
) -> SensorReading:
    try:
        return service.adjust_values(sensor_id, changes.as_deltas())
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc
    except UnsupportedMetricError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except InvalidReadingError as exc:
        raise _bad_request(exc) from exc


@router.post(
    "/sensors/{sensor_id}/reset",
    response_model=SensorReading,
    response_model_exclude_none=True,
    summary="Restore a sensor's metrics to default values.",
)
async def reset_sensor(
    sensor_id: str,
    service: SensorService = Depends(get_service),
) -> SensorReading:
    try:
        return service.reset(sensor_id)
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc


@router.post(
    "/presets/{condition}",
    response_model=PresetResponse,
    summary="Apply a simulated environmental condition.",
)
async def apply_preset(
    condition: Preset,
    request: Optional[PresetRequest] = Body(default=None),
    service: SensorService = Depends(get_service),
) -> PresetResponse:
    sensor_ids = request.sensor_ids if request is not None else None
    outcome = service.apply_preset(condition, sensor_ids)
    return PresetResponse(
        condition=outcome.condition,
        updated=outcome.updated,
        missing=outcome.missing,
    )


@router.get(
    "/alerts",
    response_model=List[AlertResponse],
    summary="Recent threshold alerts, newest first.",
)
async def list_alerts(
    limit: Optional[int] = Query(default=None, ge=1),
    service: SensorService = Depends(get_service),
) -> List[AlertResponse]:
    return [AlertResponse(**asdict(event)) for event in service.alerts.recent(limit)]


@router.get(
    "/analysis",
    response_model=List[SensorAssessmentResponse],
    summary="Assess current conditions against optimal growing ranges.",
)
async def analyze_conditions(
    service: SensorService = Depends(get_service),
) -> List[SensorAssessmentResponse]:
    assessments = analyze(service.snapshot().sensors)
    return [
        SensorAssessmentResponse(
            sensor_id=assessment.sensor_id,
            healthy=assessment.healthy,
            metrics=[asdict(metric) for metric in assessment.metrics],
        )
        for assessment in assessments
    ]


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Subscription, registry and stream diagnostics.",
)
async def get_stats(
    service: SensorService = Depends(get_service),
    gateway: StreamingGateway = Depends(get_gateway),
) -> StatsResponse:
    return StatsResponse(
        subscriptions=SubscriptionStatsResponse(**asdict(service.store.stats())),
        store=StoreStatsResponse(**asdict(service.store.store_stats())),
        active_streams=gateway.active_sessions(),
        simulator_running=service.simulator.running,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
