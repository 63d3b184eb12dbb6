from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_METRIC_LABELS = (
    ("temperature", "°C"),
    ("humidity", "%"),
    ("co2", "ppm"),
    ("pressure", "hPa"),
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_metric(payload: Dict[str, Any], metric: str, unit: str) -> str:
    value = payload.get(metric)
    if value is None:
        return "not available"
    return f"{value} {unit}"


def render_sensor(payload: Dict[str, Any]) -> None:
    echo_heading(f"Sensor {payload.get('sensor_id')}")
    pairs = [(metric, _format_metric(payload, metric, unit)) for metric, unit in _METRIC_LABELS]
    pairs.append(("last_update", payload.get("timestamp")))
    echo_key_values(pairs)


def render_snapshot(payload: Dict[str, Any]) -> None:
    sensors = payload.get("sensors") or []
    echo_heading(f"Sensors ({payload.get('count', len(sensors))})")
    if not sensors:
        typer.echo("No sensor data available.")
        return
    for sensor in sensors:
        typer.echo()
        render_sensor(sensor)


def render_alerts(alerts: List[Dict[str, Any]]) -> None:
    echo_heading("Alerts")
    if not alerts:
        typer.echo("No alerts recorded.")
        return
    for alert in alerts:
        typer.echo(f"  - {alert.get('raised_at')}: {alert.get('message')}")


def render_preset(payload: Dict[str, Any]) -> None:
    updated = payload.get("updated") or []
    missing = payload.get("missing") or []
    condition = str(payload.get("condition", "")).replace("_", " ")
    typer.secho(
        f"Applied {condition} to {len(updated)} sensors: {', '.join(updated) or 'none'}",
        fg=typer.colors.GREEN,
    )
    if missing:
        typer.secho(f"Unknown sensors skipped: {', '.join(missing)}", fg=typer.colors.YELLOW)
