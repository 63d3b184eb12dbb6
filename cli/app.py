from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alerts, render_preset, render_sensor, render_snapshot
from services.presets import Preset


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for reading and manipulating simulated sensors.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _collect(**values: Optional[float]) -> Dict[str, float]:
    return {key: value for key, value in values.items() if value is not None}


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Sensor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("list")
def list_command(ctx: typer.Context) -> None:
    """Show the latest reading of every sensor."""
    state = _get_state(ctx)
    render_snapshot(state.client.list_sensors())


@app.command("get")
def get_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
) -> None:
    """Show one sensor's latest reading."""
    state = _get_state(ctx)
    render_sensor(state.client.get_sensor(sensor_id))


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
    temperature: Optional[float] = typer.Option(None, help="Temperature in Celsius."),
    humidity: Optional[float] = typer.Option(None, help="Humidity percentage."),
    co2: Optional[float] = typer.Option(None, help="CO2 in ppm."),
    pressure: Optional[float] = typer.Option(None, help="Pressure in hPa."),
    timestamp: Optional[str] = typer.Option(None, help="ISO-8601 timestamp (defaults to now)."),
) -> None:
    """Push a reading as if it came from a sensor."""
    state = _get_state(ctx)
    payload: Dict[str, object] = {
        "sensor_id": sensor_id,
        "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
    }
    payload.update(_collect(temperature=temperature, humidity=humidity, co2=co2, pressure=pressure))
    result = state.client.ingest(payload)
    suffix = " (new sensor)" if result.get("new_sensor") else ""
    typer.secho(f"Reading accepted for {sensor_id}{suffix}", fg=typer.colors.GREEN)


@app.command("set")
def set_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
    temperature: Optional[float] = typer.Option(None, help="Temperature in Celsius."),
    humidity: Optional[float] = typer.Option(None, help="Humidity percentage."),
    co2: Optional[float] = typer.Option(None, help="CO2 in ppm."),
    pressure: Optional[float] = typer.Option(None, help="Pressure in hPa."),
) -> None:
    """Set metrics to exact values."""
    state = _get_state(ctx)
    values = _collect(temperature=temperature, humidity=humidity, co2=co2, pressure=pressure)
    if not values:
        raise typer.BadParameter("Provide at least one metric value.")
    render_sensor(state.client.set_values(sensor_id, values))


@app.command("adjust")
def adjust_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
    temperature: Optional[float] = typer.Option(None, help="Temperature change in Celsius."),
    humidity: Optional[float] = typer.Option(None, help="Humidity change in percent."),
    co2: Optional[float] = typer.Option(None, help="CO2 change in ppm."),
    pressure: Optional[float] = typer.Option(None, help="Pressure change in hPa."),
) -> None:
    """Shift metrics by relative amounts."""
    state = _get_state(ctx)
    changes = _collect(
        temperature_change=temperature,
        humidity_change=humidity,
        co2_change=co2,
        pressure_change=pressure,
    )
    if not changes:
        raise typer.BadParameter("Provide at least one metric change.")
    render_sensor(state.client.adjust_values(sensor_id, changes))


@app.command("preset")
def preset_command(
    ctx: typer.Context,
    condition: Preset = typer.Argument(..., help="Condition to simulate."),
    sensor_ids: Optional[List[str]] = typer.Option(
        None,
        "--sensor",
        "-s",
        help="Sensor to affect; repeat for several. All sensors when omitted.",
    ),
) -> None:
    """Apply a simulated environmental condition."""
    state = _get_state(ctx)
    render_preset(state.client.apply_preset(condition.value, sensor_ids or None))


@app.command("reset")
def reset_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
) -> None:
    """Restore a sensor to default values."""
    state = _get_state(ctx)
    render_sensor(state.client.reset(sensor_id))


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
) -> None:
    """Remove a sensor from the registry."""
    state = _get_state(ctx)
    state.client.delete(sensor_id)
    typer.secho(f"Sensor {sensor_id} removed.", fg=typer.colors.GREEN)


@app.command("init")
def init_command(ctx: typer.Context) -> None:
    """Seed the demo sensors."""
    state = _get_state(ctx)
    render_snapshot(state.client.initialize())


@app.command("fluctuate")
def fluctuate_command(ctx: typer.Context) -> None:
    """Apply one round of random drift to every sensor."""
    state = _get_state(ctx)
    payload = state.client.fluctuate()
    render_snapshot({"sensors": payload.get("sensors") or []})


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum alerts to show."),
) -> None:
    """Show recent threshold alerts."""
    state = _get_state(ctx)
    render_alerts(state.client.alerts(limit))


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    count: Optional[int] = typer.Option(
        None,
        "--count",
        "-c",
        help="Stop after this many messages (streams until interrupted by default).",
    ),
) -> None:
    """Follow the live snapshot stream."""
    state = _get_state(ctx)
    for message in state.client.watch(count):
        typer.echo()
        typer.secho(f"[{message.get('type')}] {message.get('timestamp')}", fg=typer.colors.CYAN)
        render_snapshot(message)
