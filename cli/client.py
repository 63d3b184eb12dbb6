from __future__ import annotations

import json
from typing import Any, Dict, Iterator, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the sensor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_sensors(self) -> Dict[str, Any]:
        return self._request("GET", "/sensors")

    def get_sensor(self, sensor_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/sensors/{sensor_id}", not_found=f"Sensor {sensor_id} was not found.")

    def ingest(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/sensors/ingest", json=payload)

    def set_values(self, sensor_id: str, values: Dict[str, float]) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/sensors/{sensor_id}/values",
            json=values,
            not_found=f"Sensor {sensor_id} was not found.",
        )

    def adjust_values(self, sensor_id: str, changes: Dict[str, float]) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/sensors/{sensor_id}/adjust",
            json=changes,
            not_found=f"Sensor {sensor_id} was not found.",
        )

    def reset(self, sensor_id: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/sensors/{sensor_id}/reset",
            not_found=f"Sensor {sensor_id} was not found.",
        )

    def delete(self, sensor_id: str) -> None:
        self._request(
            "DELETE",
            f"/sensors/{sensor_id}",
            not_found=f"Sensor {sensor_id} was not found.",
        )

    def apply_preset(self, condition: str, sensor_ids: Optional[List[str]] = None) -> Dict[str, Any]:
        body = {"sensor_ids": sensor_ids} if sensor_ids else None
        return self._request("POST", f"/presets/{condition}", json=body)

    def initialize(self) -> Dict[str, Any]:
        return self._request("POST", "/sensors/init")

    def fluctuate(self) -> Dict[str, Any]:
        return self._request("POST", "/sensors/fluctuate")

    def alerts(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"limit": limit} if limit else None
        return self._request("GET", "/alerts", params=params)

    def watch(self, count: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        """Yield decoded messages from the SSE snapshot stream."""
        params = {"limit": count} if count else None
        try:
            with self._client.stream("GET", "/stream/sensors", params=params, timeout=None) as response:
                response.raise_for_status()
                for line in response.iter_lines():
                    if line.startswith("data: "):
                        yield json.loads(line[len("data: "):])
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)

    def _request(
        self,
        method: str,
        path: str,
        not_found: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            if response.status_code == 404 and not_found:
                raise typer.BadParameter(not_found)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
