"""Canned metric bundles applied by the manipulation operations."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List


class Preset(str, Enum):
    """Simulated weather conditions that can be applied to sensors."""

    hot_day = "hot_day"
    cold_night = "cold_night"
    humid_weather = "humid_weather"
    dry_weather = "dry_weather"
    optimal_growth = "optimal_growth"
    stress_test = "stress_test"


PRESET_VALUES: Dict[Preset, Dict[str, float]] = {
    Preset.hot_day: {"temperature": 32, "humidity": 45, "co2": 410, "pressure": 1010},
    Preset.cold_night: {"temperature": 15, "humidity": 85, "co2": 440, "pressure": 1015},
    Preset.humid_weather: {"temperature": 25, "humidity": 90, "co2": 400, "pressure": 1008},
    Preset.dry_weather: {"temperature": 28, "humidity": 25, "co2": 380, "pressure": 1020},
    Preset.optimal_growth: {"temperature": 24, "humidity": 65, "co2": 400, "pressure": 1013},
    Preset.stress_test: {"temperature": 38, "humidity": 15, "co2": 500, "pressure": 995},
}

DEFAULT_VALUES: Dict[str, float] = {
    "temperature": 24,
    "humidity": 65,
    "co2": 400,
    "pressure": 1013,
}

# Sensors created by the initialize operation.
MOCK_SENSORS: List[Dict[str, float | str]] = [
    {"sensor_id": "main_room", "temperature": 24.5, "humidity": 65.2, "co2": 420, "pressure": 1013.25},
    {"sensor_id": "greenhouse_01", "temperature": 26.8, "humidity": 72.1, "co2": 380, "pressure": 1012.8},
    {"sensor_id": "laboratory", "temperature": 22.3, "humidity": 58.9, "co2": 450, "pressure": 1014.1},
    {"sensor_id": "cultivation_area", "temperature": 28.1, "humidity": 78.5, "co2": 395, "pressure": 1011.9},
]
