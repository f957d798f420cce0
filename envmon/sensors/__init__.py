"""Sensor data types (readings, valid ranges, derived quantities)."""

from .reading import (
    DEFAULT_PRESSURE_RANGE,
    DEFAULT_TEMPERATURE_RANGE,
    Reading,
    ValueRange,
    altitude_m,
)

__all__ = [
    "DEFAULT_PRESSURE_RANGE",
    "DEFAULT_TEMPERATURE_RANGE",
    "Reading",
    "ValueRange",
    "altitude_m",
]
