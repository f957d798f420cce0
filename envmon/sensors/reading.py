"""Readings produced by the barometric sensor."""

from __future__ import annotations

from dataclasses import dataclass

SEA_LEVEL_PRESSURE_HPA = 1013.25


@dataclass(frozen=True)
class ValueRange:
    """Inclusive range of accepted values for one measured quantity."""

    low: float
    high: float

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high


DEFAULT_TEMPERATURE_RANGE = ValueRange(-40.0, 85.0)
DEFAULT_PRESSURE_RANGE = ValueRange(300.0, 1100.0)


@dataclass(frozen=True)
class Reading:
    """Single temperature/pressure sample.

    ``timestamp`` is the host receipt time in whole seconds. The device sends no
    clock of its own, so samples it buffered before transmission carry the time
    they arrived, not the time they were measured.
    """

    temperature: float
    pressure: float
    timestamp: int


def altitude_m(pressure_hpa: float, sea_level_hpa: float = SEA_LEVEL_PRESSURE_HPA) -> float:
    """Barometric altitude estimate in metres for a pressure in hPa."""
    return 44330.0 * (1.0 - (pressure_hpa / sea_level_hpa) ** 0.1903)
