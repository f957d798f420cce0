"""Line decoder for the sensor's free-text serial output.

The firmware prints lines such as ``Temp: 23.5 C`` and ``Pres: 1012.3 hPa``.
One temperature line plus one pressure line, in either order and possibly
split across reads, make up one :class:`~envmon.sensors.Reading`.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable, List, Optional

from envmon.sensors import (
    DEFAULT_PRESSURE_RANGE,
    DEFAULT_TEMPERATURE_RANGE,
    Reading,
    ValueRange,
)

logger = logging.getLogger(__name__)

TEMPERATURE_MARKER = "Temp"
PRESSURE_MARKER = "Pres"
MAX_PENDING_BYTES = 256

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


class DecoderOverflowError(RuntimeError):
    """Raised when a partial line outgrows the accumulator bound.

    The partial line is discarded. Readings completed earlier in the same chunk
    are carried on :attr:`readings` so the caller does not lose them.
    """

    def __init__(self, message: str, readings: Optional[List[Reading]] = None) -> None:
        super().__init__(message)
        self.readings = list(readings or [])


def parse_value(text: str) -> Optional[float]:
    """Return the first signed decimal number in ``text``, if any."""
    match = _NUMBER_RE.search(text)
    if match is None:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


class LineDecoder:
    """Turns raw serial chunks into validated readings."""

    def __init__(
        self,
        temperature_range: ValueRange = DEFAULT_TEMPERATURE_RANGE,
        pressure_range: ValueRange = DEFAULT_PRESSURE_RANGE,
        max_pending: int = MAX_PENDING_BYTES,
        clock: Callable[[], float] = time.time,
        on_warning: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.temperature_range = temperature_range
        self.pressure_range = pressure_range
        self.max_pending = max_pending
        self.clock = clock
        self.on_warning = on_warning
        self._pending = bytearray()
        self._temperature: Optional[float] = None
        self._pressure: Optional[float] = None

    @property
    def pending(self) -> bytes:
        return bytes(self._pending)

    def reset(self) -> None:
        """Drop the partial line and any half-complete reading."""
        self._pending.clear()
        self._temperature = None
        self._pressure = None

    def _warn(self, message: str, notify: bool = True) -> None:
        logger.warning(message)
        if notify and self.on_warning:
            self.on_warning(message)

    def feed(self, chunk: bytes) -> List[Reading]:
        """Consume ``chunk`` and return the readings it completed."""
        self._pending.extend(chunk)
        readings: List[Reading] = []
        while b"\n" in self._pending:
            raw, _, rest = self._pending.partition(b"\n")
            self._pending = bytearray(rest)
            line = raw.decode("ascii", errors="ignore").rstrip("\r")
            reading = self.process_line(line)
            if reading is not None:
                readings.append(reading)

        if len(self._pending) > self.max_pending:
            size = len(self._pending)
            self.reset()
            message = f"Serial line exceeded {self.max_pending} bytes ({size}); partial data discarded"
            logger.error(message)
            raise DecoderOverflowError(message, readings)
        return readings

    def process_line(self, line: str) -> Optional[Reading]:
        """Handle one complete line; return a reading once both values are known."""
        if not line.strip():
            return None
        if TEMPERATURE_MARKER in line:
            value = parse_value(line[line.index(TEMPERATURE_MARKER) + len(TEMPERATURE_MARKER):])
            if value is None:
                self._warn(f"No temperature value in line: {line!r}", notify=False)
                return None
            if not self.temperature_range.contains(value):
                self._warn(f"Invalid temperature: {value}")
                return None
            self._temperature = value
        elif PRESSURE_MARKER in line:
            value = parse_value(line[line.index(PRESSURE_MARKER) + len(PRESSURE_MARKER):])
            if value is None:
                self._warn(f"No pressure value in line: {line!r}", notify=False)
                return None
            if not self.pressure_range.contains(value):
                self._warn(f"Invalid pressure: {value}")
                return None
            self._pressure = value
        else:
            self._warn(f"Unrecognised line: {line!r}", notify=False)
            return None

        if self._temperature is None or self._pressure is None:
            return None
        reading = Reading(
            temperature=self._temperature,
            pressure=self._pressure,
            timestamp=int(self.clock()),
        )
        self._temperature = None
        self._pressure = None
        return reading
