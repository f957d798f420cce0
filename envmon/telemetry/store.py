"""Delimited-text persistence for the reading history."""

from __future__ import annotations

import csv
import logging
import os
import re
import time
from pathlib import Path
from typing import List, Optional, Union

from envmon.sensors import (
    DEFAULT_PRESSURE_RANGE,
    DEFAULT_TEMPERATURE_RANGE,
    Reading,
    ValueRange,
)
from envmon.telemetry.history import HistoryBuffer

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

# Plain decimal text only: no whitespace, underscores, inf or nan.
_FLOAT_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?", re.ASCII)
_INT_RE = re.compile(r"\d+", re.ASCII)


class HistoryStore:
    """Saves the history atomically and reloads it with per-line validation.

    One reading per line, ``temperature<d>pressure<d>timestamp``, no header.
    """

    def __init__(
        self,
        path: PathLike,
        delimiter: str = ",",
        temperature_range: ValueRange = DEFAULT_TEMPERATURE_RANGE,
        pressure_range: ValueRange = DEFAULT_PRESSURE_RANGE,
    ) -> None:
        if len(delimiter) != 1:
            raise ValueError("delimiter must be a single character")
        self.path = Path(path)
        self.delimiter = delimiter
        self.temperature_range = temperature_range
        self.pressure_range = pressure_range
        self.rejected: List[str] = []
        self.last_error: Optional[str] = None

    @property
    def temp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    # ------------------------------------------------------------------
    def save(self, history: HistoryBuffer) -> bool:
        """Write ``history`` to a sibling temp file and rename it over the target.

        Returns ``False`` (and leaves any previous file untouched) on failure.
        """
        self.last_error = None
        tmp = self.temp_path
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", newline="", encoding="ascii") as handle:
                writer = csv.writer(
                    handle,
                    delimiter=self.delimiter,
                    lineterminator="\n",
                    quoting=csv.QUOTE_NONE,
                )
                for reading in history:
                    writer.writerow([
                        repr(float(reading.temperature)),
                        repr(float(reading.pressure)),
                        int(reading.timestamp),
                    ])
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp, self.path)
        except (OSError, csv.Error) as exc:
            self.last_error = f"Failed to save {self.path}: {exc}"
            logger.error(self.last_error)
            try:
                tmp.unlink()
            except FileNotFoundError:
                pass
            except OSError as cleanup_exc:
                logger.warning("Could not remove temp file %s: %s", tmp, cleanup_exc)
            return False
        logger.info("Saved %d readings to %s", len(history), self.path)
        return True

    # ------------------------------------------------------------------
    def parse_line(self, line: str, now: float) -> Optional[Reading]:
        """Parse one persisted line, returning ``None`` if it must be rejected."""
        fields = line.rstrip("\r\n").split(self.delimiter)
        if len(fields) != 3:
            return None
        temp_text, press_text, ts_text = fields
        if not (_FLOAT_RE.fullmatch(temp_text) and _FLOAT_RE.fullmatch(press_text)):
            return None
        if not _INT_RE.fullmatch(ts_text):
            return None
        temperature = float(temp_text)
        pressure = float(press_text)
        timestamp = int(ts_text)
        if not self.temperature_range.contains(temperature):
            return None
        if not self.pressure_range.contains(pressure):
            return None
        if timestamp <= 0 or timestamp > now:
            return None
        return Reading(temperature=temperature, pressure=pressure, timestamp=timestamp)

    def load(self, history: HistoryBuffer, now: Optional[float] = None) -> bool:
        """Replace the contents of ``history`` with the readings stored on disk.

        Malformed or out-of-range lines are skipped with a warning. Returns
        ``True`` when at least one reading was loaded. A missing file leaves the
        history untouched.
        """
        self.rejected = []
        self.last_error = None
        if not self.path.exists():
            return False
        if now is None:
            now = time.time()

        history.clear()
        loaded = 0
        try:
            with self.path.open("r", encoding="ascii", errors="replace") as handle:
                for line in handle:
                    if not line.strip():
                        continue
                    reading = self.parse_line(line, now)
                    if reading is None:
                        text = line.rstrip("\r\n")
                        self.rejected.append(text)
                        logger.warning("Invalid data line in %s: %r", self.path, text)
                        continue
                    history.push(reading)
                    loaded += 1
        except OSError as exc:
            self.last_error = f"Failed to open data file {self.path}: {exc}"
            logger.error(self.last_error)
            history.clear()
            return False
        if loaded:
            logger.info("Loaded %d readings from %s", loaded, self.path)
        return loaded > 0
