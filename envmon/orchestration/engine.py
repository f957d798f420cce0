"""Acquisition engine: the single-threaded polling loop tying the pieces together."""

from __future__ import annotations

import logging
import time
from collections import deque
from pathlib import Path
from typing import Callable, Deque, List, Optional

from envmon.instrumentation import (
    BAUD_RATES,
    POLL_TIMEOUT_S,
    DecoderOverflowError,
    LineDecoder,
    SerialLink,
    SerialLinkError,
)
from envmon.io import MonitorSettings
from envmon.orchestration.model import Command, MonitorSnapshot, StepResult
from envmon.orchestration.status import ErrorLog
from envmon.sensors import Reading, altitude_m
from envmon.telemetry import HistoryBuffer, HistoryStore, compute_statistics

logger = logging.getLogger(__name__)

IDLE_WAIT_S = 0.2


def default_data_filename(now: Optional[float] = None) -> str:
    """Timestamped file name used when none is given, e.g. ``data_20240101_120000.csv``."""
    return time.strftime("data_%Y%m%d_%H%M%S.csv", time.localtime(now))


class AcquisitionEngine:
    """Owns the link, decoder, history and store for one sensor.

    The engine is a plain object handed to the front end; nothing here is
    global. Every wait is bounded so the caller can interleave UI work and
    commands between :meth:`step` calls.
    """

    def __init__(
        self,
        settings: MonitorSettings,
        data_path: Path,
        link: Optional[SerialLink] = None,
        history: Optional[HistoryBuffer] = None,
        clock: Callable[[], float] = time.time,
        poll_timeout_s: float = POLL_TIMEOUT_S,
    ) -> None:
        self.settings = settings
        self.clock = clock
        self.poll_timeout_s = poll_timeout_s
        self.errors = ErrorLog(clock=clock)
        self.history = history if history is not None else HistoryBuffer()
        self.decoder = LineDecoder(
            temperature_range=settings.temperature_range,
            pressure_range=settings.pressure_range,
            clock=clock,
            on_warning=self.errors.add,
        )
        self.link = link if link is not None else SerialLink(baud=settings.baud_rate)
        self.link.on_error = self._on_link_error
        self.link.on_connected = self._on_link_connected
        self.store = HistoryStore(
            data_path,
            delimiter=settings.csv_delimiter,
            temperature_range=settings.temperature_range,
            pressure_range=settings.pressure_range,
        )
        self.paused = False
        self.last_save: Optional[float] = None
        self._commands: Deque[Command] = deque()
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Link callbacks
    def _on_link_error(self, message: str, persistent: bool) -> None:
        self.errors.add(message, persistent=persistent)

    def _on_link_connected(self, port: str, baud: int) -> None:
        self.errors.clear_all()

    # ------------------------------------------------------------------
    # Startup / shutdown
    def start(self) -> None:
        """Open the port at the configured baud rate and reload saved history."""
        for message in self.settings.warnings:
            self.errors.add(message)
        self.connect()
        self.reload()

    def connect(self) -> bool:
        port = self.link.discover()
        if port is None:
            self.errors.add("No serial port found", persistent=True)
            logger.error("No serial port found")
            return False
        try:
            self.link.open(port, self.settings.baud_rate)
        except SerialLinkError as exc:
            logger.error("%s", exc)
            self.errors.add(f"Unable to open serial port: {port}", persistent=True)
            return False
        return True

    def reload(self) -> bool:
        loaded = self.store.load(self.history, now=self.clock())
        if self.store.last_error:
            self.errors.add(self.store.last_error)
        if self.store.rejected:
            self.errors.add(f"Skipped {len(self.store.rejected)} invalid data lines in {self.store.path}")
        if loaded:
            self.errors.add(f"Loaded data from {self.store.path}")
        return loaded

    def shutdown(self) -> None:
        """Discard any partial line, save once more and close the port."""
        self.decoder.reset()
        self.save()
        self.link.close()
        logger.info("Monitor stopped")

    def request_stop(self) -> None:
        """Ask :meth:`run` to finish after the current iteration (signal-safe)."""
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Polling loop
    def submit(self, command: Command) -> None:
        """Queue ``command`` for the next :meth:`step`."""
        self._commands.append(command)

    def step(self) -> StepResult:
        """Run one bounded iteration: commands, reconnect, read, periodic save."""
        while self._commands:
            if self.handle(self._commands.popleft()) is StepResult.QUIT:
                return StepResult.QUIT
        if self._stop_requested:
            return StepResult.QUIT

        self.link.try_reconnect()
        self.read_serial()
        now = self.clock()
        if not self.paused and (self.last_save is None or now - self.last_save >= self.settings.save_interval):
            self.save()
            self.last_save = now
        self.errors.expire(now)
        return StepResult.CONTINUE

    def run(self, idle_s: float = IDLE_WAIT_S, max_steps: Optional[int] = None) -> None:
        """Loop :meth:`step` until quit is requested, then shut down."""
        steps = 0
        try:
            while max_steps is None or steps < max_steps:
                if self.step() is StepResult.QUIT:
                    break
                steps += 1
                time.sleep(idle_s)
        finally:
            self.shutdown()

    def read_serial(self) -> List[Reading]:
        """Pull available bytes from the link and push any completed readings."""
        if self.paused or not self.link.is_connected:
            return []
        ready = self.link.poll_readable(self.poll_timeout_s)
        if not ready:
            if not self.link.is_connected:
                self.decoder.reset()
            return []
        data = self.link.read()
        if not self.link.is_connected:
            self.decoder.reset()
            return []
        if not data:
            return []
        try:
            readings = self.decoder.feed(data)
        except DecoderOverflowError as exc:
            self.errors.add(str(exc))
            readings = exc.readings
        for reading in readings:
            self.history.push(reading)
            logger.info(
                "Temp: %.2f C, Press: %.2f hPa, Alt: %.1f m",
                reading.temperature,
                reading.pressure,
                altitude_m(reading.pressure),
            )
        return readings

    # ------------------------------------------------------------------
    # Commands
    def handle(self, command: Command) -> StepResult:
        if command is Command.QUIT:
            logger.info("Quit requested")
            return StepResult.QUIT
        if command is Command.SAVE:
            self.save()
        elif command is Command.TOGGLE_PAUSE:
            self.toggle_pause()
        elif command is Command.CLEAR_ERRORS:
            self.errors.clear(connected=self.link.is_connected)
        elif command is Command.RECONNECT:
            self.link.manual_reconnect()
        return StepResult.CONTINUE

    def save(self, filename: Optional[str] = None) -> bool:
        """Persist the history, optionally switching to ``filename`` in the same directory."""
        if filename:
            self.store.path = self.store.path.with_name(filename)
        if self.store.save(self.history):
            self.errors.add(f"Saved to {self.store.path}")
            return True
        self.errors.add(self.store.last_error or f"Failed to save {self.store.path}")
        return False

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        logger.info("Acquisition %s", "paused" if self.paused else "resumed")
        return self.paused

    def set_baud(self, baud: int) -> bool:
        """Switch the link to ``baud``; unsupported rates leave it unchanged."""
        if baud not in BAUD_RATES:
            message = f"Invalid baud rate {baud}, keeping {self.link.baud}"
            logger.warning(message)
            self.errors.add(message)
            return False
        self.link.set_baud(baud)
        self.errors.add(f"Set baud rate to: {baud}")
        return True

    # ------------------------------------------------------------------
    def snapshot(self) -> MonitorSnapshot:
        now = self.clock()
        latest = self.history.latest()
        return MonitorSnapshot(
            readings=self.history.snapshot(),
            statistics=compute_statistics(self.history, now=now),
            link_state=self.link.state,
            port=self.link.port,
            baud=self.link.baud,
            paused=self.paused,
            reconnect_attempts=self.link.attempts,
            data_path=self.store.path,
            messages=self.errors.messages,
            persistent_errors=self.errors.persistent,
            latest=latest,
            altitude_m=altitude_m(latest.pressure) if latest else None,
        )
