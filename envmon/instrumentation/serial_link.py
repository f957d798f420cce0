"""Serial link to the sensor with port discovery and reconnect backoff.

Requires: pyserial
    pip install pyserial
"""

from __future__ import annotations

import logging
import os
import select
import time
from enum import Enum
from typing import Callable, List, Optional, Sequence

import serial

logger = logging.getLogger(__name__)

PORT_PREFIXES = ("/dev/ttyACM", "/dev/ttyUSB")
PORT_INDICES = 10
BAUD_RATES = (9600, 115200)
DEFAULT_BAUD = 9600
MAX_RECONNECT_ATTEMPTS = 10
RECONNECT_COOLDOWN_S = 5.0
POLL_TIMEOUT_S = 0.1
INTER_BYTE_TIMEOUT_S = 0.1
READ_CHUNK_BYTES = 255


class SerialLinkError(RuntimeError):
    """Raised when the serial port cannot be opened or configured."""


class LinkState(Enum):
    DISCONNECTED = "disconnected"
    PROBING = "probing"
    CONNECTED = "connected"


def port_candidates() -> List[str]:
    """Device paths probed in order: ``/dev/ttyACM0..9`` then ``/dev/ttyUSB0..9``."""
    return [f"{prefix}{index}" for prefix in PORT_PREFIXES for index in range(PORT_INDICES)]


class SerialLink:
    """Owns the serial connection lifecycle.

    ``DISCONNECTED -> PROBING -> CONNECTED -> DISCONNECTED`` on I/O failure, then
    back to ``PROBING`` once the cooldown has elapsed. After
    ``max_attempts`` failed probes the link stops retrying on its own; an
    explicit :meth:`manual_reconnect` or :meth:`set_baud` starts it again.
    """

    def __init__(
        self,
        baud: int = DEFAULT_BAUD,
        candidates: Optional[Sequence[str]] = None,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
        clock: Callable[[], float] = time.monotonic,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        cooldown_s: float = RECONNECT_COOLDOWN_S,
        on_error: Optional[Callable[[str, bool], None]] = None,
        on_connected: Optional[Callable[[str, int], None]] = None,
    ) -> None:
        if baud not in BAUD_RATES:
            raise ValueError(f"Unsupported baud rate: {baud}")
        self.baud = baud
        self.candidates = list(candidates) if candidates is not None else port_candidates()
        self.serial_factory = serial_factory
        self.clock = clock
        self.max_attempts = max_attempts
        self.cooldown_s = cooldown_s
        self.on_error = on_error
        self.on_connected = on_connected

        self.ser: Optional[serial.Serial] = None
        self.port: Optional[str] = None
        self.state = LinkState.DISCONNECTED
        self.attempts = 0
        self.last_attempt: Optional[float] = None
        self.last_error: Optional[str] = None

    # ------------------------- Connection management ------------------------

    @property
    def is_connected(self) -> bool:
        return self.ser is not None and self.state is LinkState.CONNECTED

    @property
    def gave_up(self) -> bool:
        return not self.is_connected and self.attempts >= self.max_attempts

    def _report(self, message: str, persistent: bool = False) -> None:
        self.last_error = message
        if persistent:
            logger.error(message)
        else:
            logger.warning(message)
        if self.on_error:
            self.on_error(message, persistent)

    def discover(self) -> Optional[str]:
        """Return the first candidate device path that exists."""
        for path in self.candidates:
            if os.path.exists(path):
                return path
        return None

    def open(self, path: str, baud: int) -> None:
        """Open ``path`` raw 8N1, no flow control, non-blocking."""
        if baud not in BAUD_RATES:
            raise ValueError(f"Unsupported baud rate: {baud}")
        try:
            ser = self.serial_factory(
                port=path,
                baudrate=baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
                timeout=0,
                inter_byte_timeout=INTER_BYTE_TIMEOUT_S,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            raise SerialLinkError(f"Failed to open serial port {path} at {baud} baud: {exc}") from exc
        self.close()
        self.ser = ser
        self.port = path
        self.baud = baud
        self.state = LinkState.CONNECTED
        logger.info("Connected to %s at %d baud", path, baud)

    def close(self) -> None:
        """Close the port if open and mark the link disconnected."""
        if self.ser is not None:
            try:
                self.ser.close()
            except (serial.SerialException, OSError) as exc:
                logger.warning("Error while closing %s: %s", self.port, exc)
        self.ser = None
        self.state = LinkState.DISCONNECTED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------ Reconnect -------------------------------

    def _mark_connected(self, path: str, baud: int) -> None:
        self.attempts = 0
        self.last_error = None
        logger.info("Reconnected to %s at baud rate %d", path, baud)
        if self.on_connected:
            self.on_connected(path, baud)

    def try_reconnect(self, now: Optional[float] = None) -> bool:
        """Probe for the device if disconnected, under the attempt cap and cooldown.

        Returns ``True`` only when this call established a connection.
        """
        if self.is_connected or self.attempts >= self.max_attempts:
            return False
        if now is None:
            now = self.clock()
        if self.last_attempt is not None and now - self.last_attempt < self.cooldown_s:
            return False
        self.last_attempt = now
        self.attempts += 1
        self.state = LinkState.PROBING

        path = self.discover()
        if path is None:
            self.state = LinkState.DISCONNECTED
            self._report("No serial port available", persistent=True)
            self._check_exhausted()
            return False

        for baud in BAUD_RATES:
            try:
                self.open(path, baud)
            except SerialLinkError as exc:
                logger.warning("%s", exc)
                continue
            self._mark_connected(path, baud)
            return True

        self.state = LinkState.DISCONNECTED
        self._report(f"Failed to reconnect to {path} with any baud rate", persistent=True)
        self._check_exhausted()
        return False

    def _check_exhausted(self) -> None:
        # Deliberate give-up: no more automatic probes until an explicit reset.
        if self.attempts >= self.max_attempts:
            self._report(
                f"Giving up after {self.attempts} reconnect attempts; reconnect manually to retry",
                persistent=True,
            )

    def reset_attempts(self) -> None:
        self.attempts = 0
        self.last_attempt = None

    def manual_reconnect(self) -> bool:
        """Drop the current link, clear the backoff state and probe immediately."""
        self.close()
        self.reset_attempts()
        return self.try_reconnect()

    def set_baud(self, baud: int) -> bool:
        """Switch to ``baud``, reopening the link when one is active or exhausted.

        The requested rate is opened directly first; if that fails the regular
        probe runs over :data:`BAUD_RATES` in order.
        """
        if baud not in BAUD_RATES:
            raise ValueError(f"Unsupported baud rate: {baud}")
        self.baud = baud
        logger.info("Baud rate set to %d", baud)
        if not (self.is_connected or self.gave_up):
            return False
        self.close()
        self.reset_attempts()
        path = self.discover()
        if path is not None:
            try:
                self.open(path, baud)
            except SerialLinkError as exc:
                logger.warning("%s", exc)
            else:
                self._mark_connected(path, baud)
                return True
        return self.try_reconnect()

    # --------------------------------- I/O ----------------------------------

    def _fail(self, message: str) -> None:
        self.close()
        self._report(message)

    def poll_readable(self, timeout: float = POLL_TIMEOUT_S) -> bool:
        """Wait at most ``timeout`` seconds for incoming bytes."""
        if not self.is_connected:
            return False
        try:
            ready, _, _ = select.select([self.ser], [], [], timeout)
        except (OSError, ValueError) as exc:
            self._fail(f"Select error: {exc}")
            return False
        return bool(ready)

    def read(self, size: int = READ_CHUNK_BYTES) -> bytes:
        """Read whatever is available without blocking."""
        if not self.is_connected:
            return b""
        try:
            data = self.ser.read(size)
        except (serial.SerialException, OSError) as exc:
            self._fail(f"Serial read error: {exc}")
            return b""
        return bytes(data or b"")
