"""Operator-facing error and status messages."""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Deque, Optional, Tuple

MAX_MESSAGES = 5
MESSAGE_TTL_S = 5.0


class ErrorLog:
    """Keeps the most recent transient messages and persistent errors.

    Transient messages expire ``ttl_s`` seconds after the latest one was added.
    Persistent errors stay until the operator clears them while connected, or
    until a reconnect succeeds.
    """

    def __init__(
        self,
        limit: int = MAX_MESSAGES,
        ttl_s: float = MESSAGE_TTL_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_s = ttl_s
        self.clock = clock
        self._messages: Deque[str] = deque(maxlen=limit)
        self._persistent: Deque[str] = deque(maxlen=limit)
        self.last_time: Optional[float] = None

    @property
    def messages(self) -> Tuple[str, ...]:
        return tuple(self._messages)

    @property
    def persistent(self) -> Tuple[str, ...]:
        return tuple(self._persistent)

    def add(self, message: str, persistent: bool = False) -> None:
        self._messages.append(message)
        if persistent:
            self._persistent.append(message)
        self.last_time = self.clock()

    def expire(self, now: Optional[float] = None) -> bool:
        """Drop transient messages once they are older than the TTL."""
        if not self._messages or self.last_time is None:
            return False
        if now is None:
            now = self.clock()
        if now - self.last_time > self.ttl_s:
            self._messages.clear()
            return True
        return False

    def clear(self, connected: bool) -> None:
        """Operator clear: persistent errors only go away while the link is up."""
        self._messages.clear()
        if connected:
            self._persistent.clear()

    def clear_all(self) -> None:
        self._messages.clear()
        self._persistent.clear()
