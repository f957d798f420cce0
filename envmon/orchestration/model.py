"""Data models shared between the engine and whatever front end renders it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Optional, Tuple

from envmon.instrumentation import LinkState
from envmon.sensors import Reading
from envmon.telemetry import Statistics


class Command(Enum):
    """Operator commands accepted by the engine."""

    SAVE = auto()
    TOGGLE_PAUSE = auto()
    CLEAR_ERRORS = auto()
    RECONNECT = auto()
    QUIT = auto()


class StepResult(Enum):
    """Outcome of one loop iteration or command."""

    CONTINUE = auto()
    QUIT = auto()


@dataclass(slots=True)
class MonitorSnapshot:
    """Read-only view of the engine state for presentation."""

    readings: Tuple[Reading, ...]
    statistics: Statistics
    link_state: LinkState
    port: Optional[str] = None
    baud: Optional[int] = None
    paused: bool = False
    reconnect_attempts: int = 0
    data_path: Optional[Path] = None
    messages: Tuple[str, ...] = field(default_factory=tuple)
    persistent_errors: Tuple[str, ...] = field(default_factory=tuple)
    latest: Optional[Reading] = None
    altitude_m: Optional[float] = None

    @property
    def connected(self) -> bool:
        return self.link_state is LinkState.CONNECTED
