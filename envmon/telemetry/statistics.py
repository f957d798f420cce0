"""Rolling-window summary of the reading history."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable, Optional

from envmon.sensors import Reading

STATS_WINDOW_S = 300


@dataclass(frozen=True)
class Statistics:
    """Min/max/average of both quantities over the recent window."""

    min_temp: float = 0.0
    max_temp: float = 0.0
    avg_temp: float = 0.0
    min_press: float = 0.0
    max_press: float = 0.0
    avg_press: float = 0.0
    count: int = 0


def compute_statistics(
    readings: Iterable[Reading],
    now: Optional[float] = None,
    window_s: float = STATS_WINDOW_S,
) -> Statistics:
    """Summarise readings whose age is at most ``window_s`` seconds.

    Returns the all-zero :class:`Statistics` when nothing falls in the window.
    """
    if now is None:
        now = time.time()

    count = 0
    temp_sum = press_sum = 0.0
    min_temp = max_temp = min_press = max_press = 0.0
    for reading in readings:
        if now - reading.timestamp > window_s:
            continue
        if count == 0:
            min_temp = max_temp = reading.temperature
            min_press = max_press = reading.pressure
        else:
            min_temp = min(min_temp, reading.temperature)
            max_temp = max(max_temp, reading.temperature)
            min_press = min(min_press, reading.pressure)
            max_press = max(max_press, reading.pressure)
        temp_sum += reading.temperature
        press_sum += reading.pressure
        count += 1

    if count == 0:
        return Statistics()
    return Statistics(
        min_temp=min_temp,
        max_temp=max_temp,
        avg_temp=temp_sum / count,
        min_press=min_press,
        max_press=max_press,
        avg_press=press_sum / count,
        count=count,
    )
