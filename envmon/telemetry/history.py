"""Fixed-capacity reading history for plotting and statistics."""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

import numpy as np

from envmon.sensors import Reading

HISTORY_CAPACITY = 300
SMOOTHING_WINDOW = 5


class HistoryBuffer:
    """Ring of the most recent readings, oldest first.

    Smoothed values are memoised per logical index in two numpy arrays, one per
    quantity, next to boolean masks telling which slots are valid. Every push or
    clear shifts the logical indices, so both masks are reset in place.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._slots: List[Optional[Reading]] = [None] * capacity
        self._head = 0
        self._size = 0
        self._temp_cache = np.zeros(capacity, dtype=np.float64)
        self._press_cache = np.zeros(capacity, dtype=np.float64)
        self._temp_valid = np.zeros(capacity, dtype=bool)
        self._press_valid = np.zeros(capacity, dtype=bool)
        self.epoch = 0

    # ------------------------------------------------------------------
    # Mutation
    def push(self, reading: Reading) -> None:
        """Append ``reading``, evicting the oldest one when full."""
        self._slots[self._head] = reading
        self._head = (self._head + 1) % self.capacity
        if self._size < self.capacity:
            self._size += 1
        self._invalidate()

    def clear(self) -> None:
        self._slots = [None] * self.capacity
        self._head = 0
        self._size = 0
        self._invalidate()

    def _invalidate(self) -> None:
        self._temp_valid.fill(False)
        self._press_valid.fill(False)
        self.epoch += 1

    # ------------------------------------------------------------------
    # Read-only access
    def __len__(self) -> int:
        return self._size

    def _physical(self, index: int) -> int:
        return (self._head - self._size + index) % self.capacity

    def get(self, index: int) -> Reading:
        """Return the reading at logical ``index`` (0 is the oldest)."""
        if self._size == 0:
            raise IndexError("history is empty")
        if index < 0 or index >= self._size:
            raise IndexError(f"history index {index} out of range (size {self._size})")
        return self._slots[self._physical(index)]

    __getitem__ = get

    def __iter__(self) -> Iterator[Reading]:
        for index in range(self._size):
            yield self._slots[self._physical(index)]

    def latest(self) -> Optional[Reading]:
        return self.get(self._size - 1) if self._size else None

    def snapshot(self) -> Tuple[Reading, ...]:
        return tuple(self)

    # ------------------------------------------------------------------
    # Smoothing
    def _value(self, is_temperature: bool, index: int) -> float:
        reading = self._slots[self._physical(index)]
        return reading.temperature if is_temperature else reading.pressure

    def _average(self, is_temperature: bool, index: int, window: int) -> float:
        half = window // 2
        start = max(0, index - half)
        stop = min(self._size - 1, index + half)
        total = 0.0
        for i in range(start, stop + 1):
            total += self._value(is_temperature, i)
        return total / (stop - start + 1)

    def smoothed(self, is_temperature: bool, index: int, window: int = SMOOTHING_WINDOW) -> float:
        """Centered moving average around logical ``index``.

        The window is clamped at both ends of the history. Indices past the end
        are clamped to the newest reading. Only the default window is memoised.
        """
        if self._size == 0:
            raise IndexError("history is empty")
        if index < 0:
            raise IndexError(f"history index {index} out of range")
        if window < 1:
            raise ValueError("window must be at least 1")
        index = min(index, self._size - 1)
        if window != SMOOTHING_WINDOW:
            return self._average(is_temperature, index, window)

        cache = self._temp_cache if is_temperature else self._press_cache
        valid = self._temp_valid if is_temperature else self._press_valid
        if not valid[index]:
            cache[index] = self._average(is_temperature, index, window)
            valid[index] = True
        return float(cache[index])

    def is_cached(self, is_temperature: bool, index: int) -> bool:
        valid = self._temp_valid if is_temperature else self._press_valid
        return bool(0 <= index < self.capacity and valid[index])
