"""Reading history, rolling statistics and on-disk persistence."""

from .history import HISTORY_CAPACITY, SMOOTHING_WINDOW, HistoryBuffer
from .statistics import STATS_WINDOW_S, Statistics, compute_statistics
from .store import HistoryStore

__all__ = [
    "HISTORY_CAPACITY",
    "SMOOTHING_WINDOW",
    "STATS_WINDOW_S",
    "HistoryBuffer",
    "HistoryStore",
    "Statistics",
    "compute_statistics",
]
