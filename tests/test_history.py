import pytest

from envmon.sensors import Reading
from envmon.telemetry import HISTORY_CAPACITY, HistoryBuffer


def _reading(i: int, temperature: float = None, pressure: float = None) -> Reading:
    return Reading(
        temperature=float(i) if temperature is None else temperature,
        pressure=1000.0 + i if pressure is None else pressure,
        timestamp=1_000 + i,
    )


def test_size_is_bounded_and_oldest_evicted():
    history = HistoryBuffer()
    for i in range(HISTORY_CAPACITY + 25):
        history.push(_reading(i))
        assert len(history) == min(i + 1, HISTORY_CAPACITY)

    timestamps = [reading.timestamp for reading in history]
    assert timestamps == [1_000 + i for i in range(25, HISTORY_CAPACITY + 25)]
    assert history.get(0).timestamp == 1_025
    assert history.latest().timestamp == 1_000 + HISTORY_CAPACITY + 24


def test_get_rejects_out_of_range_indices():
    history = HistoryBuffer(capacity=3)
    with pytest.raises(IndexError):
        history.get(0)
    history.push(_reading(1))
    assert history[0].temperature == 1.0
    with pytest.raises(IndexError):
        history.get(1)
    with pytest.raises(IndexError):
        history.get(-1)


def test_snapshot_is_immutable_copy():
    history = HistoryBuffer(capacity=2)
    history.push(_reading(1))
    snap = history.snapshot()
    history.push(_reading(2))
    assert len(snap) == 1
    assert isinstance(snap, tuple)


def test_smoothed_clamps_window_at_edges():
    history = HistoryBuffer(capacity=10)
    for value in [1, 2, 3, 4, 5, 6]:
        history.push(_reading(value))

    assert history.smoothed(True, 0) == pytest.approx(2.0)
    assert history.smoothed(True, 2) == pytest.approx(3.0)
    assert history.smoothed(True, 5) == pytest.approx(5.0)
    # Past the end clamps to the newest reading.
    assert history.smoothed(True, 42) == pytest.approx(5.0)
    assert history.smoothed(False, 0) == pytest.approx(1002.0)
    assert history.smoothed(True, 2, window=1) == pytest.approx(3.0)


def test_smoothed_cache_invalidated_on_push_and_clear():
    history = HistoryBuffer(capacity=4)
    for value in [10, 10, 10]:
        history.push(_reading(0, temperature=value))

    assert history.smoothed(True, 1) == pytest.approx(10.0)
    assert history.is_cached(True, 1)
    assert not history.is_cached(False, 1)

    epoch = history.epoch
    history.push(_reading(0, temperature=10))
    assert history.epoch == epoch + 1
    assert not history.is_cached(True, 1)
    assert history.smoothed(True, 1) == pytest.approx(10.0)

    history.clear()
    assert len(history) == 0
    assert not history.is_cached(True, 1)
    with pytest.raises(IndexError):
        history.smoothed(True, 0)


def test_zero_average_is_cached_like_any_value():
    history = HistoryBuffer(capacity=4)
    history.push(_reading(0, temperature=-1.0))
    history.push(_reading(0, temperature=1.0))
    assert history.smoothed(True, 0) == 0.0
    assert history.is_cached(True, 0)


def test_smoothing_follows_eviction():
    history = HistoryBuffer(capacity=3)
    for value in [1, 2, 3]:
        history.push(_reading(value))
    assert history.smoothed(True, 0) == pytest.approx(2.0)
    history.push(_reading(7))
    # Logical index 0 is now the reading with temperature 2.
    assert history[0].temperature == 2.0
    assert history.smoothed(True, 0) == pytest.approx(4.0)
