import os

import pytest
import serial


class PipeSerial:
    """Serial stand-in backed by an OS pipe so ``select`` works on it."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self._read_fd, self._write_fd = os.pipe()
        self.is_open = True
        self.fail_reads = False

    def fileno(self) -> int:
        return self._read_fd

    def feed(self, data: bytes) -> None:
        os.write(self._write_fd, data)

    def read(self, size: int = 1) -> bytes:
        if self.fail_reads:
            raise serial.SerialException("device disconnected")
        return os.read(self._read_fd, size)

    def close(self) -> None:
        self.is_open = False

    def release(self) -> None:
        os.close(self._read_fd)
        os.close(self._write_fd)


@pytest.fixture
def pipe_serial():
    port = PipeSerial()
    yield port
    port.release()


@pytest.fixture
def device_path(tmp_path):
    path = tmp_path / "ttyACM0"
    path.touch()
    return str(path)
