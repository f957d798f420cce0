from pathlib import Path

from envmon.instrumentation import LinkState, SerialLink
from envmon.io import MonitorSettings
from envmon.orchestration import AcquisitionEngine, Command, StepResult, default_data_filename
from envmon.sensors import Reading


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def build_engine(tmp_path: Path, candidates, factory, clock=None, **settings_kwargs):
    settings = MonitorSettings(**settings_kwargs)
    link = SerialLink(candidates=candidates, serial_factory=factory)
    return AcquisitionEngine(
        settings,
        tmp_path / "logs" / "data.csv",
        link=link,
        clock=clock or FakeClock(),
        poll_timeout_s=0.01,
    )


def test_default_data_filename_format():
    name = default_data_filename()
    assert name.startswith("data_") and name.endswith(".csv")
    assert len(name) == len("data_20240101_120000.csv")


def test_step_acquires_and_saves(tmp_path, device_path, pipe_serial):
    clock = FakeClock()
    engine = build_engine(tmp_path, [device_path], lambda **kwargs: pipe_serial, clock=clock)
    engine.start()
    assert engine.link.is_connected

    pipe_serial.feed(b"Temp: 23.5 C\nPres: 1012.3 hPa\n")
    assert engine.step() is StepResult.CONTINUE

    assert list(engine.history) == [Reading(temperature=23.5, pressure=1012.3, timestamp=int(clock.now))]
    saved = (tmp_path / "logs" / "data.csv").read_text()
    assert saved == f"23.5,1012.3,{int(clock.now)}\n"

    snap = engine.snapshot()
    assert snap.connected
    assert snap.statistics.count == 1
    assert snap.latest.pressure == 1012.3
    assert 0.0 < snap.altitude_m < 10.0
    assert any(message.startswith("Saved to") for message in snap.messages)


def test_periodic_save_respects_interval_and_pause(tmp_path, device_path, pipe_serial):
    clock = FakeClock()
    engine = build_engine(tmp_path, [device_path], lambda **kwargs: pipe_serial, clock=clock, save_interval=30)
    engine.start()
    engine.step()
    first_save = engine.last_save

    clock.now += 10
    pipe_serial.feed(b"Temp: 20\nPres: 1000\n")
    engine.step()
    assert engine.last_save == first_save
    assert len(engine.history) == 1

    engine.submit(Command.TOGGLE_PAUSE)
    clock.now += 60
    pipe_serial.feed(b"Temp: 21\nPres: 1001\n")
    engine.step()
    assert engine.paused
    assert engine.last_save == first_save
    assert len(engine.history) == 1

    engine.submit(Command.TOGGLE_PAUSE)
    engine.step()
    assert engine.last_save == clock.now
    assert len(engine.history) == 2


def test_startup_reloads_saved_history(tmp_path, device_path, pipe_serial):
    clock = FakeClock()
    data = tmp_path / "logs" / "data.csv"
    data.parent.mkdir()
    data.write_text("20.0,1000.0,1600000000\n10.0,9999.0,1600000001\n21.0,1001.0,1600000002\n")

    engine = build_engine(tmp_path, [device_path], lambda **kwargs: pipe_serial, clock=clock)
    engine.start()
    assert [r.timestamp for r in engine.history] == [1600000000, 1600000002]
    assert f"Loaded data from {data}" in engine.errors.messages
    assert any("Skipped 1 invalid data lines" in m for m in engine.errors.messages)


def test_missing_device_is_persistent_error(tmp_path):
    engine = build_engine(tmp_path, [str(tmp_path / "ttyACM0")], lambda **kwargs: None)
    engine.start()
    assert not engine.link.is_connected
    assert "No serial port found" in engine.errors.persistent
    assert engine.snapshot().link_state is LinkState.DISCONNECTED


def test_read_error_disconnects_and_reconnects(tmp_path, device_path, pipe_serial):
    engine = build_engine(tmp_path, [device_path], lambda **kwargs: pipe_serial)
    engine.start()
    pipe_serial.feed(b"Temp: 20\nPres: 10")
    engine.read_serial()
    assert engine.decoder.pending == b"Pres: 10"

    pipe_serial.feed(b"00\n")
    pipe_serial.fail_reads = True
    assert engine.read_serial() == []
    assert not engine.link.is_connected
    assert engine.decoder.pending == b""
    assert any("Serial read error" in m for m in engine.errors.messages)

    pipe_serial.fail_reads = False
    engine.step()
    assert engine.link.is_connected
    assert engine.link.attempts == 0


def test_quit_command_is_a_result_value(tmp_path, device_path, pipe_serial):
    engine = build_engine(tmp_path, [device_path], lambda **kwargs: pipe_serial)
    engine.start()
    engine.submit(Command.QUIT)
    engine.run(idle_s=0.0, max_steps=5)
    assert not engine.link.is_connected
    assert (tmp_path / "logs" / "data.csv").exists()


def test_set_baud_validates_rate(tmp_path, device_path, pipe_serial):
    engine = build_engine(tmp_path, [device_path], lambda **kwargs: pipe_serial)
    engine.start()
    assert not engine.set_baud(57600)
    assert engine.link.baud == 9600
    assert engine.set_baud(115200)
    assert engine.link.baud == 115200
    assert "Set baud rate to: 115200" in engine.errors.messages


def test_save_to_new_filename(tmp_path, device_path, pipe_serial):
    engine = build_engine(tmp_path, [device_path], lambda **kwargs: pipe_serial)
    engine.start()
    assert engine.save("renamed.csv")
    assert (tmp_path / "logs" / "renamed.csv").exists()
    assert engine.snapshot().data_path.name == "renamed.csv"
