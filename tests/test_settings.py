from pathlib import Path

import yaml

from envmon.io import MonitorSettings, load_monitor_settings, load_settings, validate_settings


def test_default_settings_file_is_valid():
    data = load_settings()
    settings = validate_settings(data["monitor"])
    assert settings == MonitorSettings()
    assert settings.warnings == []


def test_invalid_values_fall_back_to_defaults():
    settings = validate_settings(
        {
            "baud_rate": 4800,
            "save_interval": 0,
            "csv_delimiter": "1",
            "temp_min": -100,
            "temp_max": 90,
            "press_min": "abc",
            "press_max": 1050,
            "log_level": "chatty",
            "colour": "blue",
        }
    )
    assert settings.baud_rate == 9600
    assert settings.save_interval == 30
    assert settings.csv_delimiter == ","
    assert (settings.temp_min, settings.temp_max) == (-40.0, 85.0)
    assert (settings.press_min, settings.press_max) == (300.0, 1050.0)
    assert settings.log_level == "INFO"
    assert len(settings.warnings) == 8
    assert "Unknown setting 'colour' ignored" in settings.warnings


def test_valid_custom_values_are_kept():
    settings = validate_settings(
        {
            "baud_rate": 115200,
            "save_interval": 3600,
            "csv_delimiter": ";",
            "temp_min": -10,
            "temp_max": 40,
            "press_min": 800,
            "press_max": 1100,
            "log_level": "debug",
        }
    )
    assert settings.warnings == []
    assert settings.baud_rate == 115200
    assert settings.temperature_range.contains(40.0)
    assert not settings.temperature_range.contains(40.5)
    assert settings.pressure_range.low == 800.0
    assert settings.log_level == "DEBUG"


def test_max_not_above_min_is_rejected():
    settings = validate_settings({"temp_min": 30, "temp_max": 20})
    assert (settings.temp_min, settings.temp_max) == (30.0, 85.0)
    assert settings.warnings == ["Invalid temp_max: 20.0, using 85.0"]


def test_missing_settings_file_is_created(tmp_path: Path):
    target = tmp_path / "config" / "settings.yml"
    settings = load_monitor_settings(target)
    assert target.exists()
    assert settings == MonitorSettings()
    data = yaml.safe_load(target.read_text())
    assert data["monitor"]["save_interval"] == 30


def test_malformed_settings_file_uses_defaults(tmp_path: Path):
    target = tmp_path / "settings.yml"
    target.write_text("monitor: [unclosed\n")
    settings = load_monitor_settings(target)
    assert settings == MonitorSettings()
    assert settings.warnings and "Invalid YAML" in settings.warnings[0]


def test_relative_path_resolves_against_project_root():
    settings = load_monitor_settings("config/settings.yml", create=False)
    assert settings == MonitorSettings()
    assert settings.warnings == []


def test_missing_file_without_create_uses_defaults(tmp_path: Path):
    target = tmp_path / "absent.yml"
    settings = load_monitor_settings(target, create=False)
    assert not target.exists()
    assert settings == MonitorSettings()
    assert "settings file not found" in settings.warnings[0]
