"""I/O utilities (configuration, logging)."""

from .logging_setup import setup_logging
from .settings import (
    DEFAULT_SETTINGS_PATH,
    MonitorSettings,
    SettingsError,
    find_project_root,
    load_monitor_settings,
    load_settings,
    validate_settings,
    write_default_settings,
)

__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "MonitorSettings",
    "SettingsError",
    "find_project_root",
    "load_monitor_settings",
    "load_settings",
    "setup_logging",
    "validate_settings",
    "write_default_settings",
]
