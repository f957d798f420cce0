import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from envmon.sensors import DEFAULT_PRESSURE_RANGE, DEFAULT_TEMPERATURE_RANGE, ValueRange

logger = logging.getLogger(__name__)

PROJECT_MARKERS: Iterable[str] = (".git", "pyproject.toml", "config")
DEFAULT_SETTINGS_PATH = Path("config/settings.yml")
SETTINGS_SECTION = "monitor"

SUPPORTED_BAUD_RATES = (9600, 115200)
SAVE_INTERVAL_LIMITS = (1, 3600)
# Characters that can appear inside a persisted number.
FORBIDDEN_DELIMITERS = set("0123456789.-+eE \t\r\n")

PathLike = Union[str, os.PathLike]


class SettingsError(RuntimeError):
    """Raised when the settings file cannot be read or parsed."""


@dataclass
class MonitorSettings:
    """Validated monitor configuration."""

    baud_rate: int = 9600
    save_interval: int = 30
    csv_delimiter: str = ","
    temp_min: float = DEFAULT_TEMPERATURE_RANGE.low
    temp_max: float = DEFAULT_TEMPERATURE_RANGE.high
    press_min: float = DEFAULT_PRESSURE_RANGE.low
    press_max: float = DEFAULT_PRESSURE_RANGE.high
    data_dir: str = "logs"
    log_level: str = "INFO"
    warnings: List[str] = field(default_factory=list, compare=False, repr=False)

    @property
    def temperature_range(self) -> ValueRange:
        return ValueRange(self.temp_min, self.temp_max)

    @property
    def pressure_range(self) -> ValueRange:
        return ValueRange(self.press_min, self.press_max)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("warnings")
        return data


def find_project_root(markers: Iterable[str] = PROJECT_MARKERS) -> Path:
    """Attempt to locate the repository root by walking up until a marker file/dir appears."""
    start = Path(__file__).resolve().parent
    for candidate in [start] + list(start.parents):
        for marker in markers:
            if (candidate / marker).exists():
                return candidate
    return start


def _resolve(path: PathLike, project_root: Path) -> Path:
    target = Path(path)
    if not target.is_absolute():
        target = project_root / target
    return target


def _load_yaml(target: Path) -> Dict[str, Any]:
    if not target.exists():
        raise FileNotFoundError(f"settings file not found: {target}")
    try:
        with open(target, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise SettingsError(f"Failed to read settings file {target}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SettingsError(f"Invalid YAML in settings file {target}: {exc}") from exc
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {target} must contain a mapping")
    return data


def load_settings(path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Load the YAML settings file, defaulting to ``config/settings.yml`` under the project root."""
    project_root = find_project_root()
    target = _resolve(path or DEFAULT_SETTINGS_PATH, project_root)
    return _load_yaml(target)


def write_default_settings(target: Path) -> None:
    """Create ``target`` holding the default ``monitor`` section."""
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as handle:
        yaml.safe_dump({SETTINGS_SECTION: MonitorSettings().to_dict()}, handle, sort_keys=False)


# -- validation -----------------------------------------------------------

def _number(raw: Dict[str, Any], key: str, kind: type, default, warnings: List[str]):
    value = raw.get(key, default)
    if isinstance(value, bool):
        warnings.append(f"Invalid {key}: {value!r}, using {default}")
        return default
    try:
        number = kind(value)
    except (TypeError, ValueError, OverflowError):
        warnings.append(f"Invalid {key}: {value!r}, using {default}")
        return default
    if kind is int and isinstance(value, float) and value != number:
        warnings.append(f"Invalid {key}: {value!r}, using {default}")
        return default
    return number


def _range(
    raw: Dict[str, Any],
    keys: Tuple[str, str],
    limits: ValueRange,
    warnings: List[str],
) -> Tuple[float, float]:
    low_key, high_key = keys
    low = _number(raw, low_key, float, limits.low, warnings)
    if not limits.contains(low):
        warnings.append(f"Invalid {low_key}: {low}, using {limits.low}")
        low = limits.low
    high = _number(raw, high_key, float, limits.high, warnings)
    if high <= low or high > limits.high:
        warnings.append(f"Invalid {high_key}: {high}, using {limits.high}")
        high = limits.high
    return low, high


def validate_settings(raw: Dict[str, Any]) -> MonitorSettings:
    """Build :class:`MonitorSettings` from a raw mapping.

    Every invalid value falls back to its default; the reasons are collected on
    ``MonitorSettings.warnings`` rather than raised.
    """
    warnings: List[str] = []
    defaults = MonitorSettings()
    if not isinstance(raw, dict):
        warnings.append(f"'{SETTINGS_SECTION}' section must be a mapping, using defaults")
        raw = {}

    known = set(defaults.to_dict())
    for key in raw:
        if key not in known:
            warnings.append(f"Unknown setting '{key}' ignored")

    baud = _number(raw, "baud_rate", int, defaults.baud_rate, warnings)
    if baud not in SUPPORTED_BAUD_RATES:
        warnings.append(f"Invalid baud rate: {baud}, using {defaults.baud_rate}")
        baud = defaults.baud_rate

    interval = _number(raw, "save_interval", int, defaults.save_interval, warnings)
    low, high = SAVE_INTERVAL_LIMITS
    if not low <= interval <= high:
        warnings.append(f"Invalid save interval: {interval}, using {defaults.save_interval}")
        interval = defaults.save_interval

    delimiter = raw.get("csv_delimiter", defaults.csv_delimiter)
    if not isinstance(delimiter, str) or len(delimiter) != 1 or delimiter in FORBIDDEN_DELIMITERS:
        warnings.append(f"Invalid csv_delimiter: {delimiter!r}, using {defaults.csv_delimiter!r}")
        delimiter = defaults.csv_delimiter

    temp_min, temp_max = _range(raw, ("temp_min", "temp_max"), DEFAULT_TEMPERATURE_RANGE, warnings)
    press_min, press_max = _range(raw, ("press_min", "press_max"), DEFAULT_PRESSURE_RANGE, warnings)

    data_dir = raw.get("data_dir", defaults.data_dir)
    if not isinstance(data_dir, str) or not data_dir:
        warnings.append(f"Invalid data_dir: {data_dir!r}, using {defaults.data_dir!r}")
        data_dir = defaults.data_dir

    log_level = raw.get("log_level", defaults.log_level)
    if not isinstance(log_level, str) or not isinstance(logging.getLevelName(log_level.upper()), int):
        warnings.append(f"Invalid log_level: {log_level!r}, using {defaults.log_level!r}")
        log_level = defaults.log_level

    return MonitorSettings(
        baud_rate=baud,
        save_interval=interval,
        csv_delimiter=delimiter,
        temp_min=temp_min,
        temp_max=temp_max,
        press_min=press_min,
        press_max=press_max,
        data_dir=data_dir,
        log_level=log_level.upper(),
        warnings=warnings,
    )


def load_monitor_settings(path: Optional[PathLike] = None, create: bool = True) -> MonitorSettings:
    """Load and validate the ``monitor`` section; never raises.

    A missing file is created with the defaults when ``create`` is set. An
    unreadable file yields the defaults plus a warning.
    """
    project_root = find_project_root()
    target = _resolve(path or DEFAULT_SETTINGS_PATH, project_root)
    if not target.exists() and create:
        try:
            write_default_settings(target)
            logger.info("Created default settings file %s", target)
        except OSError as exc:
            settings = MonitorSettings()
            settings.warnings.append(f"Failed to create default config file {target}: {exc}")
            logger.warning(settings.warnings[-1])
            return settings
    try:
        data = load_settings(target)
    except (FileNotFoundError, SettingsError) as exc:
        settings = MonitorSettings()
        settings.warnings.append(str(exc))
        logger.warning(settings.warnings[-1])
        return settings

    settings = validate_settings(data.get(SETTINGS_SECTION, {}))
    for message in settings.warnings:
        logger.warning(message)
    return settings
