"""Acquisition loop orchestration and the state it exposes."""

from .engine import AcquisitionEngine, default_data_filename
from .model import Command, MonitorSnapshot, StepResult
from .status import ErrorLog

__all__ = [
    "AcquisitionEngine",
    "Command",
    "ErrorLog",
    "MonitorSnapshot",
    "StepResult",
    "default_data_filename",
]
