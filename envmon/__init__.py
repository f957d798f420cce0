"""Core package for the serial temperature/pressure monitor."""

__all__ = ["sensors", "instrumentation", "telemetry", "io", "orchestration"]
__version__ = "0.1.0"
