#!/usr/bin/env python3
"""Run the temperature/pressure monitor headless until interrupted."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from envmon.instrumentation import BAUD_RATES, SerialLink
from envmon.io import load_monitor_settings, setup_logging
from envmon.io.settings import FORBIDDEN_DELIMITERS
from envmon.orchestration import AcquisitionEngine, Command, default_data_filename

logger = logging.getLogger("envmon.monitor")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "filename",
        nargs="?",
        help="Data file name inside the data directory (default: data_<timestamp>.csv).",
    )
    parser.add_argument("--baud", type=int, help="Baud rate override (9600 or 115200).")
    parser.add_argument("--delimiter", help="CSV delimiter override (single character).")
    parser.add_argument("--settings", help="Optional path to a settings YAML file.")
    parser.add_argument(
        "--interval",
        type=float,
        default=0.2,
        help="Idle wait between loop iterations in seconds (default: 0.2).",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    settings = load_monitor_settings(args.settings)
    if args.baud is not None:
        if args.baud in BAUD_RATES:
            settings.baud_rate = args.baud
        else:
            settings.warnings.append(f"Unsupported baud rate: {args.baud}")
    if args.delimiter:
        if len(args.delimiter) == 1 and args.delimiter not in FORBIDDEN_DELIMITERS:
            settings.csv_delimiter = args.delimiter
        else:
            settings.warnings.append(f"Unsupported delimiter: {args.delimiter!r}")

    data_dir = Path(settings.data_dir)
    setup_logging(settings.log_level, log_dir=data_dir)
    data_path = data_dir / (args.filename or default_data_filename())

    engine = AcquisitionEngine(settings, data_path, link=SerialLink(baud=settings.baud_rate))

    def _stop(signum, frame):
        logger.info("Received signal %s", signum)
        engine.request_stop()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    if hasattr(signal, "SIGUSR1"):
        signal.signal(signal.SIGUSR1, lambda signum, frame: engine.submit(Command.SAVE))
        signal.signal(signal.SIGUSR2, lambda signum, frame: engine.submit(Command.TOGGLE_PAUSE))

    logger.info("Writing history to %s (send SIGUSR1 to save, SIGUSR2 to pause)", data_path)
    engine.start()
    engine.run(idle_s=args.interval)
    return 0


if __name__ == "__main__":
    sys.exit(main())
