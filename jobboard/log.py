"""Logging for the job board client.

Two handlers hang off the root logger, both installed by the first
``get_logger`` call:

* stdout, at ``LOG_LEVEL`` (default INFO), which is what ``streamlit run``
  and ``run_board.py`` show in the terminal;
* ``logs/jobboard_YYYY-MM-DD.log``, always at DEBUG, so request lines,
  discarded stale responses and geocoding misses can be read back later.

If Streamlit or a test runner already attached root handlers, those are
left alone and only the level is adjusted.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path

LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_QUIET = ("urllib3", "watchdog")
_configured = False


def get_logger(name: str) -> logging.Logger:
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def _console_level() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
    return getattr(logging, name, logging.INFO)


def _daily_file(formatter: logging.Formatter) -> logging.Handler | None:
    path = LOG_DIR / f"jobboard_{date.today():%Y-%m-%d}.log"
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        print(f"jobboard: file logging disabled ({exc})", file=sys.stderr)
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def _configure() -> None:
    level = _console_level()
    root = logging.getLogger()
    # the file handler needs DEBUG records to reach it
    root.setLevel(min(level, logging.DEBUG))
    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)

    if root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    file_handler = _daily_file(formatter)
    if file_handler is not None:
        root.addHandler(file_handler)
