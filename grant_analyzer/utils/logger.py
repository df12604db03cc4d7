"""Grant Analyzer — Logging Setup.

Every module logs through get_logger(__name__). The first call installs
two handlers on the root logger:
  - console (stderr, INFO by default, colored level and time)
  - logs/grant_analyzer.log (DEBUG, rotated at 10 MB, 5 backups)

The console writes to stderr because stdout may carry the NDJSON stream.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_DIR = Path(__file__).resolve().parent.parent.parent / "logs"
LOG_FILE = LOG_DIR / "grant_analyzer.log"
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5

_FORMAT = "%(asctime)s │ %(levelname)s │ %(name)s │ %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[41m",
}
_RESET = "\033[0m"

# httpx logs every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")

_console_handler: Optional[logging.Handler] = None


class ColoredFormatter(logging.Formatter):
    """Colors the level name and timestamp of console lines."""

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy; the file handler formats the same record
        record = logging.makeLogRecord(record.__dict__)
        color = _LEVEL_COLORS.get(record.levelname, "")
        record.levelname = f"{color}{record.levelname:<8}{_RESET}"
        record.asctime = f"{color}{self.formatTime(record, self.datefmt)}{_RESET}"
        return super().format(record)


def _setup_logging() -> None:
    global _console_handler
    if _console_handler is not None:
        return

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.INFO)
    console.setFormatter(ColoredFormatter(fmt=_FORMAT, datefmt=_DATE_FORMAT))
    root_logger.addHandler(console)

    file_handler = RotatingFileHandler(
        filename=str(LOG_FILE),
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        fmt=_FORMAT.replace("%(levelname)s", "%(levelname)-8s"),
        datefmt=_DATE_FORMAT,
    ))
    root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _console_handler = console


def set_console_level(level: str) -> None:
    """Set the console threshold, e.g. from the logging.level setting.

    Raises:
        ValueError: If the level name is unknown.
    """
    _setup_logging()
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    if _console_handler is not None:
        _console_handler.setLevel(numeric)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, installing the handlers on first use."""
    _setup_logging()
    return logging.getLogger(name)
