"""
logs.py

Responsibility: Mirror every progress message to the console and to the
append-only build log.

Console lines are colored by level (green / yellow / red); the log file gets
the identical text without color codes. Both share the format
`[YYYY-MM-DD HH:MM:SS] [WARNING: |ERROR: ]message`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT_LOGGER = "sciprov"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ANSI_CODES = {
    "reset": "\033[0m",
    "green": "\033[0;32m",
    "yellow": "\033[1;33m",
    "red": "\033[0;31m",
}

_LEVEL_COLORS = {
    logging.DEBUG: "",
    logging.INFO: "green",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


def colorize(text: str, colour: str) -> str:
    prefix = ANSI_CODES.get(colour, "")
    suffix = ANSI_CODES["reset"] if prefix else ""
    return f"{prefix}{text}{suffix}"


class LineFormatter(logging.Formatter):
    """`[timestamp] LEVEL-PREFIX: message`, optionally wrapped in ANSI color."""

    def __init__(self, *, color: bool = False) -> None:
        super().__init__(datefmt=DATE_FORMAT)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.ERROR:
            message = f"ERROR: {message}"
        elif record.levelno >= logging.WARNING:
            message = f"WARNING: {message}"
        line = f"[{self.formatTime(record, self.datefmt)}] {message}"
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        if self.color:
            line = colorize(line, _LEVEL_COLORS.get(record.levelno, ""))
        return line


def setup_logging(log_file: str | Path | None = None, *, verbose: bool = False) -> logging.Logger:
    """
    Configure the `sciprov` logger.

    Handlers from a previous call are removed first, so calling this again
    (e.g. once the log file location is known) never duplicates lines.
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    root_logger.propagate = False

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(LineFormatter(color=sys.stdout.isatty()))
    root_logger.addHandler(console)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(LineFormatter(color=False))
        root_logger.addHandler(file_handler)

    return root_logger
