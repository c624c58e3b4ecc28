"""Append-only log writer producing plain-text or JSON lines."""

from __future__ import annotations

import enum
import os
import time

__all__ = ["Level", "format_record", "mysyslog"]


class Level(enum.IntEnum):
    """Severity of a log record."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    CRITICAL = 4


def _level_name(level: int) -> str:
    try:
        return Level(level).name
    except ValueError:
        return "UNKNOWN"


def format_record(
    msg: str,
    level: int,
    driver: int,
    fmt: int,
    timestamp: str | None = None,
) -> str:
    """Render one log record without a trailing newline.

    ``fmt`` 0 selects the plain-text layout; any other value selects JSON.
    ``timestamp`` defaults to the current local time in ``ctime`` form.
    """
    if timestamp is None:
        timestamp = time.ctime()
    level_str = _level_name(level)
    if fmt == 0:
        return f"{timestamp} {level_str} {driver} {msg}"
    return (
        f'{{"timestamp":"{timestamp}","log_level":"{level_str}",'
        f'"driver":{driver},"message":"{msg}"}}'
    )


def mysyslog(
    msg: str,
    level: int,
    driver: int,
    fmt: int,
    path: str | os.PathLike[str],
) -> None:
    """Append one record to the log file at ``path``.

    Raises ``OSError`` if the file cannot be opened for appending.
    """
    line = format_record(msg, level, driver, fmt)
    with open(path, "a", encoding="utf-8") as log_file:
        log_file.write(line + "\n")