"""Console logging with a thread-safe history of error messages.

Errors logged from worker threads are kept in a central history so that
another thread (for example an HTTP service) can report them later.
"""

from __future__ import annotations

import sys
import threading
from datetime import datetime
from enum import IntEnum

__all__ = [
    "LogLevel",
    "set_filter_level",
    "get_filter_level",
    "enable_err_history",
    "clear_err_history",
    "get_err_history",
    "timestamp",
    "log",
    "log_error",
]


class LogLevel(IntEnum):
    """Message levels; NORMAL is the lowest."""

    NORMAL = 0
    VERBOSE = 1
    DEBUG = 2


_lock = threading.Lock()
_err_history: list[str] = []
_keep_err_history = True
_filter_level = LogLevel.NORMAL

_LEVEL_PREFIX = {
    LogLevel.VERBOSE: "VERBOSE: ",
    LogLevel.DEBUG: "DEBUG: ",
}

_ERR_LEVEL_PREFIX = {
    LogLevel.VERBOSE: "ERROR VERBOSE: ",
    LogLevel.DEBUG: "ERROR DEBUG: ",
}


def set_filter_level(level: LogLevel) -> None:
    """Messages with a level above ``level`` will not be logged."""
    global _filter_level
    with _lock:
        _filter_level = LogLevel(level)


def get_filter_level() -> LogLevel:
    return _filter_level


def enable_err_history() -> None:
    global _keep_err_history
    with _lock:
        _keep_err_history = True


def clear_err_history() -> None:
    with _lock:
        _err_history.clear()


def get_err_history() -> str:
    with _lock:
        return "".join(_err_history)


def timestamp() -> str:
    """Current time of day as ``HH:MM:SS.mmm``."""
    now = datetime.now()
    return f"{now.strftime('%H:%M:%S')}.{now.microsecond // 1000:03d}"


def log(level: LogLevel, msg: str) -> None:
    """Write a normal message to stdout if its level passes the filter."""
    with _lock:
        if level > _filter_level:
            return
        ts_prefix = timestamp() + " " if _filter_level > LogLevel.NORMAL else ""
        sys.stdout.write(ts_prefix + _LEVEL_PREFIX.get(LogLevel(level), "") + msg)


def log_error(
    msg: str,
    level: LogLevel = LogLevel.NORMAL,
    to_console: bool = True,
    prefix: bool = True,
) -> None:
    """Record an error message in the history and optionally write it to stderr."""
    with _lock:
        if level > _filter_level:
            return
        prefix_str = _ERR_LEVEL_PREFIX.get(LogLevel(level), "ERROR: ") if prefix else ""
        if _keep_err_history:
            _err_history.append(f"{timestamp()} {prefix_str}{msg}")
        if to_console:
            sys.stderr.write(f"{timestamp()} {prefix_str}{msg}")