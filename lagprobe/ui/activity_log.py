"""Activity log shown in the left pane, and the logging plumbing feeding it.

While the full-screen UI owns the terminal nothing may write to stderr,
so the ``lagprobe`` logger gets an ``ActivityLogHandler`` instead of a
stream handler.  Anything a worker logs lands here and is painted on the
next frame.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lagprobe.config import ProbeConfig

MIN_CAPACITY = 50
_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


@dataclass(frozen=True)
class LogLine:
    text: str
    level: int = logging.INFO


class ActivityLog:
    """Bounded, thread-safe list of timestamped lines.

    Parameters
    ----------
    capacity:
        Number of lines kept; older lines fall off the front.
    """

    def __init__(self, capacity: int = MIN_CAPACITY) -> None:
        self._lock = threading.Lock()
        self._lines: deque[LogLine] = deque(maxlen=max(1, capacity))
        self._total = 0

    @property
    def capacity(self) -> int:
        return self._lines.maxlen or 0

    @property
    def total(self) -> int:
        """Lines ever added, including those already dropped."""
        with self._lock:
            return self._total

    def add(self, message: str, level: int = logging.INFO) -> None:
        stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        with self._lock:
            self._lines.append(LogLine(f"[{stamp}] {message}", level))
            self._total += 1

    def tail(self, count: int) -> list[LogLine]:
        """The newest *count* lines, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            lines = list(self._lines)
        return lines[-count:]

    def resize(self, content_height: int) -> None:
        """Keep five screens' worth of lines for a pane this tall."""
        capacity = max(max(1, content_height - 5) * 5, MIN_CAPACITY)
        with self._lock:
            if capacity != self._lines.maxlen:
                self._lines = deque(self._lines, maxlen=capacity)

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


class ActivityLogHandler(logging.Handler):
    """``logging.Handler`` that appends formatted records to an ``ActivityLog``."""

    def __init__(self, activity_log: ActivityLog, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.activity_log = activity_log
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.activity_log.add(self.format(record), record.levelno)
        except Exception:
            self.handleError(record)


def configure_logging(
    config: ProbeConfig, activity_log: ActivityLog
) -> list[logging.Handler]:
    """Route the ``lagprobe`` logger into *activity_log* (and a file, if set).

    Returns the installed handlers so the caller can remove them again
    with ``reset_logging``.
    """
    root = logging.getLogger("lagprobe")
    root.setLevel(config.log_level.upper())

    handlers: list[logging.Handler] = [ActivityLogHandler(activity_log)]
    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        root.addHandler(handler)
    return handlers


def reset_logging(handlers: list[logging.Handler]) -> None:
    root = logging.getLogger("lagprobe")
    for handler in handlers:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
