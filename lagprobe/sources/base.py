"""Data-source interface — the only way the core touches a store.

The concrete query execution lives in the implementations
(``InMemoryStore``, ``SimulatedReplica``, ``SqliteDataSource``).  The
producer and the monitors only see ``DataSource`` and wrap every call in a
``TimeoutGuard`` so a stuck store turns into a counted failure instead of a
stuck worker.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from datetime import datetime
from typing import TypeVar

from lagprobe.models.records import HighWatermark, ProbeRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataSourceError(RuntimeError):
    """A transient I/O failure talking to a store.  Retried, never fatal."""


class DataSourceTimeout(DataSourceError):
    """A bounded store call did not finish within its timeout."""


class GapScanError(DataSourceError):
    """The missing-sequence scan could not complete."""


class DataSource(abc.ABC):
    """A primary or replica store holding probe records."""

    name: str = "source"

    @abc.abstractmethod
    def insert(self, record: ProbeRecord) -> None:
        """Persist one record.  Raises ``DataSourceError`` on failure."""

    @abc.abstractmethod
    def get_high_watermark(self) -> HighWatermark | None:
        """Return the newest row, or ``None`` when the store is empty."""

    @abc.abstractmethod
    def get_existing_sequences(self, lo: int, hi: int) -> set[int]:
        """Return the sequences present in the inclusive range ``[lo, hi]``."""

    def purge_older_than(self, cutoff: datetime) -> int:
        """Delete rows written before *cutoff*.  Returns the number removed."""
        return 0

    def close(self) -> None:
        """Release any held connections."""


class TimeoutGuard:
    """Runs store calls on worker threads and bounds how long we wait.

    A call that overruns raises ``DataSourceTimeout``.  The underlying
    thread is abandoned, not killed, so the pool is sized to absorb a few
    stuck calls before callers start queueing behind them.

    Parameters
    ----------
    timeout:
        Seconds to wait for each call.
    name:
        Thread name prefix, used in log lines and thread dumps.
    max_workers:
        Size of the worker pool.
    """

    def __init__(self, timeout: float, name: str = "io", *, max_workers: int = 4) -> None:
        self.timeout = timeout
        self.name = name
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=f"lagprobe-{name}"
        )

    def call(self, fn: Callable[..., T], *args: object) -> T:
        """Invoke ``fn(*args)`` and return its result within ``timeout``."""
        future = self._pool.submit(fn, *args)
        try:
            return future.result(timeout=self.timeout)
        except FuturesTimeout as exc:
            future.cancel()
            raise DataSourceTimeout(
                f"{self.name}: {getattr(fn, '__name__', 'call')} timed out "
                f"after {self.timeout:g}s"
            ) from exc

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
