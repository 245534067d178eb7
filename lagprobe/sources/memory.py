"""In-memory stores used by ``lagprobe demo`` and the test-suite.

``InMemoryStore`` is a thread-safe table with auto-incrementing row ids.
``SimulatedReplica`` is a read-only view over a primary ``InMemoryStore``
that only exposes rows older than a replication delay and can be told to
lose specific sequences or to fail outright.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from lagprobe.models.records import HighWatermark, ProbeRecord, utc_now
from lagprobe.sources.base import DataSource, DataSourceError


@dataclass(frozen=True, slots=True)
class StoredRow:
    row_id: int
    sequence: int
    timestamp: datetime


class InMemoryStore(DataSource):
    """A primary store kept in process memory.

    Parameters
    ----------
    name:
        Display name used in log lines.
    latency:
        Seconds to sleep inside every call, for exercising timeouts.
    """

    def __init__(self, name: str = "primary", *, latency: float = 0.0) -> None:
        self.name = name
        self.latency = latency
        self.failure: Exception | None = None
        self._rows: list[StoredRow] = []
        self._by_sequence: dict[int, StoredRow] = {}
        self._next_row_id = 1
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Fault injection
    # ------------------------------------------------------------------

    def fail_with(self, exc: Exception | None) -> None:
        """Make every subsequent call raise *exc* (``None`` heals the store)."""
        self.failure = exc

    def _io(self) -> None:
        if self.latency:
            time.sleep(self.latency)
        if self.failure is not None:
            raise self.failure

    # ------------------------------------------------------------------
    # DataSource
    # ------------------------------------------------------------------

    def insert(self, record: ProbeRecord) -> None:
        self._io()
        with self._lock:
            if record.sequence in self._by_sequence:
                raise DataSourceError(
                    f"{self.name}: duplicate sequence {record.sequence}"
                )
            row = StoredRow(self._next_row_id, record.sequence, record.timestamp)
            self._next_row_id += 1
            self._rows.append(row)
            self._by_sequence[row.sequence] = row

    def get_high_watermark(self) -> HighWatermark | None:
        self._io()
        with self._lock:
            if not self._rows:
                return None
            row = self._rows[-1]
        return HighWatermark(sequence=row.sequence, timestamp=row.timestamp, row_id=row.row_id)

    def get_existing_sequences(self, lo: int, hi: int) -> set[int]:
        self._io()
        with self._lock:
            return {seq for seq in self._by_sequence if lo <= seq <= hi}

    def purge_older_than(self, cutoff: datetime) -> int:
        self._io()
        with self._lock:
            keep = [row for row in self._rows if row.timestamp >= cutoff]
            removed = len(self._rows) - len(keep)
            self._rows = keep
            self._by_sequence = {row.sequence: row for row in keep}
        return removed

    def rows(self) -> list[StoredRow]:
        """Copy of every stored row, oldest first."""
        with self._lock:
            return list(self._rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


class SimulatedReplica(DataSource):
    """A replica that trails an ``InMemoryStore`` by a fixed delay.

    A row becomes visible once ``clock() - row.timestamp >= delay``.
    Sequences listed in ``dropped`` never arrive.

    Parameters
    ----------
    primary:
        The store being "replicated".
    name:
        Display name of the replica.
    delay:
        Replication delay.
    dropped:
        Sequence numbers this replica silently loses.
    clock:
        Source of the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        primary: InMemoryStore,
        name: str,
        *,
        delay: timedelta = timedelta(0),
        dropped: Iterable[int] = (),
        clock: Callable[[], datetime] = utc_now,
        latency: float = 0.0,
    ) -> None:
        self.name = name
        self.delay = delay
        self.dropped = frozenset(dropped)
        self.latency = latency
        self.failure: Exception | None = None
        self._primary = primary
        self._clock = clock

    def fail_with(self, exc: Exception | None) -> None:
        self.failure = exc

    def _io(self) -> None:
        if self.latency:
            time.sleep(self.latency)
        if self.failure is not None:
            raise self.failure

    def _visible(self) -> list[StoredRow]:
        horizon = self._clock() - self.delay
        return [
            row
            for row in self._primary.rows()
            if row.timestamp <= horizon and row.sequence not in self.dropped
        ]

    def insert(self, record: ProbeRecord) -> None:
        raise DataSourceError(f"{self.name}: replica is read-only")

    def get_high_watermark(self) -> HighWatermark | None:
        self._io()
        visible = self._visible()
        if not visible:
            return None
        row = visible[-1]
        return HighWatermark(sequence=row.sequence, timestamp=row.timestamp, row_id=row.row_id)

    def get_existing_sequences(self, lo: int, hi: int) -> set[int]:
        self._io()
        return {row.sequence for row in self._visible() if lo <= row.sequence <= hi}
