"""Status registry — the one structure shared between workers and the UI.

Monitors and the producer write into it; the render loop reads from it.
Every write replaces a whole frozen snapshot under the lock, so a reader
can never observe a torn entry.  Entries for different keys may come from
different monitor iterations; nothing here tries to line them up.
"""

from __future__ import annotations

import threading

from lagprobe.models.status import ProducerStats, ReplicationSummary, TargetSnapshot


class StatusRegistry:
    """Thread-safe, last-write-wins map of target name to ``TargetSnapshot``.

    Insertion order of first upsert is preserved, which is the order the
    replica pane draws targets in.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._targets: dict[str, TargetSnapshot] = {}
        self._producer = ProducerStats()

    def upsert(self, key: str, snapshot: TargetSnapshot) -> None:
        """Replace the snapshot stored under *key*."""
        with self._lock:
            self._targets[key] = snapshot

    def get(self, key: str) -> TargetSnapshot | None:
        with self._lock:
            return self._targets.get(key)

    def get_all(self) -> dict[str, TargetSnapshot]:
        """A copy of the map; later upserts do not show up in it."""
        with self._lock:
            return dict(self._targets)

    def remove(self, key: str) -> None:
        with self._lock:
            self._targets.pop(key, None)

    # ------------------------------------------------------------------
    # Producer
    # ------------------------------------------------------------------

    def set_producer_stats(self, stats: ProducerStats) -> None:
        with self._lock:
            self._producer = stats

    def producer_stats(self) -> ProducerStats:
        with self._lock:
            return self._producer

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def summary(self) -> ReplicationSummary:
        """Fold the current snapshots into a ``ReplicationSummary``."""
        return ReplicationSummary.from_snapshots(list(self.get_all().values()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._targets
