"""Record producer — writes the probe stream into the primary store.

Sequence policy
---------------
The counter is *resumed*, never reset: on start, and again after any
failed write, the producer re-reads the primary's high-watermark and
continues from ``watermark.sequence + 1``.  This keeps the stream strictly
increasing and gap-free at the source across restarts and across writes
whose outcome is unknown (e.g. a timeout after the row was committed).

Cadence
-------
One write per ``write_interval``.  A slow write pushes the next tick out
rather than stacking writes: the producer's I/O pool has a single worker,
so there is never more than one insert in flight.  A failed write costs a
fixed ``error_delay`` pause and the loop carries on.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from datetime import datetime, timedelta

from lagprobe.config import ProbeConfig
from lagprobe.core.status_registry import StatusRegistry
from lagprobe.models.records import ProbeRecord, utc_now
from lagprobe.models.status import ProducerStats
from lagprobe.sources.base import DataSource, TimeoutGuard

logger = logging.getLogger(__name__)

THROUGHPUT_WINDOW = 60.0
PURGE_INTERVAL = 60.0
STATS_LOG_INTERVAL = 10.0


class ThroughputCounter:
    """Counts events inside a sliding time window.

    Parameters
    ----------
    window:
        Width of the window in seconds.
    clock:
        Monotonic clock; injectable for tests.
    """

    def __init__(
        self,
        window: float = THROUGHPUT_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window = window
        self._clock = clock
        self._events: deque[float] = deque()
        self._lock = threading.Lock()

    def record(self) -> None:
        with self._lock:
            self._events.append(self._clock())

    def count(self) -> int:
        """Events recorded during the last ``window`` seconds."""
        cutoff = self._clock() - self.window
        with self._lock:
            while self._events and self._events[0] < cutoff:
                self._events.popleft()
            return len(self._events)


class RecordProducer:
    """Writes ``(sequence, timestamp)`` records to the primary at a fixed cadence.

    Parameters
    ----------
    source:
        The primary store.
    registry:
        Where ``ProducerStats`` are published after every tick.
    config:
        Supplies the write interval, error delay, timeout and retention.
    stop_event:
        Shared cancellation signal.  A private one is created if omitted.
    clock:
        UTC clock used to stamp records.
    """

    name = "producer"

    def __init__(
        self,
        source: DataSource,
        registry: StatusRegistry,
        config: ProbeConfig,
        *,
        stop_event: threading.Event | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._source = source
        self._registry = registry
        self._interval = config.write_interval
        self._error_delay = config.error_delay_seconds
        self._retention = timedelta(minutes=config.retention_minutes)
        self._guard = TimeoutGuard(config.query_timeout_seconds, "producer", max_workers=1)
        self._stop_event = stop_event or threading.Event()
        self._clock = clock
        self._thread: threading.Thread | None = None

        self._last_sequence: int | None = None
        self._last_written = 0
        self._throughput = ThroughputCounter()
        self._started_at = clock()
        self._total = 0
        self._errors = 0
        self._consecutive_errors = 0
        self._last_write: datetime | None = None
        self._last_error: str | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def last_sequence(self) -> int | None:
        """Last sequence written, or ``None`` before recovery."""
        return self._last_sequence

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Single tick
    # ------------------------------------------------------------------

    def recover(self) -> int:
        """Resume the counter from the primary's high-watermark."""
        watermark = self._guard.call(self._source.get_high_watermark)
        self._last_sequence = watermark.sequence if watermark is not None else 0
        self._last_written = self._last_sequence
        logger.info(
            "Producer resuming after sequence %d on %s",
            self._last_sequence,
            self._source.name,
        )
        return self._last_sequence

    def tick(self) -> ProbeRecord:
        """Write the next record and return it.

        Raises whatever the store raises; the caller decides how to back off.
        """
        try:
            last = self._last_sequence
            if last is None:
                last = self.recover()
            record = ProbeRecord(sequence=last + 1, timestamp=self._clock())
            self._guard.call(self._source.insert, record)
        except Exception as exc:
            # Outcome unknown: re-read the watermark before the next attempt.
            self._last_sequence = None
            self._record_failure(exc)
            raise
        self._last_sequence = self._last_written = record.sequence
        self._record_success(record)
        logger.debug("Inserted record #%d at %s", record.sequence, record.timestamp)
        return record

    def _record_success(self, record: ProbeRecord) -> None:
        if self._consecutive_errors:
            logger.info(
                "Producer writes resumed after %d failed attempt(s)",
                self._consecutive_errors,
            )
        self._total += 1
        self._consecutive_errors = 0
        self._last_write = record.timestamp
        self._last_error = None
        self._throughput.record()
        self._publish(connected=True)

    def _record_failure(self, exc: Exception) -> None:
        self._errors += 1
        self._consecutive_errors += 1
        self._last_error = str(exc) or type(exc).__name__
        self._publish(connected=False)

    def _publish(self, *, connected: bool) -> None:
        self._registry.set_producer_stats(self.stats(connected=connected))

    def stats(self, *, connected: bool | None = None) -> ProducerStats:
        """Current counters as a frozen ``ProducerStats``."""
        return ProducerStats(
            total_records=self._total,
            error_count=self._errors,
            records_per_minute=self._throughput.count(),
            last_sequence=self._last_written,
            last_write=self._last_write,
            last_error=self._last_error,
            connected=self._consecutive_errors == 0 if connected is None else connected,
            started_at=self._started_at,
        )

    def purge(self) -> int:
        """Delete rows older than the retention period.  Never raises."""
        cutoff = self._clock() - self._retention
        try:
            removed = self._guard.call(self._source.purge_older_than, cutoff)
        except Exception as exc:
            logger.warning("Cleanup of old records failed: %s", exc)
            return 0
        if removed:
            logger.info("Cleaned up %d old records", removed)
        return removed

    # ------------------------------------------------------------------
    # Thread lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the producer thread."""
        if self.is_running:
            return
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="RecordProducer"
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal cancellation and wait for the thread to finish."""
        self._stop_event.set()
        self.join(timeout)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the thread; returns ``True`` once it has exited."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                return False
            self._thread = None
        self._guard.close()
        return True

    def _run(self) -> None:
        logger.info(
            "Producer started - writing every %dms", round(self._interval * 1000)
        )
        last_purge = time.monotonic()
        last_stats = time.monotonic()

        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.tick()
            except Exception as exc:
                logger.error("Write failed: %s", self._last_error or exc)
                self._stop_event.wait(self._error_delay)
                continue

            now = time.monotonic()
            if now - last_purge >= PURGE_INTERVAL:
                self.purge()
                last_purge = now
            if now - last_stats >= STATS_LOG_INTERVAL:
                stats = self.stats()
                logger.info(
                    "Stats: %.1f/sec | Total: %d | Errors: %d",
                    stats.records_per_second,
                    stats.total_records,
                    stats.error_count,
                )
                last_stats = now

            remaining = self._interval - (time.monotonic() - started)
            if remaining > 0:
                self._stop_event.wait(remaining)

        logger.info("Producer stopped after %d records", self._total)
