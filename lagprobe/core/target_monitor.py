"""Target monitor — one polling loop per replica.

Each iteration walks the same states::

    Idle -> FetchPrimary -> FetchReplica -> Compute -> Publish -> Sleep
                  \\______________\\____________> ErrorBackoff -> Sleep

Lag is measured three ways (rows, sequences, wall-clock) and the last
``gap_window`` sequences of the primary are checked against the replica.
Every iteration, failed or not, ends with a whole-snapshot replace in the
``StatusRegistry``.  The cancellation event is checked before each
blocking step; once it is set the loop leaves without publishing again.

A monitor never lets an exception escape its thread: fetch failures are
counted, logged, published and backed off; a failed gap scan is reported
through the ``SCAN_FAILED`` sentinel and does not block lag reporting.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from lagprobe.config import ProbeConfig
from lagprobe.core.status_registry import StatusRegistry
from lagprobe.models.records import HighWatermark, utc_now
from lagprobe.models.status import SCAN_FAILED, TargetSnapshot, TargetStatus
from lagprobe.sources.base import DataSource, DataSourceTimeout, TimeoutGuard

logger = logging.getLogger(__name__)

DEFAULT_GAP_WINDOW = 100
DEFAULT_SAMPLE_SIZE = 10
BACKOFF_STEP = 5.0
BACKOFF_CAP = 30.0
ERROR_LOG_EVERY = 10


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LagReading:
    time_lag: timedelta
    record_lag: int
    sequence_lag: int


@dataclass(frozen=True)
class GapReport:
    """Result of one gap scan.

    ``missing`` holds at most the sample size, ascending; ``missing_count``
    is the untruncated size, or ``SCAN_FAILED``.
    """

    missing: list[int] = field(default_factory=list)
    missing_count: int = 0

    @classmethod
    def failed(cls) -> GapReport:
        return cls(missing=[], missing_count=SCAN_FAILED)


def compute_lag(
    primary: HighWatermark, replica: HighWatermark | None, now: datetime
) -> LagReading:
    """Row, sequence and time lag of *replica* behind *primary*.

    An empty replica is as far behind as the primary is long.  Row and
    sequence lag are clamped at zero, so a replica read that races ahead
    of a stale primary read never goes negative.
    """
    if replica is None:
        return LagReading(
            time_lag=max(timedelta(0), now - primary.timestamp),
            record_lag=primary.row_id,
            sequence_lag=primary.sequence,
        )
    return LagReading(
        time_lag=max(timedelta(0), now - replica.timestamp),
        record_lag=max(0, primary.row_id - replica.row_id),
        sequence_lag=max(0, primary.sequence - replica.sequence),
    )


def gap_window(primary_sequence: int, width: int = DEFAULT_GAP_WINDOW) -> tuple[int, int]:
    """Inclusive ``(lo, hi)`` range of sequences to scan."""
    return max(1, primary_sequence - width), primary_sequence


def scan_gaps(
    lo: int, hi: int, found: Iterable[int], sample_size: int = DEFAULT_SAMPLE_SIZE
) -> GapReport:
    """Sequences in ``[lo, hi]`` that are absent from *found*."""
    present = set(found)
    missing = [seq for seq in range(lo, hi + 1) if seq not in present]
    return GapReport(missing=missing[:sample_size], missing_count=len(missing))


def backoff_delay(consecutive_errors: int) -> float:
    """Seconds to wait after *consecutive_errors* failures in a row."""
    if consecutive_errors <= 0:
        return 0.0
    return min(BACKOFF_STEP * consecutive_errors, BACKOFF_CAP)


# ---------------------------------------------------------------------------
# Monitor
# ---------------------------------------------------------------------------


class TargetMonitor:
    """Polls one replica against the primary and publishes snapshots.

    Parameters
    ----------
    name:
        Registry key and display name of the replica.
    primary:
        Source for the primary high-watermark.
    replica:
        The replica being measured.
    registry:
        Where snapshots are published.
    config:
        Supplies the poll interval, gap window and query timeout.
    stop_event:
        Shared cancellation signal.
    clock:
        UTC clock used for lag arithmetic and timestamps.
    """

    def __init__(
        self,
        name: str,
        primary: DataSource,
        replica: DataSource,
        registry: StatusRegistry,
        config: ProbeConfig,
        *,
        stop_event: threading.Event | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.name = name
        self._primary = primary
        self._replica = replica
        self._registry = registry
        self._interval = config.monitor_interval
        self._window = config.gap_window
        self._sample_size = config.missing_sample_size
        self._guard = TimeoutGuard(config.query_timeout_seconds, f"monitor-{name}")
        self._stop_event = stop_event or threading.Event()
        self._clock = clock
        self._thread: threading.Thread | None = None

        self._consecutive_errors = 0
        self._last_success: datetime | None = None
        self._previous_missing = 0
        self._last_snapshot = TargetSnapshot(name=name)
        registry.upsert(name, self._last_snapshot)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def consecutive_errors(self) -> int:
        return self._consecutive_errors

    @property
    def last_snapshot(self) -> TargetSnapshot:
        return self._last_snapshot

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    # ------------------------------------------------------------------
    # One iteration
    # ------------------------------------------------------------------

    def run_once(self) -> TargetSnapshot | None:
        """Run one full iteration and publish its snapshot.

        Returns the published snapshot, or ``None`` if cancellation was
        observed (in which case nothing is published).
        """
        if self.cancelled:
            return None
        attempt = self._clock()
        started = time.monotonic()

        try:
            snapshot = self._measure(attempt, started)
        except _Cancelled:
            return None
        except Exception as exc:
            snapshot = self._on_failure(exc, attempt, started)

        if self.cancelled:
            return None
        self._last_snapshot = snapshot
        self._registry.upsert(self.name, snapshot)
        return snapshot

    def _checkpoint(self) -> None:
        if self.cancelled:
            raise _Cancelled

    def _measure(self, attempt: datetime, started: float) -> TargetSnapshot:
        # FetchPrimary
        primary = self._guard.call(self._primary.get_high_watermark)
        self._checkpoint()

        if primary is None:
            self._on_success()
            return TargetSnapshot(
                name=self.name,
                status=TargetStatus.CONNECTED,
                last_attempt=attempt,
                last_success=self._last_success,
                last_error="No records in primary yet",
                response_time=timedelta(seconds=time.monotonic() - started),
            )

        # FetchReplica
        replica = self._guard.call(self._replica.get_high_watermark)
        self._checkpoint()

        # Compute
        lag = compute_lag(primary, replica, self._clock())
        if replica is None:
            gaps = GapReport()
        else:
            gaps = self._scan(primary.sequence)
            self._checkpoint()

        self._on_success()
        self._note_missing(gaps.missing_count)
        logger.debug(
            "%s: seq %s vs %d, time lag %s, missing %d",
            self.name,
            replica.sequence if replica else "-",
            primary.sequence,
            lag.time_lag,
            gaps.missing_count,
        )
        return TargetSnapshot(
            name=self.name,
            status=TargetStatus.CONNECTED,
            time_lag=lag.time_lag,
            record_lag=lag.record_lag,
            sequence_lag=lag.sequence_lag,
            missing_sequences=gaps.missing,
            missing_count=gaps.missing_count,
            last_attempt=attempt,
            last_success=self._last_success,
            response_time=timedelta(seconds=time.monotonic() - started),
        )

    def _scan(self, primary_sequence: int) -> GapReport:
        lo, hi = gap_window(primary_sequence, self._window)
        try:
            found = self._guard.call(self._replica.get_existing_sequences, lo, hi)
        except Exception as exc:
            logger.warning("%s: missing-sequence scan failed: %s", self.name, exc)
            return GapReport.failed()
        return scan_gaps(lo, hi, found, self._sample_size)

    def _on_success(self) -> None:
        if self._consecutive_errors:
            logger.info("%s connection restored", self.name)
        self._consecutive_errors = 0
        self._last_success = self._clock()

    def _note_missing(self, count: int) -> None:
        if count > 0 and count != self._previous_missing:
            logger.warning("%s has %d missing sequences", self.name, count)
            self._previous_missing = count
        elif count == 0 and self._previous_missing > 0:
            logger.info("%s missing sequences resolved", self.name)
            self._previous_missing = 0

    def _on_failure(
        self, exc: Exception, attempt: datetime, started: float
    ) -> TargetSnapshot:
        self._consecutive_errors += 1
        message = str(exc) or type(exc).__name__
        if self._consecutive_errors == 1 or self._consecutive_errors % ERROR_LOG_EVERY == 0:
            logger.error(
                "%s error (attempt %d): %s", self.name, self._consecutive_errors, message
            )
        else:
            logger.debug(
                "%s error (attempt %d): %s", self.name, self._consecutive_errors, message
            )
        status = (
            TargetStatus.DISCONNECTED
            if isinstance(exc, DataSourceTimeout)
            else TargetStatus.ERROR
        )
        # Last known lag figures stay visible next to the error.
        return self._last_snapshot.model_copy(
            update={
                "status": status,
                "last_attempt": attempt,
                "last_success": self._last_success,
                "consecutive_errors": self._consecutive_errors,
                "last_error": message,
                "response_time": timedelta(seconds=time.monotonic() - started),
            }
        )

    def next_delay(self, elapsed: float) -> float:
        """Seconds to sleep after an iteration that took *elapsed* seconds."""
        if self._consecutive_errors:
            return backoff_delay(self._consecutive_errors)
        return max(0.0, self._interval - elapsed)

    # ------------------------------------------------------------------
    # Thread lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the monitor thread."""
        if self.is_running:
            return
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"TargetMonitor-{self.name}"
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
        logger.info("Starting monitor for %s", self.name)
        while not self.cancelled:
            started = time.monotonic()
            try:
                if self.run_once() is None:
                    break
            except Exception:
                # run_once contains store errors; this guards the publish path.
                logger.exception("%s: monitor iteration crashed", self.name)
                self._consecutive_errors += 1
            delay = self.next_delay(time.monotonic() - started)
            if delay > 0 and self._stop_event.wait(delay):
                break
        logger.info("Monitor stopped for %s", self.name)


class _Cancelled(Exception):
    """Internal: cancellation observed between two blocking steps."""
