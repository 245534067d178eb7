"""Status models published by the producer and the per-target monitors.

Every model here is frozen.  Workers build a fresh instance on every
iteration and hand it to the ``StatusRegistry`` as a whole; readers never
see a half-updated snapshot.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from lagprobe.models.records import utc_now

# Gap-scan sentinel: the scan could not complete (distinct from a clean 0).
SCAN_FAILED = -1

# Lag thresholds shared by the summary verdict and the replica pane.
EXCELLENT_LAG = timedelta(milliseconds=500)
GOOD_LAG = timedelta(seconds=2)
CRITICAL_LAG = timedelta(seconds=10)


class TargetStatus(str, Enum):
    """Connection state of a monitored replica."""

    UNKNOWN = "unknown"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class TargetSnapshot(BaseModel):
    """Point-in-time view of one replica, as seen by its monitor."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: TargetStatus = TargetStatus.UNKNOWN
    time_lag: timedelta | None = None
    record_lag: int | None = Field(default=None, ge=0)
    sequence_lag: int | None = Field(default=None, ge=0)
    missing_sequences: list[int] = Field(default_factory=list, max_length=10)
    missing_count: int = Field(default=0, ge=SCAN_FAILED)
    last_attempt: datetime | None = None
    last_success: datetime | None = None
    consecutive_errors: int = Field(default=0, ge=0)
    last_error: str | None = None
    response_time: timedelta | None = None

    @property
    def scan_failed(self) -> bool:
        """Whether the last gap scan could not complete."""
        return self.missing_count == SCAN_FAILED

    @property
    def is_healthy(self) -> bool:
        """Connected, no known gaps, and a completed scan."""
        return self.status == TargetStatus.CONNECTED and self.missing_count == 0


class ProducerStats(BaseModel):
    """Throughput and error counters of the record producer."""

    model_config = ConfigDict(frozen=True)

    total_records: int = 0
    error_count: int = 0
    records_per_minute: int = 0
    last_sequence: int = 0
    last_write: datetime | None = None
    last_error: str | None = None
    connected: bool = True
    started_at: datetime = Field(default_factory=utc_now)

    @property
    def uptime(self) -> timedelta:
        return utc_now() - self.started_at

    @property
    def records_per_second(self) -> float:
        """Rolling average over the last minute."""
        return self.records_per_minute / 60.0


class SummaryLevel(str, Enum):
    """Overall health verdict across all targets."""

    NONE = "none"
    OK = "ok"
    WARN = "warn"
    BAD = "bad"


class ReplicationSummary(BaseModel):
    """Aggregate of every target snapshot, used for the pane headline."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    connected: int = 0
    errored: int = 0
    disconnected: int = 0
    max_time_lag: timedelta | None = None
    total_missing: int = 0

    @classmethod
    def from_snapshots(cls, snapshots: list[TargetSnapshot]) -> ReplicationSummary:
        """Fold a list of target snapshots into a summary."""
        lags = [
            s.time_lag
            for s in snapshots
            if s.status == TargetStatus.CONNECTED and s.time_lag is not None
        ]
        return cls(
            total=len(snapshots),
            connected=sum(1 for s in snapshots if s.status == TargetStatus.CONNECTED),
            errored=sum(1 for s in snapshots if s.status == TargetStatus.ERROR),
            disconnected=sum(
                1 for s in snapshots if s.status == TargetStatus.DISCONNECTED
            ),
            max_time_lag=max(lags) if lags else None,
            total_missing=sum(s.missing_count for s in snapshots if s.missing_count > 0),
        )

    def headline(self) -> tuple[str, SummaryLevel]:
        """One-line verdict and its severity."""
        if self.total == 0:
            return "No replicas", SummaryLevel.NONE

        if self.connected == self.total:
            if self.total_missing > 0:
                return (
                    f"All {self.total} online - {self.total_missing} missing",
                    SummaryLevel.BAD,
                )
            max_lag = self.max_time_lag or timedelta(0)
            if max_lag < EXCELLENT_LAG:
                return f"All {self.total} online - Excellent", SummaryLevel.OK
            if max_lag < GOOD_LAG:
                return f"All {self.total} online - Good", SummaryLevel.WARN
            return f"All {self.total} online - High lag", SummaryLevel.BAD

        if self.connected > 0:
            return f"{self.connected}/{self.total} online", SummaryLevel.WARN

        return f"All {self.total} offline", SummaryLevel.BAD
