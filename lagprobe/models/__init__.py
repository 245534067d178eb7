"""lagprobe data models — all Pydantic v2, all frozen (immutable)."""

from lagprobe.models.records import HighWatermark, ProbeRecord, utc_now
from lagprobe.models.status import (
    SCAN_FAILED,
    ProducerStats,
    ReplicationSummary,
    SummaryLevel,
    TargetSnapshot,
    TargetStatus,
)

__all__ = [
    # records
    "HighWatermark",
    "ProbeRecord",
    "utc_now",
    # status
    "SCAN_FAILED",
    "ProducerStats",
    "ReplicationSummary",
    "SummaryLevel",
    "TargetSnapshot",
    "TargetStatus",
]
