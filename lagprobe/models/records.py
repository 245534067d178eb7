"""Probe record models — the rows the producer writes and monitors read."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class ProbeRecord(BaseModel):
    """A single probe row: a sequence number and the instant it was written.

    Created only by the ``RecordProducer``.  Never mutated after creation.
    """

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=1)
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def _force_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class HighWatermark(BaseModel):
    """The newest row observed at a data source at a point in time.

    ``row_id`` is the store-assigned identifier of that row, which can
    differ from ``sequence`` once the store has been purged or reseeded.
    """

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=0)
    timestamp: datetime
    row_id: int = Field(ge=0)

    @field_validator("timestamp")
    @classmethod
    def _force_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
