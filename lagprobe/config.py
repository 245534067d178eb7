"""Runtime configuration — env-driven, validated once, immutable.

Centralized config using pydantic-settings.  Reads from a ``.env`` file
and ``LAGPROBE_*`` environment variables; command-line options override
both.  ``load_config`` is the only constructor the rest of the package
uses: it returns a frozen ``ProbeConfig`` or raises ``ConfigurationError``
listing every violation at once.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(ValueError):
    """Raised when the configuration cannot be used.

    Only ever raised at startup, before any worker begins.  Carries the
    full list of violations in ``errors``.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ReplicaTarget(BaseModel):
    """One replica to monitor."""

    model_config = ConfigDict(frozen=True)

    name: str
    dsn: str


class ProbeConfig(BaseSettings):
    """lagprobe configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export LAGPROBE_PRIMARY=/var/lib/probe/primary.db
        export LAGPROBE_REPLICAS='[{"name": "east", "dsn": "/mnt/east/primary.db"}]'
        export LAGPROBE_WRITE_INTERVAL_MS=50
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LAGPROBE_",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Stores
    primary: str = ""
    replicas: list[ReplicaTarget] = []
    table_name: str = "probe_records"

    # Cadence
    write_interval_ms: int = 100
    refresh_interval_ms: int = 800
    monitor_interval_ms: int | None = None
    error_delay_seconds: float = 5.0
    retention_minutes: int = 5

    # Gap scan
    gap_window: int = 100
    missing_sample_size: int = 10

    # Terminal
    min_width: int = 80
    min_height: int = 25

    # Timeouts
    query_timeout_seconds: float = 10.0
    shutdown_timeout_seconds: float = 3.0

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    @property
    def write_interval(self) -> float:
        """Seconds between producer writes."""
        return self.write_interval_ms / 1000.0

    @property
    def refresh_interval(self) -> float:
        """Seconds per UI frame."""
        return self.refresh_interval_ms / 1000.0

    @property
    def monitor_interval(self) -> float:
        """Seconds between monitor iterations (defaults to the frame time)."""
        ms = self.monitor_interval_ms
        if ms is None:
            ms = self.refresh_interval_ms
        return ms / 1000.0


def validate_config(config: ProbeConfig, *, require_stores: bool = True) -> None:
    """Check every cross-field constraint and raise on the first pass.

    Parameters
    ----------
    config:
        The configuration to check.
    require_stores:
        When ``False`` (the demo), an empty primary and replica list are
        allowed because in-memory stores are used instead.

    Raises
    ------
    ConfigurationError
        With every violation found, not just the first.
    """
    errors: list[str] = []

    if require_stores:
        if not config.primary.strip():
            errors.append("Primary connection is required")
        if not config.replicas:
            errors.append("At least one replica must be configured")

    seen: set[str] = set()
    for index, replica in enumerate(config.replicas, start=1):
        if not replica.name.strip():
            errors.append(f"Replica {index} must have a name")
        if not replica.dsn.strip():
            errors.append(f"Replica '{replica.name}' must have a connection")
        key = replica.name.strip().lower()
        if key and key in seen:
            errors.append(f"Duplicate replica name found: '{replica.name}'")
        seen.add(key)

    if not _IDENTIFIER.match(config.table_name):
        errors.append("table_name must be a valid SQL identifier")
    if config.write_interval_ms < 10:
        errors.append("write_interval_ms must be at least 10 milliseconds")
    if config.refresh_interval_ms < 100:
        errors.append("refresh_interval_ms must be at least 100 milliseconds")
    if config.monitor_interval_ms is not None and config.monitor_interval_ms < 10:
        errors.append("monitor_interval_ms must be at least 10 milliseconds")
    if config.error_delay_seconds <= 0:
        errors.append("error_delay_seconds must be positive")
    if config.retention_minutes < 1:
        errors.append("retention_minutes must be at least 1 minute")
    if config.gap_window < 1:
        errors.append("gap_window must be at least 1")
    if not 1 <= config.missing_sample_size <= 10:
        errors.append("missing_sample_size must be between 1 and 10")
    if config.min_width < 20:
        errors.append("min_width must be at least 20")
    if config.min_height < 10:
        errors.append("min_height must be at least 10")
    if config.query_timeout_seconds < 1:
        errors.append("query_timeout_seconds must be at least 1 second")
    if config.shutdown_timeout_seconds <= 0:
        errors.append("shutdown_timeout_seconds must be positive")
    if config.log_level.upper() not in LOG_LEVELS:
        errors.append(f"log_level must be one of: {', '.join(LOG_LEVELS)}")

    if errors:
        raise ConfigurationError(errors)


def load_config(*, require_stores: bool = True, **overrides: Any) -> ProbeConfig:
    """Build and validate a ``ProbeConfig``.

    ``overrides`` win over environment variables; ``None`` values are
    ignored so CLI options left unset fall through to the environment.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        config = ProbeConfig(**values)
    except ValidationError as exc:
        raise ConfigurationError(
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        ) from exc
    validate_config(config, require_stores=require_stores)
    return config
