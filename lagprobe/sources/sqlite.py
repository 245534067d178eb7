"""SQLite-backed probe store.

One file per node.  The primary is opened read-write; replicas are opened
through a ``mode=ro`` URI, which is this backend's stand-in for the
restricted read credential the monitor is supposed to use.

How the replica files get their rows (litestream, rsync, a filesystem
snapshot, ...) is outside this package.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from lagprobe.models.records import HighWatermark, ProbeRecord
from lagprobe.sources.base import DataSource, DataSourceError, GapScanError

logger = logging.getLogger(__name__)


class SqliteDataSource(DataSource):
    """A probe table inside a SQLite database file.

    Parameters
    ----------
    db_path:
        Path to the database file.
    table:
        Name of the probe table (validated by the configuration layer).
    name:
        Display name used in log lines.
    read_only:
        Open the file through a read-only URI.  Inserts then fail.
    timeout:
        SQLite busy timeout in seconds.
    """

    def __init__(
        self,
        db_path: Path | str,
        table: str = "probe_records",
        *,
        name: str | None = None,
        read_only: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self._db_path = Path(db_path)
        self._table = table
        self._read_only = read_only
        self._timeout = timeout
        self.name = name or self._db_path.stem

    def _connect(self) -> sqlite3.Connection:
        try:
            if self._read_only:
                conn = sqlite3.connect(
                    f"file:{self._db_path}?mode=ro",
                    uri=True,
                    timeout=self._timeout,
                    check_same_thread=False,
                )
            else:
                conn = sqlite3.connect(
                    str(self._db_path), timeout=self._timeout, check_same_thread=False
                )
                conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as exc:
            raise DataSourceError(f"{self.name}: cannot open {self._db_path}: {exc}") from exc
        return conn

    # ------------------------------------------------------------------
    # DataSource
    # ------------------------------------------------------------------

    def insert(self, record: ProbeRecord) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO {self._table} (sequence, timestamp_utc) VALUES (?, ?)",
                    (record.sequence, record.timestamp.isoformat(timespec="microseconds")),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise DataSourceError(f"{self.name}: insert failed: {exc}") from exc

    def get_high_watermark(self) -> HighWatermark | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    f"SELECT id, sequence, timestamp_utc FROM {self._table} "
                    "ORDER BY id DESC LIMIT 1"
                ).fetchone()
        except sqlite3.Error as exc:
            raise DataSourceError(f"{self.name}: watermark query failed: {exc}") from exc
        if row is None:
            return None
        row_id, sequence, timestamp_utc = row
        return HighWatermark(
            sequence=sequence,
            timestamp=datetime.fromisoformat(timestamp_utc),
            row_id=row_id,
        )

    def get_existing_sequences(self, lo: int, hi: int) -> set[int]:
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    f"SELECT sequence FROM {self._table} WHERE sequence BETWEEN ? AND ?",
                    (lo, hi),
                ).fetchall()
        except sqlite3.Error as exc:
            raise GapScanError(f"{self.name}: sequence scan failed: {exc}") from exc
        return {row[0] for row in rows}

    def purge_older_than(self, cutoff: datetime) -> int:
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"DELETE FROM {self._table} WHERE timestamp_utc < ?",
                    (cutoff.astimezone(timezone.utc).isoformat(timespec="microseconds"),),
                )
                conn.commit()
                removed = cursor.rowcount
        except sqlite3.Error as exc:
            raise DataSourceError(f"{self.name}: purge failed: {exc}") from exc
        if removed:
            logger.debug("%s: purged %d rows older than %s", self.name, removed, cutoff)
        return removed
