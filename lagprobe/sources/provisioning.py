"""Schema provisioning and teardown for the SQLite backend.

Both routines are opaque to the monitoring core: the CLI calls
``provision`` before anything starts, and the orchestrator calls the
teardown callable only after every worker has stopped.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from lagprobe.sources.base import DataSourceError

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    sequence      INTEGER NOT NULL UNIQUE,
    timestamp_utc TEXT NOT NULL
);
"""

_CREATE_IDX_TIMESTAMP = """
CREATE INDEX IF NOT EXISTS idx_{table}_timestamp ON {table}(timestamp_utc);
"""


def provision(db_path: Path | str, table: str = "probe_records") -> None:
    """Create the probe table and its index if they do not exist."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with sqlite3.connect(str(path)) as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(_CREATE_TABLE.format(table=table))
            conn.execute(_CREATE_IDX_TIMESTAMP.format(table=table))
            conn.commit()
    except sqlite3.Error as exc:
        raise DataSourceError(f"provisioning {path} failed: {exc}") from exc
    logger.info("Provisioned table %s in %s", table, path)


def teardown(db_path: Path | str, table: str = "probe_records") -> bool:
    """Drop the probe table.  Returns ``False`` if the file does not exist.

    The database file itself is preserved.
    """
    path = Path(db_path)
    if not path.exists():
        logger.warning("Teardown skipped: %s does not exist", path)
        return False
    try:
        with sqlite3.connect(str(path)) as conn:
            conn.execute(f"DROP INDEX IF EXISTS idx_{table}_timestamp")
            conn.execute(f"DROP TABLE IF EXISTS {table}")
            conn.commit()
    except sqlite3.Error as exc:
        raise DataSourceError(f"teardown of {path} failed: {exc}") from exc
    logger.warning("Dropped table %s from %s", table, path)
    return True
