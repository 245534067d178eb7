"""Data sources — the store-facing side of lagprobe.

Modules
-------
base
    ``DataSource`` interface, the transient error taxonomy and
    ``TimeoutGuard`` for bounding every store call.
memory
    ``InMemoryStore`` and ``SimulatedReplica`` for demos and tests.
sqlite
    ``SqliteDataSource``, a file-backed store.
provisioning
    Create/drop the probe table for the SQLite backend.
"""

from lagprobe.sources.base import (
    DataSource,
    DataSourceError,
    DataSourceTimeout,
    GapScanError,
    TimeoutGuard,
)
from lagprobe.sources.memory import InMemoryStore, SimulatedReplica
from lagprobe.sources.sqlite import SqliteDataSource

__all__ = [
    "DataSource",
    "DataSourceError",
    "DataSourceTimeout",
    "GapScanError",
    "InMemoryStore",
    "SimulatedReplica",
    "SqliteDataSource",
    "TimeoutGuard",
]
