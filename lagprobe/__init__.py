"""lagprobe: live replication lag and gap monitor.

A producer writes a gap-free, monotonically increasing stream of
``(sequence, timestamp)`` records into a primary store.  One monitor per
replica measures how far behind that replica is (rows, sequences, wall
clock) and which recent sequences never arrived.  A diff-based renderer
paints the live picture onto the terminal.
"""

__version__ = "1.2.0"
__description__ = "Live replication lag and gap monitor with a diff-rendered terminal UI"

from lagprobe.config import ProbeConfig, load_config
from lagprobe.core.orchestrator import Orchestrator
from lagprobe.core.producer import RecordProducer
from lagprobe.core.status_registry import StatusRegistry
from lagprobe.core.target_monitor import TargetMonitor

__all__ = [
    "Orchestrator",
    "ProbeConfig",
    "RecordProducer",
    "StatusRegistry",
    "TargetMonitor",
    "__version__",
    "load_config",
]
