"""Failure isolation: one broken or hanging replica must not slow anyone else.

Runs the real producer and monitor threads against in-memory stores: a
healthy replica, one that always errors, and one whose every call hangs
past the query timeout.
"""

from __future__ import annotations

import threading
import time

from lagprobe.core.producer import RecordProducer
from lagprobe.core.target_monitor import TargetMonitor
from lagprobe.models.records import ProbeRecord
from lagprobe.models.status import TargetStatus
from lagprobe.sources import DataSourceError, InMemoryStore, SimulatedReplica

from conftest import wait_until


def test_failing_and_hanging_replicas_are_isolated(registry, config):
    stop = threading.Event()
    primary = InMemoryStore("primary")
    healthy = SimulatedReplica(primary, "healthy")
    broken = SimulatedReplica(primary, "broken")
    broken.fail_with(DataSourceError("connection refused"))
    hanging = SimulatedReplica(primary, "hanging", latency=1.0)
    short_timeout = config.model_copy(update={"query_timeout_seconds": 0.1})

    producer = RecordProducer(primary, registry, config, stop_event=stop)
    monitors = [
        TargetMonitor("healthy", primary, healthy, registry, config, stop_event=stop),
        TargetMonitor("broken", primary, broken, registry, config, stop_event=stop),
        TargetMonitor("hanging", primary, hanging, registry, short_timeout, stop_event=stop),
    ]

    producer.start()
    for monitor in monitors:
        monitor.start()
    try:
        assert wait_until(lambda: registry.get("broken").status == TargetStatus.ERROR)
        assert wait_until(lambda: registry.get("hanging").status == TargetStatus.DISCONNECTED)
        written = len(primary)
        time.sleep(0.5)
        # Ten-millisecond writes carry on while two replicas misbehave.
        assert len(primary) - written >= 10
    finally:
        stop.set()
        producer.join(timeout=2)
        for monitor in monitors:
            monitor.join(timeout=2)

    stats = registry.producer_stats()
    assert stats.error_count == 0
    assert stats.connected

    assert monitors[0].consecutive_errors == 0
    assert registry.get("healthy").status == TargetStatus.CONNECTED
    assert registry.get("broken").last_error == "connection refused"
    assert "timed out" in registry.get("hanging").last_error
    assert not any(monitor.is_running for monitor in monitors)
    assert not producer.is_running


def test_shutdown_is_bounded_with_a_stuck_call(registry, config):
    primary = InMemoryStore("primary")
    hanging = SimulatedReplica(primary, "hanging", latency=1.5)
    monitor = TargetMonitor(
        "hanging",
        primary,
        hanging,
        registry,
        config.model_copy(update={"query_timeout_seconds": 5.0}),
    )
    primary.insert(ProbeRecord(sequence=1))
    monitor.start()
    time.sleep(0.1)
    started = time.monotonic()
    monitor.stop(timeout=0.2)
    # The monitor is blocked inside a store call; stop gives up on time.
    assert time.monotonic() - started < 1.0
    assert monitor.is_running
    assert wait_until(lambda: not monitor.is_running, timeout=5)
