"""Unit tests for StatusRegistry — whole-snapshot replace, copies, concurrency."""

from __future__ import annotations

import threading
from datetime import timedelta

from lagprobe.core.status_registry import StatusRegistry
from lagprobe.models.status import ProducerStats, TargetSnapshot, TargetStatus


class TestStatusRegistry:
    def test_upsert_and_get(self, registry: StatusRegistry):
        snap = TargetSnapshot(name="east", status=TargetStatus.CONNECTED)
        registry.upsert("east", snap)
        assert registry.get("east") is snap
        assert registry.get("west") is None
        assert "east" in registry
        assert len(registry) == 1

    def test_upsert_replaces_whole_entry(self, registry: StatusRegistry):
        registry.upsert("east", TargetSnapshot(name="east", record_lag=5))
        registry.upsert("east", TargetSnapshot(name="east", status=TargetStatus.ERROR))
        snap = registry.get("east")
        assert snap.status == TargetStatus.ERROR
        assert snap.record_lag is None

    def test_get_all_is_a_copy(self, registry: StatusRegistry):
        registry.upsert("east", TargetSnapshot(name="east"))
        view = registry.get_all()
        registry.upsert("west", TargetSnapshot(name="west"))
        assert list(view) == ["east"]
        assert list(registry.get_all()) == ["east", "west"]

    def test_remove(self, registry: StatusRegistry):
        registry.upsert("east", TargetSnapshot(name="east"))
        registry.remove("east")
        registry.remove("never-there")
        assert len(registry) == 0

    def test_producer_stats(self, registry: StatusRegistry):
        assert registry.producer_stats().total_records == 0
        registry.set_producer_stats(ProducerStats(total_records=7))
        assert registry.producer_stats().total_records == 7

    def test_summary(self, registry: StatusRegistry):
        registry.upsert(
            "east",
            TargetSnapshot(
                name="east", status=TargetStatus.CONNECTED, time_lag=timedelta(seconds=3)
            ),
        )
        registry.upsert("west", TargetSnapshot(name="west", status=TargetStatus.ERROR))
        summary = registry.summary()
        assert summary.total == 2
        assert summary.connected == 1
        assert summary.max_time_lag == timedelta(seconds=3)

    def test_concurrent_writers_never_tear_entries(self, registry: StatusRegistry):
        stop = threading.Event()
        torn: list[TargetSnapshot] = []

        def writer(name: str) -> None:
            i = 0
            while not stop.is_set():
                i += 1
                # record_lag and sequence_lag always travel together.
                registry.upsert(name, TargetSnapshot(name=name, record_lag=i, sequence_lag=i))

        def reader() -> None:
            for _ in range(2000):
                for snap in registry.get_all().values():
                    if snap.record_lag != snap.sequence_lag:
                        torn.append(snap)

        writers = [threading.Thread(target=writer, args=(n,)) for n in ("a", "b", "c")]
        for t in writers:
            t.start()
        reader()
        stop.set()
        for t in writers:
            t.join()

        assert torn == []
        assert set(registry.get_all()) == {"a", "b", "c"}
