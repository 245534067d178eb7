"""Shared test fixtures for lagprobe."""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from lagprobe.config import ProbeConfig, load_config
from lagprobe.console.cell import Color
from lagprobe.console.frame_buffer import FrameBuffer
from lagprobe.core.status_registry import StatusRegistry
from lagprobe.sources.memory import InMemoryStore

EPOCH = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingTerminal:
    """In-memory ``TerminalDevice`` that records every call.

    ``ops`` holds tuples such as ``("move", x, y)``, ``("colors", fg, bg)``
    and ``("write", text)``.  ``key_batches`` is consumed one list per
    ``read_keys`` call.
    """

    def __init__(self, width: int = 80, height: int = 25) -> None:
        self.width = width
        self.height = height
        self.ops: list[tuple] = []
        self.key_batches: list[list[str]] = []
        self.began = False
        self.ended = False

    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def clear(self) -> None:
        self.ops.append(("clear",))

    def move_to(self, x: int, y: int) -> None:
        self.ops.append(("move", x, y))

    def set_colors(self, fg: Color, bg: Color) -> None:
        self.ops.append(("colors", fg, bg))

    def write(self, text: str) -> None:
        self.ops.append(("write", text))

    def flush(self) -> None:
        self.ops.append(("flush",))

    def read_keys(self) -> list[str]:
        if self.key_batches:
            return self.key_batches.pop(0)
        return []

    def begin(self) -> None:
        self.began = True

    def end(self) -> None:
        self.ended = True

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def writes(self) -> list[str]:
        return [op[1] for op in self.ops if op[0] == "write"]

    def ops_of(self, kind: str) -> list[tuple]:
        return [op for op in self.ops if op[0] == kind]

    def reset(self) -> None:
        self.ops.clear()


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll *predicate* until it is true or *timeout* seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep stray LAGPROBE_* variables and .env files out of every test."""
    for key in list(os.environ):
        if key.startswith("LAGPROBE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> ProbeConfig:
    """Fast cadences and a small minimum screen, no stores required."""
    return load_config(
        require_stores=False,
        write_interval_ms=10,
        refresh_interval_ms=100,
        monitor_interval_ms=20,
        error_delay_seconds=0.05,
        query_timeout_seconds=1,
        shutdown_timeout_seconds=2,
        min_width=40,
        min_height=12,
    )


@pytest.fixture
def registry() -> StatusRegistry:
    return StatusRegistry()


@pytest.fixture
def primary() -> InMemoryStore:
    return InMemoryStore("primary")


@pytest.fixture
def terminal() -> RecordingTerminal:
    return RecordingTerminal(60, 20)


@pytest.fixture
def frame_buffer() -> FrameBuffer:
    return FrameBuffer(20, 5)
