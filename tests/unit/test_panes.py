"""Unit tests for screen layout, pane painting and the text helpers."""

from __future__ import annotations

import logging
import re
from datetime import timedelta

import pytest

from lagprobe.console.cell import Color
from lagprobe.console.frame_buffer import FrameBuffer
from lagprobe.console.glyphs import ASCII, UNICODE
from lagprobe.models.status import SCAN_FAILED, ProducerStats, TargetSnapshot, TargetStatus
from lagprobe.ui.activity_log import ActivityLog
from lagprobe.ui.layout import ScreenLayout
from lagprobe.ui.panes import (
    FOOTER_SHORT,
    ChromePane,
    ConfirmPrompt,
    ProducerPane,
    ReplicaPane,
    TooSmallScreen,
    age_text,
    format_lag,
    lag_bar,
    lag_color,
    lag_details,
    missing_text,
    truncate,
)


def _rows(buffer: FrameBuffer) -> list[str]:
    return [buffer.row_text(y) for y in range(buffer.height)]


def _find_row(buffer: FrameBuffer, needle: str) -> int:
    for y, text in enumerate(_rows(buffer)):
        if needle in text:
            return y
    raise AssertionError(f"{needle!r} not painted:\n" + "\n".join(_rows(buffer)))


@pytest.fixture
def screen() -> tuple[FrameBuffer, ScreenLayout]:
    return FrameBuffer(60, 20), ScreenLayout(60, 20)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


class TestLayout:
    def test_rows(self):
        layout = ScreenLayout(80, 25)
        assert layout.branding_y == 0
        assert layout.top_rule_y == 1
        assert layout.content_top == 2
        assert layout.bottom_rule_y == 23
        assert layout.footer_y == 24
        assert layout.content_height == 21

    def test_columns(self):
        layout = ScreenLayout(81, 25)
        assert layout.separator_x == 40
        assert layout.left_width == 40
        assert layout.right_x == 41
        assert layout.right_width == 40

    def test_degenerate_size(self):
        layout = ScreenLayout(0, 2)
        assert layout.content_height == 0
        assert layout.right_width == 0

    def test_describe(self):
        assert ScreenLayout(80, 25).describe().startswith("Screen 80x25, content 21 rows")


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


class TestTextHelpers:
    @pytest.mark.parametrize(
        "text, width, expected",
        [("hello world", 8, "hello..."), ("short", 10, "short"), ("abc", 2, "ab"), ("abc", 0, "")],
    )
    def test_truncate(self, text, width, expected):
        assert truncate(text, width) == expected

    @pytest.mark.parametrize(
        "lag, color",
        [
            (None, Color.GRAY),
            (timedelta(milliseconds=499), Color.GREEN),
            (timedelta(milliseconds=500), Color.YELLOW),
            (timedelta(seconds=3), Color.RED),
            (timedelta(seconds=10), Color.MAGENTA),
        ],
    )
    def test_lag_color(self, lag, color):
        assert lag_color(lag) == color

    @pytest.mark.parametrize(
        "lag, text",
        [
            (None, "~ Calculating..."),
            (timedelta(milliseconds=300), "* 300ms"),
            (timedelta(seconds=1.5), "^ 1.5s"),
            (timedelta(seconds=90), ">> 1.5m"),
        ],
    )
    def test_format_lag(self, lag, text):
        assert format_lag(lag) == text

    def test_lag_bar_fits_width(self):
        bar = lag_bar(timedelta(seconds=5), 40)
        assert bar == "LAG [" + "-" * 14 + " " * 15 + "] WARN"
        assert len(bar) == 40

    def test_lag_bar_saturates(self):
        bar = lag_bar(timedelta(minutes=5), 20)
        assert bar == "LAG [.........] CRIT"

    def test_lag_bar_too_narrow(self):
        assert lag_bar(timedelta(seconds=1), 8) == ""

    def test_lag_details(self):
        caught_up = TargetSnapshot(name="a", record_lag=0, sequence_lag=0)
        assert lag_details(caught_up) == "= Up to date"
        assert (
            lag_details(TargetSnapshot(name="a", record_lag=4, sequence_lag=3))
            == "Behind: 4 records, 3 seq"
        )

    def test_missing_text(self):
        assert missing_text(TargetSnapshot(name="a")) == "# No missing sequences"
        assert (
            missing_text(TargetSnapshot(name="a", missing_count=SCAN_FAILED))
            == "# Sequence check failed"
        )
        snap = TargetSnapshot(name="a", missing_sequences=[3, 5, 7, 9, 11, 13], missing_count=6)
        assert missing_text(snap) == "# Missing: 3,5,7,9,11... (6 total)"

    def test_age_text(self, clock):
        assert age_text(clock.now - timedelta(seconds=30), clock.now) == "@ 30s ago"
        assert re.fullmatch(
            r"@ \d\d:\d\d:\d\d", age_text(clock.now - timedelta(minutes=3), clock.now)
        )


# ---------------------------------------------------------------------------
# Panes
# ---------------------------------------------------------------------------


class TestChromePane:
    def test_paints_frame(self, screen):
        buffer, layout = screen
        ChromePane(UNICODE, "1.2.0").paint(buffer, layout)
        assert buffer.row_text(0).startswith(" lagprobe  v1.2.0")
        assert buffer.cell(1, 0).bg == Color.DARK_YELLOW
        assert buffer.cell(30, 1).glyph == "┬"
        assert buffer.cell(30, 10).glyph == "│"
        assert buffer.cell(30, 18).glyph == "┴"
        assert buffer.row_text(1).replace("┬", "") == "─" * 59
        assert FOOTER_SHORT in buffer.row_text(19)

    def test_full_footer_when_wide(self):
        buffer, layout = FrameBuffer(120, 20), ScreenLayout(120, 20)
        ChromePane(ASCII, "1.2.0").paint(buffer, layout)
        assert "Ctrl+Q = Drop probe table and exit" in buffer.row_text(19)
        assert buffer.cell(60, 1).glyph == "+"


class TestProducerPane:
    def test_log_and_status(self, screen, registry):
        buffer, layout = screen
        log = ActivityLog()
        log.add("Producer started - writing every 100ms")
        log.add("Write failed: boom", logging.ERROR)
        registry.set_producer_stats(
            ProducerStats(total_records=5, last_sequence=5, records_per_minute=60)
        )
        ProducerPane(registry, log, UNICODE).paint(buffer, layout)

        assert "DATABASE WRITER" in buffer.row_text(2)
        assert buffer.cell(30, 3).glyph == "┤"
        # Timestamped lines are cut to the 30-column pane.
        error_row = _find_row(buffer, "Write failed")
        assert buffer.row_text(error_row)[:30].endswith("] Write failed...")
        assert buffer.cell(0, error_row).fg == Color.RED
        assert buffer.row_text(16).startswith("Status: Writing #5 (1.0/sec)")
        assert buffer.row_text(17).startswith("Records: 5  Errors: 0  Log: 2")
        # The pane never paints past its own columns.
        assert buffer.row_text(16)[31:] == " " * 29

    def test_error_status(self, screen, registry):
        buffer, layout = screen
        registry.set_producer_stats(
            ProducerStats(total_records=3, error_count=1, connected=False, last_error="locked")
        )
        ProducerPane(registry, ActivityLog(), UNICODE).paint(buffer, layout)
        assert buffer.row_text(16).startswith("Status: Error - locked")
        assert buffer.cell(0, 16).fg == Color.RED

    def test_starting_status(self, screen, registry):
        buffer, layout = screen
        ProducerPane(registry, ActivityLog(), UNICODE).paint(buffer, layout)
        assert buffer.row_text(16).startswith("Status: Starting...")

    def test_resize_grows_log(self, registry):
        log = ActivityLog()
        ProducerPane(registry, log, UNICODE).on_resize(ScreenLayout(80, 40))
        assert log.capacity == max((36 - 5) * 5, 50)


class TestReplicaPane:
    def test_no_replicas(self, screen, registry, clock):
        buffer, layout = screen
        ReplicaPane(registry, UNICODE, clock).paint(buffer, layout)
        assert "No replicas" in buffer.row_text(3)
        _find_row(buffer, "No replicas configured")

    def test_healthy_target(self, screen, registry, clock):
        buffer, layout = screen
        registry.upsert(
            "east",
            TargetSnapshot(
                name="east",
                status=TargetStatus.CONNECTED,
                time_lag=timedelta(milliseconds=300),
                record_lag=0,
                sequence_lag=0,
                last_attempt=clock.now,
            ),
        )
        ReplicaPane(registry, UNICODE, clock).paint(buffer, layout)
        right = [row[31:] for row in _rows(buffer)]

        assert "REPLICATION MONITOR" in right[2]
        assert "All 1 online - Excellent" in right[3]
        assert buffer.cell(30, 4).glyph == "├"
        assert right[5].startswith("+ east: ONLINE")
        assert right[6].startswith("* 300ms")
        assert right[7].startswith("LAG [")
        assert right[8].startswith("= Up to date")
        assert right[9].startswith("# No missing sequences")
        assert right[10].startswith("@ 0s ago")
        assert buffer.cell(31, 6).fg == Color.GREEN
        # Left half untouched.
        assert buffer.row_text(6)[:30] == " " * 30

    def test_error_and_waiting_targets(self, screen, registry, clock):
        buffer, layout = screen
        registry.upsert(
            "east",
            TargetSnapshot(
                name="east",
                status=TargetStatus.CONNECTED,
                last_error="No records in primary yet",
            ),
        )
        registry.upsert(
            "west",
            TargetSnapshot(
                name="west",
                status=TargetStatus.ERROR,
                last_error="refused",
                consecutive_errors=3,
            ),
        )
        ReplicaPane(registry, ASCII, clock).paint(buffer, layout)
        right = [row[31:] for row in _rows(buffer)]

        assert right[6].startswith("~ No records in primary yet")
        assert right[11] == "." * 29
        assert right[12].startswith("! west: ERROR")
        assert right[13].startswith("X Error: refused (x3)")
        assert buffer.cell(31, 13).fg == Color.RED

    def test_missing_and_failed_scans(self, screen, registry, clock):
        buffer, layout = screen
        registry.upsert(
            "lossy",
            TargetSnapshot(
                name="lossy",
                status=TargetStatus.CONNECTED,
                time_lag=timedelta(seconds=1),
                missing_sequences=[4, 8],
                missing_count=2,
            ),
        )
        registry.upsert(
            "blind",
            TargetSnapshot(
                name="blind",
                status=TargetStatus.CONNECTED,
                time_lag=timedelta(seconds=1),
                missing_count=SCAN_FAILED,
            ),
        )
        ReplicaPane(registry, UNICODE, clock).paint(buffer, layout)
        missing_row = _find_row(buffer, "# Missing: 4,8 (2 total)")
        assert buffer.cell(31, missing_row).fg == Color.RED
        failed_row = _find_row(buffer, "# Sequence check failed")
        assert buffer.cell(31, failed_row).fg == Color.YELLOW

    def test_unknown_target(self, screen, registry, clock):
        buffer, layout = screen
        registry.upsert("east", TargetSnapshot(name="east"))
        ReplicaPane(registry, UNICODE, clock).paint(buffer, layout)
        _find_row(buffer, "- east: UNKNOWN")
        _find_row(buffer, "~ Checking...")


class TestOverlays:
    def test_too_small_screen(self):
        buffer = FrameBuffer(30, 8)
        buffer.write_at(0, 0, "stale content")
        TooSmallScreen(80, 25).paint(buffer)
        text = "\n".join(_rows(buffer))
        assert "Window too small" in text
        assert "Minimum: 80x25" in text
        assert "Current: 30x8" in text
        assert "stale content" not in text

    def test_too_small_lines_fit_tiny_screen(self):
        buffer = FrameBuffer(10, 3)
        TooSmallScreen(80, 25).paint(buffer)
        assert all(len(row) == 10 for row in _rows(buffer))

    def test_confirm_prompt(self, screen):
        buffer, _ = screen
        ConfirmPrompt(UNICODE).paint(buffer)
        row = _find_row(buffer, "Drop the probe table and exit?")
        x = buffer.row_text(row).index("Drop")
        assert buffer.cell(x, row).bg == Color.DARK_RED
        _find_row(buffer, "Press Y to confirm")
        _find_row(buffer, "┌")
        _find_row(buffer, "┘")
