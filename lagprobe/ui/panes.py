"""Panes — everything that paints into the ``FrameBuffer``.

Every pane repaints its whole region on every frame from the current
registry contents; the renderer takes care of sending only what changed.
Panes run on the orchestrator thread only.

Colour scheme (time lag)
------------------------
- green    : under 500 ms
- yellow   : under 2 s
- red      : under 10 s
- magenta  : 10 s and above
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from lagprobe.console.cell import Color
from lagprobe.console.frame_buffer import FrameBuffer
from lagprobe.console.glyphs import ASCII, GlyphSet
from lagprobe.core.status_registry import StatusRegistry
from lagprobe.models.records import utc_now
from lagprobe.models.status import (
    CRITICAL_LAG,
    EXCELLENT_LAG,
    GOOD_LAG,
    SCAN_FAILED,
    ProducerStats,
    SummaryLevel,
    TargetSnapshot,
    TargetStatus,
)
from lagprobe.ui.activity_log import ActivityLog
from lagprobe.ui.layout import ScreenLayout

LINES_PER_TARGET = 6
MISSING_SHOWN = 5
LAG_BAR_SCALE = CRITICAL_LAG
STALE_CHECK = timedelta(minutes=2)

FOOTER_TEXT = (
    "Q = Quit   R = Refresh   H = Help   ESC/Ctrl+C = Exit   "
    "Ctrl+Q = Drop probe table and exit"
)
FOOTER_SHORT = "Q Quit  R Refresh  Ctrl+Q Cleanup"


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def truncate(text: str, width: int) -> str:
    """Fit *text* into *width* columns, ending in ``...`` if cut."""
    if width <= 0 or not text:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."


def centered_x(text: str, left: int, width: int) -> int:
    return left + max(0, (width - len(text)) // 2)


def lag_color(lag: timedelta | None) -> Color:
    if lag is None:
        return Color.GRAY
    if lag < EXCELLENT_LAG:
        return Color.GREEN
    if lag < GOOD_LAG:
        return Color.YELLOW
    if lag < CRITICAL_LAG:
        return Color.RED
    return Color.MAGENTA


def format_lag(lag: timedelta | None) -> str:
    if lag is None:
        return "~ Calculating..."
    seconds = lag.total_seconds()
    if seconds < 1:
        return f"* {seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"^ {seconds:.1f}s"
    return f">> {seconds / 60:.1f}m"


def lag_bar(lag: timedelta, width: int) -> str:
    """``LAG [====      ] OK`` scaled to ten seconds, *width* columns wide."""
    if lag < EXCELLENT_LAG:
        fill, verdict = "=", "OK"
    elif lag < GOOD_LAG:
        fill, verdict = "#", "GOOD"
    elif lag < CRITICAL_LAG:
        fill, verdict = "-", "WARN"
    else:
        fill, verdict = ".", "CRIT"

    bar_width = width - len("LAG [] CRIT")
    if bar_width < 1:
        return ""
    ratio = min(lag / LAG_BAR_SCALE, 1.0)
    filled = int(ratio * bar_width)
    return f"LAG [{fill * filled}{' ' * (bar_width - filled)}] {verdict}"


def lag_details(snapshot: TargetSnapshot) -> str:
    parts = []
    if snapshot.record_lag:
        parts.append(f"{snapshot.record_lag} records")
    if snapshot.sequence_lag:
        parts.append(f"{snapshot.sequence_lag} seq")
    if not parts:
        return "= Up to date"
    return "Behind: " + ", ".join(parts)


def lag_details_color(snapshot: TargetSnapshot) -> Color:
    if snapshot.missing_count > 0:
        return Color.RED
    if (snapshot.sequence_lag or 0) > 10 or (snapshot.record_lag or 0) > 10:
        return Color.YELLOW
    return Color.GREEN


def missing_text(snapshot: TargetSnapshot) -> str:
    if snapshot.missing_count == SCAN_FAILED:
        return "# Sequence check failed"
    if snapshot.missing_count == 0:
        return "# No missing sequences"
    if snapshot.missing_sequences:
        shown = ",".join(str(seq) for seq in snapshot.missing_sequences[:MISSING_SHOWN])
        if snapshot.missing_count > MISSING_SHOWN:
            shown += "..."
        return f"# Missing: {shown} ({snapshot.missing_count} total)"
    return f"# {snapshot.missing_count} missing sequences"


def age_text(checked: datetime, now: datetime) -> str:
    age = now - checked
    if age < timedelta(minutes=1):
        return f"@ {max(0.0, age.total_seconds()):.0f}s ago"
    return "@ " + checked.astimezone().strftime("%H:%M:%S")


_STATUS_ICONS: dict[TargetStatus, str] = {
    TargetStatus.CONNECTED: "+",
    TargetStatus.DISCONNECTED: "?",
    TargetStatus.ERROR: "!",
    TargetStatus.UNKNOWN: "-",
}

_STATUS_TEXT: dict[TargetStatus, str] = {
    TargetStatus.CONNECTED: "ONLINE",
    TargetStatus.DISCONNECTED: "OFFLINE",
    TargetStatus.ERROR: "ERROR",
    TargetStatus.UNKNOWN: "UNKNOWN",
}

_STATUS_COLORS: dict[TargetStatus, Color] = {
    TargetStatus.CONNECTED: Color.GREEN,
    TargetStatus.DISCONNECTED: Color.YELLOW,
    TargetStatus.ERROR: Color.RED,
    TargetStatus.UNKNOWN: Color.GRAY,
}

_SUMMARY_COLORS: dict[SummaryLevel, Color] = {
    SummaryLevel.NONE: Color.GRAY,
    SummaryLevel.OK: Color.GREEN,
    SummaryLevel.WARN: Color.YELLOW,
    SummaryLevel.BAD: Color.RED,
}


# ---------------------------------------------------------------------------
# Panes
# ---------------------------------------------------------------------------


class Pane:
    """Base class: something that paints a region of the frame buffer."""

    def on_resize(self, layout: ScreenLayout) -> None:
        """Called once after every size change, before the next paint."""

    def paint(self, buffer: FrameBuffer, layout: ScreenLayout) -> None:
        raise NotImplementedError


class ChromePane(Pane):
    """Branding row, footer, both horizontal rules and the vertical separator."""

    def __init__(self, glyphs: GlyphSet, version: str) -> None:
        self.glyphs = glyphs
        self.logo = " lagprobe "
        self.tagline = f" v{version}  replication lag probe"

    def paint(self, buffer: FrameBuffer, layout: ScreenLayout) -> None:
        g = self.glyphs
        width = layout.width

        buffer.fill_row(layout.branding_y, " ", Color.WHITE, Color.BLACK)
        buffer.write_at(0, layout.branding_y, self.logo, Color.WHITE, Color.DARK_YELLOW)
        buffer.write_at(len(self.logo), layout.branding_y, self.tagline, Color.GRAY)

        buffer.fill_row(layout.footer_y)
        footer = FOOTER_TEXT if len(FOOTER_TEXT) <= width else truncate(FOOTER_SHORT, width)
        buffer.write_at(centered_x(footer, 0, width), layout.footer_y, footer, Color.DARK_GRAY)

        buffer.fill_row(layout.top_rule_y, g.horizontal, Color.DARK_GRAY)
        buffer.fill_row(layout.bottom_rule_y, g.horizontal, Color.DARK_GRAY)

        x = layout.separator_x
        if 0 < x < width:
            buffer.write_char(x, layout.top_rule_y, g.tee_down, Color.DARK_GRAY)
            for y in range(layout.content_top, layout.bottom_rule_y):
                buffer.write_char(x, y, g.vertical, Color.DARK_GRAY)
            buffer.write_char(x, layout.bottom_rule_y, g.tee_up, Color.DARK_GRAY)


class ProducerPane(Pane):
    """Left pane: writer header, activity log and producer status lines."""

    HEADER = "DATABASE WRITER"
    STATUS_LINES = 3

    def __init__(
        self, registry: StatusRegistry, activity_log: ActivityLog, glyphs: GlyphSet
    ) -> None:
        self.registry = registry
        self.activity_log = activity_log
        self.glyphs = glyphs

    def on_resize(self, layout: ScreenLayout) -> None:
        self.activity_log.resize(layout.content_height)

    def paint(self, buffer: FrameBuffer, layout: ScreenLayout) -> None:
        width = layout.left_width
        top = layout.content_top
        height = layout.content_height
        if width <= 0 or height <= 0:
            return

        for y in range(top, top + height):
            buffer.fill_row(y, end=width)

        header = truncate(self.HEADER, width)
        buffer.write_at(centered_x(header, 0, width), top, header, Color.WHITE, Color.BLUE)
        if height < 2:
            return
        buffer.fill_row(top + 1, self.glyphs.horizontal, Color.DARK_GRAY, end=width)
        buffer.write_char(layout.separator_x, top + 1, self.glyphs.tee_left, Color.DARK_GRAY)

        reserved = self.STATUS_LINES if height > 5 else 0
        available = max(0, height - 2 - reserved)
        for offset, line in enumerate(self.activity_log.tail(available)):
            color = _log_color(line.text, line.level)
            buffer.write_at(0, top + 2 + offset, truncate(line.text, width), color)

        if reserved:
            self._paint_status(buffer, top + height - reserved, width)

    def _paint_status(self, buffer: FrameBuffer, y: int, width: int) -> None:
        stats = self.registry.producer_stats()
        buffer.fill_row(y, self.glyphs.horizontal, Color.DARK_GRAY, end=width)
        status, color = _producer_status(stats)
        buffer.write_at(0, y + 1, truncate(status, width), color)
        counters = (
            f"Records: {stats.total_records}  Errors: {stats.error_count}  "
            f"Log: {self.activity_log.total}"
        )
        buffer.write_at(0, y + 2, truncate(counters, width), Color.CYAN)


def _producer_status(stats: ProducerStats) -> tuple[str, Color]:
    if not stats.connected:
        return f"Status: Error - {stats.last_error or 'write failed'}", Color.RED
    if stats.total_records == 0:
        return "Status: Starting...", Color.YELLOW
    return (
        f"Status: Writing #{stats.last_sequence} ({stats.records_per_second:.1f}/sec)",
        Color.GREEN,
    )


_SUCCESS_WORDS = ("Inserted", "restored", "resolved", "completed successfully")


def _log_color(text: str, level: int) -> Color:
    if level >= logging.ERROR:
        return Color.RED
    if level >= logging.WARNING:
        return Color.YELLOW
    if level < logging.INFO:
        return Color.DARK_CYAN
    if any(word in text for word in _SUCCESS_WORDS):
        return Color.GREEN
    return Color.GRAY


class ReplicaPane(Pane):
    """Right pane: summary verdict and a six-line block per replica."""

    HEADER = "REPLICATION MONITOR"

    def __init__(
        self,
        registry: StatusRegistry,
        glyphs: GlyphSet,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.registry = registry
        self.glyphs = glyphs
        self.clock = clock
        self.divider = "." if glyphs is ASCII else "·"

    def paint(self, buffer: FrameBuffer, layout: ScreenLayout) -> None:
        left = layout.right_x
        width = layout.right_width
        top = layout.content_top
        bottom = layout.bottom_rule_y
        if width <= 0 or bottom <= top:
            return

        for y in range(top, bottom):
            buffer.fill_row(y, start=left, end=left + width)

        header = truncate(self.HEADER, width)
        buffer.write_at(centered_x(header, left, width), top, header, Color.WHITE, Color.DARK_BLUE)

        snapshots = list(self.registry.get_all().values())
        text, level = self.registry.summary().headline()
        text = truncate(text, width)
        if top + 1 < bottom:
            buffer.write_at(centered_x(text, left, width), top + 1, text, _SUMMARY_COLORS[level])
        if top + 2 < bottom:
            buffer.fill_row(
                top + 2, self.glyphs.horizontal, Color.DARK_GRAY, start=left, end=left + width
            )
            buffer.write_char(layout.separator_x, top + 2, self.glyphs.tee_right, Color.DARK_GRAY)

        y = top + 3
        available = bottom - y
        if not snapshots:
            message = truncate("No replicas configured", width)
            x = centered_x(message, left, width)
            buffer.write_at(x, y + available // 2, message, Color.YELLOW)
            return

        per_target = max(LINES_PER_TARGET, available // len(snapshots))
        now = self.clock()
        for index, snapshot in enumerate(snapshots):
            if y >= bottom:
                break
            end = min(y + per_target, bottom)
            self._paint_target(buffer, snapshot, left, y, width, end - y, now)
            y = end
            if index < len(snapshots) - 1 and y < bottom:
                buffer.fill_row(y, self.divider, Color.DARK_GRAY, start=left, end=left + width)
                y += 1

    def _paint_target(
        self,
        buffer: FrameBuffer,
        snap: TargetSnapshot,
        x: int,
        y: int,
        width: int,
        height: int,
        now: datetime,
    ) -> None:
        lines: list[tuple[str, Color]] = []
        connected = snap.status == TargetStatus.CONNECTED

        lines.append((
            f"{_STATUS_ICONS[snap.status]} {snap.name}: {_STATUS_TEXT[snap.status]}",
            _STATUS_COLORS[snap.status],
        ))

        if snap.status in (TargetStatus.ERROR, TargetStatus.DISCONNECTED) and snap.last_error:
            suffix = f" (x{snap.consecutive_errors})" if snap.consecutive_errors > 1 else ""
            lines.append((f"X Error: {snap.last_error}{suffix}", Color.RED))
        elif connected and snap.time_lag is None and snap.last_error:
            lines.append((f"~ {snap.last_error}", Color.GRAY))
        elif connected:
            lines.append((format_lag(snap.time_lag), lag_color(snap.time_lag)))
        else:
            lines.append(("~ Checking...", Color.GRAY))

        if connected and snap.time_lag is not None:
            lines.append((lag_bar(snap.time_lag, width), lag_color(snap.time_lag)))
        else:
            lines.append(("", Color.GRAY))

        if connected:
            lines.append((lag_details(snap), lag_details_color(snap)))
            missing_color = Color.RED if snap.missing_count > 0 else Color.GREEN
            if snap.scan_failed:
                missing_color = Color.YELLOW
            lines.append((missing_text(snap), missing_color))
        else:
            lines.extend([("", Color.GRAY), ("", Color.GRAY)])

        if snap.last_attempt is not None:
            stale = now - snap.last_attempt > STALE_CHECK
            age_color = Color.RED if stale else Color.DARK_GRAY
            lines.append((age_text(snap.last_attempt, now), age_color))

        for offset, (text, color) in enumerate(lines[:height]):
            if text:
                buffer.write_at(x, y + offset, truncate(text, width), color)


class TooSmallScreen:
    """Full-screen notice shown while the terminal is below the minimum size."""

    def __init__(self, min_width: int, min_height: int) -> None:
        self.min_width = min_width
        self.min_height = min_height

    def lines(self, width: int, height: int) -> list[tuple[str, Color]]:
        return [
            ("Window too small", Color.RED),
            (f"Minimum: {self.min_width}x{self.min_height}", Color.YELLOW),
            (f"Current: {width}x{height}", Color.YELLOW),
            ("", Color.GRAY),
            ("Please resize your terminal window", Color.CYAN),
            ("Press Q to quit", Color.GRAY),
        ]

    def paint(self, buffer: FrameBuffer) -> None:
        width, height = buffer.size
        buffer.clear()
        lines = self.lines(width, height)
        top = max(0, (height - len(lines)) // 2)
        for offset, (text, color) in enumerate(lines):
            y = min(top + offset, height - 1)
            text = truncate(text, width)
            buffer.write_at(centered_x(text, 0, width), y, text, color)


class ConfirmPrompt:
    """Centred confirmation box for the destructive cleanup."""

    LINES = (
        "Drop the probe table and exit?",
        "All probe records will be deleted.",
        "",
        "Press Y to confirm, any other key to cancel",
    )

    def __init__(self, glyphs: GlyphSet) -> None:
        self.glyphs = glyphs

    def paint(self, buffer: FrameBuffer) -> None:
        width, height = buffer.size
        inner = min(max(len(line) for line in self.LINES) + 2, max(0, width - 2))
        box_height = len(self.LINES) + 2
        left = max(0, (width - inner - 2) // 2)
        top = max(0, (height - box_height) // 2)
        g = self.glyphs
        fg, bg = Color.WHITE, Color.DARK_RED

        buffer.write_at(left, top, g.top_left + g.horizontal * inner + g.top_right, fg, bg)
        for offset, line in enumerate(self.LINES, start=1):
            body = truncate(line, inner).center(inner)
            buffer.write_at(left, top + offset, g.vertical + body + g.vertical, fg, bg)
        bottom = g.bottom_left + g.horizontal * inner + g.bottom_right
        buffer.write_at(left, top + box_height - 1, bottom, fg, bg)
