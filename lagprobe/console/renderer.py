"""Diff renderer — pushes the minimum set of writes to the terminal.

For each row the renderer walks ``current`` against ``previous`` and
groups adjacent changed cells that share colours into *runs*.  Each run
costs one cursor move, at most one colour change, and one write.  The
colour last sent to the device is tracked across the whole frame, so a
run only sets colours when they actually differ.  After the frame is
flushed ``previous`` equals ``current``; rendering again without any
paint in between sends nothing at all.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from lagprobe.console.cell import Cell, Color
from lagprobe.console.frame_buffer import FrameBuffer

logger = logging.getLogger(__name__)


@runtime_checkable
class TerminalDevice(Protocol):
    """What the renderer and orchestrator need from a terminal."""

    def size(self) -> tuple[int, int]: ...

    def clear(self) -> None: ...

    def move_to(self, x: int, y: int) -> None: ...

    def set_colors(self, fg: Color, bg: Color) -> None: ...

    def write(self, text: str) -> None: ...

    def flush(self) -> None: ...

    def read_keys(self) -> list[str]: ...

    def begin(self) -> None: ...

    def end(self) -> None: ...


class Renderer:
    """Turns a ``FrameBuffer`` diff into terminal writes.

    Parameters
    ----------
    buffer:
        The frame buffer to render.  Shared with the panes that paint it.
    device:
        Where runs are written.
    """

    def __init__(self, buffer: FrameBuffer, device: TerminalDevice) -> None:
        self.buffer = buffer
        self.device = device
        self.frames_rendered = 0
        self.cells_changed = 0
        self.last_cells_changed = 0
        self.last_runs = 0

    def render(self) -> int:
        """Render one frame.  Returns the number of cells written."""
        buf = self.buffer
        device = self.device
        self.frames_rendered += 1

        cleared = buf.needs_full_redraw
        if cleared:
            device.clear()
            buf.needs_full_redraw = False

        width = buf.width
        current = buf.current
        previous = buf.previous
        colors: tuple[Color, Color] | None = None
        changed = 0
        runs = 0

        for y in range(buf.height):
            row = y * width
            x = 0
            while x < width:
                cell = current[row + x]
                if cell == previous[row + x]:
                    x += 1
                    continue

                # Extend the run while cells keep changing and keep colours.
                start = x
                glyphs = [cell.glyph]
                previous[row + x] = cell
                x += 1
                while x < width:
                    nxt = current[row + x]
                    if nxt == previous[row + x] or nxt.fg != cell.fg or nxt.bg != cell.bg:
                        break
                    glyphs.append(nxt.glyph)
                    previous[row + x] = nxt
                    x += 1

                colors = self._write_run(start, y, glyphs, cell, colors)
                changed += len(glyphs)
                runs += 1

        if changed or cleared:
            device.flush()
        self.cells_changed += changed
        self.last_cells_changed = changed
        self.last_runs = runs
        return changed

    def _write_run(
        self,
        x: int,
        y: int,
        glyphs: list[str],
        cell: Cell,
        colors: tuple[Color, Color] | None,
    ) -> tuple[Color, Color]:
        self.device.move_to(x, y)
        if colors != (cell.fg, cell.bg):
            self.device.set_colors(cell.fg, cell.bg)
            colors = (cell.fg, cell.bg)
        self.device.write("".join(glyphs))
        return colors

    def performance_summary(self) -> str:
        """One-line render statistics for the activity log."""
        if self.frames_rendered == 0:
            return "No renders yet"
        total = max(1, self.buffer.width * self.buffer.height)
        average = self.cells_changed / self.frames_rendered
        return (
            f"Renders: {self.frames_rendered}, "
            f"Avg cells/render: {average:.1f} ({average * 100.0 / total:.1f}%)"
        )
