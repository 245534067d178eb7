"""Double-buffered character grid.

``current`` is what the panes paint this frame; ``previous`` mirrors what
is physically on the terminal and is only touched by the ``Renderer``
(and by ``invalidate``/``resize``, which poison it so every cell redraws).

Both grids are flat row-major lists: cell ``(x, y)`` lives at
``y * width + x``.  The buffer has no lock; all painting happens on the
orchestrator thread.
"""

from __future__ import annotations

from lagprobe.console.cell import EMPTY_CELL, INVALID_CELL, Cell, Color


class FrameBuffer:
    """A ``width`` x ``height`` grid of ``Cell`` with a shadow copy.

    Writes outside the grid are clipped silently.
    """

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self.width = 0
        self.height = 0
        self.current: list[Cell] = []
        self.previous: list[Cell] = []
        self.needs_full_redraw = True
        self.resize(width, height)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Reallocate both grids; the next render repaints everything."""
        self.width = max(0, width)
        self.height = max(0, height)
        size = self.width * self.height
        self.current = [EMPTY_CELL] * size
        self.previous = [INVALID_CELL] * size
        self.needs_full_redraw = True

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Blank the current grid.  The screen changes on the next render."""
        self.current = [EMPTY_CELL] * (self.width * self.height)

    def write_at(
        self,
        x: int,
        y: int,
        text: str,
        fg: Color = Color.GRAY,
        bg: Color = Color.BLACK,
    ) -> None:
        """Write *text* left to right from ``(x, y)``, clipped at the right edge."""
        if not text or y < 0 or y >= self.height or x >= self.width:
            return
        if x < 0:
            text = text[-x:]
            x = 0
        text = text[: self.width - x]
        base = y * self.width + x
        for offset, glyph in enumerate(text):
            self.current[base + offset] = Cell(glyph, fg, bg)

    def write_char(
        self,
        x: int,
        y: int,
        glyph: str,
        fg: Color = Color.GRAY,
        bg: Color = Color.BLACK,
    ) -> None:
        if self.contains(x, y) and glyph:
            self.current[y * self.width + x] = Cell(glyph[0], fg, bg)

    def fill_row(
        self,
        y: int,
        glyph: str = " ",
        fg: Color = Color.GRAY,
        bg: Color = Color.BLACK,
        *,
        start: int = 0,
        end: int | None = None,
    ) -> None:
        """Fill columns ``[start, end)`` of row *y* with *glyph*."""
        stop = self.width if end is None else min(end, self.width)
        start = max(0, start)
        if stop > start:
            self.write_at(start, y, glyph[0] * (stop - start), fg, bg)

    def invalidate(self) -> None:
        """Force a full redraw on the next render."""
        self.needs_full_redraw = True
        self.previous = [INVALID_CELL] * (self.width * self.height)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def cell(self, x: int, y: int) -> Cell:
        return self.current[y * self.width + x]

    def previous_cell(self, x: int, y: int) -> Cell:
        return self.previous[y * self.width + x]

    def row_text(self, y: int) -> str:
        """Glyphs of row *y* in the current grid, as one string."""
        start = y * self.width
        return "".join(cell.glyph for cell in self.current[start : start + self.width])

    def is_synced(self) -> bool:
        """Whether the screen already shows the current grid."""
        return self.current == self.previous
