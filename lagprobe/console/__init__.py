"""Character-grid console — frame buffer, diff renderer and terminal device.

Modules
-------
cell
    ``Color`` and the immutable ``Cell`` stored in every grid position.
glyphs
    Line-drawing ``GlyphSet`` variants and ``probe_glyphs``.
frame_buffer
    ``FrameBuffer`` — the double-buffered grid the panes paint into.
renderer
    ``Renderer`` — diffs the two grids into batched terminal writes.
terminal
    ``RichTerminal`` — the ``TerminalDevice`` used at runtime.
"""

from lagprobe.console.cell import EMPTY_CELL, INVALID_CELL, Cell, Color
from lagprobe.console.frame_buffer import FrameBuffer
from lagprobe.console.glyphs import ASCII, EXTENDED_ASCII, UNICODE, GlyphSet, probe_glyphs
from lagprobe.console.renderer import Renderer, TerminalDevice

__all__ = [
    "ASCII",
    "EMPTY_CELL",
    "EXTENDED_ASCII",
    "INVALID_CELL",
    "UNICODE",
    "Cell",
    "Color",
    "FrameBuffer",
    "GlyphSet",
    "Renderer",
    "TerminalDevice",
    "probe_glyphs",
]
