"""Cells and colours of the character grid."""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class Color(str, Enum):
    """The sixteen classic console colours.

    Values are the rich colour names used when the cell is written out.
    """

    BLACK = "black"
    DARK_BLUE = "blue"
    DARK_GREEN = "green"
    DARK_CYAN = "cyan"
    DARK_RED = "red"
    DARK_MAGENTA = "magenta"
    DARK_YELLOW = "yellow"
    GRAY = "white"
    DARK_GRAY = "bright_black"
    BLUE = "bright_blue"
    GREEN = "bright_green"
    CYAN = "bright_cyan"
    RED = "bright_red"
    MAGENTA = "bright_magenta"
    YELLOW = "bright_yellow"
    WHITE = "bright_white"


class Cell(NamedTuple):
    """One grid position: a glyph and its colours.

    A ``NamedTuple`` rather than a pydantic model: the frame buffer holds
    one per screen position and compares them on every frame.
    """

    glyph: str
    fg: Color = Color.GRAY
    bg: Color = Color.BLACK


EMPTY_CELL = Cell(" ", Color.GRAY, Color.BLACK)

# Never painted, so it differs from every real cell and forces a redraw.
INVALID_CELL = Cell("\0", Color.BLACK, Color.BLACK)
