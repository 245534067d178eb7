"""Line-drawing glyph sets and the one-time capability probe.

Three sets, best first: Unicode box drawing, the same shapes from the
CP437 code page, and plain ASCII.  ``probe_glyphs`` picks one at startup;
if detection itself fails it settles for ASCII.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Mapping
from dataclasses import astuple, dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlyphSet:
    """Characters used to draw separators and their junctions."""

    name: str
    vertical: str
    horizontal: str
    top_left: str
    top_right: str
    bottom_left: str
    bottom_right: str
    cross: str
    tee_down: str
    tee_up: str
    tee_right: str
    tee_left: str

    def encodable(self, encoding: str) -> bool:
        """Whether every glyph survives *encoding*."""
        try:
            "".join(astuple(self)[1:]).encode(encoding)
        except (UnicodeEncodeError, LookupError):
            return False
        return True


UNICODE = GlyphSet(
    "unicode", "│", "─", "┌", "┐", "└", "┘", "┼", "┬", "┴", "├", "┤"
)

# CP437 code points 179, 196, 218, 191, 192, 217, 197, 194, 193, 195, 180.
EXTENDED_ASCII = GlyphSet(
    "extended", "│", "─", "┌", "┐", "└", "┘", "┼", "┬", "┴", "├", "┤"
)

ASCII = GlyphSet("ascii", "|", "-", "+", "+", "+", "+", "+", "+", "+", "+", "+")

_UNICODE_TERMS = ("xterm", "screen")
_UNICODE_PROGRAMS = ("vscode", "Windows Terminal")


def probe_glyphs(env: Mapping[str, str], encoding: str | None) -> GlyphSet:
    """Choose the richest glyph set the terminal can show.

    Parameters
    ----------
    env:
        Environment to inspect (``TERM``, ``TERM_PROGRAM``).
    encoding:
        Output encoding of the terminal stream.
    """
    try:
        codec = codecs.lookup(encoding or "ascii").name
        term = env.get("TERM", "")
        program = env.get("TERM_PROGRAM", "")
        if term == "dumb":
            choice = ASCII
        elif (
            codec.startswith("utf")
            or any(t in term for t in _UNICODE_TERMS)
            or program in _UNICODE_PROGRAMS
        ):
            choice = UNICODE if UNICODE.encodable(codec) else _fallback(codec)
        else:
            choice = _fallback(codec)
    except Exception as exc:
        logger.warning("Terminal capability detection failed, using ASCII: %s", exc)
        return ASCII
    logger.debug("Using %s line glyphs (encoding %s)", choice.name, codec)
    return choice


def _fallback(codec: str) -> GlyphSet:
    return EXTENDED_ASCII if EXTENDED_ASCII.encodable(codec) else ASCII
