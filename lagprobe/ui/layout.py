"""Screen geometry, recomputed whenever the terminal size changes.

::

    row 0            branding
    row 1            rule  ──────┬──────
    rows 2..h-3      left pane   │ right pane
    row h-2          rule  ──────┴──────
    row h-1          footer

The vertical separator sits at ``width // 2``; the left pane owns the
columns before it and the right pane the columns after it.
"""

from __future__ import annotations

from dataclasses import dataclass

BRANDING_HEIGHT = 1
FOOTER_HEIGHT = 1


@dataclass(frozen=True)
class ScreenLayout:
    width: int
    height: int

    @property
    def branding_y(self) -> int:
        return 0

    @property
    def top_rule_y(self) -> int:
        return BRANDING_HEIGHT

    @property
    def content_top(self) -> int:
        return self.top_rule_y + 1

    @property
    def footer_y(self) -> int:
        return self.height - FOOTER_HEIGHT

    @property
    def bottom_rule_y(self) -> int:
        return self.footer_y - 1

    @property
    def content_height(self) -> int:
        """Rows between the two rules."""
        return max(0, self.bottom_rule_y - self.content_top)

    @property
    def separator_x(self) -> int:
        return self.width // 2

    @property
    def left_x(self) -> int:
        return 0

    @property
    def left_width(self) -> int:
        return max(0, self.separator_x)

    @property
    def right_x(self) -> int:
        return self.separator_x + 1

    @property
    def right_width(self) -> int:
        return max(0, self.width - self.right_x)

    def describe(self) -> str:
        return (
            f"Screen {self.width}x{self.height}, content {self.content_height} rows, "
            f"left 0-{self.left_width - 1}, sep {self.separator_x}, "
            f"right {self.right_x}-{self.width - 1}"
        )
