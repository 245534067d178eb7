"""Terminal device backed by a rich ``Console``.

Output goes through rich: ``Control.move_to`` for the cursor, ``Style``
for colours, and the console's alternate-screen and cursor switches.
Input comes from a small POSIX key poller that puts stdin into cbreak
mode and reads whatever is pending without blocking.  On platforms
without ``termios`` (or when stdin is not a TTY) the poller is disabled
and ``read_keys`` always returns an empty list.
"""

from __future__ import annotations

import logging
import os
import select
import sys
import time
from typing import Any

from rich.console import Console
from rich.control import Control
from rich.style import Style

from lagprobe.console.cell import Color

try:
    import termios
    import tty
except ImportError:  # pragma: no cover - non-POSIX
    termios = None  # type: ignore[assignment]
    tty = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

# Names for keys that are not a single printable character.
KEY_ESC = "ESC"
KEY_F1 = "F1"
KEY_F5 = "F5"
KEY_F12 = "F12"
KEY_UP = "UP"
KEY_DOWN = "DOWN"
KEY_LEFT = "LEFT"
KEY_RIGHT = "RIGHT"
KEY_CTRL_C = "\x03"
KEY_CTRL_Q = "\x11"

_ESCAPES: dict[bytes, str] = {
    b"OP": KEY_F1,
    b"[11~": KEY_F1,
    b"[15~": KEY_F5,
    b"[24~": KEY_F12,
    b"[A": KEY_UP,
    b"[B": KEY_DOWN,
    b"[C": KEY_RIGHT,
    b"[D": KEY_LEFT,
}


class KeyPoller:
    """Non-blocking single-key reader for a POSIX TTY."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = (
            enabled and termios is not None and os.name == "posix" and sys.stdin.isatty()
        )
        self.fd: int | None = None
        self._old: Any = None

    def __enter__(self) -> KeyPoller:
        if self.enabled:
            self.fd = sys.stdin.fileno()
            self._old = termios.tcgetattr(self.fd)
            tty.setcbreak(self.fd)
            # Turn off XON/XOFF so Ctrl+Q reaches us.
            attrs = termios.tcgetattr(self.fd)
            attrs[0] &= ~termios.IXON
            termios.tcsetattr(self.fd, termios.TCSANOW, attrs)
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        if self.enabled and self.fd is not None and self._old is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._old)
            self.fd = None

    def poll(self) -> str:
        """Return one pending key, or ``""`` if none is waiting."""
        if not self.enabled or self.fd is None:
            return ""
        ready, _, _ = select.select([self.fd], [], [], 0)
        if not ready:
            return ""
        raw = os.read(self.fd, 1)
        if not raw:
            return ""
        if raw != b"\x1b":
            return raw.decode("utf-8", errors="ignore")

        seq = b""
        deadline = time.monotonic() + 0.05
        while time.monotonic() < deadline:
            rdy, _, _ = select.select([self.fd], [], [], 0.005)
            if not rdy:
                break
            chunk = os.read(self.fd, 1)
            if not chunk:
                break
            seq += chunk
            if seq in _ESCAPES:
                break
        return _ESCAPES.get(seq, KEY_ESC)


class RichTerminal:
    """``TerminalDevice`` implementation on top of ``rich.console.Console``.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    read_input:
        Whether to poll stdin for keys.
    """

    def __init__(self, console: Console | None = None, *, read_input: bool = True) -> None:
        self.console = console or Console(highlight=False, emoji=False)
        self._poller = KeyPoller(enabled=read_input)
        self._style = Style()
        self._active = False

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def begin(self) -> None:
        """Enter the alternate screen, hide the cursor and start reading keys."""
        if self._active:
            return
        self.console.set_alt_screen(True)
        self.console.show_cursor(False)
        self._poller.__enter__()
        self._active = True
        logger.debug("Terminal session started (%s)", self.console.size)

    def end(self) -> None:
        """Restore the terminal exactly as ``begin`` found it."""
        if not self._active:
            return
        self._active = False
        try:
            self._poller.__exit__(None, None, None)
        finally:
            self.console.show_cursor(True)
            self.console.set_alt_screen(False)
            self.flush()

    # ------------------------------------------------------------------
    # TerminalDevice
    # ------------------------------------------------------------------

    def size(self) -> tuple[int, int]:
        dims = self.console.size
        return dims.width, dims.height

    def clear(self) -> None:
        self.console.clear(home=True)

    def move_to(self, x: int, y: int) -> None:
        self.console.control(Control.move_to(x, y))

    def set_colors(self, fg: Color, bg: Color) -> None:
        self._style = Style(color=fg.value, bgcolor=bg.value)

    def write(self, text: str) -> None:
        self.console.print(
            text,
            style=self._style,
            end="",
            markup=False,
            highlight=False,
            emoji=False,
            soft_wrap=True,
        )

    def flush(self) -> None:
        self.console.file.flush()

    def read_keys(self) -> list[str]:
        keys: list[str] = []
        while len(keys) < 64:
            key = self._poller.poll()
            if not key:
                break
            keys.append(key)
        return keys
