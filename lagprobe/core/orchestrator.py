"""Orchestrator — owns the frame loop and the lifecycle of every worker.

Nothing here is global: the registry, frame buffer, renderer, terminal,
panes and workers are all built by the caller and handed in.  One shared
``threading.Event`` cancels the producer, every monitor and this loop.

Per frame
---------
1. Query the terminal size; on change, resize the buffer, force a full
   redraw and tell every pane about the new layout.
2. Below the minimum size, paint the "too small" notice instead and only
   honour quit keys until the terminal grows again.
3. Let each pane paint its region, then render the diff.
4. Drain pending keys and dispatch them.
5. Sleep for whatever is left of the frame budget.  An overrun is logged
   (at most every ``OVERRUN_LOG_INTERVAL`` seconds) but no frame is skipped.

Cleanup is strictly sequenced: cancel, wait (bounded) for the workers to
stop, restore the terminal, and only then run the teardown callable.  A
store error from the teardown is kept in ``cleanup_error`` and reported as
``RunOutcome.CLEANUP_FAILED``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Protocol

from lagprobe.config import ProbeConfig
from lagprobe.console.frame_buffer import FrameBuffer
from lagprobe.console.renderer import Renderer, TerminalDevice
from lagprobe.console.terminal import (
    KEY_CTRL_C,
    KEY_CTRL_Q,
    KEY_ESC,
    KEY_F1,
    KEY_F5,
    KEY_F12,
)
from lagprobe.core.status_registry import StatusRegistry
from lagprobe.sources.base import DataSourceError
from lagprobe.ui.layout import ScreenLayout
from lagprobe.ui.panes import ConfirmPrompt, Pane, TooSmallScreen

logger = logging.getLogger(__name__)

OVERRUN_LOG_INTERVAL = 30.0
HELP_TEXT = (
    "Keys: Q/ESC quit, R refresh, H help, P render stats, "
    "Ctrl+Q drop probe table and exit"
)


class Command(str, Enum):
    """What a key press asks the orchestrator to do."""

    QUIT = "quit"
    REDRAW = "redraw"
    HELP = "help"
    STATS = "stats"
    REQUEST_CLEANUP = "request_cleanup"
    CLEANUP = "cleanup"


class RunOutcome(str, Enum):
    """How ``Orchestrator.run`` ended."""

    QUIT = "quit"
    CLEANED_UP = "cleaned_up"
    CLEANUP_FAILED = "cleanup_failed"


KEY_COMMANDS: dict[str, Command] = {
    "q": Command.QUIT,
    "Q": Command.QUIT,
    KEY_ESC: Command.QUIT,
    KEY_CTRL_C: Command.QUIT,
    "r": Command.REDRAW,
    "R": Command.REDRAW,
    KEY_F5: Command.REDRAW,
    "h": Command.HELP,
    "H": Command.HELP,
    KEY_F1: Command.HELP,
    "p": Command.STATS,
    "P": Command.STATS,
    KEY_F12: Command.STATS,
    KEY_CTRL_Q: Command.REQUEST_CLEANUP,
}

_QUIT_KEYS = frozenset(k for k, c in KEY_COMMANDS.items() if c is Command.QUIT)


class Worker(Protocol):
    """A background loop the orchestrator starts and waits for."""

    name: str

    def start(self) -> None: ...

    def join(self, timeout: float | None = None) -> bool: ...


class Orchestrator:
    """Frame loop plus worker lifecycle.

    Parameters
    ----------
    config:
        Frame interval, minimum size and shutdown timeout.
    registry:
        Shared status registry (only read here, through the panes).
    buffer:
        The frame buffer every pane paints into.
    renderer:
        Renders ``buffer`` onto ``terminal``.
    terminal:
        Size, input and session control.
    panes:
        Painted in order on every normal frame.
    workers:
        Producer and monitors; started by ``run`` and joined on the way out.
    teardown:
        Destructive cleanup run after every worker has stopped, when the
        user confirms it.  ``None`` disables the cleanup key.
    stop_event:
        Shared cancellation signal.
    """

    def __init__(
        self,
        config: ProbeConfig,
        registry: StatusRegistry,
        buffer: FrameBuffer,
        renderer: Renderer,
        terminal: TerminalDevice,
        panes: Sequence[Pane],
        *,
        workers: Sequence[Worker] = (),
        teardown: Callable[[], object] | None = None,
        stop_event: threading.Event | None = None,
        too_small: TooSmallScreen | None = None,
        prompt: ConfirmPrompt | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.buffer = buffer
        self.renderer = renderer
        self.terminal = terminal
        self.panes = list(panes)
        self.workers = list(workers)
        self.teardown = teardown
        self.stop_event = stop_event or threading.Event()
        self.too_small = too_small or TooSmallScreen(config.min_width, config.min_height)
        self.prompt = prompt

        self.layout = ScreenLayout(buffer.width, buffer.height)
        self.confirming = False
        self.cleanup_error: DataSourceError | None = None
        self.frames = 0
        self._last_overrun_log = float("-inf")
        self._was_too_small = False

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(self, max_frames: int | None = None) -> RunOutcome:
        """Start the workers, drive frames until quit, then shut down.

        Parameters
        ----------
        max_frames:
            Stop after this many frames (tests and smoke runs).
        """
        self.terminal.begin()
        outcome = RunOutcome.QUIT
        try:
            for worker in self.workers:
                worker.start()
            logger.info("Started %d worker(s)", len(self.workers))
            outcome = self._loop(max_frames)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            outcome = RunOutcome.QUIT
        finally:
            self.stop()
            self.shutdown()
            self.terminal.end()

        if outcome is RunOutcome.CLEANED_UP and self.teardown is not None:
            logger.warning("Running cleanup")
            try:
                self.teardown()
            except DataSourceError as exc:
                self.cleanup_error = exc
                logger.error("Cleanup failed: %s", exc)
                return RunOutcome.CLEANUP_FAILED
            logger.info("Cleanup completed successfully")
        return outcome

    def stop(self) -> None:
        """Signal cancellation to every worker and to the frame loop."""
        self.stop_event.set()

    def shutdown(self) -> list[str]:
        """Join every worker within the shutdown budget.

        Returns the names of workers that had not stopped in time.
        """
        deadline = time.monotonic() + self.config.shutdown_timeout_seconds
        stuck: list[str] = []
        for worker in self.workers:
            remaining = max(0.0, deadline - time.monotonic())
            if not worker.join(remaining):
                stuck.append(worker.name)
        if stuck:
            logger.warning(
                "Worker(s) still running after %.1fs: %s",
                self.config.shutdown_timeout_seconds,
                ", ".join(stuck),
            )
        else:
            logger.info("All workers stopped")
        return stuck

    def _loop(self, max_frames: int | None) -> RunOutcome:
        interval = self.config.refresh_interval
        while not self.stop_event.is_set():
            started = time.monotonic()
            outcome = self.frame()
            if outcome is not None:
                return outcome
            if max_frames is not None and self.frames >= max_frames:
                break

            elapsed = time.monotonic() - started
            remaining = interval - elapsed
            if remaining > 0:
                self.stop_event.wait(remaining)
            else:
                self._log_overrun(elapsed, interval)
        return RunOutcome.QUIT

    def _log_overrun(self, elapsed: float, interval: float) -> None:
        now = time.monotonic()
        if now - self._last_overrun_log >= OVERRUN_LOG_INTERVAL:
            logger.warning(
                "Frame took %.0fms (budget %.0fms)", elapsed * 1000, interval * 1000
            )
            self._last_overrun_log = now

    # ------------------------------------------------------------------
    # One frame
    # ------------------------------------------------------------------

    def frame(self) -> RunOutcome | None:
        """Size check, paint, render, input.  Returns an outcome to stop."""
        self.frames += 1
        width, height = self.terminal.size()
        if (width, height) != self.buffer.size:
            self.resize(width, height)

        if width < self.config.min_width or height < self.config.min_height:
            if not self._was_too_small:
                logger.warning(
                    "Terminal %dx%d is below the minimum %dx%d",
                    width,
                    height,
                    self.config.min_width,
                    self.config.min_height,
                )
                self._was_too_small = True
            self.too_small.paint(self.buffer)
            self.renderer.render()
            keys = self.terminal.read_keys()
            if any(key in _QUIT_KEYS for key in keys):
                return RunOutcome.QUIT
            return None

        if self._was_too_small:
            self._was_too_small = False
            self.buffer.invalidate()

        for pane in self.panes:
            pane.paint(self.buffer, self.layout)
        if self.confirming and self.prompt is not None:
            self.prompt.paint(self.buffer)
        self.renderer.render()

        return self.handle_keys(self.terminal.read_keys())

    def resize(self, width: int, height: int) -> None:
        self.buffer.resize(width, height)
        self.layout = ScreenLayout(width, height)
        for pane in self.panes:
            pane.on_resize(self.layout)
        logger.debug("Resized: %s", self.layout.describe())

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def handle_keys(self, keys: Sequence[str]) -> RunOutcome | None:
        """Dispatch pending keys in order; stop at the first that ends the run."""
        for key in keys:
            if self.confirming:
                command = Command.CLEANUP if key in ("y", "Y") else None
                self.confirming = False
                if command is None:
                    logger.info("Cleanup cancelled")
                    continue
            else:
                command = KEY_COMMANDS.get(key)
                if command is None:
                    continue
            outcome = self.dispatch(command)
            if outcome is not None:
                return outcome
        return None

    def dispatch(self, command: Command) -> RunOutcome | None:
        if command is Command.QUIT:
            logger.info("Quit requested")
            return RunOutcome.QUIT
        if command is Command.REDRAW:
            self.buffer.invalidate()
            logger.info("Screen refreshed")
        elif command is Command.HELP:
            logger.info(HELP_TEXT)
        elif command is Command.STATS:
            logger.info(self.renderer.performance_summary())
            logger.info(self.layout.describe())
        elif command is Command.REQUEST_CLEANUP:
            if self.teardown is None:
                logger.warning("Cleanup is not available for this run")
            else:
                self.confirming = True
                logger.warning("Cleanup requested - press Y to confirm")
        elif command is Command.CLEANUP:
            logger.warning("Cleanup confirmed - stopping workers")
            return RunOutcome.CLEANED_UP
        return None
