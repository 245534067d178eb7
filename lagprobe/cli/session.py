"""Wiring shared by ``lagprobe run`` and ``lagprobe demo``.

Builds every collaborator once and injects it: one registry, one frame
buffer, one cancellation event, one producer and one monitor per replica.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from lagprobe import __version__
from lagprobe.config import ProbeConfig
from lagprobe.console.frame_buffer import FrameBuffer
from lagprobe.console.glyphs import GlyphSet, probe_glyphs
from lagprobe.console.renderer import Renderer, TerminalDevice
from lagprobe.console.terminal import RichTerminal
from lagprobe.core.orchestrator import Orchestrator, RunOutcome
from lagprobe.core.producer import RecordProducer
from lagprobe.core.status_registry import StatusRegistry
from lagprobe.core.target_monitor import TargetMonitor
from lagprobe.models.records import utc_now
from lagprobe.sources.base import DataSource
from lagprobe.ui.activity_log import ActivityLog, configure_logging, reset_logging
from lagprobe.ui.panes import ChromePane, ConfirmPrompt, ProducerPane, ReplicaPane

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Everything one monitoring run needs, already connected together."""

    config: ProbeConfig
    orchestrator: Orchestrator
    registry: StatusRegistry
    activity_log: ActivityLog
    producer: RecordProducer
    monitors: list[TargetMonitor]
    sources: list[DataSource]
    handlers: list[logging.Handler] = field(default_factory=list)

    def run(self, max_frames: int | None = None) -> RunOutcome:
        """Run the orchestrator, then release logging handlers and sources."""
        try:
            return self.orchestrator.run(max_frames)
        finally:
            for source in self.sources:
                try:
                    source.close()
                except Exception as exc:
                    logger.warning("Closing %s failed: %s", source.name, exc)
            reset_logging(self.handlers)


def build_session(
    config: ProbeConfig,
    primary: DataSource,
    replicas: Sequence[tuple[str, DataSource]],
    *,
    terminal: TerminalDevice | None = None,
    teardown: Callable[[], object] | None = None,
    glyphs: GlyphSet | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> Session:
    """Construct a ready-to-run ``Session``.

    Logging is routed into the activity log as a side effect; ``Session.run``
    undoes that on the way out.
    """
    activity_log = ActivityLog()
    handlers = configure_logging(config, activity_log)

    terminal = terminal or RichTerminal()
    glyphs = glyphs or probe_glyphs(os.environ, sys.stdout.encoding)

    stop_event = threading.Event()
    registry = StatusRegistry()
    producer = RecordProducer(primary, registry, config, stop_event=stop_event, clock=clock)
    monitors = [
        TargetMonitor(name, primary, source, registry, config, stop_event=stop_event, clock=clock)
        for name, source in replicas
    ]

    buffer = FrameBuffer()
    renderer = Renderer(buffer, terminal)
    panes = [
        ChromePane(glyphs, __version__),
        ProducerPane(registry, activity_log, glyphs),
        ReplicaPane(registry, glyphs, clock),
    ]
    orchestrator = Orchestrator(
        config,
        registry,
        buffer,
        renderer,
        terminal,
        panes,
        workers=[producer, *monitors],
        teardown=teardown,
        stop_event=stop_event,
        prompt=ConfirmPrompt(glyphs),
    )
    logger.info("lagprobe v%s monitoring %d replica(s)", __version__, len(monitors))
    return Session(
        config=config,
        orchestrator=orchestrator,
        registry=registry,
        activity_log=activity_log,
        producer=producer,
        monitors=monitors,
        sources=[primary, *(source for _, source in replicas)],
        handlers=handlers,
    )
