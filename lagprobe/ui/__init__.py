"""lagprobe screen — layout, activity log and the panes painted every frame.

Modules
-------
activity_log
    ``ActivityLog`` plus the ``logging`` handler that feeds it.
layout
    ``ScreenLayout`` — rows and columns of every region.
panes
    ``ChromePane``, ``ProducerPane``, ``ReplicaPane``, ``TooSmallScreen``
    and ``ConfirmPrompt``.
"""

from lagprobe.ui.activity_log import (
    ActivityLog,
    ActivityLogHandler,
    configure_logging,
    reset_logging,
)
from lagprobe.ui.layout import ScreenLayout
from lagprobe.ui.panes import (
    ChromePane,
    ConfirmPrompt,
    Pane,
    ProducerPane,
    ReplicaPane,
    TooSmallScreen,
)

__all__ = [
    "ActivityLog",
    "ActivityLogHandler",
    "ChromePane",
    "ConfirmPrompt",
    "Pane",
    "ProducerPane",
    "ReplicaPane",
    "ScreenLayout",
    "TooSmallScreen",
    "configure_logging",
    "reset_logging",
]
