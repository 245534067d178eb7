"""lagprobe CLI — Typer-based command-line interface.

Provides the ``lagprobe`` command with subcommands for the live monitor
(``run``, ``demo``), one-shot measurement (``check``) and probe table
management (``provision``, ``teardown``).

All output outside the full-screen monitor uses Rich.
"""
