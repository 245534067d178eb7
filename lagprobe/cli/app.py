"""Main Typer application — imports and registers all CLI commands.

Entry point: ``lagprobe`` (configured via pyproject.toml console_scripts).

Commands: run, demo, check, provision, teardown.
"""

from __future__ import annotations

import typer

from lagprobe.cli.commands.check import check_cmd
from lagprobe.cli.commands.demo import demo_cmd
from lagprobe.cli.commands.provision import provision_cmd, teardown_cmd
from lagprobe.cli.commands.run_cmd import run_cmd

app = typer.Typer(
    name="lagprobe",
    help="lagprobe: live replication lag and gap monitor for a primary and its replicas.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Write probe records and monitor the replicas live.")(run_cmd)
app.command(name="demo", help="Run the live monitor against simulated replicas.")(demo_cmd)
app.command(name="check", help="Measure every replica once and print a table.")(check_cmd)
app.command(name="provision", help="Create the probe table on the primary.")(provision_cmd)
app.command(name="teardown", help="Drop the probe table from the primary.")(teardown_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
