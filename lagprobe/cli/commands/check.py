"""``lagprobe check`` — one measurement per replica, printed as a table.

Runs a single monitor iteration against each configured replica without
writing anything, so it is safe to point at production stores.
"""

from __future__ import annotations

import typer
from rich.table import Table

from lagprobe.cli.commands._common import config_or_exit, console, open_stores
from lagprobe.core.status_registry import StatusRegistry
from lagprobe.core.target_monitor import TargetMonitor
from lagprobe.models.status import SCAN_FAILED, SummaryLevel, TargetStatus
from lagprobe.ui.panes import format_lag

_STATUS_MARKUP: dict[TargetStatus, str] = {
    TargetStatus.CONNECTED: "[green]ONLINE[/green]",
    TargetStatus.DISCONNECTED: "[yellow]OFFLINE[/yellow]",
    TargetStatus.ERROR: "[bold red]ERROR[/bold red]",
    TargetStatus.UNKNOWN: "[dim]UNKNOWN[/dim]",
}

_LEVEL_STYLE: dict[SummaryLevel, str] = {
    SummaryLevel.NONE: "dim",
    SummaryLevel.OK: "green",
    SummaryLevel.WARN: "yellow",
    SummaryLevel.BAD: "bold red",
}


def check_cmd(
    primary: str = typer.Option(None, "--primary", "-p", help="Primary database file."),
    replica: list[str] = typer.Option(
        None, "--replica", "-r", help="Replica as NAME=PATH (repeatable)."
    ),
    table: str = typer.Option(None, "--table", help="Probe table name."),
) -> None:
    """Measure every replica once and print the result."""
    config = config_or_exit(primary=primary, replicas=replica, table_name=table)
    primary_store, replica_stores = open_stores(config, read_only_primary=True)
    registry = StatusRegistry()

    for name, source in replica_stores:
        monitor = TargetMonitor(name, primary_store, source, registry, config)
        try:
            monitor.run_once()
        finally:
            monitor.join(0)

    table_view = Table(title=f"Replication lag - {config.table_name}")
    table_view.add_column("Replica", style="cyan")
    table_view.add_column("Status")
    table_view.add_column("Time lag", justify="right")
    table_view.add_column("Records", justify="right")
    table_view.add_column("Sequences", justify="right")
    table_view.add_column("Missing", justify="right")
    table_view.add_column("Detail")

    for snap in registry.get_all().values():
        if snap.missing_count == SCAN_FAILED:
            missing = "[yellow]scan failed[/yellow]"
        elif snap.missing_count:
            missing = f"[red]{snap.missing_count}[/red]"
        else:
            missing = "0"
        table_view.add_row(
            snap.name,
            _STATUS_MARKUP[snap.status],
            format_lag(snap.time_lag) if snap.time_lag is not None else "-",
            "-" if snap.record_lag is None else str(snap.record_lag),
            "-" if snap.sequence_lag is None else str(snap.sequence_lag),
            missing,
            snap.last_error or "",
        )

    console.print(table_view)
    headline, level = registry.summary().headline()
    console.print(f"[{_LEVEL_STYLE[level]}]{headline}[/{_LEVEL_STYLE[level]}]")
    if level is SummaryLevel.BAD:
        raise typer.Exit(code=1)
