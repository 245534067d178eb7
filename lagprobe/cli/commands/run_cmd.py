"""``lagprobe run`` — the full-screen monitor against configured SQLite stores."""

from __future__ import annotations

from functools import partial
from pathlib import Path

import typer

from lagprobe.cli.commands._common import config_or_exit, console, open_stores
from lagprobe.cli.session import build_session
from lagprobe.core.orchestrator import RunOutcome
from lagprobe.sources.base import DataSourceError
from lagprobe.sources.provisioning import provision, teardown


def run_cmd(
    primary: str = typer.Option(None, "--primary", "-p", help="Primary database file."),
    replica: list[str] = typer.Option(
        None, "--replica", "-r", help="Replica as NAME=PATH (repeatable)."
    ),
    table: str = typer.Option(None, "--table", help="Probe table name."),
    write_interval: int = typer.Option(
        None, "--write-interval", help="Milliseconds between writes."
    ),
    refresh_interval: int = typer.Option(
        None, "--refresh-interval", help="Milliseconds per screen refresh."
    ),
    log_level: str = typer.Option(None, "--log-level", help="Activity log level."),
    log_file: Path = typer.Option(None, "--log-file", help="Also log to this file."),
) -> None:
    """Write probe records to the primary and watch them arrive on the replicas.

    Options left unset fall back to ``LAGPROBE_*`` environment variables
    and the ``.env`` file.
    """
    config = config_or_exit(
        primary=primary,
        replicas=replica,
        table_name=table,
        write_interval_ms=write_interval,
        refresh_interval_ms=refresh_interval,
        log_level=log_level,
        log_file=log_file,
    )

    try:
        provision(config.primary, config.table_name)
    except DataSourceError as exc:
        console.print(f"[red]Cannot prepare primary:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    primary_store, replica_stores = open_stores(config)
    session = build_session(
        config,
        primary_store,
        replica_stores,
        teardown=partial(teardown, config.primary, config.table_name),
    )
    outcome = session.run()

    stats = session.registry.producer_stats()
    console.print(
        f"[green]Stopped[/green] after {stats.total_records} records "
        f"(last sequence {stats.last_sequence}, {stats.error_count} errors)."
    )
    if outcome is RunOutcome.CLEANED_UP:
        console.print(
            f"[yellow]Dropped table[/yellow] {config.table_name} from {config.primary}; "
            "the database file was kept."
        )
    elif outcome is RunOutcome.CLEANUP_FAILED:
        console.print(
            f"[red]Cleanup failed:[/red] {session.orchestrator.cleanup_error}; "
            f"{config.table_name} was left in {config.primary}."
        )
        raise typer.Exit(code=1)
