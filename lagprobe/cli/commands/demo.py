"""``lagprobe demo`` — the full-screen monitor over in-memory stores.

Needs no database.  The primary is an ``InMemoryStore``; each replica is
a ``SimulatedReplica`` trailing it by a fixed delay.  One replica loses
every ``--drop-every``-th record so the gap scan has something to find,
and ``--failing`` adds a replica whose every call errors.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import typer

from lagprobe.cli.commands._common import config_or_exit, console
from lagprobe.cli.session import build_session
from lagprobe.core.orchestrator import RunOutcome
from lagprobe.models.records import utc_now
from lagprobe.sources.base import DataSource, DataSourceError
from lagprobe.sources.memory import InMemoryStore, SimulatedReplica

DROP_HORIZON = 1_000_000


def build_demo_stores(
    *,
    drop_every: int = 97,
    failing: bool = False,
) -> tuple[InMemoryStore, list[tuple[str, DataSource]]]:
    """Primary plus the simulated replica set used by the demo."""
    primary = InMemoryStore("primary")
    east = SimulatedReplica(primary, "replica-east", delay=timedelta(milliseconds=50))
    west = SimulatedReplica(primary, "replica-west", delay=timedelta(seconds=1.5))
    replicas: list[tuple[str, DataSource]] = [("replica-east", east), ("replica-west", west)]
    if drop_every > 0:
        lossy = SimulatedReplica(
            primary,
            "replica-lossy",
            delay=timedelta(milliseconds=300),
            dropped=range(drop_every, DROP_HORIZON, drop_every),
        )
        replicas.append(("replica-lossy", lossy))
    if failing:
        broken = SimulatedReplica(primary, "replica-down")
        broken.fail_with(DataSourceError("connection refused"))
        replicas.append(("replica-down", broken))
    return primary, replicas


def demo_cmd(
    drop_every: int = typer.Option(
        97, "--drop-every", help="The lossy replica loses every Nth record (0 disables it)."
    ),
    failing: bool = typer.Option(
        False, "--failing/--no-failing", help="Add a replica that always errors."
    ),
    write_interval: int = typer.Option(
        None, "--write-interval", help="Milliseconds between writes."
    ),
    refresh_interval: int = typer.Option(
        None, "--refresh-interval", help="Milliseconds per screen refresh."
    ),
) -> None:
    """Run the live monitor against simulated replicas."""
    config = config_or_exit(
        require_stores=False,
        write_interval_ms=write_interval,
        refresh_interval_ms=refresh_interval,
    )
    primary, replicas = build_demo_stores(drop_every=drop_every, failing=failing)

    def clear_primary() -> int:
        return primary.purge_older_than(utc_now() + timedelta(days=1))

    session = build_session(config, primary, replicas, teardown=clear_primary)
    outcome = session.run()

    stats = session.registry.producer_stats()
    console.print(
        f"[green]Demo finished[/green] at {datetime.now():%H:%M:%S}: "
        f"{stats.total_records} records written."
    )
    if outcome is RunOutcome.CLEANED_UP:
        console.print("[yellow]In-memory primary cleared.[/yellow]")
