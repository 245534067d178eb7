"""``lagprobe provision`` / ``lagprobe teardown`` — manage the probe table."""

from __future__ import annotations

import typer

from lagprobe.cli.commands._common import config_or_exit, console
from lagprobe.sources.base import DataSourceError
from lagprobe.sources.provisioning import provision, teardown


def provision_cmd(
    primary: str = typer.Option(None, "--primary", "-p", help="Primary database file."),
    table: str = typer.Option(None, "--table", help="Probe table name."),
) -> None:
    """Create the probe table and its index on the primary."""
    config = config_or_exit(require_stores=False, primary=primary, table_name=table)
    if not config.primary.strip():
        console.print("[red]A primary database file is required.[/red]")
        raise typer.Exit(code=2)
    try:
        provision(config.primary, config.table_name)
    except DataSourceError as exc:
        console.print(f"[red]Provisioning failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[green]Ready:[/green] {config.table_name} in {config.primary}")


def teardown_cmd(
    primary: str = typer.Option(None, "--primary", "-p", help="Primary database file."),
    table: str = typer.Option(None, "--table", help="Probe table name."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Drop the probe table from the primary.  The database file is kept."""
    config = config_or_exit(require_stores=False, primary=primary, table_name=table)
    if not config.primary.strip():
        console.print("[red]A primary database file is required.[/red]")
        raise typer.Exit(code=2)
    if not yes:
        typer.confirm(
            f"Drop {config.table_name} from {config.primary}?", abort=True
        )
    try:
        dropped = teardown(config.primary, config.table_name)
    except DataSourceError as exc:
        console.print(f"[red]Teardown failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    if dropped:
        console.print(f"[yellow]Dropped[/yellow] {config.table_name} from {config.primary}")
    else:
        console.print(f"[dim]Nothing to do: {config.primary} does not exist.[/dim]")
