"""Helpers shared by the CLI commands."""

from __future__ import annotations

from typing import Any

import typer
from rich.console import Console

from lagprobe.config import ConfigurationError, ProbeConfig, ReplicaTarget, load_config
from lagprobe.sources.sqlite import SqliteDataSource

console = Console()

CONFIG_ERROR_EXIT = 2


def parse_replicas(values: list[str] | None) -> list[ReplicaTarget] | None:
    """Turn ``NAME=PATH`` options into ``ReplicaTarget`` entries."""
    if not values:
        return None
    targets = []
    errors = []
    for value in values:
        name, sep, dsn = value.partition("=")
        if not sep:
            errors.append(f"Replica '{value}' must be given as NAME=PATH")
            continue
        targets.append(ReplicaTarget(name=name.strip(), dsn=dsn.strip()))
    if errors:
        raise ConfigurationError(errors)
    return targets


def config_or_exit(*, require_stores: bool = True, **overrides: Any) -> ProbeConfig:
    """Load the configuration or print every problem and exit with code 2."""
    try:
        if "replicas" in overrides:
            overrides["replicas"] = parse_replicas(overrides["replicas"])
        return load_config(require_stores=require_stores, **overrides)
    except ConfigurationError as exc:
        console.print("[bold red]Configuration error[/bold red]")
        for error in exc.errors:
            console.print(f"  [red]-[/red] {error}")
        raise typer.Exit(code=CONFIG_ERROR_EXIT) from exc


def open_stores(
    config: ProbeConfig, *, read_only_primary: bool = False
) -> tuple[SqliteDataSource, list[tuple[str, SqliteDataSource]]]:
    """Every replica read-only; the primary too when *read_only_primary* is set."""
    primary = SqliteDataSource(
        config.primary,
        config.table_name,
        name="primary",
        read_only=read_only_primary,
        timeout=config.query_timeout_seconds,
    )
    replicas = [
        (
            target.name,
            SqliteDataSource(
                target.dsn,
                config.table_name,
                name=target.name,
                read_only=True,
                timeout=config.query_timeout_seconds,
            ),
        )
        for target in config.replicas
    ]
    return primary, replicas
