"""``dataline log`` and ``dataline registry`` — inspect the data line."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from dataline.backends.base import BackendReadError
from dataline.cli.commands.common import (
    DATA_REF_OPTION,
    REPO_OPTION,
    console,
    open_repository,
    resolve_data_commit,
    short,
)
from dataline.core.data_line import iter_data_line, registry_as_of
from dataline.core.registry import read_registry


def log_cmd(
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=1,
        help="Show at most this many data commits.",
    ),
    repo: Optional[Path] = REPO_OPTION,
    data_ref: Optional[str] = DATA_REF_OPTION,
) -> None:
    """List data commits from the head back to the root."""
    backend, config = open_repository(repo, data_ref)
    head = resolve_data_commit(backend, config, None)

    table = Table(title=f"Data line {config.data_ref}")
    table.add_column("Data commit", style="green")
    table.add_column("Source", style="cyan")
    table.add_column("Source parents")
    table.add_column("Artifacts")

    try:
        for position, data_commit in enumerate(iter_data_line(backend, head, config)):
            if limit is not None and position >= limit:
                break
            metadata = data_commit.metadata
            table.add_row(
                short(data_commit.id),
                short(metadata.original_commit_sha),
                " ".join(short(p) for p in metadata.source_parent_shas) or "-",
                ", ".join(metadata.artifact_names),
            )
    except BackendReadError as exc:
        console.print(f"[bold red]Cannot walk the data line:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(table)


def registry_cmd(
    data_commit: Optional[str] = typer.Argument(
        None,
        help="Data commit whose registry to show (defaults to the data-line head).",
    ),
    stored: bool = typer.Option(
        False,
        "--stored",
        help="Show the registry exactly as stored, without the commit's own artifacts.",
    ),
    repo: Optional[Path] = REPO_OPTION,
    data_ref: Optional[str] = DATA_REF_OPTION,
) -> None:
    """Show the per-artifact registry as of a data commit."""
    backend, config = open_repository(repo, data_ref)
    commit_id = resolve_data_commit(backend, config, data_commit)

    try:
        if stored:
            registry = read_registry(backend, commit_id, config.registry_path)
        else:
            registry = registry_as_of(backend, commit_id, config)
    except BackendReadError as exc:
        console.print(f"[bold red]Cannot read registry:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if not registry.entries:
        console.print("[dim]Registry is empty.[/dim]")
        return

    table = Table(title=f"Artifact registry at {short(commit_id)}")
    table.add_column("Artifact", style="cyan")
    table.add_column("Latest", style="green")
    table.add_column("History", justify="right")

    for name in registry.names():
        entry = registry.entries[name]
        table.add_row(name, entry.latest, str(len(entry.history)))

    console.print(table)
