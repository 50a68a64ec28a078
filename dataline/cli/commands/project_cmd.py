"""``dataline project [REVISION...]`` — project source commits onto the data line.

Each revision is projected in the order given.  Revisions already on the
data line are reported as existing and leave the data ref untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from dataline.backends.base import BackendReadError, BackendWriteError
from dataline.cli.commands.common import (
    DATA_REF_OPTION,
    REPO_OPTION,
    console,
    open_repository,
    resolve_revision,
    short,
)
from dataline.core.partitioner import ManifestParseError
from dataline.core.projector import ConcurrentProjectionConflict, IntegrityError, Projector


def project_cmd(
    revisions: Optional[list[str]] = typer.Argument(
        None,
        help="Source revisions to project (defaults to HEAD).",
    ),
    repo: Optional[Path] = REPO_OPTION,
    data_ref: Optional[str] = DATA_REF_OPTION,
) -> None:
    """Project one or more source commits onto the data line."""
    backend, config = open_repository(repo, data_ref)
    projector = Projector(backend, config)

    table = Table(title=f"Projection onto {config.data_ref}")
    table.add_column("Source", style="cyan")
    table.add_column("Data commit", style="green")
    table.add_column("Status")
    table.add_column("Artifacts")
    table.add_column("Attempts", justify="right")

    for revision in revisions or ["HEAD"]:
        source = resolve_revision(backend, revision)
        try:
            outcome = projector.project_outcome(source)
        except IntegrityError as exc:
            console.print(f"[bold red]Integrity failure:[/bold red] {exc}")
            raise typer.Exit(code=2)
        except (
            ManifestParseError,
            ConcurrentProjectionConflict,
            BackendReadError,
            BackendWriteError,
        ) as exc:
            console.print(f"[bold red]Projection of {revision} failed:[/bold red] {exc}")
            raise typer.Exit(code=1)

        status = "[green]created[/green]" if outcome.created else "[dim]existing[/dim]"
        table.add_row(
            short(outcome.source_commit),
            outcome.data_commit,
            status,
            ", ".join(outcome.artifacts),
            str(outcome.attempts),
        )

    console.print(table)
