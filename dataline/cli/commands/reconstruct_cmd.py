"""``dataline reconstruct [DATA_COMMIT] --output DIR`` — materialize artifacts.

Writes one artifact (``--artifact``) directly into the output directory, or
every artifact into its own subdirectory, then verifies the result by hash.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel

from dataline.backends.base import BackendReadError
from dataline.cli.commands.common import (
    DATA_REF_OPTION,
    REPO_OPTION,
    console,
    open_repository,
    resolve_data_commit,
)
from dataline.core.reconstructor import ArtifactNotFoundError, Reconstructor


def reconstruct_cmd(
    data_commit: Optional[str] = typer.Argument(
        None,
        help="Data commit to reconstruct (defaults to the data-line head).",
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output directory; its previous contents are removed.",
    ),
    artifact: Optional[str] = typer.Option(
        None,
        "--artifact",
        "-a",
        help="Reconstruct only this artifact.",
    ),
    repo: Optional[Path] = REPO_OPTION,
    data_ref: Optional[str] = DATA_REF_OPTION,
) -> None:
    """Materialize the artifacts of a data commit and verify their hashes."""
    backend, config = open_repository(repo, data_ref)
    commit_id = resolve_data_commit(backend, config, data_commit)

    try:
        verified = Reconstructor(backend, config).reconstruct(commit_id, output, artifact)
    except ArtifactNotFoundError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)
    except BackendReadError as exc:
        console.print(f"[bold red]Cannot read data commit:[/bold red] {exc}")
        raise typer.Exit(code=1)

    what = f"artifact [bold]{artifact}[/bold]" if artifact else "all artifacts"
    if verified:
        console.print(
            Panel(
                f"Reconstructed {what} of {commit_id}\ninto {output}",
                title="[green]Verified[/green]",
                border_style="green",
            )
        )
        return

    console.print(
        Panel(
            f"Reconstructed {what} of {commit_id} into {output},\n"
            "but the result does not match the recorded snapshot hash.",
            title="[red]Hash mismatch[/red]",
            border_style="red",
        )
    )
    raise typer.Exit(code=1)
