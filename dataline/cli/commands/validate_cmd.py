"""``dataline validate [DATA_COMMIT...]`` — audit data commits against their sources.

Exits non-zero if any artifact's recorded, source and staged hashes
disagree, which makes the command usable as a CI gate.
"""

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
    resolve_revision,
    short,
)
from dataline.core.data_line import iter_data_line
from dataline.core.validator import Validator


def validate_cmd(
    data_commits: Optional[list[str]] = typer.Argument(
        None,
        help="Data commits to validate (defaults to the data-line head).",
    ),
    whole_line: bool = typer.Option(
        False,
        "--all",
        help="Validate every data commit reachable from the data-line head.",
    ),
    repo: Optional[Path] = REPO_OPTION,
    data_ref: Optional[str] = DATA_REF_OPTION,
) -> None:
    """Validate data commits; exit code 1 on any mismatch."""
    backend, config = open_repository(repo, data_ref)
    validator = Validator(backend, config)

    try:
        if whole_line:
            head = resolve_data_commit(backend, config, None)
            targets = [c.id for c in iter_data_line(backend, head, config)]
        elif data_commits:
            targets = [resolve_revision(backend, rev) for rev in data_commits]
        else:
            targets = [resolve_data_commit(backend, config, None)]

        reports = [validator.report(target) for target in targets]
    except BackendReadError as exc:
        console.print(f"[bold red]Cannot read data commit:[/bold red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title="Data-line validation")
    table.add_column("Data commit", style="cyan")
    table.add_column("Source", style="cyan")
    table.add_column("Artifact")
    table.add_column("Snapshot hash")
    table.add_column("Result", justify="center")

    for report in reports:
        for check in report.checks:
            result = "[green]OK[/green]" if check.ok else "[bold red]MISMATCH[/bold red]"
            table.add_row(
                short(report.data_commit),
                short(report.original_commit_sha),
                check.name,
                check.recorded_hash[:16],
                result,
            )
    console.print(table)

    failed = [r for r in reports if not r.valid]
    if failed:
        console.print(
            f"[bold red]{len(failed)} of {len(reports)} data commit(s) failed validation.[/bold red]"
        )
        raise typer.Exit(code=1)
    console.print(f"[bold green]{len(reports)} data commit(s) valid.[/bold green]")
