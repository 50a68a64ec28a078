"""Shared plumbing for CLI commands: settings, backend, revision resolution."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from dataline.backends.git import GitBackend
from dataline.config import DatalineSettings
from dataline.models.config import ProjectionConfig

console = Console()

REPO_OPTION = typer.Option(
    None,
    "--repo",
    "-r",
    help="Repository path (defaults to DATALINE_REPO_PATH or the current directory).",
)
DATA_REF_OPTION = typer.Option(
    None,
    "--data-ref",
    help="Data-line ref (defaults to DATALINE_DATA_REF).",
)


def open_repository(
    repo: Path | None, data_ref: str | None
) -> tuple[GitBackend, ProjectionConfig]:
    """Build the backend and projection config from settings plus CLI overrides."""
    settings = DatalineSettings()
    overrides: dict[str, object] = {}
    if repo is not None:
        overrides["repo_path"] = repo
    if data_ref is not None:
        overrides["data_ref"] = data_ref
    if overrides:
        settings = settings.model_copy(update=overrides)

    if not settings.repo_path.exists():
        console.print(f"[bold red]Repository not found:[/bold red] {settings.repo_path}")
        raise typer.Exit(code=1)

    backend = GitBackend(settings.repo_path, git_binary=settings.git_binary)
    return backend, settings.projection_config()


def resolve_revision(backend: GitBackend, revision: str) -> str:
    """Full commit id for ``revision``; exits with code 1 if it does not resolve."""
    commit_id = backend.resolve_ref(revision)
    if commit_id is None:
        console.print(f"[bold red]Unknown revision:[/bold red] {revision}")
        raise typer.Exit(code=1)
    return commit_id


def resolve_data_commit(
    backend: GitBackend, config: ProjectionConfig, revision: str | None
) -> str:
    """``revision`` if given, else the current head of the data line."""
    if revision is not None:
        return resolve_revision(backend, revision)
    head = backend.resolve_ref(config.data_ref)
    if head is None:
        console.print(f"[yellow]Data line {config.data_ref} does not exist yet.[/yellow]")
        raise typer.Exit(code=1)
    return head


def short(commit_id: str | None) -> str:
    return commit_id[:12] if commit_id else "-"
