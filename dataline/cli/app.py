"""Main Typer application — imports and registers all CLI commands.

Entry point: ``dataline`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging
from typing import Optional

import typer

from dataline import __version__
from dataline.cli.commands.log_cmd import log_cmd, registry_cmd
from dataline.cli.commands.project_cmd import project_cmd
from dataline.cli.commands.reconstruct_cmd import reconstruct_cmd
from dataline.cli.commands.validate_cmd import validate_cmd
from dataline.config import DatalineSettings

app = typer.Typer(
    name="dataline",
    help="Dataline: verifiable, append-only projection of source history into artifacts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="project", help="Project source commits onto the data line.")(project_cmd)
app.command(name="reconstruct", help="Materialize a data commit's artifacts.")(reconstruct_cmd)
app.command(name="validate", help="Audit data commits against their source commits.")(validate_cmd)
app.command(name="log", help="Walk the data line from its head.")(log_cmd)
app.command(name="registry", help="Show the artifact registry of a data commit.")(registry_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dataline {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to DATALINE_LOG_LEVEL or INFO).",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    level = (log_level or DatalineSettings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
