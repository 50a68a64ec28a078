"""Dataline CLI: Typer-based command-line interface.

Provides the ``dataline`` command with subcommands for projecting source
commits, reconstructing and validating data commits, and inspecting the
data line and its artifact registry.

All output uses Rich for formatted terminal display.
"""
