"""Command-line interface for work order sync."""

from __future__ import annotations

import typer

from .cli_commands import maintenance_commands, push_commands, stack_commands

app = typer.Typer(
    name="workorder-sync",
    help="Stack work order notes and sync them to the remote service system.",
    no_args_is_help=True,
)

stack_commands.register(app)
push_commands.register(app)
maintenance_commands.register(app)


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
