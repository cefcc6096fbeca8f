"""Main Typer application — imports and registers all CLI commands.

Entry point: ``logstreamer`` (configured via pyproject.toml scripts).

Commands: stream, status, log.
"""

from __future__ import annotations

import typer

from logstreamer.cli.commands.log_cmd import log_cmd
from logstreamer.cli.commands.status_cmd import status_cmd
from logstreamer.cli.commands.stream_cmd import stream_cmd

app = typer.Typer(
    name="logstreamer",
    help="Stream the console log of a Jenkins job to your terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="stream", help="Follow the job's console log live.")(stream_cmd)
app.command(name="status", help="Show the status of the last build.")(status_cmd)
app.command(name="log", help="Print a build's console log and exit.")(log_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
