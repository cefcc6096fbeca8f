"""``logstreamer log`` — dump a build's console log once and exit.

Reads everything the server has right now by chaining progressive reads,
then prints it.  ANSI colors in the log pass through untouched.
"""

from __future__ import annotations

import typer
from rich.markup import escape

from logstreamer.bridge.jenkins import JenkinsError, fetch_full_log
from logstreamer.cli.commands._common import (
    TOKEN_HELP,
    URL_HELP,
    USER_HELP,
    configure_logging,
    console,
    endpoint_for,
    resolve_settings,
)
from logstreamer.text.wordwrap import wrap


def log_cmd(
    url: str = typer.Option(None, "--url", "-u", help=URL_HELP),
    user: str = typer.Option(None, "--user", help=USER_HELP),
    token: str = typer.Option(None, "--token", help=TOKEN_HELP),
    build: int = typer.Option(
        None, "--build", "-b", help="Build number (defaults to the last build)."
    ),
    width: int = typer.Option(
        0, "--width", "-w", min=0, help="Wrap lines at this width (0 disables)."
    ),
    indent: int = typer.Option(
        None, "--indent", min=0, help="Indent continuation lines of wrapped lines."
    ),
) -> None:
    """Print the full console log of a build."""
    settings = resolve_settings(url=url, user=user, token=token, indent_wrapped=indent)
    configure_logging(settings, interactive=False)

    try:
        text = fetch_full_log(
            endpoint_for(settings),
            build_number=build,
            timeout=settings.request_timeout,
        )
    except JenkinsError as exc:
        console.print(f"[bold red]Log request failed:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    if width:
        text = wrap(text, width, indent_wrapped=settings.indent_wrapped)
    # color=True keeps the log's own escape codes even when piped
    typer.echo(text, nl=not text.endswith("\n"), color=True)
