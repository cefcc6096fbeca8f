"""``logstreamer status`` — print the status of the job's last build."""

from __future__ import annotations

import typer
from rich.markup import escape

from logstreamer.bridge.jenkins import JenkinsError, fetch_status
from logstreamer.cli.commands._common import (
    TOKEN_HELP,
    URL_HELP,
    USER_HELP,
    configure_logging,
    console,
    endpoint_for,
    resolve_settings,
)
from logstreamer.monitor.renderer import StreamRenderer


def status_cmd(
    url: str = typer.Option(None, "--url", "-u", help=URL_HELP),
    user: str = typer.Option(None, "--user", help=USER_HELP),
    token: str = typer.Option(None, "--token", help=TOKEN_HELP),
) -> None:
    """Show name, start time, result and progress of the last build."""
    settings = resolve_settings(url=url, user=user, token=token)
    configure_logging(settings, interactive=False)

    try:
        snapshot = fetch_status(endpoint_for(settings), timeout=settings.request_timeout)
    except JenkinsError as exc:
        console.print(f"[bold red]Status request failed:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    StreamRenderer(console=console).print_status(snapshot)
