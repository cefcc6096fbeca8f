"""Shared option handling for CLI commands."""

from __future__ import annotations

import logging
import sys

import typer
from pydantic import ValidationError
from rich.console import Console

from logstreamer.config import StreamerSettings, load_settings
from logstreamer.models.job import ServerEndpoint

console = Console()

EXIT_USAGE = 2

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

URL_HELP = "Jenkins job URL, e.g. https://ci.example.com/job/my-job. [env: JENKINS_URL]"
USER_HELP = "Jenkins user. [env: JENKINS_USER]"
TOKEN_HELP = "Jenkins API token. [env: JENKINS_TOKEN]"


def resolve_settings(**overrides: object) -> StreamerSettings:
    """Merge CLI flags over the environment; exit on bad or missing values."""
    try:
        settings = load_settings(**overrides)
    except ValidationError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_USAGE)

    if not settings.has_url:
        console.print("[bold red]Missing job URL.[/bold red]")
        console.print("[dim]Pass --url or set JENKINS_URL.[/dim]")
        raise typer.Exit(code=EXIT_USAGE)
    return settings


def endpoint_for(settings: StreamerSettings) -> ServerEndpoint:
    return ServerEndpoint(job_url=settings.url, user=settings.user, token=settings.token)


def configure_logging(settings: StreamerSettings, *, interactive: bool) -> None:
    """Route log records to ``--log-file``, stderr, or nowhere.

    The full-screen view owns the terminal, so without a log file an
    interactive session discards records instead of printing them.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.log_file is not None:
        logging.basicConfig(
            filename=str(settings.log_file),
            level=level,
            format=LOG_FORMAT,
            force=True,
        )
    elif interactive:
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
        root.addHandler(logging.NullHandler())
        root.setLevel(level)
    else:
        logging.basicConfig(stream=sys.stderr, level=level, format=LOG_FORMAT, force=True)
