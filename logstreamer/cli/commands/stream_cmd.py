"""``logstreamer stream`` — follow a job's console log live.

Polls the job status every ``--interval`` seconds, follows the current
build's console through progressive reads, and renders it full-screen.
A new build replaces the view.  Press ``q`` to quit.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.live import Live
from rich.markup import escape

from logstreamer.bridge.jenkins import AuthError, JenkinsClient, JenkinsError
from logstreamer.cli.commands._common import (
    TOKEN_HELP,
    URL_HELP,
    USER_HELP,
    configure_logging,
    console,
    endpoint_for,
    resolve_settings,
)
from logstreamer.config import StreamerSettings
from logstreamer.core.event_loop import EXIT_FATAL, StreamRunner
from logstreamer.core.poll_scheduler import PollScheduler, StreamState
from logstreamer.models.job import ServerEndpoint
from logstreamer.monitor.keys import KeyReader
from logstreamer.monitor.renderer import StreamRenderer, body_size
from logstreamer.monitor.viewport import ViewportModel, ViewportSync

logger = logging.getLogger(__name__)


async def _stream(
    settings: StreamerSettings, endpoint: ServerEndpoint
) -> tuple[int, str | None]:
    """Run the live view; returns ``(exit_code, fatal_message)``."""
    async with JenkinsClient(endpoint, timeout=settings.request_timeout) as client:
        # Credentials are checked before the screen is taken over
        try:
            await client.fetch_status()
        except AuthError as exc:
            return EXIT_FATAL, str(exc)
        except JenkinsError as exc:
            logger.warning("Initial status poll failed: %s", exc)

        renderer = StreamRenderer(console=console)
        width, height = body_size(console)
        sync = ViewportSync(
            ViewportModel(width, height), indent_wrapped=settings.indent_wrapped
        )

        with Live(console=console, screen=True, auto_refresh=False) as live:

            def repaint(state: StreamState, sync: ViewportSync) -> None:
                size = body_size(console)
                viewport = sync.viewport
                if size != (viewport.width, viewport.height):
                    sync.resize(*size, state.tracker.buffer)
                live.update(renderer.render(state, viewport), refresh=True)

            runner = StreamRunner(
                client,
                PollScheduler(settings.poll_interval),
                sync,
                on_refresh=repaint,
            )
            with KeyReader(runner.submit) as keys:
                exit_code = await runner.run(key_reader=keys)

        return exit_code, runner.state.fatal_error


def stream_cmd(
    url: str = typer.Option(None, "--url", "-u", help=URL_HELP),
    user: str = typer.Option(None, "--user", help=USER_HELP),
    token: str = typer.Option(None, "--token", help=TOKEN_HELP),
    interval: float = typer.Option(
        None, "--interval", "-i", help="Seconds between status polls. [default: 5]"
    ),
    timeout: float = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds. [default: 10]"
    ),
    indent: int = typer.Option(
        None, "--indent", help="Indent continuation lines of wrapped log lines."
    ),
    log_file: Path = typer.Option(
        None, "--log-file", help="Write diagnostic logs to this file."
    ),
) -> None:
    """Follow the job's console log in a live, scrollable view.

    Keys: q quit, j/k or arrows scroll, f/b or PgDn/PgUp page,
    g top, G bottom (resumes following).
    """
    settings = resolve_settings(
        url=url,
        user=user,
        token=token,
        poll_interval=interval,
        request_timeout=timeout,
        indent_wrapped=indent,
        log_file=log_file,
    )
    configure_logging(settings, interactive=True)

    try:
        exit_code, fatal = asyncio.run(_stream(settings, endpoint_for(settings)))
    except KeyboardInterrupt:
        exit_code, fatal = 0, None

    if fatal:
        console.print(f"[bold red]Fatal:[/bold red] {escape(fatal)}")
    raise typer.Exit(code=exit_code)
