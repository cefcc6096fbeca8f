"""Single-consumer asyncio loop around ``PollScheduler.reduce``.

One queue, one consumer.  Timer ticks, fetch results and key presses are
all enqueued as events; the consumer folds each through the reducer and
dispatches the returned tasks.  Fetches run as asyncio tasks whose only
side effect is enqueuing their outcome, so buffer and cursor are touched
by the consumer alone.

Quitting stops the consumer immediately and cancels every outstanding
task; results that arrive afterwards are never applied.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine, Protocol, Union

from logstreamer.bridge.jenkins import JenkinsError
from logstreamer.core.poll_scheduler import PollScheduler, StreamState
from logstreamer.models.events import (
    ChunkReceived,
    Event,
    FetchFailed,
    FetchLogTask,
    FetchStatusTask,
    FetchTarget,
    RefreshTask,
    ScrollRequested,
    StatusReceived,
    Task,
    Tick,
    UserQuit,
)
from logstreamer.models.job import StatusSnapshot
from logstreamer.models.log import LogChunk, LogRequest
from logstreamer.monitor.keys import KeyReader
from logstreamer.monitor.viewport import ViewportModel, ViewportSync

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1

RefreshCallback = Callable[[StreamState, ViewportSync], None]


class LogSource(Protocol):
    """What the loop needs from a Jenkins client."""

    async def fetch_status(self) -> StatusSnapshot: ...

    async def fetch_log_chunk(
        self, offset: int, build_number: int | None = None
    ) -> LogChunk: ...


class StreamRunner:
    """Runs the poll/fetch/render cycle until quit or a fatal error.

    Parameters
    ----------
    source:
        Jenkins client (or any ``LogSource``).
    scheduler:
        The reducer; its ``interval`` sets the tick cadence.
    sync:
        Viewport reconciliation; synced on every ``RefreshTask``.
    on_refresh:
        Called after each viewport sync, typically to repaint the screen.
    """

    def __init__(
        self,
        source: LogSource,
        scheduler: PollScheduler,
        sync: ViewportSync,
        *,
        on_refresh: RefreshCallback | None = None,
    ) -> None:
        self._source = source
        self._scheduler = scheduler
        self._sync = sync
        self._on_refresh = on_refresh
        self._queue: asyncio.Queue[Union[Event, BaseException]] | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self.state = StreamState()

    @property
    def viewport(self) -> ViewportModel:
        return self._sync.viewport

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def submit(self, event: Event) -> None:
        """Enqueue an event.  Must be called on the loop's thread."""
        if self._queue is None:
            raise RuntimeError("StreamRunner is not running")
        self._queue.put_nowait(event)

    def request_quit(self) -> None:
        self.submit(UserQuit())

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self, *, key_reader: KeyReader | None = None) -> int:
        """Consume events until the state is finished.

        Returns ``EXIT_OK`` on a user quit and ``EXIT_FATAL`` after an
        ``AuthError``; the message is in ``state.fatal_error``.
        """
        self._queue = asyncio.Queue()
        self._spawn(self._tick_forever())
        if key_reader is not None:
            key_reader.attach(asyncio.get_running_loop())

        try:
            while not self.state.finished:
                item = await self._queue.get()
                if isinstance(item, BaseException):
                    raise item
                self._handle(item)
        finally:
            if key_reader is not None:
                key_reader.detach()
            await self._cancel_pending()
            self._queue = None

        return EXIT_FATAL if self.state.fatal_error is not None else EXIT_OK

    def _handle(self, event: Event) -> None:
        if isinstance(event, ScrollRequested):
            self._sync.viewport.apply(event.action)

        self.state, tasks = self._scheduler.reduce(self.state, event)
        if self.state.finished:
            return
        for task in tasks:
            self._dispatch(task)

    def _dispatch(self, task: Task) -> None:
        if isinstance(task, FetchStatusTask):
            self._spawn(self._fetch_status())
        elif isinstance(task, FetchLogTask):
            self._spawn(self._fetch_log(task.request))
        elif isinstance(task, RefreshTask):
            self._refresh()
        else:
            raise TypeError(f"Unhandled task: {task!r}")

    def _refresh(self) -> None:
        self._sync.sync(self.state.tracker.buffer)
        if self._on_refresh is not None:
            self._on_refresh(self.state, self._sync)

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[None, None, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self._queue is not None:
            logger.error("Background task crashed: %r", exc)
            self._queue.put_nowait(exc)

    async def _cancel_pending(self) -> None:
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()

    async def _tick_forever(self) -> None:
        while True:
            self.submit(Tick())
            await asyncio.sleep(self._scheduler.interval)

    async def _fetch_status(self) -> None:
        try:
            snapshot = await self._source.fetch_status()
        except JenkinsError as exc:
            self.submit(
                FetchFailed(target=FetchTarget.STATUS, error=exc.kind, message=str(exc))
            )
        else:
            self.submit(StatusReceived(snapshot=snapshot))

    async def _fetch_log(self, request: LogRequest) -> None:
        try:
            chunk = await self._source.fetch_log_chunk(
                request.offset, build_number=request.build_number
            )
        except JenkinsError as exc:
            self.submit(
                FetchFailed(
                    target=FetchTarget.LOG,
                    error=exc.kind,
                    message=str(exc),
                    request=request,
                )
            )
        else:
            self.submit(ChunkReceived(request=request, chunk=chunk))
