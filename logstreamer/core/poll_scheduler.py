"""Poll cadence and fetch chaining as an explicit reducer.

``PollScheduler.reduce(state, event)`` returns ``(new_state, tasks)``.  It
never performs I/O: the event loop runs the returned tasks and feeds their
outcomes back as events.

Policy
------
- Every ``Tick`` issues one status poll (unless the previous poll is still
  outstanding) and a repaint.
- A status poll that reports a new build resets the tracker and fetches
  the log from offset 0 right away.  The same build fetches only if the
  last log read said ``more_data`` and no read is outstanding.
- After a log read, another read is chained immediately only when
  ``more_data`` is true AND the chunk carried text.  ``more_data`` with an
  empty chunk waits for the next status poll.
- At most one log read is outstanding per build.  A result that does not
  match the outstanding request is stale and ignored.
- ``AuthError`` is fatal.  Transport and decode failures set a transient
  status line and are retried at the next natural schedule point.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from logstreamer.core.build_tracker import BuildTracker, TrackerState
from logstreamer.models.events import (
    ChunkReceived,
    ErrorKind,
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
from logstreamer.models.log import LogRequest

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class StreamState(BaseModel):
    """Everything the event loop knows, replaced wholesale on each event."""

    model_config = ConfigDict(frozen=True)

    tracker: TrackerState = TrackerState()
    snapshot: StatusSnapshot | None = None
    log_request: LogRequest | None = None
    status_in_flight: bool = False
    status_text: str | None = None
    fatal_error: str | None = None
    quit_requested: bool = False
    ticks: int = 0

    @property
    def finished(self) -> bool:
        """The loop should stop: quit requested or a fatal error occurred."""
        return self.quit_requested or self.fatal_error is not None


class PollScheduler:
    """Reducer driving status polls and log fetches.

    Parameters
    ----------
    interval:
        Seconds between status polls.
    tracker:
        Build tracker to delegate build-change decisions to.
    """

    def __init__(
        self,
        interval: float = DEFAULT_POLL_INTERVAL,
        tracker: BuildTracker | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        self.interval = interval
        self._tracker = tracker or BuildTracker()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def reduce(self, state: StreamState, event: Event) -> tuple[StreamState, list[Task]]:
        """Fold ``event`` into ``state``."""
        if state.finished:
            return state, []

        if isinstance(event, Tick):
            return self._on_tick(state)
        if isinstance(event, StatusReceived):
            return self._on_status(state, event)
        if isinstance(event, ChunkReceived):
            return self._on_chunk(state, event)
        if isinstance(event, FetchFailed):
            return self._on_failure(state, event)
        if isinstance(event, ScrollRequested):
            return state, [RefreshTask()]
        if isinstance(event, UserQuit):
            logger.info("Quit requested")
            return state.model_copy(update={"quit_requested": True}), []
        raise TypeError(f"Unhandled event: {event!r}")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_tick(self, state: StreamState) -> tuple[StreamState, list[Task]]:
        tasks: list[Task] = []
        if state.status_in_flight:
            logger.debug("Tick %d: status poll still outstanding", state.ticks + 1)
        else:
            tasks.append(FetchStatusTask())
        tasks.append(RefreshTask())
        new_state = state.model_copy(
            update={"ticks": state.ticks + 1, "status_in_flight": True}
        )
        return new_state, tasks

    def _on_status(
        self, state: StreamState, event: StatusReceived
    ) -> tuple[StreamState, list[Task]]:
        tracker, changed = self._tracker.observe(state.tracker, event.snapshot)
        update = {
            "tracker": tracker,
            "snapshot": event.snapshot,
            "status_in_flight": False,
            "status_text": None,
        }
        tasks: list[Task] = []

        if changed:
            # Any read still outstanding belongs to the old build; its
            # result will no longer match and is dropped on arrival.
            request = self._tracker.next_request(tracker)
            update["log_request"] = request
            tasks.append(FetchLogTask(request=request))
        elif state.log_request is None and self._tracker.should_fetch(tracker):
            request = self._tracker.next_request(tracker)
            update["log_request"] = request
            tasks.append(FetchLogTask(request=request))

        tasks.append(RefreshTask())
        return state.model_copy(update=update), tasks

    def _on_chunk(
        self, state: StreamState, event: ChunkReceived
    ) -> tuple[StreamState, list[Task]]:
        if event.request != state.log_request:
            logger.debug(
                "Ignoring log result for %s (outstanding: %s)",
                event.request,
                state.log_request,
            )
            return state, []

        tracker = self._tracker.apply(state.tracker, event.request, event.chunk)
        if tracker is None:
            return state.model_copy(update={"log_request": None}), []

        update: dict[str, object] = {"tracker": tracker, "log_request": None}
        tasks: list[Task] = [RefreshTask()]

        if event.chunk.more_data and len(event.chunk.text) > 0:
            request = self._tracker.next_request(tracker)
            update["log_request"] = request
            tasks.insert(0, FetchLogTask(request=request))

        return state.model_copy(update=update), tasks

    def _on_failure(
        self, state: StreamState, event: FetchFailed
    ) -> tuple[StreamState, list[Task]]:
        update: dict[str, object] = {}
        if event.target is FetchTarget.STATUS:
            update["status_in_flight"] = False
        elif event.request != state.log_request:
            logger.debug("Ignoring failure of superseded log read %s", event.request)
            return state, []
        else:
            update["log_request"] = None

        if event.error is ErrorKind.AUTH:
            logger.error("Fatal %s fetch failure: %s", event.target.value, event.message)
            update["fatal_error"] = event.message
            return state.model_copy(update=update), []

        logger.warning(
            "%s fetch failed (%s): %s",
            event.target.value.capitalize(),
            event.error.value,
            event.message,
        )
        update["status_text"] = (
            f"{event.target.value} fetch failed ({event.error.value}): {event.message}"
        )
        return state.model_copy(update=update), [RefreshTask()]
