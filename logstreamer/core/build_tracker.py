"""Build-change detection and per-build cursor/buffer lifecycle.

States
------
``NO_BUILD`` (initial) -> ``TRACKING(n)`` on the first status poll, then
``TRACKING(n')`` whenever a poll reports a different build number, or a
self-loop when the number is unchanged.  There is no terminal state.

Enforces:
- A new build number discards the buffer and resets the cursor to (0, more).
- The same build number never touches the buffer or cursor.
- A chunk is applied only if it was read for the tracked build at the
  current cursor offset; anything else is stale and rejected.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from logstreamer.models.job import StatusSnapshot
from logstreamer.models.log import BuildBuffer, LogChunk, LogCursor, LogRequest

logger = logging.getLogger(__name__)


class StaleChunkError(ValueError):
    """Raised when a chunk was read for another build or another offset."""


class TrackerPhase(str, Enum):
    NO_BUILD = "no_build"
    TRACKING = "tracking"


class TrackerState(BaseModel):
    """Tracked build number with its cursor and buffer."""

    model_config = ConfigDict(frozen=True)

    build_number: int | None = None
    cursor: LogCursor = LogCursor()
    buffer: BuildBuffer | None = None

    @property
    def phase(self) -> TrackerPhase:
        if self.build_number is None:
            return TrackerPhase.NO_BUILD
        return TrackerPhase.TRACKING


def observe_status(
    state: TrackerState, snapshot: StatusSnapshot
) -> tuple[TrackerState, bool]:
    """Fold a status poll into ``state``.

    Returns the new state and whether the build changed.
    """
    if snapshot.build_number == state.build_number:
        return state, False
    fresh = TrackerState(
        build_number=snapshot.build_number,
        cursor=LogCursor(),
        buffer=BuildBuffer(build_number=snapshot.build_number),
    )
    return fresh, True


def should_fetch(state: TrackerState) -> bool:
    """Whether the last log read said more data may follow."""
    return state.phase is TrackerPhase.TRACKING and state.cursor.more_data


def next_request(state: TrackerState) -> LogRequest:
    """The log request that continues from the current cursor."""
    if state.build_number is None:
        raise ValueError("No build is being tracked")
    return LogRequest(build_number=state.build_number, offset=state.cursor.offset)


def apply_chunk(
    state: TrackerState, request: LogRequest, chunk: LogChunk
) -> TrackerState:
    """Append ``chunk`` (read for ``request``) to the tracked build."""
    if state.buffer is None or request.build_number != state.build_number:
        raise StaleChunkError(
            f"Chunk for build {request.build_number} while tracking "
            f"{state.build_number}"
        )
    if request.offset != state.cursor.offset:
        raise StaleChunkError(
            f"Chunk read at offset {request.offset}, cursor is at "
            f"{state.cursor.offset}"
        )
    return TrackerState(
        build_number=state.build_number,
        cursor=state.cursor.advance(chunk),
        buffer=state.buffer.append(chunk, request.offset),
    )


class BuildTracker:
    """Logging facade over the pure transition functions.

    The scheduler calls through this class so every build switch and every
    dropped chunk leaves a trace in the log.
    """

    def observe(
        self, state: TrackerState, snapshot: StatusSnapshot
    ) -> tuple[TrackerState, bool]:
        new_state, changed = observe_status(state, snapshot)
        if changed:
            if state.build_number is None:
                logger.info("Tracking build #%d", snapshot.build_number)
            else:
                logger.info(
                    "Build changed #%d -> #%d; discarding %d buffered chars",
                    state.build_number,
                    snapshot.build_number,
                    len(state.buffer.text) if state.buffer else 0,
                )
        return new_state, changed

    def apply(
        self, state: TrackerState, request: LogRequest, chunk: LogChunk
    ) -> TrackerState | None:
        """Apply ``chunk``; returns ``None`` (and logs) if it is stale."""
        try:
            return apply_chunk(state, request, chunk)
        except StaleChunkError as exc:
            logger.info("Dropping stale log chunk: %s", exc)
            return None

    def should_fetch(self, state: TrackerState) -> bool:
        return should_fetch(state)

    def next_request(self, state: TrackerState) -> LogRequest:
        return next_request(state)
