"""Event loop vocabulary — what can happen, and what the reducer asks for.

Events are delivered to the single-threaded loop one at a time and folded
through ``PollScheduler.reduce``.  The reducer never performs I/O; it
returns task descriptions which the loop executes, feeding their results
back in as new events.

Both unions are closed: ``Event`` and ``Task`` list every member, and
pydantic discriminates them on ``kind``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from logstreamer.models.job import StatusSnapshot
from logstreamer.models.log import LogChunk, LogRequest


class FetchTarget(str, Enum):
    """Which remote call a failure belongs to."""

    STATUS = "status"
    LOG = "log"


class ErrorKind(str, Enum):
    """Failure taxonomy for remote calls."""

    AUTH = "auth"  # non-success response, session-fatal
    TRANSPORT = "transport"  # network error or timeout, recoverable
    DECODE = "decode"  # malformed payload, recoverable


class ScrollAction(str, Enum):
    LINE_UP = "line_up"
    LINE_DOWN = "line_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    TOP = "top"
    BOTTOM = "bottom"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class Tick(_EventBase):
    """The poll interval elapsed."""

    kind: Literal["tick"] = "tick"


class StatusReceived(_EventBase):
    kind: Literal["status_received"] = "status_received"
    snapshot: StatusSnapshot


class ChunkReceived(_EventBase):
    """A log fetch completed for ``request``."""

    kind: Literal["chunk_received"] = "chunk_received"
    request: LogRequest
    chunk: LogChunk


class FetchFailed(_EventBase):
    kind: Literal["fetch_failed"] = "fetch_failed"
    target: FetchTarget
    error: ErrorKind
    message: str = ""
    request: LogRequest | None = None  # set for LOG failures


class ScrollRequested(_EventBase):
    kind: Literal["scroll_requested"] = "scroll_requested"
    action: ScrollAction


class UserQuit(_EventBase):
    kind: Literal["user_quit"] = "user_quit"


Event = Annotated[
    Union[Tick, StatusReceived, ChunkReceived, FetchFailed, ScrollRequested, UserQuit],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Tasks (side effects requested by the reducer)
# ---------------------------------------------------------------------------


class _TaskBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class FetchStatusTask(_TaskBase):
    kind: Literal["fetch_status"] = "fetch_status"


class FetchLogTask(_TaskBase):
    kind: Literal["fetch_log"] = "fetch_log"
    request: LogRequest


class RefreshTask(_TaskBase):
    """Reconcile the viewport with the buffer and repaint."""

    kind: Literal["refresh"] = "refresh"


Task = Annotated[
    Union[FetchStatusTask, FetchLogTask, RefreshTask],
    Field(discriminator="kind"),
]
