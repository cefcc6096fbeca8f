"""Log streamer data models — all Pydantic v2, all frozen (immutable)."""

from logstreamer.models.events import (
    ChunkReceived,
    ErrorKind,
    Event,
    FetchFailed,
    FetchLogTask,
    FetchStatusTask,
    FetchTarget,
    RefreshTask,
    ScrollAction,
    ScrollRequested,
    StatusReceived,
    Task,
    Tick,
    UserQuit,
)
from logstreamer.models.job import (
    BuildResult,
    JobStatusPayload,
    ServerEndpoint,
    StatusSnapshot,
)
from logstreamer.models.log import (
    BuildBuffer,
    LogChunk,
    LogCursor,
    LogRequest,
    NonContiguousChunkError,
)

__all__ = [
    # job
    "BuildResult",
    "JobStatusPayload",
    "ServerEndpoint",
    "StatusSnapshot",
    # log
    "BuildBuffer",
    "LogChunk",
    "LogCursor",
    "LogRequest",
    "NonContiguousChunkError",
    # events
    "ChunkReceived",
    "ErrorKind",
    "Event",
    "FetchFailed",
    "FetchLogTask",
    "FetchStatusTask",
    "FetchTarget",
    "RefreshTask",
    "ScrollAction",
    "ScrollRequested",
    "StatusReceived",
    "Task",
    "Tick",
    "UserQuit",
]
