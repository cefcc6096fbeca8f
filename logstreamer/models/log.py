"""Progressive-read cursor, chunk and per-build buffer models.

The remote console log is append-only.  Each read returns the bytes added
since ``offset`` together with the authoritative next offset and a hint
whether more bytes are expected.  The models here are frozen; advancing a
cursor or appending to a buffer returns a new instance.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NonContiguousChunkError(ValueError):
    """Raised when a chunk does not start where the buffer ends."""


class LogChunk(BaseModel):
    """One progressive-read response.  Consumed immediately, never retained."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    new_offset: int = Field(ge=0)
    more_data: bool = False


class LogCursor(BaseModel):
    """Read position into the remote log of a single build."""

    model_config = ConfigDict(frozen=True)

    offset: int = Field(default=0, ge=0)
    more_data: bool = True

    def advance(self, chunk: LogChunk) -> LogCursor:
        """Move to the offset the server reported for ``chunk``."""
        if chunk.new_offset < self.offset:
            raise ValueError(
                f"Log offset moved backwards: {self.offset} -> {chunk.new_offset}"
            )
        return LogCursor(offset=chunk.new_offset, more_data=chunk.more_data)


class LogRequest(BaseModel):
    """Identity of an issued log fetch.

    A fetch result is only folded into state when it matches the request
    that is currently outstanding.
    """

    model_config = ConfigDict(frozen=True)

    build_number: int
    offset: int = Field(ge=0)


class BuildBuffer(BaseModel):
    """All log text received for exactly one build, in arrival order.

    ``text`` always equals ``"".join(chunks)`` and ``end_offset`` is the
    server offset right after the last chunk.
    """

    model_config = ConfigDict(frozen=True)

    build_number: int
    chunks: tuple[str, ...] = ()
    text: str = ""
    end_offset: int = 0

    def append(self, chunk: LogChunk, start_offset: int) -> BuildBuffer:
        """Return a buffer extended by ``chunk``, read at ``start_offset``."""
        if start_offset != self.end_offset:
            raise NonContiguousChunkError(
                f"Chunk for build {self.build_number} starts at {start_offset}, "
                f"buffer ends at {self.end_offset}"
            )
        if chunk.new_offset < start_offset:
            raise NonContiguousChunkError(
                f"Chunk for build {self.build_number} ends at {chunk.new_offset}, "
                f"before its start {start_offset}"
            )
        chunks = self.chunks + (chunk.text,) if chunk.text else self.chunks
        return BuildBuffer(
            build_number=self.build_number,
            chunks=chunks,
            text=self.text + chunk.text,
            end_offset=chunk.new_offset,
        )

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)
