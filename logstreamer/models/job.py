"""Job endpoint and build status models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BuildResult(str, Enum):
    """Outcome of a build as reported by Jenkins."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    UNSTABLE = "UNSTABLE"
    ABORTED = "ABORTED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: str | None) -> BuildResult:
        """Map a raw ``result`` field to a member.

        Jenkins reports ``null`` while a build is running and uses values
        such as ``NOT_BUILT`` that have no counterpart here; both become
        ``UNKNOWN``.
        """
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(raw.upper())
        except ValueError:
            return cls.UNKNOWN


class ServerEndpoint(BaseModel):
    """Where the job lives and how to authenticate against it.

    Immutable for the lifetime of the process.
    """

    model_config = ConfigDict(frozen=True)

    job_url: str
    user: str = ""
    token: str = Field(default="", repr=False)

    @field_validator("job_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("job_url must not be empty")
        return value

    def _build_segment(self, build_number: int | None) -> str:
        return "lastBuild" if build_number is None else str(build_number)

    def status_url(self, build_number: int | None = None) -> str:
        """JSON status document for a build (``lastBuild`` by default)."""
        return f"{self.job_url}/{self._build_segment(build_number)}/api/json"

    def log_url(self, build_number: int | None = None) -> str:
        """Progressive console text endpoint for a build."""
        return (
            f"{self.job_url}/{self._build_segment(build_number)}"
            "/logText/progressiveText"
        )

    @property
    def auth(self) -> tuple[str, str] | None:
        """Basic-auth credential pair, or ``None`` for anonymous access."""
        if not self.user and not self.token:
            return None
        return (self.user, self.token)


class StatusSnapshot(BaseModel):
    """Point-in-time status of the job's current build.

    Produced fresh on every poll and superseded entirely by the next one.
    """

    model_config = ConfigDict(frozen=True)

    build_number: int
    display_name: str = ""
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    result: BuildResult = BuildResult.UNKNOWN
    in_progress: bool = False
    building: bool = False

    @property
    def is_running(self) -> bool:
        return self.building or self.in_progress


class JobStatusPayload(BaseModel):
    """The subset of ``/lastBuild/api/json`` this tool reads.

    Everything else in the document (actions, change sets, culprits, ...)
    is ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    number: int
    full_display_name: str = Field(default="", alias="fullDisplayName")
    display_name: str = Field(default="", alias="displayName")
    timestamp: int = 0  # epoch millis
    result: str | None = None
    building: bool = False
    in_progress: bool = Field(default=False, alias="inProgress")

    def to_snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            build_number=self.number,
            display_name=self.full_display_name or self.display_name,
            timestamp=datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc),
            result=BuildResult.parse(self.result),
            in_progress=self.in_progress,
            building=self.building,
        )
