"""Runtime configuration — env-driven, overridable by CLI flags.

Centralized config using pydantic-settings.  Reads from a .env file and
JENKINS_* environment variables; command-line flags take precedence.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StreamerSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export JENKINS_URL=https://ci.example.com/job/my-job
        export JENKINS_USER=alice
        export JENKINS_TOKEN=11aa22bb33cc
        export JENKINS_POLL_INTERVAL=2

    Or via .env file::

        JENKINS_URL=https://ci.example.com/job/my-job
        JENKINS_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="JENKINS_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Target job
    url: str = ""
    user: str = ""
    token: str = Field(default="", repr=False)

    # Cadence
    poll_interval: float = Field(default=5.0, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)

    # Display
    indent_wrapped: int = Field(default=0, ge=0)

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    @property
    def has_url(self) -> bool:
        return bool(self.url.strip())


def load_settings(**overrides: object) -> StreamerSettings:
    """Build settings from env/.env, with non-``None`` ``overrides`` on top.

    CLI options default to ``None`` so that an omitted flag falls through
    to the environment rather than clobbering it.
    """
    explicit = {key: value for key, value in overrides.items() if value is not None}
    return StreamerSettings(**explicit)
