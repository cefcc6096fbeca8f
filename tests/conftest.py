"""Shared test fixtures for the log streamer."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from logstreamer.core.build_tracker import BuildTracker
from logstreamer.core.poll_scheduler import PollScheduler, StreamState
from logstreamer.models.job import BuildResult, ServerEndpoint, StatusSnapshot
from logstreamer.models.log import LogChunk


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep JENKINS_* variables and stray .env files out of every test."""
    for name in (
        "JENKINS_URL",
        "JENKINS_USER",
        "JENKINS_TOKEN",
        "JENKINS_POLL_INTERVAL",
        "JENKINS_REQUEST_TIMEOUT",
        "JENKINS_INDENT_WRAPPED",
        "JENKINS_LOG_LEVEL",
        "JENKINS_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def endpoint() -> ServerEndpoint:
    """A job endpoint with a fixed credential pair."""
    return ServerEndpoint(
        job_url="https://ci.example.com/job/demo/",
        user="alice",
        token="s3cret",
    )


@pytest.fixture
def scheduler() -> PollScheduler:
    return PollScheduler(interval=5.0, tracker=BuildTracker())


@pytest.fixture
def initial_state() -> StreamState:
    return StreamState()


# ---------------------------------------------------------------------------
# Model factories shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_snapshot() -> Callable[..., StatusSnapshot]:
    """Factory fixture: build a StatusSnapshot with sensible defaults."""

    def _factory(build_number: int = 1, **overrides: Any) -> StatusSnapshot:
        defaults: dict[str, Any] = {
            "build_number": build_number,
            "display_name": f"demo #{build_number}",
            "timestamp": datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc),
            "result": BuildResult.UNKNOWN,
            "in_progress": True,
            "building": True,
        }
        defaults.update(overrides)
        return StatusSnapshot(**defaults)

    return _factory


@pytest.fixture
def make_chunk() -> Callable[..., LogChunk]:
    """Factory fixture: a chunk whose new offset follows ``start + len(text)``."""

    def _factory(text: str = "", start: int = 0, more_data: bool = True) -> LogChunk:
        return LogChunk(
            text=text,
            new_offset=start + len(text.encode("utf-8")),
            more_data=more_data,
        )

    return _factory
