"""Tests for the PollScheduler reducer — cadence, chaining and failure policy."""

from __future__ import annotations

import pytest

from logstreamer.core.poll_scheduler import PollScheduler, StreamState
from logstreamer.models.events import (
    ChunkReceived,
    ErrorKind,
    FetchFailed,
    FetchLogTask,
    FetchStatusTask,
    FetchTarget,
    RefreshTask,
    ScrollAction,
    ScrollRequested,
    StatusReceived,
    Tick,
    UserQuit,
)
from logstreamer.models.log import LogRequest


def _fetches(tasks) -> list[LogRequest]:
    return [t.request for t in tasks if isinstance(t, FetchLogTask)]


def _tracking(scheduler: PollScheduler, make_snapshot, build: int = 1) -> StreamState:
    """A state tracking ``build`` with the initial log read outstanding."""
    state, _ = scheduler.reduce(StreamState(), Tick())
    state, _ = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(build)))
    return state


class TestTick:
    def test_tick_polls_status_once(self, scheduler, initial_state):
        state, tasks = scheduler.reduce(initial_state, Tick())
        assert tasks == [FetchStatusTask(), RefreshTask()]
        assert state.status_in_flight
        assert state.ticks == 1

    def test_no_second_poll_while_outstanding(self, scheduler, initial_state):
        state, _ = scheduler.reduce(initial_state, Tick())
        state, tasks = scheduler.reduce(state, Tick())
        assert FetchStatusTask() not in tasks
        assert RefreshTask() in tasks
        assert state.ticks == 2

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            PollScheduler(interval=0)


class TestStatusReceived:
    def test_first_status_fetches_from_zero(self, scheduler, make_snapshot):
        state, _ = scheduler.reduce(StreamState(), Tick())
        state, tasks = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(4)))
        assert _fetches(tasks) == [LogRequest(build_number=4, offset=0)]
        assert state.log_request == LogRequest(build_number=4, offset=0)
        assert not state.status_in_flight
        assert state.snapshot.build_number == 4

    def test_same_build_does_not_reset(self, scheduler, make_snapshot, make_chunk):
        state = _tracking(scheduler, make_snapshot)
        state, _ = scheduler.reduce(
            state, ChunkReceived(request=state.log_request, chunk=make_chunk("abc", more_data=False))
        )
        before = state.tracker

        state, tasks = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(1)))
        state, tasks = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(1)))
        assert state.tracker == before
        assert state.tracker.buffer.text == "abc"
        # more_data was false: nothing to fetch
        assert _fetches(tasks) == []

    def test_same_build_with_more_data_fetches_at_cursor(self, scheduler, make_snapshot, make_chunk):
        state = _tracking(scheduler, make_snapshot)
        state, _ = scheduler.reduce(
            state, ChunkReceived(request=state.log_request, chunk=make_chunk("", more_data=True))
        )
        assert state.log_request is None

        state, tasks = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(1)))
        assert _fetches(tasks) == [LogRequest(build_number=1, offset=0)]

    def test_same_build_does_not_double_fetch(self, scheduler, make_snapshot):
        state = _tracking(scheduler, make_snapshot)
        state, tasks = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(1)))
        assert _fetches(tasks) == []

    def test_new_build_resets_and_fetches_immediately(self, scheduler, make_snapshot, make_chunk):
        state = _tracking(scheduler, make_snapshot, build=1)
        state, _ = scheduler.reduce(
            state, ChunkReceived(request=state.log_request, chunk=make_chunk("old log", more_data=False))
        )

        state, tasks = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(2)))
        assert _fetches(tasks) == [LogRequest(build_number=2, offset=0)]
        assert state.tracker.build_number == 2
        assert state.tracker.buffer.text == ""
        assert state.tracker.cursor.more_data is True

    def test_result_for_old_build_never_reaches_new_buffer(self, scheduler, make_snapshot, make_chunk):
        state = _tracking(scheduler, make_snapshot, build=1)
        old_request = state.log_request

        state, _ = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(2)))
        state, tasks = scheduler.reduce(
            state, ChunkReceived(request=old_request, chunk=make_chunk("stale bytes"))
        )
        assert tasks == []
        assert state.tracker.buffer.text == ""
        assert state.log_request == LogRequest(build_number=2, offset=0)


class TestChunkChaining:
    def test_more_data_with_text_rechains_immediately(self, scheduler, make_snapshot, make_chunk):
        state = _tracking(scheduler, make_snapshot)
        chunk = make_chunk("step 1\n", more_data=True)
        state, tasks = scheduler.reduce(state, ChunkReceived(request=state.log_request, chunk=chunk))
        assert _fetches(tasks) == [LogRequest(build_number=1, offset=chunk.new_offset)]
        assert RefreshTask() in tasks
        assert state.log_request == LogRequest(build_number=1, offset=chunk.new_offset)

    def test_more_data_with_empty_text_waits_for_poll(self, scheduler, make_snapshot, make_chunk):
        state = _tracking(scheduler, make_snapshot)
        state, tasks = scheduler.reduce(
            state, ChunkReceived(request=state.log_request, chunk=make_chunk("", more_data=True))
        )
        assert _fetches(tasks) == []
        assert state.log_request is None
        assert state.tracker.cursor.more_data is True

    def test_no_more_data_stops(self, scheduler, make_snapshot, make_chunk):
        state = _tracking(scheduler, make_snapshot)
        state, tasks = scheduler.reduce(
            state, ChunkReceived(request=state.log_request, chunk=make_chunk("done\n", more_data=False))
        )
        assert _fetches(tasks) == []
        assert tasks == [RefreshTask()]

    def test_duplicate_result_ignored(self, scheduler, make_snapshot, make_chunk):
        state = _tracking(scheduler, make_snapshot)
        request = state.log_request
        chunk = make_chunk("abc", more_data=False)
        state, _ = scheduler.reduce(state, ChunkReceived(request=request, chunk=chunk))
        state, tasks = scheduler.reduce(state, ChunkReceived(request=request, chunk=chunk))
        assert tasks == []
        assert state.tracker.buffer.text == "abc"

    def test_offsets_strictly_increasing(self, scheduler, make_snapshot, make_chunk):
        """Chained reads apply contiguous, non-overlapping ranges in order."""
        state = _tracking(scheduler, make_snapshot)
        offsets = []
        for text in ("a" * 3, "b" * 5, "c" * 2):
            request = state.log_request
            offsets.append(request.offset)
            state, _ = scheduler.reduce(
                state, ChunkReceived(request=request, chunk=make_chunk(text, request.offset))
            )
        assert offsets == [0, 3, 8]
        assert state.tracker.buffer.text == "aaabbbbbcc"
        assert state.tracker.buffer.end_offset == 10


class TestFailures:
    def test_auth_error_is_fatal(self, scheduler, initial_state):
        state, _ = scheduler.reduce(initial_state, Tick())
        state, tasks = scheduler.reduce(
            state,
            FetchFailed(target=FetchTarget.STATUS, error=ErrorKind.AUTH, message="401"),
        )
        assert tasks == []
        assert state.fatal_error == "401"
        assert state.finished

        # A finished state ignores everything
        after, tasks = scheduler.reduce(state, Tick())
        assert after is state and tasks == []

    def test_status_transport_error_waits_for_next_tick(self, scheduler, initial_state):
        state, _ = scheduler.reduce(initial_state, Tick())
        state, tasks = scheduler.reduce(
            state,
            FetchFailed(target=FetchTarget.STATUS, error=ErrorKind.TRANSPORT, message="timeout"),
        )
        assert tasks == [RefreshTask()]
        assert not state.status_in_flight
        assert "timeout" in state.status_text

        state, tasks = scheduler.reduce(state, Tick())
        assert FetchStatusTask() in tasks

    def test_decode_error_keeps_previous_snapshot(self, scheduler, make_snapshot):
        state = _tracking(scheduler, make_snapshot, build=3)
        state, _ = scheduler.reduce(state, Tick())
        state, _ = scheduler.reduce(
            state,
            FetchFailed(target=FetchTarget.STATUS, error=ErrorKind.DECODE, message="bad json"),
        )
        assert state.snapshot.build_number == 3
        assert state.fatal_error is None

    def test_log_transport_error_retried_on_next_status(self, scheduler, make_snapshot):
        state = _tracking(scheduler, make_snapshot)
        failed = state.log_request
        state, tasks = scheduler.reduce(
            state,
            FetchFailed(
                target=FetchTarget.LOG,
                error=ErrorKind.TRANSPORT,
                message="reset",
                request=failed,
            ),
        )
        assert _fetches(tasks) == []
        assert state.log_request is None

        state, tasks = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(1)))
        assert _fetches(tasks) == [failed]

    def test_status_text_cleared_by_next_status(self, scheduler, make_snapshot):
        state, _ = scheduler.reduce(StreamState(), Tick())
        state, _ = scheduler.reduce(
            state,
            FetchFailed(target=FetchTarget.STATUS, error=ErrorKind.TRANSPORT, message="x"),
        )
        state, _ = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(1)))
        assert state.status_text is None

    def test_failure_of_superseded_read_ignored(self, scheduler, make_snapshot):
        state = _tracking(scheduler, make_snapshot, build=1)
        old = state.log_request
        state, _ = scheduler.reduce(state, StatusReceived(snapshot=make_snapshot(2)))
        after, tasks = scheduler.reduce(
            state,
            FetchFailed(target=FetchTarget.LOG, error=ErrorKind.TRANSPORT, request=old),
        )
        assert after is state and tasks == []


class TestUserInput:
    def test_quit(self, scheduler, initial_state):
        state, tasks = scheduler.reduce(initial_state, UserQuit())
        assert state.quit_requested and state.finished
        assert tasks == []

    def test_scroll_only_repaints(self, scheduler, initial_state):
        state, tasks = scheduler.reduce(
            initial_state, ScrollRequested(action=ScrollAction.PAGE_UP)
        )
        assert state is initial_state
        assert tasks == [RefreshTask()]

    def test_unknown_event_rejected(self, scheduler, initial_state):
        with pytest.raises(TypeError):
            scheduler.reduce(initial_state, object())
