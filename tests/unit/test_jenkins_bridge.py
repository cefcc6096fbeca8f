"""Tests for the Jenkins transport — progressive reads, status, error taxonomy.

Uses ``httpx.MockTransport`` so no network is involved.
"""

from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest

from logstreamer.bridge.jenkins import (
    AuthError,
    DecodeError,
    JenkinsClient,
    TransportError,
    fetch_full_log,
    fetch_log_chunk,
    fetch_status,
    parse_more_data,
)
from logstreamer.models.events import ErrorKind
from logstreamer.models.job import BuildResult, ServerEndpoint

STATUS_DOC = {
    "_class": "hudson.model.FreeStyleBuild",
    "number": 7,
    "fullDisplayName": "demo #7",
    "timestamp": 1_700_000_000_000,
    "result": "SUCCESS",
    "building": False,
    "inProgress": False,
}


def _log_response(text: str, size: int | None, more: str | None = "true") -> httpx.Response:
    headers = {}
    if size is not None:
        headers["X-Text-Size"] = str(size)
    if more is not None:
        headers["X-More-Data"] = more
    return httpx.Response(200, text=text, headers=headers)


def _garbled_gzip_response(request: httpx.Request) -> httpx.Response:
    headers = {"Content-Encoding": "gzip", "X-Text-Size": "3", "X-More-Data": "true"}
    return httpx.Response(200, headers=headers, stream=httpx.ByteStream(b"not gzip"))


def _run(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------


class TestMoreDataHeader:
    @pytest.mark.parametrize(
        "value, expected",
        [("true", True), ("TRUE", True), ("false", False), ("", False), (None, False), ("yes please", False)],
    )
    def test_parse_more_data(self, value, expected):
        assert parse_more_data(value) is expected


# ---------------------------------------------------------------------------
# Async client
# ---------------------------------------------------------------------------


class TestJenkinsClientLog:
    def test_progressive_read(self, endpoint: ServerEndpoint):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _log_response("line 1\n", 120)

        async def go():
            async with JenkinsClient(endpoint, transport=httpx.MockTransport(handler)) as client:
                return await client.fetch_log_chunk(100, build_number=7)

        chunk = _run(go())
        assert chunk.text == "line 1\n"
        # X-Text-Size is authoritative, not offset + len(text)
        assert chunk.new_offset == 120
        assert chunk.more_data is True

        request = seen[0]
        assert request.url.path == "/job/demo/7/logText/progressiveText"
        assert request.url.params["start"] == "100"
        expected = base64.b64encode(b"alice:s3cret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"

    def test_missing_more_data_means_done(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(lambda r: _log_response("", 50, more=None))

        async def go():
            async with JenkinsClient(endpoint, transport=transport) as client:
                return await client.fetch_log_chunk(50)

        assert _run(go()).more_data is False

    def test_missing_text_size_is_decode_error(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(lambda r: _log_response("abc", None))

        async def go():
            async with JenkinsClient(endpoint, transport=transport) as client:
                return await client.fetch_log_chunk(0)

        with pytest.raises(DecodeError):
            _run(go())

    def test_offset_regression_is_decode_error(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(lambda r: _log_response("", 10))

        async def go():
            async with JenkinsClient(endpoint, transport=transport) as client:
                return await client.fetch_log_chunk(20)

        with pytest.raises(DecodeError):
            _run(go())

    def test_non_200_is_auth_error(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(lambda r: httpx.Response(401))

        async def go():
            async with JenkinsClient(endpoint, transport=transport) as client:
                return await client.fetch_log_chunk(0)

        with pytest.raises(AuthError) as excinfo:
            _run(go())
        assert excinfo.value.status_code == 401
        assert excinfo.value.kind is ErrorKind.AUTH
        assert "Bad credentials?" in str(excinfo.value)

    def test_connect_error_is_transport_error(self, endpoint: ServerEndpoint):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        async def go():
            async with JenkinsClient(endpoint, transport=httpx.MockTransport(handler)) as client:
                return await client.fetch_log_chunk(0)

        with pytest.raises(TransportError) as excinfo:
            _run(go())
        assert excinfo.value.kind is ErrorKind.TRANSPORT

    def test_timeout_is_transport_error(self, endpoint: ServerEndpoint):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("Timed out", request=request)

        async def go():
            async with JenkinsClient(endpoint, transport=httpx.MockTransport(handler)) as client:
                return await client.fetch_status()

        with pytest.raises(TransportError):
            _run(go())

    def test_undecodable_body_is_decode_error(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(_garbled_gzip_response)

        async def go():
            async with JenkinsClient(endpoint, transport=transport) as client:
                return await client.fetch_log_chunk(0)

        with pytest.raises(DecodeError) as excinfo:
            _run(go())
        assert excinfo.value.kind is ErrorKind.DECODE


class TestJenkinsClientStatus:
    def test_fetch_status(self, endpoint: ServerEndpoint):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=STATUS_DOC)

        async def go():
            async with JenkinsClient(endpoint, transport=httpx.MockTransport(handler)) as client:
                return await client.fetch_status()

        snapshot = _run(go())
        assert seen == ["/job/demo/lastBuild/api/json"]
        assert snapshot.build_number == 7
        assert snapshot.result is BuildResult.SUCCESS
        assert not snapshot.is_running

    def test_malformed_json_is_decode_error(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))

        async def go():
            async with JenkinsClient(endpoint, transport=transport) as client:
                return await client.fetch_status()

        with pytest.raises(DecodeError) as excinfo:
            _run(go())
        assert excinfo.value.kind is ErrorKind.DECODE

    def test_forbidden_is_auth_error(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(lambda r: httpx.Response(403))

        async def go():
            async with JenkinsClient(endpoint, transport=transport) as client:
                return await client.fetch_status()

        with pytest.raises(AuthError):
            _run(go())


# ---------------------------------------------------------------------------
# One-shot helpers
# ---------------------------------------------------------------------------


class TestOneShotHelpers:
    def test_fetch_status_sync(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(
            lambda r: httpx.Response(200, content=json.dumps(STATUS_DOC).encode())
        )
        assert fetch_status(endpoint, transport=transport).display_name == "demo #7"

    def test_fetch_log_chunk_sync(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(lambda r: _log_response("abc", 3, "false"))
        chunk = fetch_log_chunk(endpoint, 0, transport=transport)
        assert (chunk.text, chunk.new_offset, chunk.more_data) == ("abc", 3, False)

    def test_fetch_full_log_chains_until_done(self, endpoint: ServerEndpoint):
        pieces = {0: ("one\n", 4, "true"), 4: ("two\n", 8, "true"), 8: ("three\n", 14, "false")}
        starts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            start = int(request.url.params["start"])
            starts.append(start)
            text, size, more = pieces[start]
            return _log_response(text, size, more)

        text = fetch_full_log(endpoint, transport=httpx.MockTransport(handler))
        assert text == "one\ntwo\nthree\n"
        assert starts == [0, 4, 8]

    def test_fetch_full_log_stops_on_empty_running_chunk(self, endpoint: ServerEndpoint):
        pieces = {0: ("building...\n", 12, "true"), 12: ("", 12, "true")}

        def handler(request: httpx.Request) -> httpx.Response:
            text, size, more = pieces[int(request.url.params["start"])]
            return _log_response(text, size, more)

        text = fetch_full_log(endpoint, transport=httpx.MockTransport(handler))
        assert text == "building...\n"

    def test_sync_auth_error(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(lambda r: httpx.Response(401))
        with pytest.raises(AuthError):
            fetch_status(endpoint, transport=transport)

    def test_sync_undecodable_body_is_decode_error(self, endpoint: ServerEndpoint):
        transport = httpx.MockTransport(_garbled_gzip_response)
        with pytest.raises(DecodeError) as excinfo:
            fetch_log_chunk(endpoint, 0, transport=transport)
        assert excinfo.value.kind is ErrorKind.DECODE
