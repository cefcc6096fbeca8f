"""Jenkins transport — status polling and progressive console reads.

Progressive read contract
-------------------------
``GET {job}/{build}/logText/progressiveText?start=N`` returns the console
text appended since byte ``N`` plus two headers:

``X-More-Data``
    ``true`` while the server expects more bytes (build still running, or
    end-of-log not yet confirmed).  Missing or unparseable means ``False``.
``X-Text-Size``
    The authoritative offset for the next read.  Used verbatim; it is not
    necessarily ``N + len(text)`` because the body is decoded text while
    the header counts server-side bytes.

Failure taxonomy
----------------
``AuthError``
    Any non-200 response.  Session-fatal, never retried.
``TransportError``
    Network failure or timeout.  Recoverable for the current tick.
``DecodeError``
    Malformed status document or progressive-read headers.  Recoverable.
"""

from __future__ import annotations

import logging
from types import TracebackType

import httpx
from pydantic import ValidationError

from logstreamer.models.events import ErrorKind
from logstreamer.models.job import JobStatusPayload, ServerEndpoint, StatusSnapshot
from logstreamer.models.log import LogChunk

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

MORE_DATA_HEADER = "X-More-Data"
TEXT_SIZE_HEADER = "X-Text-Size"


class JenkinsError(RuntimeError):
    """Base class for failures talking to Jenkins."""

    kind: ErrorKind = ErrorKind.TRANSPORT


class AuthError(JenkinsError):
    """Jenkins answered with a non-success status.  Bad credentials or URL."""

    kind = ErrorKind.AUTH

    def __init__(self, method: str, url: str, status_code: int) -> None:
        self.method = method
        self.url = url
        self.status_code = status_code
        super().__init__(
            f"{method} {url}: Jenkins responded with status {status_code}, "
            "expecting 200. Bad credentials?"
        )


class TransportError(JenkinsError):
    """Network failure or timeout."""

    kind = ErrorKind.TRANSPORT


class DecodeError(JenkinsError):
    """Response body or headers could not be interpreted."""

    kind = ErrorKind.DECODE


# ---------------------------------------------------------------------------
# Response parsing (shared by the async client and the one-shot helpers)
# ---------------------------------------------------------------------------


def _check_response(response: httpx.Response) -> None:
    if response.status_code != 200:
        raise AuthError(
            response.request.method, str(response.request.url), response.status_code
        )


def parse_more_data(value: str | None) -> bool:
    """Interpret ``X-More-Data``; anything but a true-ish value is ``False``."""
    if value is None:
        return False
    return value.strip().lower() in ("true", "1", "t")


def parse_log_response(response: httpx.Response, offset: int) -> LogChunk:
    """Turn a progressive-text response read at ``offset`` into a ``LogChunk``."""
    _check_response(response)

    raw_size = response.headers.get(TEXT_SIZE_HEADER)
    try:
        new_offset = int(raw_size) if raw_size is not None else None
    except ValueError:
        new_offset = None
    if new_offset is None:
        raise DecodeError(f"Missing or invalid {TEXT_SIZE_HEADER} header: {raw_size!r}")
    if new_offset < offset:
        raise DecodeError(
            f"{TEXT_SIZE_HEADER} {new_offset} is behind the requested offset {offset}"
        )

    return LogChunk(
        text=response.text,
        new_offset=new_offset,
        more_data=parse_more_data(response.headers.get(MORE_DATA_HEADER)),
    )


def parse_status_response(response: httpx.Response) -> StatusSnapshot:
    """Turn a build ``api/json`` response into a ``StatusSnapshot``."""
    _check_response(response)
    try:
        payload = JobStatusPayload.model_validate_json(response.content)
    except ValidationError as exc:
        raise DecodeError(f"Malformed status document: {exc}") from exc
    return payload.to_snapshot()


# ---------------------------------------------------------------------------
# Async client (used by the live view)
# ---------------------------------------------------------------------------


class JenkinsClient:
    """Async Jenkins client bound to one job endpoint.

    Parameters
    ----------
    endpoint:
        Job URL and credentials.
    timeout:
        Per-request timeout in seconds.  Expiry raises ``TransportError``.
    transport:
        Optional ``httpx`` transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        endpoint: ServerEndpoint,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._client = httpx.AsyncClient(
            auth=endpoint.auth,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> JenkinsClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, url: str, **params: int) -> httpx.Response:
        try:
            return await self._client.get(url, params=params or None)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Timed out requesting {url}") from exc
        except httpx.DecodingError as exc:
            raise DecodeError(f"Could not decode response from {url}: {exc}") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

    async def fetch_status(self, build_number: int | None = None) -> StatusSnapshot:
        """Fetch the status of ``build_number`` (the last build by default)."""
        response = await self._get(self.endpoint.status_url(build_number))
        snapshot = parse_status_response(response)
        logger.debug(
            "Status: build #%d result=%s running=%s",
            snapshot.build_number,
            snapshot.result.value,
            snapshot.is_running,
        )
        return snapshot

    async def fetch_log_chunk(
        self, offset: int, build_number: int | None = None
    ) -> LogChunk:
        """Read the console text of ``build_number`` appended since ``offset``."""
        response = await self._get(self.endpoint.log_url(build_number), start=offset)
        chunk = parse_log_response(response, offset)
        logger.debug(
            "Log chunk: build=%s start=%d new_offset=%d chars=%d more=%s",
            build_number if build_number is not None else "last",
            offset,
            chunk.new_offset,
            len(chunk.text),
            chunk.more_data,
        )
        return chunk


# ---------------------------------------------------------------------------
# One-shot helpers (used by the ``status`` and ``log`` commands)
# ---------------------------------------------------------------------------


def _sync_get(
    endpoint: ServerEndpoint,
    url: str,
    *,
    timeout: float,
    transport: httpx.BaseTransport | None = None,
    **params: int,
) -> httpx.Response:
    try:
        with httpx.Client(auth=endpoint.auth, timeout=timeout, transport=transport) as client:
            return client.get(url, params=params or None)
    except httpx.TimeoutException as exc:
        raise TransportError(f"Timed out requesting {url}") from exc
    except httpx.DecodingError as exc:
        raise DecodeError(f"Could not decode response from {url}: {exc}") from exc
    except httpx.RequestError as exc:
        raise TransportError(f"Request to {url} failed: {exc}") from exc


def fetch_status(
    endpoint: ServerEndpoint,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> StatusSnapshot:
    """Blocking status fetch for the job's last build."""
    response = _sync_get(endpoint, endpoint.status_url(), timeout=timeout, transport=transport)
    return parse_status_response(response)


def fetch_log_chunk(
    endpoint: ServerEndpoint,
    offset: int,
    *,
    build_number: int | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> LogChunk:
    """Blocking progressive read starting at ``offset``."""
    response = _sync_get(
        endpoint,
        endpoint.log_url(build_number),
        timeout=timeout,
        transport=transport,
        start=offset,
    )
    return parse_log_response(response, offset)


def fetch_full_log(
    endpoint: ServerEndpoint,
    *,
    build_number: int | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Read the whole console log available right now.

    Chains progressive reads until the server reports no more data or a
    read returns no new text (the build is still running and has nothing
    new to say).
    """
    parts: list[str] = []
    offset = 0
    while True:
        chunk = fetch_log_chunk(
            endpoint,
            offset,
            build_number=build_number,
            timeout=timeout,
            transport=transport,
        )
        parts.append(chunk.text)
        offset = chunk.new_offset
        if not (chunk.more_data and chunk.text):
            return "".join(parts)
