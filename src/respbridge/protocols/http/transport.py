"""HTTP transports — one-shot JSON exchanges and server-sent event streams.

Each transport satisfies the :class:`Transport` protocol. The transport owns
the connection; classification of statuses and bodies happens in the core.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

import httpx

from respbridge.core.interface.errors import TransportFailure, catch_error, is_success
from respbridge.core.interface.streaming import SseMessage
from respbridge.protocols.http.models import RequestData, TransportResponse

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Sends prepared requests for the Responses client.

    ``send`` returns the status with the body and leaves classification to the
    caller. ``stream`` yields bare events with no status, so an implementation
    must check the status itself before yielding anything and pass non-2xx
    replies through :func:`~respbridge.core.interface.errors.catch_error`.
    A failed status then raises ``ApiError`` whatever the body holds, and
    connection or read errors raise ``TransportFailure``.
    """

    async def send(self, request: RequestData) -> TransportResponse: ...
    def stream(self, request: RequestData) -> AsyncIterator[SseMessage]: ...


class SseParser:
    """Incremental ``text/event-stream`` line parser.

    Feed lines without their terminators; a blank line dispatches the event
    collected so far.
    """

    def __init__(self) -> None:
        self._event = "message"
        self._data: list[str] = []

    def feed(self, line: str) -> SseMessage | None:
        if not line:
            return self.flush()
        if line.startswith(":"):
            return None

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        return None

    def flush(self) -> SseMessage | None:
        """Dispatch the pending event, if any, and reset."""
        if not self._data:
            self._event = "message"
            return None
        message = SseMessage(data="\n".join(self._data), event=self._event)
        self._event = "message"
        self._data = []
        return message


class HttpxTransport:
    """Transport backed by :class:`httpx.AsyncClient`.

    Usage::

        async with HttpxTransport() as transport:
            client = ResponsesClient(config, transport)
            output = await client.chat_completions(data)
    """

    def __init__(
        self,
        *,
        proxy: str | None = None,
        connect_timeout: float | None = None,
        timeout: float | None = None,
    ) -> None:
        self._proxy = proxy
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HttpxTransport:
        self._client = httpx.AsyncClient(proxy=self._proxy, timeout=self._timeout)
        return self

    async def __aexit__(self, *_: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "HttpxTransport must be used as an async context manager"
            raise RuntimeError(msg)
        return self._client

    async def send(self, request: RequestData) -> TransportResponse:
        """POST the request and return status plus decoded body."""
        logger.debug("POST %s", request.url)
        try:
            response = await self._http().post(
                request.url, headers=request.headers, json=request.body
            )
        except httpx.HTTPError as exc:
            raise TransportFailure(str(exc)) from exc
        return TransportResponse(status=response.status_code, body=decode_body(response.text))

    async def stream(self, request: RequestData) -> AsyncIterator[SseMessage]:
        """POST the request and yield server-sent events as they arrive.

        Raises:
            ApiError: If the server answers with a non-2xx status.
            TransportFailure: On connection or read errors.
        """
        logger.debug("POST %s (stream)", request.url)
        try:
            async with self._http().stream(
                "POST", request.url, headers=request.headers, json=request.body
            ) as response:
                if not is_success(response.status_code):
                    raw = await response.aread()
                    catch_error(decode_body(raw.decode("utf-8", "replace")), response.status_code)

                parser = SseParser()
                async for line in response.aiter_lines():
                    message = parser.feed(line)
                    if message is not None:
                        yield message
                tail = parser.flush()
                if tail is not None:
                    yield tail
        except httpx.HTTPError as exc:
            raise TransportFailure(str(exc)) from exc


def decode_body(text: str) -> Any:
    """Decode a JSON body, keeping the raw text when it is not JSON."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text
