"""
Long-lived event-stream transports.

A transport owns one realtime HTTP stream, decodes it with :class:`SseParser`
and reports ``message``, ``error`` and ``close`` events to registered
handlers. Interrupted streams are reopened according to the reconnect policy
until the attempt budget runs out, at which point the transport closes.

Two strategies share this contract:

- :class:`StreamingSseTransport` reads the response body incrementally and
  feeds every received chunk to the parser.
- :class:`PollingSseTransport` lets a download fill a buffer and polls that
  buffer on an interval, feeding only the bytes appended since the last poll.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import Enum
from typing import Any

import httpx

from pocketbase_client.config import DEFAULT_CONNECT_TIMEOUT, DEFAULT_RETRY_DELAYS, DebugFn
from pocketbase_client.errors import RealtimeConnectionError, StreamClosedError
from pocketbase_client.realtime.message import SseMessage
from pocketbase_client.realtime.parser import SseParser
from pocketbase_client.realtime.retry import calculate_reconnect_delay, should_reconnect

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Transport lifecycle states."""

    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


TransportEvent = str

EVENTS: tuple[TransportEvent, ...] = ("message", "error", "close")


class BaseSseTransport(ABC):
    """
    State machine and event plumbing shared by the transport strategies.

    Handlers are plain callables: ``message`` handlers receive an
    :class:`SseMessage`, ``error`` handlers a :class:`RealtimeConnectionError`
    and ``close`` handlers nothing. A failing handler is logged and does not
    affect the other handlers or the read loop.
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient,
        *,
        headers: Mapping[str, str] | None = None,
        max_reconnect_attempts: int | None = None,
        retry_delays: Sequence[int] = DEFAULT_RETRY_DELAYS,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        debug: DebugFn | None = None,
    ) -> None:
        self._url = url
        self._client = client
        self._headers = dict(headers or {})
        self._max_reconnect_attempts = max_reconnect_attempts
        self._retry_delays = tuple(retry_delays)
        self._connect_timeout = connect_timeout
        self._debug = debug

        self._handlers: dict[TransportEvent, list[Callable[..., Any]]] = {
            event: [] for event in EVENTS
        }
        self._state = ConnectionState.IDLE
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self._reconnect_attempts = 0
        self._last_retry = 0

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def on(
        self,
        event: TransportEvent,
        handler: Callable[..., Any] | None = None,
    ) -> Callable[..., Any]:
        """
        Register an event handler (usable as a decorator).

        Example:
            >>> @transport.on("message")
            ... def on_message(message):
            ...     print(message.event, message.data)
        """
        if event not in self._handlers:
            raise ValueError(f"Unknown transport event {event!r}")

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self._handlers[event].append(fn)
            return fn

        if handler is not None:
            return decorator(handler)
        return decorator

    def connect(self) -> None:
        """Start (or restart) the connection loop on the running event loop."""
        if self._closed:
            return

        if self._task is not None and not self._task.done():
            self._task.cancel()

        self._task = asyncio.get_running_loop().create_task(self._run())

    async def close(self) -> None:
        """
        Stop the transport for good.

        Cancels the read loop and any pending reconnect delay, fires ``close``
        exactly once and then drops every handler. Safe to call repeatedly,
        including from inside a handler.
        """
        if self._closed:
            return

        self._closed = True
        self._set_state(ConnectionState.CLOSED)

        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        self._handlers["message"].clear()
        self._handlers["error"].clear()
        self._emit("close")
        self._handlers["close"].clear()

    async def dispose(self) -> None:
        await self.close()

    async def _run(self) -> None:
        while not self._closed:
            self._set_state(ConnectionState.CONNECTING)
            parser = SseParser()

            try:
                await self._stream(parser)
                error: RealtimeConnectionError = StreamClosedError(url=self._url)
            except RealtimeConnectionError as e:
                error = e
            except Exception as e:
                error = RealtimeConnectionError(url=self._url, original_error=e)

            if self._closed:
                return

            self._emit("error", error)

            if not await self._wait_for_reconnect():
                return

    async def _wait_for_reconnect(self) -> bool:
        if self._closed:
            return False

        if not should_reconnect(self._reconnect_attempts, self._max_reconnect_attempts):
            self._log("Reconnect attempts exhausted", {"attempts": self._reconnect_attempts})
            await self.close()
            return False

        delay = calculate_reconnect_delay(
            self._reconnect_attempts,
            self._last_retry,
            self._retry_delays,
        )
        self._set_state(ConnectionState.RECONNECTING)
        self._log("Reconnecting", {"attempt": self._reconnect_attempts + 1, "delay": delay})

        await asyncio.sleep(delay)
        self._reconnect_attempts += 1
        return not self._closed

    @abstractmethod
    async def _stream(self, parser: SseParser) -> None:
        """
        Open the stream and pump it through ``parser`` until it ends.

        Returns normally when the server ends the stream, raises
        on failure. Errors other than :class:`RealtimeConnectionError` are
        wrapped in one.
        """

    def _request_headers(self) -> dict[str, str]:
        return {
            **self._headers,
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
        }

    def _request_timeout(self) -> httpx.Timeout:
        # No read timeout: the stream may stay silent indefinitely.
        return httpx.Timeout(self._connect_timeout, read=None)

    async def _check_response(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        await response.aread()
        raise RealtimeConnectionError(
            url=self._url,
            status_code=response.status_code,
            original_error=response.text,
        )

    def _opened(self) -> None:
        self._set_state(ConnectionState.STREAMING)

    def _dispatch(self, messages: Iterable[SseMessage]) -> None:
        for message in messages:
            if self._closed:
                return
            # A stream only counts as recovered once it delivers a message.
            self._reconnect_attempts = 0
            self._last_retry = message.retry
            self._emit("message", message)

    def _emit(self, event: TransportEvent, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            try:
                handler(*args)
            except Exception:
                logger.exception("Realtime %s handler failed", event)

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            self._state = state
            self._log("Realtime transport state changed", {"state": state.value})

    def _log(self, message: str, data: Any = None) -> None:
        if self._debug:
            self._debug(message, data)


class StreamingSseTransport(BaseSseTransport):
    """Reads the response body incrementally and parses each chunk as it arrives."""

    async def _stream(self, parser: SseParser) -> None:
        async with self._client.stream(
            "GET",
            self._url,
            headers=self._request_headers(),
            timeout=self._request_timeout(),
        ) as response:
            await self._check_response(response)
            self._opened()

            async for chunk in response.aiter_bytes():
                self._dispatch(parser.feed(chunk))
                if self._closed:
                    return

            self._dispatch(parser.close())


class BufferedDownload:
    """
    Download handle that only exposes what has been received so far.

    Mirrors request objects of runtimes without incremental body reads: the
    caller can look at the status code, the accumulated bytes and whether the
    download has finished, nothing else.
    """

    def __init__(self) -> None:
        self.status_code = 0
        self.buffer = bytearray()
        self.done = False
        self.error: Exception | None = None

    @property
    def downloaded_bytes(self) -> int:
        return len(self.buffer)


class PollingSseTransport(BaseSseTransport):
    """
    Polls a buffered download and parses only the newly appended bytes.

    Example:
        >>> transport = PollingSseTransport(url, client, poll_interval=0.05)
        >>> transport.on("message", print)
        >>> transport.connect()
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient,
        *,
        poll_interval: float = 0.1,
        **kwargs: Any,
    ) -> None:
        super().__init__(url, client, **kwargs)
        self._poll_interval = poll_interval

    async def _stream(self, parser: SseParser) -> None:
        download = BufferedDownload()
        fetch = asyncio.get_running_loop().create_task(self._download(download))

        try:
            while download.status_code == 0 and not download.done:
                await asyncio.sleep(self._poll_interval)

            if download.error is not None:
                raise download.error
            if not 200 <= download.status_code < 300:
                raise RealtimeConnectionError(
                    url=self._url,
                    status_code=download.status_code,
                    original_error=download.buffer.decode("utf-8", errors="replace"),
                )

            self._opened()

            processed = 0
            while not self._closed:
                received = download.downloaded_bytes
                if received > processed:
                    chunk = bytes(download.buffer[processed:received])
                    processed = received
                    self._dispatch(parser.feed(chunk))
                elif download.done:
                    break
                else:
                    await asyncio.sleep(self._poll_interval)

            if self._closed:
                return
            if download.error is not None:
                raise download.error

            self._dispatch(parser.close())
        finally:
            if not fetch.done():
                fetch.cancel()
                await asyncio.gather(fetch, return_exceptions=True)

    async def _download(self, download: BufferedDownload) -> None:
        try:
            async with self._client.stream(
                "GET",
                self._url,
                headers=self._request_headers(),
                timeout=self._request_timeout(),
            ) as response:
                download.status_code = response.status_code
                async for chunk in response.aiter_bytes():
                    download.buffer.extend(chunk)
        except Exception as e:
            download.error = e
        finally:
            download.done = True
