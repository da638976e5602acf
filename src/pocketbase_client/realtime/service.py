"""
Realtime subscription registry.

Multiplexes any number of (topic, options) subscriptions over a single
event-stream session. The registry owns the transport: it opens it lazily on
the first subscription, keeps the backend's push filter in sync by
resubmitting the live key set, and closes it once no listener is left.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from functools import partial
from typing import TYPE_CHECKING, Any
from urllib.parse import quote_plus

from pocketbase_client.config import CONNECT_EVENT, REALTIME_PATH, RealtimeConfig
from pocketbase_client.errors import RealtimeConnectionError
from pocketbase_client.realtime.message import SseMessage
from pocketbase_client.realtime.transport import (
    BaseSseTransport,
    PollingSseTransport,
    StreamingSseTransport,
)
from pocketbase_client.utils.url import set_default

if TYPE_CHECKING:
    from pocketbase_client.utils.async_http import AsyncHttpClient

logger = logging.getLogger(__name__)

Listener = Callable[[SseMessage], Any]
UnsubscribeFunc = Callable[[], Awaitable[None]]
DisconnectHook = Callable[[dict[str, list[Listener]]], Any]
TransportFactory = Callable[[], BaseSseTransport]


def build_subscription_key(
    topic: str,
    *,
    expand: str | None = None,
    filter: str | None = None,
    fields: str | None = None,
    query: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> str:
    """
    Canonical subscription key for a topic and its options.

    Options are serialized as compact JSON with sorted keys, so equivalent
    option sets always produce the same key.

    Example:
        >>> build_subscription_key("posts/*", filter="a")
        'posts/*?options=%7B%22query%22%3A%7B%22filter%22%3A%22a%22%7D%7D'
    """
    merged: dict[str, Any] = dict(query or {})
    set_default(merged, "expand", expand)
    set_default(merged, "filter", filter)
    set_default(merged, "fields", fields)

    options: dict[str, Any] = {}
    if merged:
        options["query"] = merged
    if headers:
        options["headers"] = dict(headers)

    if not options:
        return topic

    serialized = json.dumps(options, sort_keys=True, separators=(",", ":"), default=str)
    separator = "&" if "?" in topic else "?"
    return f"{topic}{separator}options={quote_plus(serialized)}"


class RealtimeService:
    """
    Registry of realtime listeners keyed by subscription key.

    Example:
        >>> async def main():
        ...     pb = AsyncPocketBase("http://127.0.0.1:8090")
        ...     unsubscribe = await pb.realtime.subscribe("posts/*", print)
        ...     ...
        ...     await unsubscribe()
    """

    def __init__(
        self,
        http: AsyncHttpClient,
        config: RealtimeConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._http = http
        self._config = config or RealtimeConfig()
        self._debug = http.config.debug_fn
        self._transport_factory = transport_factory or self._create_transport

        self._subscriptions: dict[str, list[Listener]] = {}
        self._transport: BaseSseTransport | None = None
        self._ready: asyncio.Future[None] | None = None
        self._pending: set[asyncio.Task[Any]] = set()

        self.client_id = ""
        self.on_disconnect: DisconnectHook | None = None

    @property
    def is_connected(self) -> bool:
        """Whether a session is open and has been assigned a client id."""
        return self._transport is not None and bool(self.client_id)

    @property
    def subscriptions(self) -> dict[str, list[Listener]]:
        """Snapshot of the live subscription keys and their listeners."""
        return {key: list(listeners) for key, listeners in self._subscriptions.items()}

    async def subscribe(
        self,
        topic: str,
        listener: Listener,
        *,
        expand: str | None = None,
        filter: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> UnsubscribeFunc:
        """
        Register ``listener`` for ``topic``.

        Opens the session if needed and waits until it is ready. Returns an
        async callable that removes exactly this (topic, listener) pair.

        Raises:
            RealtimeConnectionError: If the session fails before it is ready
            ClientException: If the initial subscription submit fails
        """
        if not topic:
            raise ValueError("topic must be set")

        key = build_subscription_key(
            topic,
            expand=expand,
            filter=filter,
            fields=fields,
            query=query,
            headers=headers,
        )
        self._subscriptions.setdefault(key, []).append(listener)

        if self._transport is None:
            await self._connect()
        elif self.client_id:
            self._submit_in_background()
        elif self._ready is not None:
            await asyncio.shield(self._ready)

        async def unsubscribe() -> None:
            await self._unsubscribe_by_topic_and_listener(topic, listener)

        return unsubscribe

    async def unsubscribe(self, topic: str | None = None) -> None:
        """
        Remove every listener of ``topic`` (all options variants), or every
        listener at all when no topic is given.
        """
        removed = False
        if not topic:
            removed = bool(self._subscriptions)
            self._subscriptions.clear()
        else:
            for key in self._keys_for_topic(topic):
                del self._subscriptions[key]
                removed = True

        await self._after_removal(removed)

    async def unsubscribe_by_prefix(self, prefix: str) -> None:
        """Remove every subscription whose key starts with ``prefix``."""
        keys = [key for key in self._subscriptions if f"{key}?".startswith(prefix)]
        if not keys:
            return

        for key in keys:
            del self._subscriptions[key]

        await self._after_removal(True)

    async def close(self) -> None:
        """Drop every subscription and close the session."""
        self._subscriptions.clear()
        await self._disconnect()

        pending, self._pending = self._pending, set()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _unsubscribe_by_topic_and_listener(self, topic: str, listener: Listener) -> None:
        removed = False
        for key in self._keys_for_topic(topic):
            listeners = self._subscriptions[key]
            for index in range(len(listeners) - 1, -1, -1):
                if listeners[index] is listener:
                    del listeners[index]
                    break
            else:
                continue

            if not listeners:
                del self._subscriptions[key]
                removed = True

        await self._after_removal(removed)

    async def _after_removal(self, removed: bool) -> None:
        if not self._has_listeners():
            await self._disconnect()
        elif removed and self.client_id:
            await self._submit_subscriptions()

    def _keys_for_topic(self, topic: str) -> list[str]:
        # "posts" must not match "posts2", but should match "posts?options=..."
        prefix = topic if "?" in topic else f"{topic}?"
        return [key for key in self._subscriptions if f"{key}?".startswith(prefix)]

    def _has_listeners(self) -> bool:
        return any(self._subscriptions.values())

    def _active_keys(self) -> list[str]:
        return [key for key, listeners in self._subscriptions.items() if listeners]

    async def _submit_subscriptions(self) -> None:
        if not self.client_id:
            return

        keys = self._active_keys()
        self._log("Submitting realtime subscriptions", {"subscriptions": keys})
        await self._http.post(
            REALTIME_PATH,
            {"clientId": self.client_id, "subscriptions": keys},
        )

    def _submit_in_background(self, ready: asyncio.Future[None] | None = None) -> None:
        task = asyncio.get_running_loop().create_task(self._submit_subscriptions())
        self._pending.add(task)
        task.add_done_callback(partial(self._submit_done, ready))

    def _submit_done(self, ready: asyncio.Future[None] | None, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)

        if task.cancelled():
            if ready is not None and not ready.done():
                ready.cancel()
            return

        error = task.exception()
        if ready is not None and not ready.done():
            if error is not None:
                ready.set_exception(error)
            else:
                ready.set_result(None)
        elif error is not None:
            logger.warning("Failed to submit realtime subscriptions", exc_info=error)

    async def _connect(self) -> None:
        await self._disconnect()

        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        transport = self._transport_factory()
        self._transport = transport
        self._ready = ready

        def handle_message(message: SseMessage) -> None:
            if message.event == CONNECT_EVENT:
                self.client_id = message.id
                self._log("Realtime session ready", {"client_id": message.id})
                self._submit_in_background(ready)

            for listener in list(self._subscriptions.get(message.event, ())):
                try:
                    listener(message)
                except Exception:
                    logger.exception("Realtime listener for %r failed", message.event)

        def handle_error(error: RealtimeConnectionError) -> None:
            self._log("Realtime connection error", {"error": str(error)})

            if self.client_id:
                self.client_id = ""
                self._notify_disconnect()

            if not ready.done():
                ready.set_exception(error)
                if self._transport is transport:
                    self._transport = None
                    self._ready = None
                    self._spawn(transport.close())

        def handle_close() -> None:
            if not ready.done():
                ready.set_exception(
                    RealtimeConnectionError(
                        "The realtime connection was closed before it was ready.",
                        url=transport.url,
                    )
                )

            if self._transport is transport:
                self._transport = None
            elif self._transport is not None:
                # superseded by a newer session
                return

            if self.client_id:
                self._notify_disconnect()
                self.client_id = ""

        transport.on("message", handle_message)
        transport.on("error", handle_error)
        transport.on("close", handle_close)
        transport.connect()

        await ready

    async def _disconnect(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()
        self.client_id = ""
        self._ready = None

    def _notify_disconnect(self) -> None:
        if self.on_disconnect is None:
            return
        try:
            result = self.on_disconnect(self.subscriptions)
            if asyncio.iscoroutine(result):
                self._spawn(result)
        except Exception:
            logger.exception("Realtime on_disconnect hook failed")

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._spawned_done)

    def _spawned_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Realtime background task failed", exc_info=task.exception())

    def _create_transport(self) -> BaseSseTransport:
        options: dict[str, Any] = {
            "max_reconnect_attempts": self._config.max_reconnect_attempts,
            "retry_delays": self._config.retry_delays,
            "connect_timeout": self._config.connect_timeout,
            "debug": self._debug,
        }
        url = self._http.build_url(REALTIME_PATH)

        if self._config.transport == "polling":
            return PollingSseTransport(
                url,
                self._http.client,
                poll_interval=self._config.poll_interval,
                **options,
            )
        return StreamingSseTransport(url, self._http.client, **options)

    def _log(self, message: str, data: Any = None) -> None:
        if self._debug:
            self._debug(message, data)
