"""
Observable event stream with optional history replay.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class EventStream(Generic[T]):
    """
    Multicast event stream that remembers every emitted value.

    Late subscribers can ask for the history to be replayed before they start
    receiving live events.

    Example:
        >>> stream: EventStream[int] = EventStream()
        >>> stream.emit(1)
        >>> seen = []
        >>> unsubscribe = stream.subscribe(seen.append)
        >>> stream.emit(2)
        >>> seen
        [1, 2]
    """

    def __init__(self) -> None:
        self._history: list[T] = []
        self._handlers: list[Callable[[T], None]] = []

    def emit(self, value: T) -> None:
        """Record ``value`` and forward it to every subscriber."""
        self._history.append(value)
        for handler in list(self._handlers):
            try:
                handler(value)
            except Exception:
                logger.exception("Event handler %r failed", handler)

    def subscribe(
        self,
        handler: Callable[[T], None],
        *,
        replay_history: bool = True,
    ) -> Callable[[], None]:
        """Register ``handler`` and return a callable that removes it again."""
        if replay_history:
            for value in list(self._history):
                try:
                    handler(value)
                except Exception:
                    logger.exception("Event handler %r failed", handler)

        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    @property
    def history(self) -> list[T]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def clear_subscribers(self) -> None:
        self._handlers.clear()

    def clear(self) -> None:
        self.clear_history()
        self.clear_subscribers()
