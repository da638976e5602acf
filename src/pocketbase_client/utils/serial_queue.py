"""
Sequential execution of queued operations.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Operation = Callable[[], "Awaitable[Any] | Any"]


class SerialQueue:
    """
    Runs queued operations one at a time, in the order they were enqueued.

    Operations are zero-argument callables that may return an awaitable. A
    failing operation is logged and the queue moves on to the next one.

    Without a running event loop the operation runs immediately on the
    calling thread.
    """

    def __init__(self, on_complete: Callable[[], None] | None = None) -> None:
        self._operations: deque[Operation] = deque()
        self._on_complete = on_complete
        self._task: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._operations)

    def enqueue(self, operation: Operation) -> None:
        """Append ``operation`` and start processing if the queue was idle."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._run_blocking(operation)
            return

        self._operations.append(operation)
        if self._task is None or self._task.done():
            self._task = loop.create_task(self._drain())

    async def join(self) -> None:
        """Wait until every queued operation has been processed."""
        while self._task is not None and not self._task.done():
            await self._task

    async def _drain(self) -> None:
        while self._operations:
            operation = self._operations[0]
            try:
                result = operation()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Queued operation failed")
            finally:
                self._operations.popleft()

        if self._on_complete is not None:
            self._on_complete()

    def _run_blocking(self, operation: Operation) -> None:
        try:
            result = operation()
            if inspect.isawaitable(result):
                asyncio.run(_await(result))
        except Exception:
            logger.exception("Queued operation failed")

        if self._on_complete is not None:
            self._on_complete()


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
