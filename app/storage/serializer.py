"""FIFO execution of mutations against a single record store."""

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Operation = Callable[[], Any | Awaitable[Any]]


class MutationSerializer:
    """Run submitted operations one at a time, in submission order.

    Each store owns one serializer. An operation body never starts before the
    previous one has finished, including any awaited work inside it. A failing
    operation rejects only its own caller; the queue keeps draining.
    """

    def __init__(self, name: str = "store"):
        self.name = name
        self._queue: deque[tuple[Operation, asyncio.Future]] = deque()
        self._draining = False
        self._drain_task: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def draining(self) -> bool:
        return self._draining

    def submit(self, operation: Operation) -> asyncio.Future:
        """Queue an operation and return a future for its result."""
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._queue.append((operation, future))
        if not self._draining:
            self._draining = True
            self._drain_task = loop.create_task(self._drain())
        return future

    async def run(self, operation: Operation) -> Any:
        return await self.submit(operation)

    async def join(self) -> None:
        """Wait until every operation queued so far has completed."""
        if self._draining or self._queue:
            await self.run(lambda: None)

    async def _drain(self) -> None:
        try:
            while self._queue:
                operation, future = self._queue.popleft()
                if future.cancelled():
                    continue
                try:
                    result = operation()
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as e:
                    logger.error("[%s] queued operation failed: %s", self.name, e)
                    if not future.done():
                        future.set_exception(e)
                except asyncio.CancelledError:
                    if not future.done():
                        future.cancel()
                    current = asyncio.current_task()
                    if current is not None and current.cancelling():
                        raise
                    logger.warning("[%s] queued operation was cancelled", self.name)
                except BaseException as e:
                    if not future.done():
                        future.set_exception(e)
                    raise
                else:
                    if not future.done():
                        future.set_result(result)
        finally:
            self._draining = False
            # Only non-empty when the drain itself was interrupted.
            while self._queue:
                _, pending = self._queue.popleft()
                if not pending.done():
                    pending.cancel()
