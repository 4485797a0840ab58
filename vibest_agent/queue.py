"""Push-based async queue bridging producers and an ``async for`` consumer."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Generic, TypeVar

from vibest_agent.errors import QueueEndedError

T = TypeVar("T")

# Delivered to waiting readers when the queue ends.
_END: Any = object()


class PushQueue(Generic[T]):
    """Unbounded ordered channel with graceful end-of-stream.

    Producers call ``push`` (never blocks) and ``end``; a single consumer
    iterates with ``async for``. Iteration drains buffered values first and
    completes once the queue has ended. A queue is not restartable: build a
    new one for a new stream.
    """

    def __init__(self) -> None:
        self._buffer: deque[T] = deque()
        self._waiters: deque[asyncio.Future] = deque()
        self._ended = False

    @property
    def ended(self) -> bool:
        return self._ended

    def __len__(self) -> int:
        return len(self._buffer)

    def push(self, value: T) -> None:
        """Hand ``value`` to the oldest waiting reader, or buffer it.

        Raises:
            QueueEndedError: If ``end()`` was already called.
        """
        if self._ended:
            raise QueueEndedError("Queue has ended; no further values accepted")
        while self._waiters:
            waiter = self._waiters.popleft()
            # Readers cancelled while waiting leave a done future behind
            if not waiter.done():
                waiter.set_result(value)
                return
        self._buffer.append(value)

    def end(self) -> None:
        """Mark the stream finished and release every waiting reader."""
        if self._ended:
            return
        self._ended = True
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(_END)

    def __aiter__(self) -> PushQueue[T]:
        return self

    async def __anext__(self) -> T:
        if self._buffer:
            return self._buffer.popleft()
        if self._ended:
            raise StopAsyncIteration
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            value = await waiter
        except asyncio.CancelledError:
            if waiter in self._waiters:
                self._waiters.remove(waiter)
            # A value may have landed between the wakeup and the cancel.
            elif waiter.done() and not waiter.cancelled():
                value = waiter.result()
                if value is not _END:
                    self._buffer.appendleft(value)
            raise
        if value is _END:
            raise StopAsyncIteration
        return value
