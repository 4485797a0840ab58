"""Tests for the push-based async queue."""

import asyncio

import pytest

from vibest_agent.errors import QueueEndedError
from vibest_agent.queue import PushQueue


async def _drain(queue: PushQueue) -> list:
    return [item async for item in queue]


class TestBuffering:
    """Values pushed before a reader arrives."""

    @pytest.mark.anyio
    async def test_buffered_values_drain_in_order(self) -> None:
        """Values pushed before iteration are delivered in push order."""
        queue: PushQueue[int] = PushQueue()
        queue.push(1)
        queue.push(2)
        queue.push(3)
        queue.end()

        assert await _drain(queue) == [1, 2, 3]

    @pytest.mark.anyio
    async def test_len_counts_buffered_values(self) -> None:
        """Length reflects values not yet read."""
        queue: PushQueue[str] = PushQueue()
        queue.push("a")
        queue.push("b")
        assert len(queue) == 2

        assert await queue.__anext__() == "a"
        assert len(queue) == 1

    @pytest.mark.anyio
    async def test_end_after_values_still_delivers_them(self) -> None:
        """Ending does not drop values that were already buffered."""
        queue: PushQueue[str] = PushQueue()
        queue.push("last words")
        queue.end()

        assert queue.ended is True
        assert await _drain(queue) == ["last words"]


class TestWaitingReader:
    """A reader suspended on an empty queue."""

    @pytest.mark.anyio
    async def test_push_wakes_waiting_reader(self) -> None:
        """A pending read completes with the next pushed value."""
        queue: PushQueue[str] = PushQueue()
        reader = asyncio.create_task(queue.__anext__())
        await asyncio.sleep(0)
        assert not reader.done()

        queue.push("hello")
        assert await asyncio.wait_for(reader, timeout=1) == "hello"
        assert len(queue) == 0

    @pytest.mark.anyio
    async def test_end_releases_waiting_reader(self) -> None:
        """Ending the queue completes a suspended iteration."""
        queue: PushQueue[str] = PushQueue()
        consumer = asyncio.create_task(_drain(queue))
        await asyncio.sleep(0)

        queue.push("x")
        await asyncio.sleep(0)
        queue.end()

        assert await asyncio.wait_for(consumer, timeout=1) == ["x"]

    @pytest.mark.anyio
    async def test_cancelled_reader_does_not_lose_values(self) -> None:
        """A value pushed after a reader was cancelled goes to the next reader."""
        queue: PushQueue[str] = PushQueue()
        reader = asyncio.create_task(queue.__anext__())
        await asyncio.sleep(0)
        reader.cancel()
        with pytest.raises(asyncio.CancelledError):
            await reader

        queue.push("kept")
        assert await queue.__anext__() == "kept"

    @pytest.mark.anyio
    async def test_value_racing_a_cancel_is_put_back(self) -> None:
        """A value delivered just before a reader's cancellation is re-buffered."""
        queue: PushQueue[str] = PushQueue()
        reader = asyncio.create_task(queue.__anext__())
        await asyncio.sleep(0)

        queue.push("raced")
        reader.cancel()
        with pytest.raises(asyncio.CancelledError):
            await reader

        assert len(queue) == 1
        assert await queue.__anext__() == "raced"


class TestEnd:
    """End-of-stream behavior."""

    @pytest.mark.anyio
    async def test_iterating_ended_empty_queue_stops(self) -> None:
        """An ended empty queue yields nothing."""
        queue: PushQueue[int] = PushQueue()
        queue.end()

        assert await _drain(queue) == []
        with pytest.raises(StopAsyncIteration):
            await queue.__anext__()

    def test_push_after_end_raises(self) -> None:
        """Pushing onto an ended queue is rejected."""
        queue: PushQueue[int] = PushQueue()
        queue.end()

        with pytest.raises(QueueEndedError):
            queue.push(1)

    def test_end_is_idempotent(self) -> None:
        """Ending twice is harmless."""
        queue: PushQueue[int] = PushQueue()
        queue.end()
        queue.end()
        assert queue.ended is True
