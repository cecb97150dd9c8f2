#
# src/alertd/testing/channel.py
#
"""
In-process Subscriber implementation backed by an asyncio queue.
"""
import asyncio
import json
from typing import Any


class QueueSubscriber:
    """
    Collects streamed test events in a queue. close() ends the subscription and
    cancels the job it is attached to.
    """

    def __init__(self, maxsize: int = 0):
        self.messages: asyncio.Queue[str] = asyncio.Queue(maxsize)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def send(self, message: str) -> None:
        """Queues a message. A send blocked on a full queue returns once closed."""
        if self.closed:
            return
        if not self.messages.full():
            self.messages.put_nowait(message)
            return
        put = asyncio.ensure_future(self.messages.put(message))
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({put, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            put.cancel()
            closed.cancel()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def close(self) -> None:
        self._closed.set()

    def drain(self) -> list[dict[str, Any]]:
        """Returns and removes every queued event, decoded."""
        events = []
        while not self.messages.empty():
            events.append(json.loads(self.messages.get_nowait()))
        return events

# 🔼⚙️
