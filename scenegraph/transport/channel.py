"""In-process message channel between the generation and display sides.

Single producer, single consumer. Every posted message is serialized once to
enforce the size limit the same way a real host message port would; anything
larger must go through the chunked sender.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

from ..settings import CHANNEL_MAX_MESSAGE_SIZE
from .messages import Message

logger = logging.getLogger("scenegraph.transport")


class MessageTooLargeError(Exception):
    """Raised when a serialized message exceeds the channel limit."""

    def __init__(self, message_type: str, size: int, limit: int):
        self.message_type = message_type
        self.size = size
        self.limit = limit
        super().__init__(
            f"Message '{message_type}' is {size} chars, channel limit is {limit}"
        )


class MessageChannel:
    """asyncio.Queue-backed channel with a per-message size limit."""

    def __init__(self, max_message_size: int = CHANNEL_MAX_MESSAGE_SIZE):
        self.max_message_size = max_message_size
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def post(self, message: Message) -> None:
        """Queue ``message`` for the consumer.

        Raises:
            MessageTooLargeError: Serialized message is over the limit.
            RuntimeError: Channel already closed.
        """
        if self._closed:
            raise RuntimeError("Cannot post on a closed channel")
        size = len(message.to_json())
        if size > self.max_message_size:
            raise MessageTooLargeError(message.type, size, self.max_message_size)
        logger.debug(f"post {message.type} ({size} chars)")
        await self._queue.put(message)

    def close(self) -> None:
        """Signal end of stream; the consumer drains what was posted first."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def receive(self) -> Optional[Message]:
        """Next message, or None once the channel is closed and drained."""
        message = await self._queue.get()
        if message is None:
            # Keep the sentinel for any later receive() call
            self._queue.put_nowait(None)
        return message

    async def __aiter__(self) -> AsyncIterator[Message]:
        while True:
            message = await self.receive()
            if message is None:
                return
            yield message
