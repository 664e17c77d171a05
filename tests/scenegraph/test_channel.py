"""Tests for scenegraph.transport.channel."""

import pytest

from scenegraph.transport import MessageChannel, MessageTooLargeError
from scenegraph.transport.messages import (
    CodeChunkMessage,
    ConversionMessage,
    EmptyMessage,
    ErrorMessage,
)


async def _drain(channel):
    return [m async for m in channel]


class TestMessageChannel:

    @pytest.mark.asyncio
    async def test_messages_arrive_in_order(self):
        channel = MessageChannel()
        await channel.post(CodeChunkMessage(index=0, chunk="a"))
        await channel.post(EmptyMessage())
        channel.close()

        messages = await _drain(channel)

        assert [m.type for m in messages] == ["codeChunk", "empty"]

    @pytest.mark.asyncio
    async def test_oversize_message_rejected(self):
        channel = MessageChannel(max_message_size=100)

        with pytest.raises(MessageTooLargeError) as exc_info:
            await channel.post(ConversionMessage(code="x" * 200))

        assert exc_info.value.message_type == "code"
        assert exc_info.value.size > 200
        assert exc_info.value.limit == 100

    @pytest.mark.asyncio
    async def test_size_counts_serialized_message(self):
        message = ErrorMessage(error="e" * 10)
        size = len(message.to_json())
        channel = MessageChannel(max_message_size=size)

        await channel.post(message)
        with pytest.raises(MessageTooLargeError):
            await channel.post(ErrorMessage(error="e" * 11))

    @pytest.mark.asyncio
    async def test_post_after_close(self):
        channel = MessageChannel()
        channel.close()
        with pytest.raises(RuntimeError):
            await channel.post(EmptyMessage())

    @pytest.mark.asyncio
    async def test_receive_after_close_keeps_returning_none(self):
        channel = MessageChannel()
        channel.close()
        channel.close()
        assert await channel.receive() is None
        assert await channel.receive() is None
        assert channel.closed
