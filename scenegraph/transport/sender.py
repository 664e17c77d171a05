"""Chunked sender for conversion artifacts.

Two independent artifacts travel over the channel: generated code and the
rendered preview markup. Each one that is over its threshold, or that would
push a message past the channel's serialized size limit, goes out as

    start (totalChunks + metadata) → chunk(index, text) × N → end

otherwise the result is posted as a single ``code`` message. Code metadata
(colors, gradients, warnings, settings) always rides on the first message so
the receiver can join both artifacts.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from ..normalize.context import ConversionSettings
from ..settings import CODE_CHUNK_SIZE, PREVIEW_CHUNK_SIZE
from .channel import MessageChannel
from .messages import (
    ChannelMessage,
    CodeChunkEndMessage,
    CodeChunkMessage,
    CodeChunkStartMessage,
    ConversionMessage,
    HTMLPreview,
    PreviewChunkEndMessage,
    PreviewChunkMessage,
    PreviewChunkStartMessage,
)

logger = logging.getLogger("scenegraph.transport")


def split_into_chunks(payload: str, chunk_size: int) -> List[str]:
    """Split ``payload`` into ordered substrings of at most ``chunk_size`` chars."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not payload:
        return [""]
    return [payload[i:i + chunk_size] for i in range(0, len(payload), chunk_size)]


def split_to_fit(
    payload: str,
    chunk_size: int,
    make_message: Callable[..., ChannelMessage],
    limit: int,
) -> List[str]:
    """Split ``payload`` so every ``make_message(index=, chunk=)`` serializes within ``limit``.

    Chunks start at ``chunk_size`` chars and shrink when JSON escaping pushes
    the serialized message over the limit.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not payload:
        return [""]
    chunks: List[str] = []
    start = 0
    while start < len(payload):
        length = min(chunk_size, len(payload) - start)
        while True:
            piece = payload[start:start + length]
            size = _serialized_size(make_message(index=len(chunks), chunk=piece))
            if size <= limit or length == 1:
                break
            length = max(1, length * limit // size)
        chunks.append(piece)
        start += length
    return chunks


def _serialized_size(message: ChannelMessage) -> int:
    return len(message.to_json())


class ChunkedSender:
    """Posts conversion results on a channel, chunking what is too large."""

    def __init__(
        self,
        channel: MessageChannel,
        code_chunk_size: int = CODE_CHUNK_SIZE,
        preview_chunk_size: int = PREVIEW_CHUNK_SIZE,
    ):
        self.channel = channel
        self.code_chunk_size = code_chunk_size
        self.preview_chunk_size = preview_chunk_size

    async def send_conversion(
        self,
        code: str,
        html_preview: HTMLPreview,
        colors: Optional[List[Dict[str, Any]]] = None,
        gradients: Optional[List[Dict[str, Any]]] = None,
        warnings: Optional[List[str]] = None,
        settings: Optional[ConversionSettings] = None,
    ) -> None:
        limit = self.channel.max_message_size
        preview_chunked = len(html_preview.content) > self.preview_chunk_size
        metadata: Dict[str, Any] = dict(
            colors=colors or [],
            gradients=gradients or [],
            warnings=warnings or [],
            settings=settings,
            preview_chunked=preview_chunked,
            html_preview=None if preview_chunked else html_preview,
        )
        code_chunks = self._split_code(code) if len(code) > self.code_chunk_size else None

        if code_chunks is None:
            without_preview = {**metadata, "preview_chunked": True, "html_preview": None}
            if _serialized_size(self._first_message(code, None, without_preview)) > limit:
                code_chunks = self._split_code(code)
        # An inline preview shares the first message's budget with the code
        if not preview_chunked and _serialized_size(self._first_message(code, code_chunks, metadata)) > limit:
            preview_chunked = True
            metadata.update(preview_chunked=True, html_preview=None)

        await self.channel.post(self._first_message(code, code_chunks, metadata))
        if code_chunks is not None:
            for index, chunk in enumerate(code_chunks):
                await self.channel.post(CodeChunkMessage(index=index, chunk=chunk))
            await self.channel.post(CodeChunkEndMessage())

        if preview_chunked:
            await self.send_preview_chunks(html_preview)

        logger.info(
            f"Sent conversion: code={len(code)} chars "
            f"(chunks={len(code_chunks) if code_chunks is not None else 0}), "
            f"preview={len(html_preview.content)} chars (chunked={preview_chunked})"
        )

    def _split_code(self, code: str) -> List[str]:
        return split_to_fit(code, self.code_chunk_size, CodeChunkMessage, self.channel.max_message_size)

    @staticmethod
    def _first_message(code: str, code_chunks: Optional[List[str]], metadata: Dict[str, Any]) -> ChannelMessage:
        if code_chunks is None:
            return ConversionMessage(code=code, **metadata)
        return CodeChunkStartMessage(total_chunks=len(code_chunks), **metadata)

    async def send_preview_chunks(self, html_preview: HTMLPreview) -> None:
        chunks = split_to_fit(
            html_preview.content,
            self.preview_chunk_size,
            PreviewChunkMessage,
            self.channel.max_message_size,
        )
        await self.channel.post(
            PreviewChunkStartMessage(total_chunks=len(chunks), size=html_preview.size)
        )
        for index, chunk in enumerate(chunks):
            await self.channel.post(PreviewChunkMessage(index=index, chunk=chunk))
        await self.channel.post(PreviewChunkEndMessage())
