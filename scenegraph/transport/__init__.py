"""Size-limited message channel and chunked artifact transport."""

from .channel import MessageChannel, MessageTooLargeError
from .messages import HTMLPreview, Message, PreviewSize, parse_message
from .receiver import (
    ChunkCollection,
    ChunkIntegrityError,
    CollectionState,
    ConversionReceiver,
    DisplayState,
)
from .sender import ChunkedSender, split_into_chunks, split_to_fit

__all__ = [
    "ChunkCollection",
    "ChunkIntegrityError",
    "ChunkedSender",
    "CollectionState",
    "ConversionReceiver",
    "DisplayState",
    "HTMLPreview",
    "Message",
    "MessageChannel",
    "MessageTooLargeError",
    "PreviewSize",
    "parse_message",
    "split_into_chunks",
    "split_to_fit",
]
