"""Display-side reassembly of chunked conversion artifacts.

Each artifact (code, preview) has its own ChunkCollection:

    idle ──start──▶ collecting ──end──▶ complete
                     │   ▲
                     └───┘ chunk (in-range index only)

Chunks with an out-of-range index, or with no active collection, are dropped
without a warning; there is no way to report back to the sender. A new start
discards whatever an unfinished collection held.

When the code start says the preview is chunked too, the first finished
artifact waits in a pending holder and the display state is only updated once
both are available.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..normalize.context import ConversionSettings
from .channel import MessageChannel
from .messages import (
    CodeChunkEndMessage,
    CodeChunkMessage,
    CodeChunkStartMessage,
    ConversionMessage,
    ConversionStartMessage,
    EmptyMessage,
    ErrorMessage,
    HTMLPreview,
    Message,
    PreviewChunkEndMessage,
    PreviewChunkMessage,
    PreviewChunkStartMessage,
    PreviewSize,
    SettingsChangedMessage,
    parse_message,
)

logger = logging.getLogger("scenegraph.transport")


class ChunkIntegrityError(Exception):
    """Raised by a strict collection when "end" arrives with unwritten slots."""

    def __init__(self, collection: str, missing: List[int]):
        self.collection = collection
        self.missing = missing
        super().__init__(f"{collection}: chunks never received at indices {missing}")


class CollectionState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    COMPLETE = "complete"


class ChunkCollection:
    """Slot array for one chunked transfer.

    Args:
        name: Label used in logs and errors ("code", "preview").
        strict: Raise ChunkIntegrityError at end instead of joining gaps as
            empty segments.
    """

    def __init__(self, name: str, strict: bool = False):
        self.name = name
        self.strict = strict
        self.state = CollectionState.IDLE
        self._slots: List[str] = []
        self._written: set = set()

    @property
    def total_chunks(self) -> int:
        return len(self._slots)

    @property
    def missing_indices(self) -> List[int]:
        return [i for i in range(len(self._slots)) if i not in self._written]

    def start(self, total_chunks: int) -> None:
        if self.state == CollectionState.COLLECTING:
            logger.info(
                f"{self.name}: new start discards unfinished collection "
                f"({len(self._written)}/{len(self._slots)} chunks)"
            )
        self._slots = [""] * max(total_chunks, 0)
        self._written = set()
        self.state = CollectionState.COLLECTING

    def add(self, index: int, chunk: str) -> bool:
        """Write ``chunk`` into its slot; False when the chunk was ignored."""
        if self.state != CollectionState.COLLECTING:
            return False
        if not 0 <= index < len(self._slots):
            return False
        self._slots[index] = chunk
        self._written.add(index)
        return True

    def finish(self) -> Optional[str]:
        """Join slots in index order; None when there is no active collection.

        Raises:
            ChunkIntegrityError: strict mode and some slot was never written.
        """
        if self.state != CollectionState.COLLECTING:
            return None
        missing = self.missing_indices
        if missing:
            if self.strict:
                self.reset()
                raise ChunkIntegrityError(self.name, missing)
            logger.warning(f"{self.name}: joining with empty slots at indices {missing}")
        result = "".join(self._slots)
        self._slots = []
        self._written = set()
        self.state = CollectionState.COMPLETE
        return result

    def reset(self) -> None:
        self._slots = []
        self._written = set()
        self.state = CollectionState.IDLE


@dataclass
class DisplayState:
    code: str = ""
    is_loading: bool = False
    has_selection: bool = False
    html_preview: HTMLPreview = field(default_factory=HTMLPreview)
    settings: Optional[ConversionSettings] = None
    colors: List[Dict[str, Any]] = field(default_factory=list)
    gradients: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class _PendingUpdate:
    """Code metadata waiting for both artifacts."""
    metadata: Dict[str, Any]
    code: Optional[str] = None
    html_preview: Optional[HTMLPreview] = None

    @property
    def ready(self) -> bool:
        return self.code is not None and self.html_preview is not None


_METADATA_FIELDS = ("colors", "gradients", "warnings", "settings", "html_preview")


class ConversionReceiver:
    """Applies channel messages to a DisplayState."""

    def __init__(self, strict: bool = False):
        self.state = DisplayState()
        self.code_collection = ChunkCollection("code", strict=strict)
        self.preview_collection = ChunkCollection("preview", strict=strict)
        self._code_metadata: Dict[str, Any] = {}
        self._preview_size = PreviewSize()
        self._pending: Optional[_PendingUpdate] = None

    @property
    def has_pending_update(self) -> bool:
        return self._pending is not None

    async def consume(self, channel: MessageChannel) -> DisplayState:
        """Handle messages until the channel is closed."""
        async for message in channel:
            self.handle(message)
        return self.state

    def handle(self, message: Union[Message, Dict[str, Any]]) -> None:
        if isinstance(message, dict):
            try:
                message = parse_message(message)
            except ValidationError as e:
                logger.debug(f"Dropping malformed message: {e}")
                return

        if isinstance(message, ConversionStartMessage):
            self._on_conversion_start()
        elif isinstance(message, ConversionMessage):
            self._on_whole_code(message)
        elif isinstance(message, CodeChunkStartMessage):
            self._on_code_start(message)
        elif isinstance(message, CodeChunkMessage):
            self.code_collection.add(message.index, message.chunk)
        elif isinstance(message, CodeChunkEndMessage):
            self._on_code_end()
        elif isinstance(message, PreviewChunkStartMessage):
            self._preview_size = message.size
            self.preview_collection.start(message.total_chunks)
        elif isinstance(message, PreviewChunkMessage):
            self.preview_collection.add(message.index, message.chunk)
        elif isinstance(message, PreviewChunkEndMessage):
            self._on_preview_end()
        elif isinstance(message, SettingsChangedMessage):
            self.state.settings = message.settings
        elif isinstance(message, EmptyMessage):
            self._on_empty()
        elif isinstance(message, ErrorMessage):
            self._on_error(message)

    def _on_conversion_start(self) -> None:
        self._discard_transfers()
        self.state.code = ""
        self.state.has_selection = True
        self.state.is_loading = True

    def _on_whole_code(self, message: ConversionMessage) -> None:
        metadata = _metadata_of(message)
        if message.preview_chunked:
            self._pending = _PendingUpdate(metadata=metadata, code=message.code)
            self._commit_pending()
        else:
            self._pending = None
            self._apply(metadata, message.code)

    def _on_code_start(self, message: CodeChunkStartMessage) -> None:
        self._code_metadata = _metadata_of(message)
        self._pending = (
            _PendingUpdate(metadata=self._code_metadata) if message.preview_chunked else None
        )
        self.code_collection.start(message.total_chunks)

    def _on_code_end(self) -> None:
        code = self.code_collection.finish()
        if code is None:
            return
        if self._pending is not None:
            self._pending.code = code
            self._commit_pending()
        else:
            self._apply(self._code_metadata, code)

    def _on_preview_end(self) -> None:
        content = self.preview_collection.finish()
        if content is None:
            return
        preview = HTMLPreview(size=self._preview_size, content=content)
        if self._pending is not None:
            self._pending.html_preview = preview
            self._commit_pending()
        else:
            # No code waiting on it: preview-only update
            self.state.html_preview = preview

    def _commit_pending(self) -> None:
        pending = self._pending
        if pending is None or not pending.ready:
            return
        self._pending = None
        self._apply({**pending.metadata, "html_preview": pending.html_preview}, pending.code)

    def _apply(self, metadata: Dict[str, Any], code: str) -> None:
        state = self.state
        state.code = code
        state.colors = metadata.get("colors", [])
        state.gradients = metadata.get("gradients", [])
        state.warnings = metadata.get("warnings", [])
        if metadata.get("settings") is not None:
            state.settings = metadata["settings"]
        if metadata.get("html_preview") is not None:
            state.html_preview = metadata["html_preview"]
        state.is_loading = False
        state.has_selection = True

    def _on_empty(self) -> None:
        self._discard_transfers()
        self.state = DisplayState(settings=self.state.settings)

    def _on_error(self, message: ErrorMessage) -> None:
        self._discard_transfers()
        self.state.code = f"Error :(\n// {message.error}"
        self.state.colors = []
        self.state.gradients = []
        self.state.is_loading = False

    def _discard_transfers(self) -> None:
        self._pending = None
        self._code_metadata = {}
        self.code_collection.reset()
        self.preview_collection.reset()


def _metadata_of(message: Union[ConversionMessage, CodeChunkStartMessage]) -> Dict[str, Any]:
    return {name: getattr(message, name) for name in _METADATA_FIELDS}
