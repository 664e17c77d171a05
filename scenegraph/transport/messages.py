"""Messages exchanged between the generation side and the display side.

Field names on the wire are camelCase (``totalChunks``, ``htmlPreview``);
both ends must agree on them exactly. Every message carries a ``type``
discriminator.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from ..normalize.context import ConversionSettings


class ChannelMessage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class PreviewSize(ChannelMessage):
    width: float = 0
    height: float = 0


class HTMLPreview(ChannelMessage):
    size: PreviewSize = Field(default_factory=PreviewSize)
    content: str = ""


class ConversionStartMessage(ChannelMessage):
    type: Literal["conversionStart"] = "conversionStart"


class ConversionMessage(ChannelMessage):
    """Whole conversion result in one message (under the size threshold)."""
    type: Literal["code"] = "code"
    code: str
    html_preview: Optional[HTMLPreview] = None
    colors: List[Dict[str, Any]] = Field(default_factory=list)
    gradients: List[Dict[str, Any]] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    settings: Optional[ConversionSettings] = None
    # True when the preview follows as previewChunk* messages
    preview_chunked: bool = False


class CodeChunkStartMessage(ChannelMessage):
    """Begins a chunked code transfer; carries every conversion field except ``code``."""
    type: Literal["codeChunkStart"] = "codeChunkStart"
    total_chunks: int = 0
    html_preview: Optional[HTMLPreview] = None
    colors: List[Dict[str, Any]] = Field(default_factory=list)
    gradients: List[Dict[str, Any]] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    settings: Optional[ConversionSettings] = None
    preview_chunked: bool = False


class CodeChunkMessage(ChannelMessage):
    type: Literal["codeChunk"] = "codeChunk"
    index: int
    chunk: str = ""


class CodeChunkEndMessage(ChannelMessage):
    type: Literal["codeChunkEnd"] = "codeChunkEnd"


class PreviewChunkStartMessage(ChannelMessage):
    type: Literal["previewChunkStart"] = "previewChunkStart"
    total_chunks: int = 0
    size: PreviewSize = Field(default_factory=PreviewSize)


class PreviewChunkMessage(ChannelMessage):
    type: Literal["previewChunk"] = "previewChunk"
    index: int
    chunk: str = ""


class PreviewChunkEndMessage(ChannelMessage):
    type: Literal["previewChunkEnd"] = "previewChunkEnd"


class EmptyMessage(ChannelMessage):
    """No selection: clears all derived display state."""
    type: Literal["empty"] = "empty"


class ErrorMessage(ChannelMessage):
    type: Literal["error"] = "error"
    error: str


class SettingsChangedMessage(ChannelMessage):
    type: Literal["pluginSettingsChanged"] = "pluginSettingsChanged"
    settings: ConversionSettings


Message = Annotated[
    Union[
        ConversionStartMessage,
        ConversionMessage,
        CodeChunkStartMessage,
        CodeChunkMessage,
        CodeChunkEndMessage,
        PreviewChunkStartMessage,
        PreviewChunkMessage,
        PreviewChunkEndMessage,
        EmptyMessage,
        ErrorMessage,
        SettingsChangedMessage,
    ],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def parse_message(data: Union[str, bytes, Dict[str, Any]]) -> Message:
    """Validate a wire dict (or JSON text) into its message model.

    Raises:
        pydantic.ValidationError: unknown ``type`` or malformed fields.
    """
    if isinstance(data, (str, bytes)):
        return _message_adapter.validate_json(data)
    return _message_adapter.validate_python(data)
