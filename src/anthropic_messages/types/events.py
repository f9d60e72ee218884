"""
Streaming events of the Messages API.

Each server-sent event payload is decoded straight into one tagged model,
so every field is validated once, at decode time. Nested content block and
delta descriptors are tagged unions as well. Kinds this library does not
know decode into ``UnknownEvent`` / ``UnknownBlockStart`` / ``UnknownDelta``
instead of failing, which keeps older clients working against newer
servers.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
)


class EventType(str, Enum):
    """Top-level event kinds."""

    MESSAGE_START = "message_start"
    CONTENT_BLOCK_START = "content_block_start"
    CONTENT_BLOCK_DELTA = "content_block_delta"
    CONTENT_BLOCK_STOP = "content_block_stop"
    MESSAGE_DELTA = "message_delta"
    MESSAGE_STOP = "message_stop"
    PING = "ping"
    ERROR = "error"


def _wire_count(value: Any) -> Any:
    # Lax mode would coerce "3" and true to integers.
    if isinstance(value, (str, bytes, bool)):
        raise ValueError("must be a JSON number")
    return value


WireCount = Annotated[int, BeforeValidator(_wire_count), Field(ge=0)]
"""A non-negative index or token count that must arrive as a JSON number."""


class BlockType(str, Enum):
    """Content block kinds announced by ``content_block_start``."""

    TEXT = "text"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    THINKING = "thinking"


class DeltaType(str, Enum):
    """Delta kinds carried by ``content_block_delta``."""

    TEXT = "text_delta"
    TOOL_USE = "tool_use_delta"
    TOOL_RESULT = "tool_result_delta"
    INPUT_JSON = "input_json_delta"
    THINKING = "thinking_delta"
    SIGNATURE = "signature_delta"


_UNKNOWN = "unknown"


def _tagger(known: frozenset[str]) -> Any:
    """Build a discriminator that maps unrecognised kinds to ``unknown``.

    A missing or non-string ``type`` yields no tag, which pydantic reports
    as a validation error on the union.
    """

    def tag(value: Any) -> str | None:
        kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
        if isinstance(kind, Enum):
            kind = kind.value
        if not isinstance(kind, str):
            return None
        return kind if kind in known else _UNKNOWN

    return tag


# Content block descriptors


class TextBlockStart(BaseModel):
    """Start of a text block."""

    type: Literal["text"]
    text: str = ""


class ToolUseBlockStart(BaseModel):
    """Start of a tool invocation block."""

    type: Literal["tool_use"]
    id: str = ""
    name: str = ""
    input: dict[str, Any] | None = None


class ToolResultBlockStart(BaseModel):
    """Start of a tool result block."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["tool_result"]
    tool_call_id: str = Field(
        default="", validation_alias=AliasChoices("tool_call_id", "tool_use_id")
    )
    output: str = Field(default="", validation_alias=AliasChoices("output", "content"))


class ThinkingBlockStart(BaseModel):
    """Start of an extended thinking block."""

    type: Literal["thinking"]
    thinking: str = ""
    signature: str | None = None


class UnknownBlockStart(BaseModel):
    """Start of a block kind this library does not model."""

    model_config = ConfigDict(extra="allow")

    type: str


BlockDescriptor = Annotated[
    Annotated[TextBlockStart, Tag(BlockType.TEXT.value)]
    | Annotated[ToolUseBlockStart, Tag(BlockType.TOOL_USE.value)]
    | Annotated[ToolResultBlockStart, Tag(BlockType.TOOL_RESULT.value)]
    | Annotated[ThinkingBlockStart, Tag(BlockType.THINKING.value)]
    | Annotated[UnknownBlockStart, Tag(_UNKNOWN)],
    Discriminator(_tagger(frozenset(b.value for b in BlockType))),
]


# Delta descriptors


class TextDelta(BaseModel):
    """New text for a text block."""

    type: Literal["text_delta"]
    text: str


class ToolUseDelta(BaseModel):
    """Partial tool arguments to merge into a tool invocation block."""

    type: Literal["tool_use_delta"]
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultDelta(BaseModel):
    """New output for a tool result block."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["tool_result_delta"]
    output: str = Field(validation_alias=AliasChoices("output", "content"))


class InputJsonDelta(BaseModel):
    """A raw JSON fragment of tool arguments."""

    type: Literal["input_json_delta"]
    partial_json: str


class ThinkingDelta(BaseModel):
    """New reasoning text for a thinking block."""

    type: Literal["thinking_delta"]
    thinking: str


class SignatureDelta(BaseModel):
    """Signature for a thinking block."""

    type: Literal["signature_delta"]
    signature: str


class UnknownDelta(BaseModel):
    """A delta kind this library does not model."""

    model_config = ConfigDict(extra="allow")

    type: str


DeltaDescriptor = Annotated[
    Annotated[TextDelta, Tag(DeltaType.TEXT.value)]
    | Annotated[ToolUseDelta, Tag(DeltaType.TOOL_USE.value)]
    | Annotated[ToolResultDelta, Tag(DeltaType.TOOL_RESULT.value)]
    | Annotated[InputJsonDelta, Tag(DeltaType.INPUT_JSON.value)]
    | Annotated[ThinkingDelta, Tag(DeltaType.THINKING.value)]
    | Annotated[SignatureDelta, Tag(DeltaType.SIGNATURE.value)]
    | Annotated[UnknownDelta, Tag(_UNKNOWN)],
    Discriminator(_tagger(frozenset(d.value for d in DeltaType))),
]


# Top-level events


class StartUsage(BaseModel):
    """Usage reported by ``message_start``."""

    input_tokens: WireCount
    output_tokens: WireCount | None = None


class MessageStartPayload(BaseModel):
    """The message envelope carried by ``message_start``."""

    id: str = ""
    type: str = ""
    role: str = ""
    model: str = ""
    usage: StartUsage


class MessageStartEvent(BaseModel):
    """First event of a stream: identity and input token count."""

    type: Literal["message_start"]
    message: MessageStartPayload


class ContentBlockStartEvent(BaseModel):
    """Announces a new content block at ``index``."""

    type: Literal["content_block_start"]
    index: WireCount
    content_block: BlockDescriptor


class ContentBlockDeltaEvent(BaseModel):
    """Incremental content for the block at ``index``."""

    type: Literal["content_block_delta"]
    index: WireCount
    delta: DeltaDescriptor


class ContentBlockStopEvent(BaseModel):
    """Marks the block at ``index`` as complete."""

    type: Literal["content_block_stop"]
    index: WireCount | None = None


class MessageDeltaPayload(BaseModel):
    stop_reason: str | None = None
    stop_sequence: str | None = None


class DeltaUsage(BaseModel):
    output_tokens: WireCount | None = None


class MessageDeltaEvent(BaseModel):
    """Top-level changes near the end of a stream: stop reason and usage."""

    type: Literal["message_delta"]
    delta: MessageDeltaPayload
    usage: DeltaUsage


class MessageStopEvent(BaseModel):
    """Terminal event of a successful stream."""

    type: Literal["message_stop"]


class PingEvent(BaseModel):
    """Keep-alive."""

    type: Literal["ping"]


class ErrorPayload(BaseModel):
    type: str = ""
    message: str = ""


class ErrorEvent(BaseModel):
    """In-band error reported by the server mid-stream."""

    type: Literal["error"]
    error: ErrorPayload = Field(default_factory=ErrorPayload)


class UnknownEvent(BaseModel):
    """An event kind this library does not know about."""

    model_config = ConfigDict(extra="allow")

    type: str


StreamEvent = Annotated[
    Annotated[MessageStartEvent, Tag(EventType.MESSAGE_START.value)]
    | Annotated[ContentBlockStartEvent, Tag(EventType.CONTENT_BLOCK_START.value)]
    | Annotated[ContentBlockDeltaEvent, Tag(EventType.CONTENT_BLOCK_DELTA.value)]
    | Annotated[ContentBlockStopEvent, Tag(EventType.CONTENT_BLOCK_STOP.value)]
    | Annotated[MessageDeltaEvent, Tag(EventType.MESSAGE_DELTA.value)]
    | Annotated[MessageStopEvent, Tag(EventType.MESSAGE_STOP.value)]
    | Annotated[PingEvent, Tag(EventType.PING.value)]
    | Annotated[ErrorEvent, Tag(EventType.ERROR.value)]
    | Annotated[UnknownEvent, Tag(_UNKNOWN)],
    Discriminator(_tagger(frozenset(e.value for e in EventType))),
]

_stream_event_adapter: TypeAdapter[Any] = TypeAdapter(StreamEvent)


def parse_stream_event(payload: Any) -> StreamEvent:
    """Validate a decoded JSON payload into a typed stream event.

    Args:
        payload: Object produced by ``json.loads``

    Returns:
        The matching event model

    Raises:
        pydantic.ValidationError: If the payload does not fit its kind
    """
    return _stream_event_adapter.validate_python(payload)
