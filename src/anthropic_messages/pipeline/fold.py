"""
Folding of stream events into an assembled Message.

MessageBuilder owns the response while a stream is being read. Each call to
``fold`` applies one decoded event and reports what happened, so that the
caller can forward fresh text without inspecting the accumulated state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from anthropic_messages.errors import ConsistencyError, StreamEventError
from anthropic_messages.pipeline.accumulate import ToolInputBuilder
from anthropic_messages.telemetry import get_logger
from anthropic_messages.types.content import (
    Message,
    TextSegment,
    ThinkingSegment,
    ToolResultSegment,
    ToolUseSegment,
    Usage,
)
from anthropic_messages.types.events import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    ErrorEvent,
    InputJsonDelta,
    MessageDeltaEvent,
    MessageStartEvent,
    MessageStopEvent,
    PingEvent,
    SignatureDelta,
    TextBlockStart,
    TextDelta,
    ThinkingBlockStart,
    ThinkingDelta,
    ToolResultBlockStart,
    ToolResultDelta,
    ToolUseBlockStart,
    ToolUseDelta,
    UnknownBlockStart,
)

if TYPE_CHECKING:
    from anthropic_messages.types.content import ContentSegment
    from anthropic_messages.types.events import StreamEvent

logger = get_logger("anthropic_messages.pipeline.fold")


class FoldKind(str, Enum):
    """What a folded event did to the message."""

    MESSAGE_STARTED = "message_started"
    SEGMENT_STARTED = "segment_started"
    TEXT_DELTA = "text_delta"
    TOOL_INPUT_DELTA = "tool_input_delta"
    TOOL_OUTPUT_DELTA = "tool_output_delta"
    THINKING_DELTA = "thinking_delta"
    SEGMENT_STOPPED = "segment_stopped"
    MESSAGE_DELTA = "message_delta"
    MESSAGE_STOPPED = "message_stopped"
    PING = "ping"
    IGNORED = "ignored"


@dataclass(frozen=True)
class FoldResult:
    """Outcome of folding one event.

    Attributes:
        kind: Classification of the event
        index: Segment index the event touched, if any
        fragment: Newly added text (not the accumulated total), if any
    """

    kind: FoldKind
    index: int | None = None
    fragment: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.kind is FoldKind.MESSAGE_STOPPED


# Mutable per-segment state. Each knows how to freeze itself.


@dataclass
class _TextState:
    kind = "text"
    parts: list[str] = field(default_factory=list)

    def build(self) -> ContentSegment:
        return TextSegment(text="".join(self.parts))


@dataclass
class _ToolUseState:
    kind = "tool_use"
    id: str = ""
    name: str = ""
    input: ToolInputBuilder = field(default_factory=ToolInputBuilder)

    def build(self) -> ContentSegment:
        return ToolUseSegment(id=self.id, name=self.name, input=self.input.snapshot())


@dataclass
class _ToolResultState:
    kind = "tool_result"
    tool_call_id: str = ""
    parts: list[str] = field(default_factory=list)

    def build(self) -> ContentSegment:
        return ToolResultSegment(tool_call_id=self.tool_call_id, output="".join(self.parts))


@dataclass
class _ThinkingState:
    kind = "thinking"
    parts: list[str] = field(default_factory=list)
    signature: str | None = None

    def build(self) -> ContentSegment:
        return ThinkingSegment(thinking="".join(self.parts), signature=self.signature)


@dataclass
class _UnknownState:
    """Placeholder that keeps indices aligned for unmodelled block kinds."""

    kind: str = "unknown"

    def build(self) -> ContentSegment | None:
        return None


_SegmentState = _TextState | _ToolUseState | _ToolResultState | _ThinkingState | _UnknownState


class MessageBuilder:
    """Accumulates stream events into a Message.

    Segments are addressed by the zero-based index the stream supplies and
    must be introduced in index order. Once a segment exists at an index,
    every later delta at that index must match its kind.

    Example:
        >>> builder = MessageBuilder()
        >>> async for event in decoder.decode(byte_stream):
        ...     result = builder.fold(event)
        ...     if result.is_terminal:
        ...         break
        >>> message = builder.build()
    """

    def __init__(self) -> None:
        self._id = ""
        self._type = ""
        self._role = ""
        self._model = ""
        self._segments: list[_SegmentState] = []
        self._stop_reason: str | None = None
        self._stop_sequence: str | None = None
        self._input_tokens = 0
        self._output_tokens = 0
        self._started = False

    @property
    def started(self) -> bool:
        """Whether any message or segment event has been folded."""
        return self._started or bool(self._segments)

    @property
    def message_id(self) -> str:
        return self._id

    def fold(self, event: StreamEvent) -> FoldResult:
        """Apply one event.

        Args:
            event: Decoded stream event

        Returns:
            What the event did

        Raises:
            ConsistencyError: If the event contradicts the segments built so far
            StreamEventError: If the server reported an error event
            FramingError: If buffered tool input JSON is malformed at block end
        """
        if isinstance(event, MessageStartEvent):
            return self._on_message_start(event)
        if isinstance(event, ContentBlockStartEvent):
            return self._on_block_start(event)
        if isinstance(event, ContentBlockDeltaEvent):
            return self._on_block_delta(event)
        if isinstance(event, ContentBlockStopEvent):
            return self._on_block_stop(event)
        if isinstance(event, MessageDeltaEvent):
            return self._on_message_delta(event)
        if isinstance(event, MessageStopEvent):
            return FoldResult(FoldKind.MESSAGE_STOPPED)
        if isinstance(event, PingEvent):
            return FoldResult(FoldKind.PING)
        if isinstance(event, ErrorEvent):
            raise StreamEventError(
                event.error.message or "stream reported an error",
                error_type=event.error.type or None,
            )

        logger.warning("Skipping unknown event type", event_type=event.type)
        return FoldResult(FoldKind.IGNORED)

    def build(self) -> Message:
        """Freeze the current state into a Message.

        The builder stays usable; later folds do not affect the returned
        Message.
        """
        content = [s for s in (state.build() for state in self._segments) if s is not None]
        return Message(
            id=self._id,
            type=self._type,
            role=self._role,
            model=self._model,
            content=content,
            stop_reason=self._stop_reason,
            stop_sequence=self._stop_sequence,
            usage=Usage(input_tokens=self._input_tokens, output_tokens=self._output_tokens),
        )

    def _on_message_start(self, event: MessageStartEvent) -> FoldResult:
        message = event.message
        self._id = message.id
        self._type = message.type
        self._role = message.role
        self._model = message.model
        self._input_tokens = message.usage.input_tokens
        self._started = True
        return FoldResult(FoldKind.MESSAGE_STARTED)

    def _on_block_start(self, event: ContentBlockStartEvent) -> FoldResult:
        index = event.index
        block = event.content_block
        state = self._new_state(block)

        if index < len(self._segments):
            existing = self._segments[index]
            if not isinstance(state, _UnknownState) and existing.kind != state.kind:
                raise ConsistencyError(
                    f"content_block_start of kind {state.kind} at index {index} "
                    f"already holding a {existing.kind} segment",
                    index=index,
                    expected=existing.kind,
                    actual=state.kind,
                )
            return FoldResult(FoldKind.SEGMENT_STARTED, index=index)

        self._append(index, state, "content_block_start")
        if isinstance(state, _UnknownState):
            logger.warning("Skipping unknown content block type", block_type=block.type, index=index)
            return FoldResult(FoldKind.IGNORED, index=index)
        return FoldResult(FoldKind.SEGMENT_STARTED, index=index)

    def _on_block_delta(self, event: ContentBlockDeltaEvent) -> FoldResult:
        index = event.index
        delta = event.delta

        if isinstance(delta, TextDelta):
            text = self._segment_for(index, _TextState, delta.type, create=True)
            if isinstance(text, _UnknownState):
                return FoldResult(FoldKind.IGNORED, index=index)
            text.parts.append(delta.text)
            return FoldResult(FoldKind.TEXT_DELTA, index=index, fragment=delta.text)

        if isinstance(delta, ToolUseDelta):
            tool = self._segment_for(index, _ToolUseState, delta.type)
            if isinstance(tool, _UnknownState):
                return FoldResult(FoldKind.IGNORED, index=index)
            tool.input.merge(delta.input)
            return FoldResult(FoldKind.TOOL_INPUT_DELTA, index=index)

        if isinstance(delta, InputJsonDelta):
            tool = self._segment_for(index, _ToolUseState, delta.type)
            if isinstance(tool, _UnknownState):
                return FoldResult(FoldKind.IGNORED, index=index)
            tool.input.append_json(delta.partial_json)
            return FoldResult(FoldKind.TOOL_INPUT_DELTA, index=index)

        if isinstance(delta, ToolResultDelta):
            result = self._segment_for(index, _ToolResultState, delta.type)
            if isinstance(result, _UnknownState):
                return FoldResult(FoldKind.IGNORED, index=index)
            result.parts.append(delta.output)
            return FoldResult(FoldKind.TOOL_OUTPUT_DELTA, index=index, fragment=delta.output)

        if isinstance(delta, ThinkingDelta | SignatureDelta):
            thinking = self._segment_for(index, _ThinkingState, delta.type, create=True)
            if isinstance(thinking, _UnknownState):
                return FoldResult(FoldKind.IGNORED, index=index)
            if isinstance(delta, ThinkingDelta):
                thinking.parts.append(delta.thinking)
                return FoldResult(FoldKind.THINKING_DELTA, index=index, fragment=delta.thinking)
            thinking.signature = delta.signature
            return FoldResult(FoldKind.THINKING_DELTA, index=index)

        logger.warning("Skipping unknown delta type", delta_type=delta.type, index=index)
        return FoldResult(FoldKind.IGNORED, index=index)

    def _on_block_stop(self, event: ContentBlockStopEvent) -> FoldResult:
        index = event.index
        if index is not None and index < len(self._segments):
            state = self._segments[index]
            if isinstance(state, _ToolUseState):
                state.input.finalize()
        return FoldResult(FoldKind.SEGMENT_STOPPED, index=index)

    def _on_message_delta(self, event: MessageDeltaEvent) -> FoldResult:
        if event.delta.stop_reason is not None:
            self._stop_reason = event.delta.stop_reason
        if event.delta.stop_sequence is not None:
            self._stop_sequence = event.delta.stop_sequence
        if event.usage.output_tokens is not None:
            self._output_tokens = event.usage.output_tokens
        return FoldResult(FoldKind.MESSAGE_DELTA)

    def _new_state(self, block: Any) -> _SegmentState:
        if isinstance(block, TextBlockStart):
            return _TextState(parts=[block.text] if block.text else [])
        if isinstance(block, ToolUseBlockStart):
            return _ToolUseState(id=block.id, name=block.name, input=ToolInputBuilder(block.input))
        if isinstance(block, ToolResultBlockStart):
            return _ToolResultState(
                tool_call_id=block.tool_call_id,
                parts=[block.output] if block.output else [],
            )
        if isinstance(block, ThinkingBlockStart):
            return _ThinkingState(
                parts=[block.thinking] if block.thinking else [],
                signature=block.signature,
            )
        if not isinstance(block, UnknownBlockStart):
            raise TypeError(f"unexpected content block descriptor: {block!r}")
        return _UnknownState(kind=block.type)

    def _append(self, index: int, state: _SegmentState, source: str) -> None:
        if index != len(self._segments):
            raise ConsistencyError(
                f"{source} for index {index} out of order: "
                f"next segment index is {len(self._segments)}",
                index=index,
            )
        self._segments.append(state)

    def _segment_for(
        self,
        index: int,
        state_type: type[Any],
        delta_type: str,
        *,
        create: bool = False,
    ) -> Any:
        """Find the segment a delta targets, creating it when allowed.

        Returns an ``_UnknownState`` when the index holds an unmodelled block,
        so the caller can skip the delta.
        """
        if index < len(self._segments):
            state = self._segments[index]
            if isinstance(state, _UnknownState) or isinstance(state, state_type):
                return state
            raise ConsistencyError(
                f"invalid {delta_type}: segment {index} is {state.kind}, "
                f"not {state_type.kind}",
                index=index,
                expected=state_type.kind,
                actual=state.kind,
            )

        if not create:
            raise ConsistencyError(
                f"invalid {delta_type}: no corresponding {state_type.kind} block at index {index}",
                index=index,
                expected=state_type.kind,
            )

        state = state_type()
        self._append(index, state, delta_type)
        return state
