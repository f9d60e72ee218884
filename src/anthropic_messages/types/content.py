"""
Response types for the Messages API.

A Message is the fully assembled result of a request: its identity, the
ordered content segments the model produced, why it stopped, and token
usage. Instances are frozen; streaming assembly builds them through
``anthropic_messages.pipeline.fold.MessageBuilder``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class TextSegment(BaseModel):
    """A run of generated text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str = Field(default="", description="Accumulated text")


class ToolUseSegment(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str = Field(default="", description="Tool invocation identifier")
    name: str = Field(default="", description="Name of the tool to invoke")
    input: dict[str, Any] = Field(
        default_factory=dict, description="Structured tool arguments"
    )


class ToolResultSegment(BaseModel):
    """The output of a tool invocation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str = Field(
        default="",
        validation_alias=AliasChoices("tool_call_id", "tool_use_id"),
        description="Identifier of the originating tool invocation",
    )
    output: str = Field(
        default="",
        validation_alias=AliasChoices("output", "content"),
        description="Accumulated tool output",
    )


class ThinkingSegment(BaseModel):
    """Extended thinking emitted before the answer."""

    model_config = ConfigDict(frozen=True)

    type: Literal["thinking"] = "thinking"
    thinking: str = Field(default="", description="Accumulated reasoning text")
    signature: str | None = Field(default=None, description="Integrity signature")


ContentSegment = Annotated[
    TextSegment | ToolUseSegment | ToolResultSegment | ThinkingSegment,
    Field(discriminator="type"),
]

_SEGMENT_TYPES = frozenset({"text", "tool_use", "tool_result", "thinking"})


class Usage(BaseModel):
    """Token usage for a single request."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        """Input plus output tokens."""
        return self.input_tokens + self.output_tokens


class Message(BaseModel):
    """Assembled response from the Messages API.

    Example:
        >>> message = await client.messages.create(params)
        >>> print(message.text)
        >>> for call in message.tool_uses:
        ...     print(call.name, call.input)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = ""
    type: str = ""
    role: str = ""
    model: str = ""
    content: list[ContentSegment] = Field(default_factory=list)
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: Usage = Field(default_factory=Usage)

    @field_validator("content", mode="before")
    @classmethod
    def _drop_unknown_segments(cls, value: Any) -> Any:
        """Skip block kinds this library does not model, as streaming does.

        Entries without a string ``type`` are kept so that they fail
        validation.
        """
        if not isinstance(value, list):
            return value
        return [
            item
            for item in value
            if not (
                isinstance(item, dict)
                and isinstance(item.get("type"), str)
                and item["type"] not in _SEGMENT_TYPES
            )
        ]

    @property
    def text(self) -> str:
        """Concatenated text of all text segments, in order."""
        return "".join(
            segment.text for segment in self.content if isinstance(segment, TextSegment)
        )

    @property
    def tool_uses(self) -> list[ToolUseSegment]:
        """Tool invocation segments, in order."""
        return [s for s in self.content if isinstance(s, ToolUseSegment)]

    @property
    def has_tool_uses(self) -> bool:
        """Check if the model requested any tool invocation."""
        return any(isinstance(s, ToolUseSegment) for s in self.content)
