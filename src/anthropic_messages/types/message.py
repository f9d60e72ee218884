"""
Request types for the Messages API.

Provides Pythonic APIs for building requests with support for:
- Text and image content
- Tool use and tool results
- Extended thinking configuration
- Incremental delivery through a stream callback
"""

from __future__ import annotations

import base64
import mimetypes
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# (cancel_token, fragment) -> None | Awaitable[None]; raising aborts the stream.
StreamFunc = Callable[[Any, bytes], Any]


class MessageRole(str, Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"


class ImageSource(BaseModel):
    """Image source for multimodal content."""

    model_config = ConfigDict(populate_by_name=True)

    source_type: str = Field(default="base64", alias="type", description="Source type")
    media_type: str | None = Field(default=None, description="MIME type of the image")
    data: str = Field(description="Base64 encoded data")


class ContentBlock(BaseModel):
    """Content block of a request message.

    Supports the following types:
    - text: Plain text content
    - image: Base64 image content
    - tool_use: Tool invocation previously requested by the model
    - tool_result: Result of a tool execution
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(description="Content block type")

    text: str | None = Field(default=None, description="Text content")
    source: ImageSource | None = Field(default=None, description="Image source")

    # Tool use fields
    id: str | None = Field(default=None, description="Tool use ID")
    name: str | None = Field(default=None, description="Tool name")
    input: dict[str, Any] | None = Field(default=None, description="Tool input parameters")

    # Tool result fields
    tool_use_id: str | None = Field(default=None, description="Reference to tool_use ID")
    content: Any | None = Field(default=None, description="Tool result content")
    is_error: bool | None = Field(default=None, description="Whether the tool execution failed")

    @classmethod
    def text_block(cls, text: str) -> ContentBlock:
        """Create a text content block."""
        return cls(type="text", text=text)

    @classmethod
    def image_base64(cls, data: str, media_type: str | None = None) -> ContentBlock:
        """Create an image block from base64 data."""
        return cls(type="image", source=ImageSource(data=data, media_type=media_type))

    @classmethod
    def image_from_file(cls, path: str | Path) -> ContentBlock:
        """Create an image block from a local file.

        Args:
            path: Path to the image file

        Returns:
            ContentBlock with base64 encoded image data
        """
        file_path = Path(path)
        encoded = base64.standard_b64encode(file_path.read_bytes()).decode("ascii")
        media_type, _ = mimetypes.guess_type(str(file_path))
        return cls.image_base64(encoded, media_type)

    @classmethod
    def tool_use(cls, id: str, name: str, input: dict[str, Any]) -> ContentBlock:
        """Create a tool use content block."""
        return cls(type="tool_use", id=id, name=name, input=input)

    @classmethod
    def tool_result(
        cls,
        tool_use_id: str,
        content: Any,
        is_error: bool = False,
    ) -> ContentBlock:
        """Create a tool result content block.

        Args:
            tool_use_id: The ID of the corresponding tool_use
            content: Result content
            is_error: Whether the tool execution failed

        Returns:
            ContentBlock representing a tool result
        """
        return cls(
            type="tool_result",
            tool_use_id=tool_use_id,
            content=content,
            is_error=is_error if is_error else None,
        )


class MessageParam(BaseModel):
    """A single turn of the conversation history.

    Examples:
        >>> msg = MessageParam.user("Hello!")
        >>> msg = MessageParam.with_content(
        ...     MessageRole.USER,
        ...     [ContentBlock.text_block("Describe this:"), ContentBlock.image_from_file("photo.jpg")]
        ... )
    """

    model_config = ConfigDict(use_enum_values=True)

    role: MessageRole = Field(description="Message role")
    content: str | list[ContentBlock] = Field(description="Text or content blocks")

    @classmethod
    def user(cls, text: str) -> MessageParam:
        """Create a user message with text content."""
        return cls(role=MessageRole.USER, content=text)

    @classmethod
    def assistant(cls, text: str) -> MessageParam:
        """Create an assistant message."""
        return cls(role=MessageRole.ASSISTANT, content=text)

    @classmethod
    def with_content(cls, role: MessageRole, content: list[ContentBlock]) -> MessageParam:
        """Create a message with multiple content blocks."""
        return cls(role=role, content=content)


class Tool(BaseModel):
    """Tool definition offered to the model.

    Example:
        >>> tool = Tool(
        ...     name="get_stock_price",
        ...     description="Get the closing price of a ticker",
        ...     input_schema={
        ...         "type": "object",
        ...         "properties": {"ticker": {"type": "string"}},
        ...         "required": ["ticker"],
        ...     },
        ... )
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(description="Tool name")
    description: str | None = Field(default=None, description="What the tool does")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for the tool input",
    )


class ToolChoiceType(str, Enum):
    """Tool choice policy for requests."""

    AUTO = "auto"
    ANY = "any"
    NONE = "none"
    TOOL = "tool"


class ToolChoice(BaseModel):
    """How the model should pick tools."""

    model_config = ConfigDict(use_enum_values=True)

    type: ToolChoiceType = ToolChoiceType.AUTO
    name: str | None = Field(default=None, description="Tool name when type is 'tool'")


class ThinkingConfig(BaseModel):
    """Extended thinking configuration."""

    type: str = "enabled"
    budget_tokens: int | None = Field(default=None, ge=1024)


class MessageParams(BaseModel):
    """Parameters for a Messages API request.

    Setting ``stream_func`` turns the request into a streaming one; each new
    text fragment is passed to it as it arrives.

    Example:
        >>> params = MessageParams(
        ...     model="claude-3-7-sonnet-20250219",
        ...     messages=[MessageParam.user("Hello")],
        ...     max_tokens=1024,
        ...     stream_func=lambda token, chunk: print(chunk.decode(), end=""),
        ... )
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: str = Field(description="Model identifier")
    messages: list[MessageParam] = Field(description="Conversation history")
    max_tokens: int = Field(default=1024, ge=1)
    system: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)
    top_p: float | None = None
    top_k: int | None = None
    stop_sequences: list[str] | None = None
    metadata: dict[str, Any] | None = None
    tools: list[Tool] | None = None
    tool_choice: ToolChoice | None = None
    thinking: ThinkingConfig | None = None
    stream_func: StreamFunc | None = Field(default=None, exclude=True)

    @property
    def is_streaming(self) -> bool:
        """True when the request asks for incremental delivery."""
        return self.stream_func is not None

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON request body.

        Returns:
            Request body with ``stream`` set and unset fields dropped
        """
        payload = self.model_dump(mode="json", exclude_none=True, by_alias=True)
        payload["stream"] = self.is_streaming
        return payload
