"""
Types layer - request, response and streaming event types.

This module provides the core data structures:
- MessageParams and MessageParam for building requests
- Message and its content segments for assembled responses
- Stream event models decoded from server-sent events
"""

from anthropic_messages.types.content import (
    ContentSegment,
    Message,
    TextSegment,
    ThinkingSegment,
    ToolResultSegment,
    ToolUseSegment,
    Usage,
)
from anthropic_messages.types.events import (
    BlockType,
    DeltaType,
    EventType,
    StreamEvent,
    parse_stream_event,
)
from anthropic_messages.types.message import (
    ContentBlock,
    ImageSource,
    MessageParam,
    MessageParams,
    MessageRole,
    StreamFunc,
    ThinkingConfig,
    Tool,
    ToolChoice,
    ToolChoiceType,
)
from anthropic_messages.types.models import ModelID, get_model_id, list_models

__all__ = [
    "BlockType",
    "ContentBlock",
    "ContentSegment",
    "DeltaType",
    "EventType",
    "ImageSource",
    # Response types
    "Message",
    # Request types
    "MessageParam",
    "MessageParams",
    "MessageRole",
    # Models
    "ModelID",
    # Event types
    "StreamEvent",
    "StreamFunc",
    "TextSegment",
    "ThinkingConfig",
    "ThinkingSegment",
    "Tool",
    "ToolChoice",
    "ToolChoiceType",
    "ToolResultSegment",
    "ToolUseSegment",
    "Usage",
    "get_model_id",
    "list_models",
    "parse_stream_event",
]
