"""Messages API 的 Python 客户端：将服务端事件流组装为结构化响应。

anthropic-messages-python: async client for the Messages API.

Turns the server-sent event stream of a message request into a single
assembled Message, optionally forwarding text to a callback as it arrives.
"""
from __future__ import annotations

from anthropic_messages.client import (
    CancelHandle,
    CancelReason,
    CancelToken,
    MessagesClient,
    MessagesClientBuilder,
    StreamAssembler,
    assemble_stream,
    create_cancel_pair,
)
from anthropic_messages.errors import (
    AiLibError,
    ConsistencyError,
    FramingError,
    PipelineError,
    RemoteError,
    SchemaError,
    SinkError,
    StreamCancelledError,
    TransportError,
)
from anthropic_messages.types import (
    ContentBlock,
    Message,
    MessageParam,
    MessageParams,
    MessageRole,
    ModelID,
    TextSegment,
    ThinkingSegment,
    Tool,
    ToolChoice,
    ToolResultSegment,
    ToolUseSegment,
    Usage,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "AiLibError",
    # Cancellation
    "CancelHandle",
    "CancelReason",
    "CancelToken",
    "ConsistencyError",
    # Types - Request
    "ContentBlock",
    "FramingError",
    # Types - Response
    "Message",
    "MessageParam",
    "MessageParams",
    "MessageRole",
    # Client
    "MessagesClient",
    "MessagesClientBuilder",
    "ModelID",
    "PipelineError",
    "RemoteError",
    "SchemaError",
    "SinkError",
    # Streaming
    "StreamAssembler",
    "StreamCancelledError",
    "TextSegment",
    "ThinkingSegment",
    "Tool",
    "ToolChoice",
    "ToolResultSegment",
    "ToolUseSegment",
    "TransportError",
    "Usage",
    "__version__",
    "assemble_stream",
    "create_cancel_pair",
]
