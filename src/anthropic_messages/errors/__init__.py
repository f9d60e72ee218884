"""错误体系：提供流式组装与传输层的结构化错误类型。

Error hierarchy for anthropic-messages-python.
"""

from anthropic_messages.errors.base import (
    AiLibError,
    ConsistencyError,
    ErrorContext,
    FramingError,
    PipelineError,
    RemoteError,
    SchemaError,
    SinkError,
    StreamCancelledError,
    StreamEventError,
    StreamStateError,
    TransportError,
    ValidationError,
)

__all__ = [
    "AiLibError",
    "ConsistencyError",
    "ErrorContext",
    "FramingError",
    "PipelineError",
    "RemoteError",
    "SchemaError",
    "SinkError",
    "StreamCancelledError",
    "StreamEventError",
    "StreamStateError",
    "TransportError",
    "ValidationError",
]
