"""
Pipeline layer - Stream processing operators.

This module implements the operators that turn a streaming response into a
Message:
- Decoder: Splits raw bytes into lines and decodes SSE payloads into events
- ToolInputBuilder: Accumulates streamed tool arguments
- MessageBuilder: Folds events into the message under assembly
- SinkAdapter: Forwards fresh text to a caller-supplied callback
"""

from anthropic_messages.pipeline.accumulate import ToolInputBuilder
from anthropic_messages.pipeline.base import Decoder
from anthropic_messages.pipeline.decode import SSEDecoder
from anthropic_messages.pipeline.fold import FoldKind, FoldResult, MessageBuilder
from anthropic_messages.pipeline.sink import SinkAdapter

__all__ = [
    "Decoder",
    "FoldKind",
    "FoldResult",
    "MessageBuilder",
    "SSEDecoder",
    "SinkAdapter",
    "ToolInputBuilder",
]
