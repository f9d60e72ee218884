"""
Client layer - User-facing API.

This module provides:
- MessagesClient: Main entry point for the Messages API
- MessagesClientBuilder: Fluent client construction
- StreamAssembler: Assembly of a streaming response into a Message
- Cancellation: Stream cancellation control
"""

from anthropic_messages.client.builder import MessagesClientBuilder
from anthropic_messages.client.cancel import (
    CancelHandle,
    CancelReason,
    CancelState,
    CancelToken,
    create_cancel_pair,
)
from anthropic_messages.client.core import (
    MESSAGES_ENDPOINT,
    MessagesClient,
    MessagesService,
    ModelsService,
)
from anthropic_messages.client.stream import StreamAssembler, StreamState, assemble_stream

__all__ = [
    "MESSAGES_ENDPOINT",
    "CancelHandle",
    "CancelReason",
    "CancelState",
    "CancelToken",
    "MessagesClient",
    "MessagesClientBuilder",
    "MessagesService",
    "ModelsService",
    "StreamAssembler",
    "StreamState",
    "assemble_stream",
    "create_cancel_pair",
]
