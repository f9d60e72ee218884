"""Root pytest fixtures for anthropic-messages-python tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable


def sse(payload: dict[str, Any], event: str | None = None) -> bytes:
    """Frame one payload the way the server does."""
    name = event or payload["type"]
    return f"event: {name}\ndata: {json.dumps(payload)}\n\n".encode()


def text_stream_events(
    text_parts: Iterable[str] = ("Hi", " there"),
    *,
    message_id: str = "msg_1",
    input_tokens: int = 10,
    output_tokens: int = 5,
    stop_reason: str = "end_turn",
) -> list[dict[str, Any]]:
    """Event payloads of a complete single text block response."""
    events: list[dict[str, Any]] = [
        {
            "type": "message_start",
            "message": {
                "id": message_id,
                "type": "message",
                "role": "assistant",
                "model": "claude-3-7-sonnet-20250219",
                "usage": {"input_tokens": input_tokens},
            },
        },
        {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
    ]
    for part in text_parts:
        events.append(
            {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": part}}
        )
    events.extend(
        [
            {"type": "content_block_stop", "index": 0},
            {
                "type": "message_delta",
                "delta": {"stop_reason": stop_reason, "stop_sequence": None},
                "usage": {"output_tokens": output_tokens},
            },
            {"type": "message_stop"},
        ]
    )
    return events


def encode_events(events: Iterable[dict[str, Any]]) -> bytes:
    """Concatenate framed events into one response body."""
    return b"".join(sse(e) for e in events)


async def chunked(data: bytes, size: int = 7) -> AsyncIterator[bytes]:
    """Yield a body in fixed-size chunks, splitting lines and characters."""
    for start in range(0, len(data), size):
        yield data[start : start + size]


@pytest.fixture
def text_events() -> list[dict[str, Any]]:
    """Payloads of the basic "Hi there" response."""
    return text_stream_events()


@pytest.fixture
def text_body(text_events: list[dict[str, Any]]) -> bytes:
    """Framed body of the basic "Hi there" response."""
    return encode_events(text_events)
