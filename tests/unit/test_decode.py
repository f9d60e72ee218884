"""Tests for SSE decoding."""

from __future__ import annotations

import pytest

from anthropic_messages.errors import FramingError, SchemaError
from anthropic_messages.pipeline import SSEDecoder
from anthropic_messages.types.events import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    InputJsonDelta,
    MessageStartEvent,
    PingEvent,
    TextDelta,
    ToolResultDelta,
    UnknownBlockStart,
    UnknownDelta,
    UnknownEvent,
)


async def collect_lines(decoder: SSEDecoder, chunks: list[bytes]) -> list[str]:
    async def byte_stream():
        for chunk in chunks:
            yield chunk

    return [line async for line in decoder.iter_lines(byte_stream())]


class TestIterLines:
    """Tests for SSEDecoder.iter_lines."""

    @pytest.mark.asyncio
    async def test_lines_split_across_chunks(self) -> None:
        """Test that a line split across chunks is reassembled."""
        lines = await collect_lines(SSEDecoder(), [b"data: {\"ty", b"pe\": \"ping\"}\n", b"\n"])
        assert lines == ['data: {"type": "ping"}', ""]

    @pytest.mark.asyncio
    async def test_crlf_terminators(self) -> None:
        """Test that CRLF line endings are stripped."""
        lines = await collect_lines(SSEDecoder(), [b"event: ping\r\ndata: {}\r\n\r\n"])
        assert lines == ["event: ping", "data: {}", ""]

    @pytest.mark.asyncio
    async def test_multibyte_character_split(self) -> None:
        """Test that a UTF-8 sequence split across chunks decodes intact."""
        encoded = "café\n".encode()
        lines = await collect_lines(SSEDecoder(), [encoded[:4], encoded[4:]])
        assert lines == ["café"]

    @pytest.mark.asyncio
    async def test_trailing_line_without_terminator(self) -> None:
        """Test that the last line is yielded even without a newline."""
        lines = await collect_lines(SSEDecoder(), [b"data: a\n", b"data: b"])
        assert lines == ["data: a", "data: b"]

    @pytest.mark.asyncio
    async def test_empty_stream(self) -> None:
        """Test that an empty stream yields nothing."""
        assert await collect_lines(SSEDecoder(), []) == []


class TestDecodeLine:
    """Tests for SSEDecoder.decode_line."""

    def test_framing_lines_ignored(self) -> None:
        """Test that blank, event and comment lines produce no event."""
        decoder = SSEDecoder()
        assert decoder.decode_line("") is None
        assert decoder.decode_line("event: message_start") is None
        assert decoder.decode_line(": keep-alive") is None

    def test_ping(self) -> None:
        """Test decoding a ping event."""
        event = SSEDecoder().decode_line('data: {"type": "ping"}')
        assert isinstance(event, PingEvent)

    def test_prefix_without_space(self) -> None:
        """Test that the space after the prefix is optional."""
        event = SSEDecoder().decode_line('data:{"type": "ping"}')
        assert isinstance(event, PingEvent)

    def test_message_start(self) -> None:
        """Test decoding message_start."""
        event = SSEDecoder().decode_line(
            'data: {"type": "message_start", "message": {"id": "msg_1", "type": "message",'
            ' "role": "assistant", "model": "m", "usage": {"input_tokens": 10}}}'
        )
        assert isinstance(event, MessageStartEvent)
        assert event.message.id == "msg_1"
        assert event.message.usage.input_tokens == 10

    def test_integral_float_index(self) -> None:
        """Test that an integral float index narrows to an int."""
        event = SSEDecoder().decode_line(
            'data: {"type": "content_block_delta", "index": 2.0,'
            ' "delta": {"type": "text_delta", "text": "x"}}'
        )
        assert isinstance(event, ContentBlockDeltaEvent)
        assert event.index == 2
        assert isinstance(event.index, int)
        assert isinstance(event.delta, TextDelta)

    def test_input_json_delta(self) -> None:
        """Test decoding a raw JSON fragment delta."""
        event = SSEDecoder().decode_line(
            'data: {"type": "content_block_delta", "index": 1,'
            ' "delta": {"type": "input_json_delta", "partial_json": "{\\"a\\""}}'
        )
        assert isinstance(event, ContentBlockDeltaEvent)
        assert isinstance(event.delta, InputJsonDelta)
        assert event.delta.partial_json == '{"a"'

    def test_tool_result_delta_content_alias(self) -> None:
        """Test that tool result output is read from 'content' too."""
        event = SSEDecoder().decode_line(
            'data: {"type": "content_block_delta", "index": 0,'
            ' "delta": {"type": "tool_result_delta", "content": "42"}}'
        )
        assert isinstance(event, ContentBlockDeltaEvent)
        assert isinstance(event.delta, ToolResultDelta)
        assert event.delta.output == "42"

    def test_custom_prefix(self) -> None:
        """Test a decoder with a different payload marker."""
        decoder = SSEDecoder(prefix="payload:")
        assert decoder.decode_line('data: {"type": "ping"}') is None
        assert isinstance(decoder.decode_line('payload: {"type": "ping"}'), PingEvent)


class TestUnknownKinds:
    """Tests for kinds the decoder does not model."""

    def test_unknown_event(self) -> None:
        """Test that an unknown event type decodes to UnknownEvent."""
        event = SSEDecoder().decode_line('data: {"type": "citation_added", "extra": 1}')
        assert isinstance(event, UnknownEvent)
        assert event.type == "citation_added"

    def test_unknown_delta(self) -> None:
        """Test that an unknown delta type decodes to UnknownDelta."""
        event = SSEDecoder().decode_line(
            'data: {"type": "content_block_delta", "index": 0,'
            ' "delta": {"type": "citations_delta", "citation": {}}}'
        )
        assert isinstance(event, ContentBlockDeltaEvent)
        assert isinstance(event.delta, UnknownDelta)

    def test_unknown_block(self) -> None:
        """Test that an unknown block type decodes to UnknownBlockStart."""
        event = SSEDecoder().decode_line(
            'data: {"type": "content_block_start", "index": 0,'
            ' "content_block": {"type": "server_tool_use", "id": "x"}}'
        )
        assert isinstance(event, ContentBlockStartEvent)
        assert isinstance(event.content_block, UnknownBlockStart)
        assert event.content_block.type == "server_tool_use"


class TestDecodeErrors:
    """Tests for decode failures."""

    def test_invalid_json(self) -> None:
        """Test that a corrupt payload raises FramingError."""
        with pytest.raises(FramingError) as exc_info:
            SSEDecoder().decode_line('data: {"type": "ping"')
        assert "failed to parse stream event" in exc_info.value.message
        assert exc_info.value.payload == '{"type": "ping"'
        assert exc_info.value.operator == "decode"

    def test_missing_input_tokens(self) -> None:
        """Test that message_start without input_tokens is a SchemaError."""
        with pytest.raises(SchemaError) as exc_info:
            SSEDecoder().decode_line(
                'data: {"type": "message_start", "message": {"id": "msg_1", "usage": {}}}'
            )
        error = exc_info.value
        assert error.event_type == "message_start"
        assert error.field is not None
        assert "input_tokens" in error.field

    def test_non_numeric_index(self) -> None:
        """Test that a non-numeric index is a SchemaError on 'index'."""
        with pytest.raises(SchemaError) as exc_info:
            SSEDecoder().decode_line(
                'data: {"type": "content_block_delta", "index": "abc",'
                ' "delta": {"type": "text_delta", "text": "x"}}'
            )
        assert exc_info.value.field == "index"
        assert exc_info.value.event_type == "content_block_delta"

    def test_string_index(self) -> None:
        """Test that a numeric string index is not coerced."""
        with pytest.raises(SchemaError) as exc_info:
            SSEDecoder().decode_line(
                'data: {"type": "content_block_delta", "index": "0",'
                ' "delta": {"type": "text_delta", "text": "x"}}'
            )
        assert exc_info.value.field == "index"

    def test_string_token_count(self) -> None:
        """Test that a numeric string token count is not coerced."""
        with pytest.raises(SchemaError) as exc_info:
            SSEDecoder().decode_line(
                'data: {"type": "message_delta", "delta": {}, "usage": {"output_tokens": "5"}}'
            )
        assert exc_info.value.field == "usage.output_tokens"

    def test_boolean_index(self) -> None:
        """Test that a boolean index is rejected."""
        with pytest.raises(SchemaError):
            SSEDecoder().decode_line('data: {"type": "content_block_stop", "index": true}')

    def test_negative_index(self) -> None:
        """Test that a negative index is rejected."""
        with pytest.raises(SchemaError) as exc_info:
            SSEDecoder().decode_line('data: {"type": "content_block_stop", "index": -1}')
        assert exc_info.value.field == "index"

    def test_text_delta_without_text(self) -> None:
        """Test that the nested delta tag is dropped from the field path."""
        with pytest.raises(SchemaError) as exc_info:
            SSEDecoder().decode_line(
                'data: {"type": "content_block_delta", "index": 0,'
                ' "delta": {"type": "text_delta"}}'
            )
        assert exc_info.value.field == "delta.text"

    def test_missing_type(self) -> None:
        """Test that a payload without a type is a SchemaError on 'type'."""
        with pytest.raises(SchemaError) as exc_info:
            SSEDecoder().decode_line('data: {"index": 0}')
        assert exc_info.value.field == "type"
        assert exc_info.value.message == "invalid event type"

    def test_non_object_payload(self) -> None:
        """Test that a JSON array payload is a SchemaError."""
        with pytest.raises(SchemaError):
            SSEDecoder().decode_line("data: [1, 2]")


class TestDecode:
    """Tests for the decode generator."""

    @pytest.mark.asyncio
    async def test_decode_skips_framing(self, text_body: bytes) -> None:
        """Test that decode yields one event per data line."""

        async def byte_stream():
            yield text_body

        events = [event async for event in SSEDecoder().decode(byte_stream())]
        assert [e.type for e in events] == [
            "message_start",
            "content_block_start",
            "content_block_delta",
            "content_block_delta",
            "content_block_stop",
            "message_delta",
            "message_stop",
        ]
