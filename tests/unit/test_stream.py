"""Tests for stream assembly."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from conftest import chunked, encode_events, sse, text_stream_events

from anthropic_messages.client import (
    CancelReason,
    CancelToken,
    StreamAssembler,
    StreamState,
    assemble_stream,
)
from anthropic_messages.errors import (
    ConsistencyError,
    FramingError,
    SchemaError,
    SinkError,
    StreamCancelledError,
    StreamEventError,
    StreamStateError,
)
from anthropic_messages.telemetry import get_log_context
from anthropic_messages.types import TextSegment, ToolUseSegment


class TrackedStream:
    """Byte stream that records how far it was read and whether it was closed."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.pulled = 0
        self.closed = False

    def __aiter__(self) -> TrackedStream:
        return self

    async def __anext__(self) -> bytes:
        if self.pulled >= len(self._chunks):
            raise StopAsyncIteration
        chunk = self._chunks[self.pulled]
        self.pulled += 1
        return chunk

    async def aclose(self) -> None:
        self.closed = True


class FailingCloseStream(TrackedStream):
    """Byte stream whose aclose raises."""

    async def aclose(self) -> None:
        self.closed = True
        raise OSError("close failed")


class TestAssembleStream:
    """Tests for assemble_stream."""

    @pytest.mark.asyncio
    async def test_text_response(self, text_body: bytes) -> None:
        """Test assembling a complete text response."""
        received: list[bytes] = []

        message = await assemble_stream(
            chunked(text_body), sink=lambda token, chunk: received.append(chunk)
        )

        assert message is not None
        assert message.id == "msg_1"
        assert message.content == [TextSegment(text="Hi there")]
        assert message.stop_reason == "end_turn"
        assert message.usage.input_tokens == 10
        assert message.usage.output_tokens == 5
        assert received == [b"Hi", b" there"]

    @pytest.mark.asyncio
    async def test_single_chunk_body(self, text_body: bytes) -> None:
        """Test a body delivered in one chunk."""

        async def byte_stream():
            yield text_body

        message = await assemble_stream(byte_stream())
        assert message is not None
        assert message.text == "Hi there"

    @pytest.mark.asyncio
    async def test_async_sink_order(self) -> None:
        """Test that an async sink sees fragments in stream order."""
        parts = [f"part{i} " for i in range(20)]
        received: list[bytes] = []

        async def sink(token: Any, chunk: bytes) -> None:
            await asyncio.sleep(0)
            received.append(chunk)

        message = await assemble_stream(
            chunked(encode_events(text_stream_events(parts)), size=13), sink=sink
        )

        assert message is not None
        assert received == [p.encode() for p in parts]
        assert message.text == "".join(parts)

    @pytest.mark.asyncio
    async def test_ping_only_stream(self) -> None:
        """Test that a stream without message events yields None."""

        async def byte_stream():
            yield sse({"type": "ping"})
            yield b": keep-alive\n\n"

        assert await assemble_stream(byte_stream()) is None

    @pytest.mark.asyncio
    async def test_empty_stream(self) -> None:
        """Test that an empty stream yields None."""

        async def byte_stream():
            return
            yield b""  # pragma: no cover

        assert await assemble_stream(byte_stream()) is None

    @pytest.mark.asyncio
    async def test_eof_without_message_stop(self, text_events: list[dict[str, Any]]) -> None:
        """Test that a stream closed early returns what was assembled."""
        truncated = text_events[:3]

        message = await assemble_stream(chunked(encode_events(truncated)))

        assert message is not None
        assert message.text == "Hi"
        assert message.stop_reason is None

    @pytest.mark.asyncio
    async def test_stops_reading_at_message_stop(self, text_body: bytes) -> None:
        """Test that bytes after message_stop are not read."""
        stream = TrackedStream([text_body, b"data: not json\n\n"])

        message = await assemble_stream(stream)

        assert message is not None
        assert stream.pulled == 1
        assert stream.closed

    @pytest.mark.asyncio
    async def test_mixed_segments(self) -> None:
        """Test a response with text followed by a tool invocation."""
        events = [
            text_stream_events()[0],
            {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
            {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Let me check."}},
            {"type": "content_block_stop", "index": 0},
            {
                "type": "content_block_start",
                "index": 1,
                "content_block": {"type": "tool_use", "id": "toolu_1", "name": "get_stock_price", "input": {}},
            },
            {
                "type": "content_block_delta",
                "index": 1,
                "delta": {"type": "input_json_delta", "partial_json": '{"ticker": "^GSPC"}'},
            },
            {"type": "content_block_stop", "index": 1},
            {"type": "message_delta", "delta": {"stop_reason": "tool_use"}, "usage": {"output_tokens": 12}},
            {"type": "message_stop"},
        ]
        received: list[bytes] = []

        message = await assemble_stream(
            chunked(encode_events(events)), sink=lambda token, chunk: received.append(chunk)
        )

        assert message is not None
        assert message.content == [
            TextSegment(text="Let me check."),
            ToolUseSegment(id="toolu_1", name="get_stock_price", input={"ticker": "^GSPC"}),
        ]
        assert message.stop_reason == "tool_use"
        assert received == [b"Let me check."]


class TestAssemblyErrors:
    """Tests for failures during assembly."""

    @pytest.mark.asyncio
    async def test_invalid_json(self, text_events: list[dict[str, Any]]) -> None:
        """Test that a corrupt payload aborts the stream."""
        body = encode_events(text_events[:2]) + b"data: {not json}\n\n" + encode_events(text_events[2:])

        with pytest.raises(FramingError):
            await assemble_stream(chunked(body))

    @pytest.mark.asyncio
    async def test_schema_error(self) -> None:
        """Test that a malformed event aborts the stream."""

        async def byte_stream():
            yield b'data: {"type": "message_start", "message": {"usage": {}}}\n\n'

        with pytest.raises(SchemaError):
            await assemble_stream(byte_stream())

    @pytest.mark.asyncio
    async def test_consistency_error(self) -> None:
        """Test that a mismatched delta aborts the stream."""
        events = [
            {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
            {"type": "content_block_delta", "index": 0, "delta": {"type": "tool_use_delta", "input": {}}},
        ]
        with pytest.raises(ConsistencyError):
            await assemble_stream(chunked(encode_events(events)))

    @pytest.mark.asyncio
    async def test_error_event(self) -> None:
        """Test that an in-band error event aborts the stream."""

        async def byte_stream():
            yield sse(text_stream_events()[0])
            yield sse({"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}})

        with pytest.raises(StreamEventError, match="Overloaded"):
            await assemble_stream(byte_stream())

    @pytest.mark.asyncio
    async def test_sink_error_stops_reading(self, text_events: list[dict[str, Any]]) -> None:
        """Test that a failing sink aborts the stream and closes the body."""
        cause = ValueError("rejected")

        def sink(token: Any, chunk: bytes) -> None:
            raise cause

        stream = TrackedStream([sse(e) for e in text_events])

        with pytest.raises(SinkError) as exc_info:
            await assemble_stream(stream, sink=sink)

        assert exc_info.value.__cause__ is cause
        # message_start, content_block_start, then the first text delta fails.
        assert stream.pulled == 3
        assert stream.closed

    @pytest.mark.asyncio
    async def test_read_error_propagates_unchanged(self, text_events: list[dict[str, Any]]) -> None:
        """Test that an error from the byte stream reaches the caller as-is."""

        async def byte_stream():
            yield sse(text_events[0])
            raise ConnectionResetError("peer reset")

        with pytest.raises(ConnectionResetError, match="peer reset"):
            await assemble_stream(byte_stream())

    @pytest.mark.asyncio
    async def test_close_failure_keeps_sink_error(self, text_events: list[dict[str, Any]]) -> None:
        """Test that a failing close does not replace the sink error."""

        def sink(token: Any, chunk: bytes) -> None:
            raise ValueError("rejected")

        stream = FailingCloseStream([sse(e) for e in text_events])

        with pytest.raises(SinkError):
            await assemble_stream(stream, sink=sink)
        assert stream.closed

    @pytest.mark.asyncio
    async def test_close_failure_after_success(self, text_events: list[dict[str, Any]]) -> None:
        """Test that a failing close does not discard a complete message."""
        stream = FailingCloseStream([sse(e) for e in text_events])

        message = await assemble_stream(stream)

        assert message is not None
        assert message.text == "Hi there"
        assert stream.closed


class TestCancellation:
    """Tests for cancellation during assembly."""

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, text_body: bytes) -> None:
        """Test that a token cancelled up front stops before any read."""
        token = CancelToken()
        token.cancel(CancelReason.SHUTDOWN)
        stream = TrackedStream([text_body])

        with pytest.raises(StreamCancelledError) as exc_info:
            await assemble_stream(stream, cancel_token=token)

        assert exc_info.value.reason == "shutdown"
        assert stream.pulled == 0
        assert stream.closed

    @pytest.mark.asyncio
    async def test_cancelled_from_sink(self, text_events: list[dict[str, Any]]) -> None:
        """Test that cancelling mid-stream stops at the next read."""
        received: list[bytes] = []

        def sink(token: CancelToken, chunk: bytes) -> None:
            received.append(chunk)
            token.cancel(CancelReason.USER_REQUEST)

        stream = TrackedStream([sse(e) for e in text_events])

        with pytest.raises(StreamCancelledError):
            await assemble_stream(stream, sink=sink, cancel_token=CancelToken())

        assert received == [b"Hi"]
        assert stream.pulled == 3

    @pytest.mark.asyncio
    async def test_consumer_task_cancelled(self) -> None:
        """Test that cancelling the awaiting task stops the producer."""
        started = asyncio.Event()
        closed = asyncio.Event()

        async def byte_stream():
            try:
                yield sse(text_stream_events()[0])
                started.set()
                await asyncio.sleep(3600)
                yield b""  # pragma: no cover
            finally:
                closed.set()

        assembler = StreamAssembler()
        task = asyncio.create_task(assembler.assemble(byte_stream()))
        await asyncio.wait_for(started.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert closed.is_set()
        assert assembler.state is StreamState.FAILED

    @pytest.mark.asyncio
    async def test_timeout_during_stalled_read(self) -> None:
        """Test that a deadline fires while the body is waiting for bytes."""
        closed = asyncio.Event()

        async def byte_stream():
            try:
                yield sse(text_stream_events()[0])
                await asyncio.sleep(3600)
                yield b""  # pragma: no cover
            finally:
                closed.set()

        token = CancelToken(timeout=0.2)

        with pytest.raises(StreamCancelledError) as exc_info:
            await asyncio.wait_for(assemble_stream(byte_stream(), cancel_token=token), timeout=2)

        assert exc_info.value.reason == "timeout"
        assert closed.is_set()

    @pytest.mark.asyncio
    async def test_handle_cancel_during_stalled_read(self) -> None:
        """Test that an explicit cancel interrupts a read that is waiting."""
        started = asyncio.Event()

        async def byte_stream():
            yield sse(text_stream_events()[0])
            started.set()
            await asyncio.sleep(3600)
            yield b""  # pragma: no cover

        token = CancelToken()
        task = asyncio.create_task(assemble_stream(byte_stream(), cancel_token=token))
        await asyncio.wait_for(started.wait(), timeout=1)
        token.cancel(CancelReason.USER_REQUEST)

        with pytest.raises(StreamCancelledError) as exc_info:
            await asyncio.wait_for(task, timeout=2)
        assert exc_info.value.reason == "user_request"


class TestStreamAssembler:
    """Tests for StreamAssembler lifecycle."""

    @pytest.mark.asyncio
    async def test_state_after_success(self, text_body: bytes) -> None:
        """Test state and counters after a successful assembly."""
        assembler = StreamAssembler()
        assert assembler.state is StreamState.IDLE

        await assembler.assemble(chunked(text_body))

        assert assembler.state is StreamState.SUCCEEDED
        assert assembler.events_folded == 7

    @pytest.mark.asyncio
    async def test_state_after_failure(self) -> None:
        """Test state after a failed assembly."""

        async def byte_stream():
            yield b"data: nope\n\n"

        assembler = StreamAssembler()
        with pytest.raises(FramingError):
            await assembler.assemble(byte_stream())
        assert assembler.state is StreamState.FAILED

    @pytest.mark.asyncio
    async def test_single_use(self, text_body: bytes) -> None:
        """Test that an assembler cannot be reused."""
        assembler = StreamAssembler()
        await assembler.assemble(chunked(text_body))

        with pytest.raises(StreamStateError):
            await assembler.assemble(chunked(text_body))

    @pytest.mark.asyncio
    async def test_sink_sees_message_id_in_log_context(self, text_body: bytes) -> None:
        """Test that logs emitted while streaming carry the message id."""
        seen: list[str | None] = []

        def sink(token: Any, chunk: bytes) -> None:
            seen.append(get_log_context().message_id)

        await assemble_stream(chunked(text_body), sink=sink)

        assert seen == ["msg_1", "msg_1"]
        assert get_log_context().message_id is None
