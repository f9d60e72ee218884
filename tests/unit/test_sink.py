"""Tests for incremental sink delivery."""

import asyncio

import pytest

from anthropic_messages.client import CancelToken
from anthropic_messages.errors import SinkError, StreamCancelledError
from anthropic_messages.pipeline import FoldKind, FoldResult, SinkAdapter


class TestSinkAdapter:
    """Tests for SinkAdapter."""

    @pytest.mark.asyncio
    async def test_no_sink(self) -> None:
        """Test that an adapter without a sink does nothing."""
        adapter = SinkAdapter()
        await adapter.deliver(FoldResult(FoldKind.TEXT_DELTA, 0, "Hi"))
        assert adapter.enabled is False
        assert adapter.delivered == 0

    @pytest.mark.asyncio
    async def test_text_delivered_as_utf8(self) -> None:
        """Test that text fragments reach the sink as UTF-8 bytes."""
        token = CancelToken()
        calls = []
        adapter = SinkAdapter(lambda t, chunk: calls.append((t, chunk)), token)

        await adapter.deliver(FoldResult(FoldKind.TEXT_DELTA, 0, "café"))

        assert calls == [(token, "café".encode())]
        assert adapter.delivered == 1

    @pytest.mark.asyncio
    async def test_non_text_results_skipped(self) -> None:
        """Test that only text deltas are delivered."""
        calls = []
        adapter = SinkAdapter(lambda t, chunk: calls.append(chunk))

        await adapter.deliver(FoldResult(FoldKind.MESSAGE_STARTED))
        await adapter.deliver(FoldResult(FoldKind.TOOL_INPUT_DELTA, 0))
        await adapter.deliver(FoldResult(FoldKind.TOOL_OUTPUT_DELTA, 0, "out"))
        await adapter.deliver(FoldResult(FoldKind.THINKING_DELTA, 0, "hmm"))
        await adapter.deliver(FoldResult(FoldKind.TEXT_DELTA, 0, ""))

        assert calls == []

    @pytest.mark.asyncio
    async def test_async_sink(self) -> None:
        """Test that a coroutine sink is awaited."""
        calls = []

        async def sink(token, chunk: bytes) -> None:
            await asyncio.sleep(0)
            calls.append(chunk)

        adapter = SinkAdapter(sink)
        await adapter.deliver(FoldResult(FoldKind.TEXT_DELTA, 0, "a"))
        await adapter.deliver(FoldResult(FoldKind.TEXT_DELTA, 0, "b"))

        assert calls == [b"a", b"b"]

    @pytest.mark.asyncio
    async def test_sink_failure(self) -> None:
        """Test that a failing sink raises SinkError with the cause attached."""
        cause = RuntimeError("disk full")

        def sink(token, chunk: bytes) -> None:
            raise cause

        adapter = SinkAdapter(sink)
        with pytest.raises(SinkError) as exc_info:
            await adapter.deliver(FoldResult(FoldKind.TEXT_DELTA, 0, "a"))

        assert exc_info.value.__cause__ is cause
        assert "streaming func returned an error: disk full" in exc_info.value.message
        assert adapter.delivered == 0

    @pytest.mark.asyncio
    async def test_cancelled_token(self) -> None:
        """Test that a cancelled token stops delivery before the sink runs."""
        token = CancelToken()
        token.cancel()
        calls = []
        adapter = SinkAdapter(lambda t, chunk: calls.append(chunk), token)

        with pytest.raises(StreamCancelledError):
            await adapter.deliver(FoldResult(FoldKind.TEXT_DELTA, 0, "a"))
        assert calls == []
