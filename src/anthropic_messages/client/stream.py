"""
Stream coordination: drives decoding and folding of a streaming response.

A background task reads the byte stream line by line, decodes and folds
each event and forwards fresh text to the sink. The calling task waits on
a one-slot handoff queue for the outcome. The producer stops at the first
failure and hands it over at once, so the caller sees an error as soon as
it happens rather than when the connection closes.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from anthropic_messages.errors import StreamStateError
from anthropic_messages.pipeline import FoldKind, MessageBuilder, SinkAdapter, SSEDecoder
from anthropic_messages.telemetry import get_log_context, get_logger, set_log_context

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from anthropic_messages.client.cancel import CancelToken
    from anthropic_messages.pipeline import Decoder
    from anthropic_messages.types.content import Message
    from anthropic_messages.types.message import StreamFunc

logger = get_logger("anthropic_messages.client.stream")


class StreamState(str, Enum):
    """Lifecycle of a StreamAssembler."""

    IDLE = "idle"
    READING = "reading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class _Outcome:
    message: Message | None = None
    error: BaseException | None = None


_CLOSED = object()
_EOF = object()


class StreamAssembler:
    """Assembles one streaming response into a Message.

    An assembler is single use: once it has succeeded or failed, calling
    ``assemble`` again raises StreamStateError.

    Example:
        >>> assembler = StreamAssembler(sink=lambda token, chunk: print(chunk.decode(), end=""))
        >>> message = await assembler.assemble(response.aiter_bytes())
        >>> print(message.stop_reason)
    """

    def __init__(
        self,
        *,
        decoder: Decoder | None = None,
        sink: StreamFunc | None = None,
        cancel_token: CancelToken | None = None,
    ) -> None:
        """Initialize the assembler.

        Args:
            decoder: Line decoder (default: SSEDecoder)
            sink: Optional callback receiving each new text fragment
            cancel_token: Optional cancellation context
        """
        self._decoder = decoder or SSEDecoder()
        self._token = cancel_token
        self._sink = SinkAdapter(sink, cancel_token)
        self._builder = MessageBuilder()
        self._state = StreamState.IDLE
        self._events = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def events_folded(self) -> int:
        """Number of events folded so far."""
        return self._events

    async def assemble(self, byte_stream: AsyncIterator[bytes]) -> Message | None:
        """Read the stream to completion.

        Args:
            byte_stream: Async iterator of raw response bytes

        Returns:
            The assembled Message, or None if the stream ended without any
            message or content event

        Raises:
            PipelineError: On framing, schema, consistency or sink failures
            StreamCancelledError: If the cancel token fired
            StreamStateError: If the assembler was already used
            Exception: Errors raised by ``byte_stream`` itself, unchanged
        """
        if self._state is not StreamState.IDLE:
            raise StreamStateError(f"stream assembler already {self._state.value}")
        self._state = StreamState.READING
        logger.debug("Stream assembly started")

        handoff: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        producer = asyncio.create_task(self._produce(byte_stream, handoff))

        message: Message | None = None
        try:
            while True:
                item = await handoff.get()
                if item is _CLOSED:
                    break
                if item.error is not None:
                    raise item.error
                message = item.message
        except BaseException as e:
            self._state = StreamState.FAILED
            logger.debug(
                "Stream assembly failed",
                error_type=type(e).__name__,
                events=self._events,
            )
            raise
        finally:
            if not producer.done():
                producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await producer

        self._state = StreamState.SUCCEEDED
        logger.debug(
            "Stream assembly finished",
            message_id=message.id if message else None,
            segments=len(message.content) if message else 0,
            events=self._events,
        )
        return message

    async def _produce(self, byte_stream: AsyncIterator[bytes], handoff: asyncio.Queue[Any]) -> None:
        """Background task: read, fold, and hand over exactly one outcome."""
        try:
            message = await self._read(byte_stream)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await handoff.put(_Outcome(error=e))
        else:
            if message is not None:
                await handoff.put(_Outcome(message=message))
        await handoff.put(_CLOSED)

    async def _read(self, byte_stream: AsyncIterator[bytes]) -> Message | None:
        lines = self._decoder.iter_lines(byte_stream)
        cancelled = (
            asyncio.ensure_future(self._token.wait()) if self._token is not None else None
        )
        try:
            while True:
                if self._token is not None:
                    self._token.raise_if_cancelled("stream read")
                line = await self._next_line(lines, cancelled)
                if line is _EOF:
                    break

                event = self._decoder.decode_line(line)
                if event is None:
                    continue

                result = self._builder.fold(event)
                self._events += 1
                if result.kind is FoldKind.MESSAGE_STARTED:
                    set_log_context(replace(get_log_context(), message_id=self._builder.message_id))
                await self._sink.deliver(result)

                if result.is_terminal:
                    return self._builder.build()
        finally:
            if cancelled is not None and not cancelled.done():
                cancelled.cancel()
            await _aclose(lines)
            await _aclose(byte_stream)

        # Closed without message_stop.
        if self._builder.started:
            return self._builder.build()
        return None

    async def _next_line(self, lines: AsyncIterator[str], cancelled: asyncio.Future[Any] | None) -> Any:
        """Read one line, giving up as soon as the cancel token fires.

        A read blocked on a stalled connection is abandoned when the token
        fires, so cancellation does not wait for the transport timeout.
        """
        if cancelled is None:
            return await _pull(lines)

        read = asyncio.ensure_future(_pull(lines))
        try:
            await asyncio.wait({read, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not read.done():
                read.cancel()
                # The generator must be idle before it can be closed.
                await asyncio.wait({read})

        if read.cancelled() and self._token is not None:
            self._token.raise_if_cancelled("stream read")
        return read.result()


async def _pull(lines: AsyncIterator[str]) -> Any:
    try:
        return await anext(lines)
    except StopAsyncIteration:
        return _EOF


async def _aclose(stream: Any) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        # Keep the error that ended the read, if any.
        logger.warning("Failed to close stream", error_type=type(e).__name__, error=str(e))


async def assemble_stream(
    byte_stream: AsyncIterator[bytes],
    *,
    sink: StreamFunc | None = None,
    cancel_token: CancelToken | None = None,
    decoder: Decoder | None = None,
) -> Message | None:
    """Assemble a streaming response into a Message.

    Args:
        byte_stream: Async iterator of raw response bytes
        sink: Optional callback receiving each new text fragment
        cancel_token: Optional cancellation context
        decoder: Line decoder (default: SSEDecoder)

    Returns:
        The assembled Message, or None for a stream without content
    """
    assembler = StreamAssembler(decoder=decoder, sink=sink, cancel_token=cancel_token)
    return await assembler.assemble(byte_stream)
