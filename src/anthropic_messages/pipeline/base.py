"""
Base abstractions for the pipeline layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from anthropic_messages.types.events import StreamEvent


class Decoder(ABC):
    """Abstract decoder that turns a byte stream into typed stream events.

    Decoders own the transport-level framing: splitting bytes into lines,
    discarding framing artifacts and decoding each payload.
    """

    @abstractmethod
    def iter_lines(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[str]:
        """Split a byte stream into text lines.

        Args:
            byte_stream: Async iterator of raw bytes

        Yields:
            Lines without their terminators
        """
        ...

    @abstractmethod
    def decode_line(self, line: str) -> StreamEvent | None:
        """Decode one line.

        Args:
            line: A single line of the stream

        Returns:
            The event carried by the line, or None for non-payload lines
        """
        ...

    async def decode(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[StreamEvent]:
        """Decode a byte stream into events.

        Args:
            byte_stream: Async iterator of raw bytes

        Yields:
            Typed stream events, in wire order
        """
        async for line in self.iter_lines(byte_stream):
            event = self.decode_line(line)
            if event is not None:
                yield event
