"""
Server-Sent Events decoder for the Messages API stream.

Parses the line-based SSE format:
```
event: content_block_delta
data: {"type": "content_block_delta", "index": 0, "delta": {...}}

```

Only ``data:`` lines carry payloads; ``event:`` lines, comments and blank
lines are framing and are ignored. A payload that fails to decode aborts
the stream.
"""

from __future__ import annotations

import codecs
import json
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from anthropic_messages.errors import FramingError, SchemaError
from anthropic_messages.pipeline.base import Decoder
from anthropic_messages.types.events import parse_stream_event

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from anthropic_messages.types.events import StreamEvent

_NESTED_DESCRIPTORS = ("delta", "content_block")


class SSEDecoder(Decoder):
    """Server-Sent Events (SSE) decoder.

    Attributes:
        prefix: Marker that starts a payload line (default: "data:")
        encoding: Text encoding of the byte stream (default: "utf-8")
    """

    def __init__(self, prefix: str = "data:", encoding: str = "utf-8") -> None:
        """Initialize SSE decoder.

        Args:
            prefix: Payload line marker; one space after it is also stripped
            encoding: Byte stream encoding
        """
        self._prefix = prefix
        self._encoding = encoding

    async def iter_lines(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[str]:
        """Split a byte stream into lines.

        Multi-byte characters split across chunks are reassembled. A final
        line without a terminator is still yielded.
        """
        decoder = codecs.getincrementaldecoder(self._encoding)(errors="replace")
        buffer = ""

        async for chunk in byte_stream:
            buffer += decoder.decode(chunk)
            while "\n" in buffer:
                line, buffer = buffer.split("\n", 1)
                yield line.rstrip("\r")

        buffer += decoder.decode(b"", final=True)
        if buffer:
            yield buffer.rstrip("\r")

    def decode_line(self, line: str) -> StreamEvent | None:
        """Decode one SSE line into an event.

        Args:
            line: A line without its terminator

        Returns:
            The decoded event, or None for keep-alive and framing lines

        Raises:
            FramingError: If the payload is not valid JSON
            SchemaError: If the payload does not fit its event kind
        """
        if not line or not line.startswith(self._prefix):
            return None

        data = line[len(self._prefix) :]
        if data.startswith(" "):
            data = data[1:]

        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            raise FramingError(
                f"failed to parse stream event: {e.msg}", payload=data
            ) from e

        try:
            return parse_stream_event(payload)
        except PydanticValidationError as e:
            raise _schema_error(payload, e) from e


def _schema_error(payload: Any, exc: PydanticValidationError) -> SchemaError:
    """Translate a pydantic failure into a SchemaError naming the field."""
    kind = payload.get("type") if isinstance(payload, dict) else None
    if not isinstance(kind, str):
        return SchemaError("invalid event type", field="type")

    first = exc.errors()[0]
    loc = [str(part) for part in first.get("loc", ())]
    # Tagged unions put the tag in the location; drop it.
    if loc and loc[0] == kind:
        loc = loc[1:]
    if len(loc) > 1 and loc[0] in _NESTED_DESCRIPTORS:
        nested = payload.get(loc[0])
        if isinstance(nested, dict) and loc[1] == nested.get("type"):
            loc = [loc[0], *loc[2:]]

    field = ".".join(loc) or None
    target = f"{field} field" if field else "payload"
    return SchemaError(
        f"invalid {target} in {kind} event: {first.get('msg', 'validation failed')}",
        event_type=kind,
        field=field,
    )
