"""
Accumulator for streamed tool arguments.

Tool arguments reach the client in two shapes:
- ``tool_use_delta``: a partial mapping merged key by key into the arguments
- ``input_json_delta``: a raw JSON text fragment, only parseable once complete

ToolInputBuilder keeps both in a mutable state so each delta costs a dict
update or a string append, never a JSON round-trip.
"""

from __future__ import annotations

import copy
import json
from typing import TYPE_CHECKING, Any

from anthropic_messages.errors import FramingError

if TYPE_CHECKING:
    from collections.abc import Mapping


class ToolInputBuilder:
    """Builds the argument mapping of one tool invocation.

    Example:
        >>> builder = ToolInputBuilder({"ticker": "^GSPC"})
        >>> builder.merge({"date": "2023-07-01"})
        >>> builder.snapshot()
        {'ticker': '^GSPC', 'date': '2023-07-01'}
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        """Initialize the builder.

        Args:
            initial: Arguments announced when the tool block started
        """
        self._input: dict[str, Any] = dict(initial or {})
        self._json_buffer: list[str] = []

    def merge(self, partial: Mapping[str, Any]) -> None:
        """Shallow-merge a partial mapping; the last write wins per key.

        Existing keys keep their position, new keys are appended.
        """
        self._input.update(partial)

    def append_json(self, fragment: str) -> None:
        """Buffer a raw JSON fragment until the block completes."""
        self._json_buffer.append(fragment)

    @property
    def has_pending_json(self) -> bool:
        """Whether raw JSON fragments are waiting to be parsed."""
        return bool(self._json_buffer)

    def finalize(self) -> None:
        """Parse buffered JSON fragments and merge them.

        Raises:
            FramingError: If the buffered text is not a JSON object
        """
        if not self._json_buffer:
            return
        text = "".join(self._json_buffer)
        self._json_buffer.clear()
        if not text.strip():
            return
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise FramingError(f"invalid tool input JSON: {e.msg}", payload=text) from e
        if not isinstance(parsed, dict):
            raise FramingError("tool input JSON is not an object", payload=text)
        self.merge(parsed)

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy of the arguments accumulated so far.

        Buffered JSON is included only if it already parses as an object;
        the buffer itself is left untouched.
        """
        result = copy.deepcopy(self._input)
        if self._json_buffer:
            try:
                parsed = json.loads("".join(self._json_buffer))
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                result.update(parsed)
        return result
