"""
Incremental delivery of fresh text to a caller-supplied callback.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING

from anthropic_messages.errors import SinkError
from anthropic_messages.pipeline.fold import FoldKind

if TYPE_CHECKING:
    from anthropic_messages.client.cancel import CancelToken
    from anthropic_messages.pipeline.fold import FoldResult
    from anthropic_messages.types.message import StreamFunc


class SinkAdapter:
    """Forwards newly folded text fragments to a sink.

    The sink is called as ``sink(cancel_token, fragment)`` with the fragment
    UTF-8 encoded. It may be a plain function or a coroutine function. Any
    exception it raises aborts the stream as a SinkError.

    Example:
        >>> chunks = []
        >>> adapter = SinkAdapter(lambda token, chunk: chunks.append(chunk))
        >>> await adapter.deliver(FoldResult(FoldKind.TEXT_DELTA, 0, "Hi"))
        >>> chunks
        [b'Hi']
    """

    def __init__(
        self,
        sink: StreamFunc | None = None,
        cancel_token: CancelToken | None = None,
    ) -> None:
        self._sink = sink
        self._token = cancel_token
        self._delivered = 0

    @property
    def enabled(self) -> bool:
        return self._sink is not None

    @property
    def delivered(self) -> int:
        """Number of fragments passed to the sink so far."""
        return self._delivered

    async def deliver(self, result: FoldResult) -> None:
        """Forward the fragment of a text delta, if any.

        Raises:
            StreamCancelledError: If the cancel token fired before delivery
            SinkError: If the sink raised
        """
        if self._sink is None or result.kind is not FoldKind.TEXT_DELTA or not result.fragment:
            return

        if self._token is not None:
            self._token.raise_if_cancelled("sink delivery")

        try:
            outcome = self._sink(self._token, result.fragment.encode("utf-8"))
            if inspect.isawaitable(outcome):
                await outcome
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise SinkError(f"streaming func returned an error: {e}", cause=e) from e

        self._delivered += 1
