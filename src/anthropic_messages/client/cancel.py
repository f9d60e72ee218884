"""
Stream cancellation control.

A CancelToken is the cancellation context of one stream assembly. It is
checked before every read from the byte stream and before every sink call,
and is handed to the sink so that it can observe cancellation too.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from anthropic_messages.errors import StreamCancelledError
from anthropic_messages.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger("anthropic_messages.client.cancel")


class CancelReason(str, Enum):
    """Reasons for cancellation."""

    USER_REQUEST = "user_request"
    TIMEOUT = "timeout"
    ERROR = "error"
    SHUTDOWN = "shutdown"


@dataclass
class CancelState:
    """State of a cancellation token.

    Attributes:
        cancelled: Whether cancellation was requested
        reason: Reason for cancellation
        timestamp: Time of cancellation
    """

    cancelled: bool = False
    reason: CancelReason | None = None
    timestamp: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CancelToken:
    """Cancellation token for cooperative cancellation.

    Example:
        >>> token = CancelToken()
        >>> task = asyncio.create_task(assembler.assemble(byte_stream))
        >>> token.cancel(CancelReason.USER_REQUEST)
        >>> await task  # raises StreamCancelledError at the next boundary
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize cancellation token.

        Args:
            timeout: Cancel automatically after this many seconds. Requires a
                running event loop; without one the timeout is ignored.
        """
        self._state = CancelState()
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[CancelReason], Any]] = []
        self._timeout = timeout
        self._timeout_task: asyncio.Task[None] | None = None

        if timeout:
            self._start_timeout()

    def _start_timeout(self) -> None:
        async def timeout_handler() -> None:
            await asyncio.sleep(self._timeout)  # type: ignore[arg-type]
            if not self._state.cancelled:
                self.cancel(CancelReason.TIMEOUT)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, cancel timeout not armed", timeout=self._timeout)
            return
        self._timeout_task = loop.create_task(timeout_handler())

    def cancel(
        self,
        reason: CancelReason = CancelReason.USER_REQUEST,
        **metadata: Any,
    ) -> bool:
        """Request cancellation.

        Args:
            reason: Reason for cancellation
            **metadata: Additional metadata

        Returns:
            True if cancellation was newly requested, False if already cancelled
        """
        if self._state.cancelled:
            return False

        self._state.cancelled = True
        self._state.reason = reason
        self._state.timestamp = time.time()
        self._state.metadata.update(metadata)

        self._event.set()

        if self._timeout_task and not self._timeout_task.done():
            self._timeout_task.cancel()

        for callback in self._callbacks:
            self._invoke(callback, reason)

        return True

    @staticmethod
    def _invoke(callback: Callable[[CancelReason], Any], reason: CancelReason) -> None:
        try:
            result = callback(reason)
            if asyncio.iscoroutine(result):
                _ = asyncio.create_task(result)  # noqa: RUF006
        except Exception:
            logger.error("Cancel callback failed", exc_info=True, reason=reason.value)

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._state.cancelled

    @property
    def reason(self) -> CancelReason | None:
        """Get cancellation reason."""
        return self._state.reason

    @property
    def state(self) -> CancelState:
        """Get full cancellation state."""
        return self._state

    async def wait(self) -> CancelReason:
        """Wait until cancellation is requested."""
        await self._event.wait()
        return self._state.reason or CancelReason.USER_REQUEST

    def on_cancel(self, callback: Callable[[CancelReason], Any]) -> CancelToken:
        """Register a callback to be called on cancellation.

        Args:
            callback: Callback function

        Returns:
            Self for chaining
        """
        self._callbacks.append(callback)
        if self._state.cancelled and self._state.reason:
            self._invoke(callback, self._state.reason)
        return self

    def raise_if_cancelled(self, where: str = "stream") -> None:
        """Raise StreamCancelledError if cancelled.

        Args:
            where: Boundary at which cancellation was observed, for the message

        Raises:
            StreamCancelledError: If cancellation was requested
        """
        if self._state.cancelled:
            reason = self._state.reason.value if self._state.reason else None
            raise StreamCancelledError(f"{where} cancelled", reason=reason)


class CancelHandle:
    """Public handle for cancelling a stream.

    Callers keep the handle; the token travels with the operation.
    """

    def __init__(self, token: CancelToken) -> None:
        self._token = token

    def cancel(
        self,
        reason: CancelReason = CancelReason.USER_REQUEST,
        **metadata: Any,
    ) -> bool:
        """Request cancellation.

        Returns:
            True if cancellation was newly requested
        """
        return self._token.cancel(reason, **metadata)

    @property
    def is_cancelled(self) -> bool:
        return self._token.is_cancelled

    @property
    def reason(self) -> CancelReason | None:
        return self._token.reason


def create_cancel_pair(
    timeout: float | None = None,
) -> tuple[CancelHandle, CancelToken]:
    """Create a cancel handle and token pair.

    Args:
        timeout: Optional timeout in seconds

    Returns:
        Tuple of (CancelHandle, CancelToken)
    """
    token = CancelToken(timeout=timeout)
    return CancelHandle(token), token
