"""错误基类：提供分层错误体系和结构化错误上下文。

Base error classes for anthropic-messages-python.

Provides a layered error hierarchy:
- AiLibError: Base class for all library errors
- PipelineError: Stream assembly errors (framing, schema, consistency, sink)
- TransportError: HTTP/network errors
- RemoteError: Remote API errors (HTTP status >= 400)
- ValidationError: Client configuration errors
- StreamCancelledError / StreamStateError: Coordinator lifecycle errors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ErrorContext:
    """Structured error context for diagnostics.

    Provides actionable information for debugging and error handling.
    """

    field_path: str | None = None
    """Path to the problematic field (e.g., 'message.usage.input_tokens')"""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'pipeline', 'transport', 'remote')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.field_path:
            parts.append(f"at '{self.field_path}'")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class AiLibError(Exception):
    """Base class for all anthropic-messages-python errors.

    All errors from this library inherit from this class, making it easy
    to catch all library errors with a single except clause.

    Attributes:
        message: Human-readable error message
        context: Optional structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> AiLibError:
        """Add a hint to this error."""
        self.context.hint = hint
        return self


class PipelineError(AiLibError):
    """Error during stream assembly.

    Raised when:
    - A payload line cannot be decoded
    - A decoded event has the wrong shape
    - A delta does not match the segment at its index
    - The incremental sink fails

    Every PipelineError is fatal for the stream it occurred in.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        operator: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="pipeline")
        if operator:
            ctx.details["operator"] = operator
        super().__init__(message, ctx)
        self.operator = operator


class FramingError(PipelineError):
    """A payload line is not valid JSON.

    A corrupt payload usually means the stream is desynchronized, so the
    whole assembly is aborted instead of skipping the line.
    """

    def __init__(self, message: str, *, payload: str | None = None) -> None:
        ctx = ErrorContext(source="pipeline")
        if payload is not None:
            ctx.details["payload"] = payload[:200]
        super().__init__(message, ctx, operator="decode")
        self.payload = payload


class SchemaError(PipelineError):
    """A decoded event is missing a required field or has the wrong shape."""

    def __init__(
        self,
        message: str,
        *,
        event_type: str | None = None,
        field: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="pipeline", field_path=field)
        if event_type:
            ctx.details["event_type"] = event_type
        super().__init__(message, ctx, operator="decode")
        self.event_type = event_type
        self.field = field


class ConsistencyError(PipelineError):
    """A delta targets a segment index holding a different kind of segment."""

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="pipeline")
        if index is not None:
            ctx.field_path = f"content[{index}]"
        if expected:
            ctx.details["expected"] = expected
        if actual:
            ctx.details["actual"] = actual
        super().__init__(message, ctx, operator="fold")
        self.index = index
        self.expected = expected
        self.actual = actual


class SinkError(PipelineError):
    """The incremental delivery callback raised.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message, ErrorContext(source="sink"), operator="sink")
        self.__cause__ = cause


class StreamEventError(PipelineError):
    """The server reported an error in-band through an ``error`` event."""

    def __init__(self, message: str, *, error_type: str | None = None) -> None:
        ctx = ErrorContext(source="remote")
        if error_type:
            ctx.details["error_type"] = error_type
        super().__init__(message, ctx, operator="fold")
        self.error_type = error_type


class StreamCancelledError(AiLibError):
    """The cancel token fired while the stream was being assembled."""

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        ctx = ErrorContext(source="stream")
        if reason:
            ctx.details["reason"] = reason
        super().__init__(message, ctx)
        self.reason = reason


class StreamStateError(AiLibError):
    """A stream assembler was used outside of its lifecycle."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorContext(source="stream"))


class TransportError(AiLibError):
    """Error during HTTP transport.

    Raised when:
    - Network connection failure
    - Timeout
    - Proxy errors
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        if status_code:
            ctx.details["status_code"] = status_code
        super().__init__(message, ctx)
        self.url = url
        self.status_code = status_code
        self.__cause__ = cause


class ValidationError(AiLibError):
    """Validation error for client configuration or request parameters.

    Raised when:
    - The API key cannot be resolved
    - Required request parameters are missing
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        field: str | None = None,
        expected: Any = None,
        actual: Any = None,
    ) -> None:
        ctx = context or ErrorContext(source="validation")
        if field:
            ctx.field_path = field
        if expected is not None:
            ctx.details["expected"] = expected
        if actual is not None:
            ctx.details["actual"] = actual
        super().__init__(message, ctx)
        self.field = field
        self.expected = expected
        self.actual = actual


class RemoteError(AiLibError):
    """Error from the remote API.

    Attributes:
        status_code: HTTP status code
        error_type: Error type reported by the API (e.g. 'overloaded_error')
        raw_error: Raw error response from the API
        request_id: Request identifier, when the API returned one
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_type: str | None = None,
        raw_error: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="remote")
        ctx.details["status_code"] = status_code
        if error_type:
            ctx.details["error_type"] = error_type
        if request_id:
            ctx.details["request_id"] = request_id

        super().__init__(message, ctx)

        self.status_code = status_code
        self.error_type = error_type
        self.raw_error = raw_error or {}
        self.request_id = request_id

    @classmethod
    def from_response(
        cls,
        status_code: int,
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        text: str | None = None,
    ) -> RemoteError:
        """Create RemoteError from an HTTP response.

        Args:
            status_code: HTTP status code
            body: Response body (parsed JSON), if it was JSON
            headers: Response headers
            text: Raw response body, used when the body is not JSON

        Returns:
            RemoteError describing the failure
        """
        error_type = None
        message = None
        if body and isinstance(body.get("error"), dict):
            error_type = body["error"].get("type")
            message = body["error"].get("message")
        if not message:
            message = f"API request failed with status {status_code}"
            if text:
                message = f"{message}: {text[:500]}"

        request_id = None
        if headers:
            request_id = headers.get("request-id") or headers.get("x-request-id")

        return cls(
            message=message,
            status_code=status_code,
            error_type=error_type,
            raw_error=body,
            request_id=request_id,
        )
