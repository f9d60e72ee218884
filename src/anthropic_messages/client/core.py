"""核心客户端实现：提供 Messages API 的请求与流式组装接口。

Core MessagesClient implementation.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from anthropic_messages.client.builder import MessagesClientBuilder
from anthropic_messages.client.stream import assemble_stream
from anthropic_messages.errors import FramingError, SchemaError, ValidationError
from anthropic_messages.telemetry import get_log_context, get_logger, set_log_context
from anthropic_messages.transport import (
    HttpTransport,
    resolve_api_key,
    resolve_api_version,
    resolve_base_url,
    resolve_timeout,
)
from anthropic_messages.types.content import Message
from anthropic_messages.types.models import ModelID, list_models

if TYPE_CHECKING:
    import httpx

    from anthropic_messages.client.cancel import CancelToken
    from anthropic_messages.types.message import MessageParams

logger = get_logger("anthropic_messages.client")

MESSAGES_ENDPOINT = "/messages"


class MessagesService:
    """Operations on the ``/messages`` endpoint."""

    def __init__(self, transport: HttpTransport) -> None:
        self._transport = transport

    async def create(
        self,
        params: MessageParams,
        *,
        cancel_token: CancelToken | None = None,
    ) -> Message | None:
        """Send a request and return the resulting message.

        When ``params.stream_func`` is set the request is streamed: text is
        passed to ``stream_func`` as it arrives and the assembled message is
        returned once the stream ends.

        Args:
            params: Request parameters
            cancel_token: Cancellation context for streaming requests

        Returns:
            The message. A stream that closes without any message or content
            event yields None.

        Raises:
            TransportError: On network/connection errors
            RemoteError: On API errors (4xx, 5xx)
            PipelineError: On malformed responses or a failing stream_func
            StreamCancelledError: If the cancel token fired mid-stream
        """
        payload = params.to_payload()
        logger.debug("Creating message", model=params.model, streaming=params.is_streaming)

        previous = get_log_context()
        try:
            if params.is_streaming:
                async with self._transport.stream_post(MESSAGES_ENDPOINT, payload) as response:
                    _set_request_context(response, params.model)
                    return await assemble_stream(
                        response.aiter_bytes(),
                        sink=params.stream_func,
                        cancel_token=cancel_token,
                    )

            response = await self._transport.post(MESSAGES_ENDPOINT, payload)
            _set_request_context(response, params.model)
            message = _parse_message(response)
            logger.debug("Message received", message_id=message.id, segments=len(message.content))
            return message
        finally:
            set_log_context(previous)


class ModelsService:
    """Static model catalogue."""

    def list(self) -> list[ModelID]:
        """Return the known model identifiers."""
        return list_models()


class MessagesClient:
    """Client for the Messages API.

    Example:
        >>> client = MessagesClient.create(api_key="sk-ant-...")
        >>> message = await client.messages.create(
        ...     MessageParams(model=ModelID.SONNET, messages=[MessageParam.user("Hi")])
        ... )
        >>> print(message.text)

        >>> # Streaming
        >>> params = MessageParams(
        ...     model=ModelID.SONNET,
        ...     messages=[MessageParam.user("Hi")],
        ...     stream_func=lambda token, chunk: print(chunk.decode(), end=""),
        ... )
        >>> message = await client.messages.create(params)
    """

    def __init__(self, transport: HttpTransport) -> None:
        """Initialize the client (internal use).

        Use MessagesClient.create() or MessagesClientBuilder for public
        construction.
        """
        self._transport = transport
        self._messages = MessagesService(transport)
        self._models = ModelsService()

    @classmethod
    def create(
        cls,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> MessagesClient:
        """Create a client, resolving unset options from the environment.

        Args:
            api_key: API key (default: ANTHROPIC_API_KEY)
            base_url: API base URL (default: ANTHROPIC_BASE_URL or the public API)
            api_version: anthropic-version header (default: ANTHROPIC_API_VERSION or 2023-06-01)
            timeout: Request timeout in seconds (default: AI_HTTP_TIMEOUT_SECS or 120)
            http_client: Preconfigured httpx.AsyncClient

        Raises:
            ValidationError: If no API key can be resolved
        """
        key = resolve_api_key(api_key)
        if not key:
            raise ValidationError(
                "API key is required", field="api_key"
            ).with_hint("pass api_key or set ANTHROPIC_API_KEY")

        transport = HttpTransport(
            resolve_base_url(base_url),
            api_key=key,
            api_version=resolve_api_version(api_version),
            timeout=resolve_timeout(timeout),
            client=http_client,
        )
        return cls(transport)

    @classmethod
    def builder(cls) -> MessagesClientBuilder:
        """Get a builder for advanced configuration."""
        return MessagesClientBuilder()

    @property
    def messages(self) -> MessagesService:
        return self._messages

    @property
    def models(self) -> ModelsService:
        return self._models

    @property
    def base_url(self) -> str:
        return self._transport.base_url

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._transport.close()

    async def __aenter__(self) -> MessagesClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _set_request_context(response: httpx.Response, model: str) -> None:
    """Tag logs emitted while handling ``response`` with its request id."""
    request_id = response.headers.get("request-id") or response.headers.get("x-request-id")
    set_log_context(replace(get_log_context(), request_id=request_id, model=model))


def _parse_message(response: httpx.Response) -> Message:
    try:
        data = response.json()
    except json.JSONDecodeError as e:
        raise FramingError(f"error decoding response: {e.msg}", payload=response.text) from e
    try:
        return Message.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise SchemaError(
            f"error decoding response: {first.get('msg', 'validation failed')}",
            event_type="message",
            field=field,
        ) from e
