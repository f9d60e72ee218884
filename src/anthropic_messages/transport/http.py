"""HTTP 传输层：基于 httpx 的异步 HTTP 客户端，支持流式传输。

HTTP transport using httpx for async requests.

Provides:
- Async streaming support
- Configurable timeouts
- Automatic header management
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Any

import httpx

from anthropic_messages.errors import RemoteError, TransportError
from anthropic_messages.telemetry import get_logger
from anthropic_messages.transport.auth import get_auth_headers

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger("anthropic_messages.transport.http")

_DEFAULT_CONNECT_TIMEOUT = 10.0

_UA_VERSION: str | None = None


def _get_ua_version() -> str:
    """Get package version for User-Agent (cached)."""
    global _UA_VERSION
    if _UA_VERSION is None:
        try:
            _UA_VERSION = version("anthropic-messages-python")
        except PackageNotFoundError:
            _UA_VERSION = "0.1.0"
    return _UA_VERSION


class HttpTransport:
    """HTTP transport for the Messages API.

    Example:
        >>> transport = HttpTransport(base_url, api_key="sk-ant-...")
        >>> async with transport.stream_post("/messages", payload) as response:
        ...     async for chunk in response.aiter_bytes():
        ...         process(chunk)
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str,
        api_version: str,
        timeout: float,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize HTTP transport.

        Args:
            base_url: API base URL
            api_key: API key sent as ``x-api-key``
            api_version: Value of the ``anthropic-version`` header
            timeout: Request timeout in seconds
            client: Preconfigured httpx client; it is not closed by ``close``
        """
        self._base_url = base_url
        self._timeout = timeout
        self._auth_headers = get_auth_headers(api_key, api_version)
        self._client = client
        self._owns_client = client is None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=_DEFAULT_CONNECT_TIMEOUT),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _build_headers(self, *, streaming: bool) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream" if streaming else "application/json",
            "User-Agent": f"anthropic-messages-python/{_get_ua_version()}",
        }
        headers.update(self._auth_headers)
        return headers

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def post(self, path: str, json: dict[str, Any]) -> httpx.Response:
        """Make a non-streaming POST request.

        Raises:
            TransportError: On network/connection errors
            RemoteError: On API errors (4xx, 5xx)
        """
        url = self._url(path)
        try:
            response = await self._get_client().post(
                url, json=json, headers=self._build_headers(streaming=False)
            )
        except httpx.HTTPError as e:
            raise _transport_error(e, url) from e

        if response.status_code >= 400:
            raise _remote_error(response, response.text)
        return response

    @asynccontextmanager
    async def stream_post(self, path: str, json: dict[str, Any]) -> AsyncIterator[httpx.Response]:
        """Make a streaming POST request.

        Yields:
            An open response whose body has not been read yet

        Raises:
            TransportError: On network/connection errors before the body is read
            RemoteError: On API errors (4xx, 5xx)
        """
        url = self._url(path)
        try:
            async with self._get_client().stream(
                "POST", url, json=json, headers=self._build_headers(streaming=True)
            ) as response:
                if response.status_code >= 400:
                    body_text = (await response.aread()).decode("utf-8", errors="replace")
                    raise _remote_error(response, body_text)
                logger.debug("Stream opened", url=url, status_code=response.status_code)
                yield response
        except httpx.HTTPError as e:
            raise _transport_error(e, url) from e

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _transport_error(exc: httpx.HTTPError, url: str) -> TransportError:
    if isinstance(exc, httpx.ConnectError):
        message = f"Connection failed: {exc}"
    elif isinstance(exc, httpx.TimeoutException):
        message = f"Request timed out: {exc}"
    else:
        message = f"HTTP error: {exc}"
    return TransportError(message, url=url, cause=exc)


def _remote_error(response: httpx.Response, body_text: str) -> RemoteError:
    body = None
    try:
        parsed = json.loads(body_text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        body = parsed
    return RemoteError.from_response(
        status_code=response.status_code,
        body=body,
        headers=dict(response.headers),
        text=body_text,
    )
