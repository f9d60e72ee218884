"""
Builder for fluent client construction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from anthropic_messages.client.core import MessagesClient


class MessagesClientBuilder:
    """Builder for creating MessagesClient instances with custom configuration.

    Example:
        >>> client = (
        ...     MessagesClient.builder()
        ...     .api_key("sk-ant-...")
        ...     .base_url("https://proxy.internal/v1")
        ...     .timeout(30)
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        self._api_key: str | None = None
        self._base_url: str | None = None
        self._api_version: str | None = None
        self._timeout: float | None = None
        self._http_client: httpx.AsyncClient | None = None

    def api_key(self, key: str) -> MessagesClientBuilder:
        """Set explicit API key."""
        self._api_key = key
        return self

    def base_url(self, url: str) -> MessagesClientBuilder:
        """Override base URL."""
        self._base_url = url
        return self

    def api_version(self, api_version: str) -> MessagesClientBuilder:
        """Set the anthropic-version header."""
        self._api_version = api_version
        return self

    def timeout(self, seconds: float) -> MessagesClientBuilder:
        """Set request timeout in seconds."""
        self._timeout = seconds
        return self

    def http_client(self, client: httpx.AsyncClient) -> MessagesClientBuilder:
        """Use a preconfigured httpx client (not closed by the MessagesClient)."""
        self._http_client = client
        return self

    def build(self) -> MessagesClient:
        """Build the MessagesClient instance.

        Raises:
            ValidationError: If no API key can be resolved
        """
        from anthropic_messages.client.core import MessagesClient

        return MessagesClient.create(
            api_key=self._api_key,
            base_url=self._base_url,
            api_version=self._api_version,
            timeout=self._timeout,
            http_client=self._http_client,
        )
